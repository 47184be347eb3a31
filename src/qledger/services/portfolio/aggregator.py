"""Portfolio-wide aggregation.

Combines the cash ledger with every symbol's valued holding into a single
PortfolioOverview.

Cash:
    deposits - withdrawals - buys - fees + sells + cash dividends

Totals:
    Market value and P&L amounts are summed over every symbol with history.
    Liquidated symbols contribute no market value or floating P&L but keep
    their realised (accumulated) P&L. Each rate is the summed amount over
    the summed basis of the same metric.
"""

from datetime import date
from decimal import Decimal

from qledger.errors import QuoteUnavailable, RecomputeFailure
from qledger.result import Err
from qledger.services.portfolio.calculator import safe_divide
from qledger.services.portfolio.holding_service import HoldingService
from qledger.services.portfolio.interface import ILedgerRepository, IQuoteProvider
from qledger.services.portfolio.models import CashPosition, HoldingDetail, PortfolioOverview, Quote, TransferKind
from qledger.system import LoggerFactory

logger = LoggerFactory.get_logger()

_ZERO = Decimal("0")


class PortfolioAggregator:
    """
    Computes cash and portfolio totals.

    Attributes:
        repository: Ledger storage
        holdings: Holding service used to value each symbol
    """

    def __init__(self, repository: ILedgerRepository, holdings: HoldingService) -> None:
        self.repository = repository
        self.holdings = holdings

    def compute_cash(self, portfolio_id: int) -> CashPosition:
        """
        Cash balance from transfers and trading cash flow.

        Trading cash flow comes from replaying each symbol's full history,
        so dividend cash is the replayed amount, not a stored one.

        Args:
            portfolio_id: Portfolio

        Returns:
            CashPosition with cash, principal and withdrawals

        Raises:
            RecomputeFailure: If a symbol's history is inconsistent
        """
        deposits = _ZERO
        withdrawals = _ZERO
        for transfer in self.repository.list_transfers(portfolio_id):
            if transfer.kind == TransferKind.DEPOSIT:
                deposits += transfer.amount
            else:
                withdrawals += transfer.amount

        trading = _ZERO
        for symbol in self.repository.list_symbols(portfolio_id):
            result = self.holdings.processor.replay(self.repository.list_transactions(portfolio_id, symbol))
            if isinstance(result, Err):
                raise RecomputeFailure(portfolio_id, symbol, str(result.error)) from result.error
            lifetime = result.value
            trading += lifetime.sell_amount + lifetime.dividends - lifetime.buy_amount - lifetime.total_fees

        return CashPosition(
            cash=deposits - withdrawals + trading,
            principal=deposits,
            withdrawals=withdrawals,
        )

    def compute_overview(self, portfolio_id: int, quotes: IQuoteProvider, as_of: date) -> PortfolioOverview:
        """
        Value the whole portfolio.

        Args:
            portfolio_id: Portfolio
            quotes: Quote source
            as_of: Day treated as "today" for the day P&L

        Returns:
            PortfolioOverview with totals and per-symbol details

        Raises:
            QuoteUnavailable: If a symbol with shares held has no quote
            RecomputeFailure: If a symbol's history is inconsistent
        """
        details: list[HoldingDetail] = []
        for symbol in self.repository.list_symbols(portfolio_id):
            detail = self._detail(portfolio_id, symbol, quotes, as_of)
            if detail is not None:
                details.append(detail)

        cash = self.compute_cash(portfolio_id)

        market_value = sum((d.market_value for d in details), _ZERO)
        float_amount = sum((d.float_amount for d in details), _ZERO)
        float_basis = sum((d.float_basis for d in details), _ZERO)
        accum_amount = sum((d.accum_amount for d in details), _ZERO)
        accum_basis = sum((d.accum_basis for d in details), _ZERO)
        day_amount = sum((d.day_float_amount for d in details), _ZERO)
        day_basis = sum((d.day_float_basis for d in details), _ZERO)

        overview = PortfolioOverview(
            portfolio_id=portfolio_id,
            as_of=as_of,
            total_assets=market_value + cash.cash,
            market_value=market_value,
            cash=cash.cash,
            principal=cash.principal,
            float_amount=float_amount,
            float_rate=safe_divide(float_amount, float_basis),
            accum_amount=accum_amount,
            accum_rate=safe_divide(accum_amount, accum_basis),
            day_float_amount=day_amount,
            day_float_rate=safe_divide(day_amount, day_basis),
            holdings=details,
        )
        logger.info(
            "portfolio.overview.computed",
            portfolio_id=portfolio_id,
            as_of=as_of.isoformat(),
            symbols=len(details),
            total_assets=str(overview.total_assets),
        )
        return overview

    def _detail(self, portfolio_id: int, symbol: str, quotes: IQuoteProvider, as_of: date) -> HoldingDetail | None:
        quote = quotes.get_quote(symbol)
        if quote is not None:
            return self.holdings.compute_holding_detail(portfolio_id, symbol, quote, as_of)

        # Liquidated symbols may have no quote; they still carry realised P&L.
        detail = self.holdings.compute_holding_detail(
            portfolio_id, symbol, Quote(symbol=symbol, price=_ZERO), as_of
        )
        if detail is None:
            return None
        if detail.is_active:
            raise QuoteUnavailable(f"No quote available for active holding {symbol}")
        logger.debug("portfolio.quote_missing", portfolio_id=portfolio_id, symbol=symbol)
        return detail.model_copy(update={"day_float_amount": _ZERO, "day_float_rate": _ZERO, "day_float_basis": _ZERO})
