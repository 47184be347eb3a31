"""Holding derivation.

Rebuilds the persisted Holding of a symbol from its transaction history and
values holdings against quotes. A holding is never updated incrementally:
every recompute replays the history from scratch, so running it twice in a
row is a no-op on the stored state.
"""

from collections.abc import Sequence
from datetime import date

from qledger.errors import RecomputeFailure, StateError
from qledger.result import Err
from qledger.services.portfolio import calculator
from qledger.services.portfolio.cycle_manager import PositionCycleManager
from qledger.services.portfolio.interface import ILedgerRepository
from qledger.services.portfolio.locks import KeyedLock
from qledger.services.portfolio.models import Holding, HoldingDetail, Quote, SharesAggregate
from qledger.services.portfolio.processor import TransactionProcessor
from qledger.services.transactions.models import Transaction
from qledger.system import LoggerFactory

logger = LoggerFactory.get_logger()


class _Snapshot:
    """History of one symbol replayed into its two aggregates."""

    def __init__(self, history: list[Transaction], current: SharesAggregate, lifetime: SharesAggregate, cycle_id: int):
        self.history = history
        self.current = current
        self.lifetime = lifetime
        self.cycle_id = cycle_id

    @property
    def name(self) -> str:
        for txn in reversed(self.history):
            if txn.name:
                return txn.name
        return ""


class HoldingService:
    """
    Derives holdings from transaction history.

    Attributes:
        repository: Ledger storage
        locks: Per-(portfolio, symbol) lock registry
        processor: Replay engine

    Example:
        >>> service = HoldingService(repository, KeyedLock())
        >>> holding = service.recompute(1, "600000")
        >>> holding.hold_cost
        Decimal('10.005000')
    """

    def __init__(
        self,
        repository: ILedgerRepository,
        locks: KeyedLock | None = None,
        processor: TransactionProcessor | None = None,
    ) -> None:
        self.repository = repository
        self.locks = locks or KeyedLock()
        self.processor = processor or TransactionProcessor()

    def _snapshot(self, portfolio_id: int, symbol: str) -> _Snapshot | None:
        """Replay a symbol's history, or None when it has none.

        Stored cycle ids must be contiguous; the current cycle is still cut
        from ids derived afresh from the history rather than the stored ones.

        Raises:
            StateError: If the history is inconsistent or the stored cycle
                ids have a gap
        """
        history = self.repository.list_transactions(portfolio_id, symbol)
        if not history:
            return None
        PositionCycleManager.ensure_contiguous(history)

        cycle_ids = PositionCycleManager.derive_cycle_ids(history).unwrap()
        latest = cycle_ids[-1] if cycle_ids else 0
        current_slice = [txn for txn, cycle_id in zip(history, cycle_ids) if cycle_id == latest]

        current = self.processor.replay(current_slice).unwrap()
        lifetime = self.processor.replay(history).unwrap()
        return _Snapshot(history, current, lifetime, latest)

    def recompute(self, portfolio_id: int, symbol: str) -> Holding | None:
        """
        Re-derive and persist the holding of one symbol.

        The holding is deleted when nothing is held and nothing was ever
        bought (the history is empty); a fully sold position is kept with
        ``is_active=False``.

        Args:
            portfolio_id: Portfolio
            symbol: Security code

        Returns:
            The persisted Holding, or None when it was deleted

        Raises:
            RecomputeFailure: If the history cannot be read, is
                inconsistent, or the holding cannot be written
        """
        with self.locks.hold(portfolio_id, symbol):
            try:
                snapshot = self._snapshot(portfolio_id, symbol)
                if snapshot is None or (snapshot.lifetime.total_shares == 0 and snapshot.lifetime.buy_amount == 0):
                    self.repository.delete_holding(portfolio_id, symbol)
                    logger.info("holding.deleted", portfolio_id=portfolio_id, symbol=symbol)
                    return None

                holding = self._build_holding(portfolio_id, symbol, snapshot)
                self.repository.upsert_holding(holding)
            except Exception as e:
                logger.error(
                    "holding.recompute_failed",
                    portfolio_id=portfolio_id,
                    symbol=symbol,
                    error=str(e),
                )
                raise RecomputeFailure(portfolio_id, symbol, str(e)) from e

        logger.debug(
            "holding.recomputed",
            portfolio_id=portfolio_id,
            symbol=symbol,
            shares=str(holding.shares),
            hold_cost=str(holding.hold_cost),
            diluted_cost=str(holding.diluted_cost),
            cycle_id=holding.cycle_id,
        )
        return holding

    def recompute_all(self, portfolio_id: int, symbols: Sequence[str] | None = None) -> dict[str, Holding | None]:
        """
        Recompute several symbols.

        Args:
            portfolio_id: Portfolio
            symbols: Symbols to recompute (defaults to every symbol with history)

        Returns:
            Mapping symbol -> Holding (None when deleted)

        Raises:
            RecomputeFailure: On the first symbol that fails
        """
        if symbols is None:
            symbols = self.repository.list_symbols(portfolio_id)
        return {symbol: self.recompute(portfolio_id, symbol) for symbol in symbols}

    @staticmethod
    def _build_holding(portfolio_id: int, symbol: str, snapshot: _Snapshot) -> Holding:
        current = snapshot.current
        lifetime = snapshot.lifetime
        shares = lifetime.total_shares
        return Holding(
            portfolio_id=portfolio_id,
            symbol=symbol,
            name=snapshot.name,
            shares=shares,
            hold_cost=calculator.hold_cost(current),
            diluted_cost=calculator.diluted_cost(lifetime),
            total_buy_amount=lifetime.buy_amount,
            total_sell_amount=lifetime.sell_amount,
            total_dividend=lifetime.dividends,
            buy_commission=lifetime.buy_commission,
            sell_commission=lifetime.sell_commission,
            buy_tax=lifetime.buy_tax,
            sell_tax=lifetime.sell_tax,
            other_fees=lifetime.other_fees,
            cycle_id=snapshot.cycle_id,
            is_active=shares > 0,
            open_time=current.open_time,
            liquidation_time=None if shares > 0 else current.liquidation_time,
        )

    def compute_holding_detail(
        self,
        portfolio_id: int,
        symbol: str,
        quote: Quote,
        as_of: date,
    ) -> HoldingDetail | None:
        """
        Value a symbol against a quote.

        Args:
            portfolio_id: Portfolio
            symbol: Security code
            quote: Latest quote for the symbol
            as_of: Day treated as "today" for the day P&L

        Returns:
            HoldingDetail, or None when the symbol has no history

        Raises:
            RecomputeFailure: If the history is inconsistent
        """
        try:
            snapshot = self._snapshot(portfolio_id, symbol)
            if snapshot is None:
                return None
            day_result = self.processor.day_trading(snapshot.history, as_of)
            if isinstance(day_result, Err):
                raise day_result.error
        except StateError as e:
            raise RecomputeFailure(portfolio_id, symbol, str(e)) from e

        shares = snapshot.lifetime.total_shares
        cost = calculator.hold_cost(snapshot.current)
        value = calculator.market_value(shares, quote.price)
        floating = calculator.float_pnl(quote.price, cost, shares)
        accumulated = calculator.accum_pnl(value, snapshot.lifetime)
        day = calculator.day_pnl(quote.price, quote.change, shares, cost, day_result.value)

        return HoldingDetail(
            portfolio_id=portfolio_id,
            symbol=symbol,
            name=snapshot.name or quote.name or "",
            shares=shares,
            price=quote.price,
            hold_cost=cost,
            diluted_cost=calculator.diluted_cost(snapshot.lifetime),
            market_value=value,
            float_amount=floating.amount,
            float_rate=floating.rate,
            float_basis=floating.basis,
            accum_amount=accumulated.amount,
            accum_rate=accumulated.rate,
            accum_basis=accumulated.basis,
            day_float_amount=day.amount,
            day_float_rate=day.rate,
            day_float_basis=day.basis,
            is_active=shares > 0,
            open_time=snapshot.current.open_time,
            liquidation_time=None if shares > 0 else snapshot.current.liquidation_time,
        )
