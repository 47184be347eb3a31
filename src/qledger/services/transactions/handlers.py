"""Transaction handlers.

One handler per family of transaction kinds turns a validated
TransactionInput into the canonical TransactionRecord that gets persisted:

- TradeHandler: BUY/SELL (gross amount plus itemised fees)
- RatioHandler: MERGE/SPLIT (ratio only, no money moves)
- DividendHandler: DIVIDEND (cash leg against the held shares, stock legs as ratios)

Handlers are pure: they never touch storage and never mutate shared state.
Dispatch over the closed set of kinds lives in ``get_handler``.
"""

from decimal import Decimal
from typing import assert_never

from qledger.errors import LedgerError, ValidationError
from qledger.result import Err, Ok, Result
from qledger.services.fees import FeeCalculator, FeeConfig, TradeDirection
from qledger.services.transactions.models import TransactionInput, TransactionKind, TransactionRecord

_ZERO = Decimal("0")
_TEN = Decimal("10")


class TransactionHandler:
    """Base class for transaction handlers.

    Attributes:
        supported_kinds: Kinds this handler accepts
    """

    supported_kinds: frozenset[TransactionKind] = frozenset()

    def process(
        self,
        request: TransactionInput,
        fee_config: FeeConfig,
        held_shares: Decimal = _ZERO,
    ) -> Result[TransactionRecord]:
        """
        Produce the canonical record for a request.

        Args:
            request: Validated transaction request
            fee_config: Portfolio fee settings
            held_shares: Shares currently held in the symbol

        Returns:
            Ok(TransactionRecord), or Err when the request cannot be handled
        """
        if request.kind not in self.supported_kinds:
            return Err(ValidationError(f"{type(self).__name__} cannot handle {request.kind.name} transactions"))
        try:
            return Ok(self._build(request, fee_config, held_shares))
        except LedgerError as e:
            return Err(e)

    def _build(self, request: TransactionInput, fee_config: FeeConfig, held_shares: Decimal) -> TransactionRecord:
        raise NotImplementedError


class TradeHandler(TransactionHandler):
    """Handles BUY and SELL.

    amount = shares * price; commission, stamp tax and transfer fee come
    from the FeeCalculator and are stored alongside, never inside, amount.
    """

    supported_kinds = frozenset({TransactionKind.BUY, TransactionKind.SELL})

    def _build(self, request: TransactionInput, fee_config: FeeConfig, held_shares: Decimal) -> TransactionRecord:
        amount = request.shares * request.price
        direction = TradeDirection.BUY if request.kind == TransactionKind.BUY else TradeDirection.SELL
        fees = FeeCalculator(fee_config).calculate(request.symbol, direction, amount)

        return TransactionRecord(
            portfolio_id=request.portfolio_id,
            symbol=request.symbol,
            name=request.name,
            kind=request.kind,
            trade_date=request.trade_date,
            shares=request.shares,
            price=request.price,
            amount=amount,
            commission=fees.commission,
            tax=fees.stamp_tax,
            transfer_fee=fees.transfer_fee,
            description=fees.description,
            comment=request.comment,
        )


class RatioHandler(TransactionHandler):
    """Handles MERGE and SPLIT.

    Only the ratio is recorded; share counts are rescaled during replay.
    """

    supported_kinds = frozenset({TransactionKind.MERGE, TransactionKind.SPLIT})

    def _build(self, request: TransactionInput, fee_config: FeeConfig, held_shares: Decimal) -> TransactionRecord:
        ratio = request.unit_shares
        if ratio is None or ratio <= 0:
            raise ValidationError("Unit shares must be greater than 0 for merge/split")

        if request.kind == TransactionKind.MERGE:
            description = f"Merge {ratio} shares into 1"
        else:
            description = f"Split 1 share into {ratio}"

        return TransactionRecord(
            portfolio_id=request.portfolio_id,
            symbol=request.symbol,
            name=request.name,
            kind=request.kind,
            trade_date=request.trade_date,
            unit_shares=ratio,
            description=description,
            comment=request.comment,
        )


class DividendHandler(TransactionHandler):
    """Handles DIVIDEND.

    The cash leg is valued against the shares held when the dividend is
    recorded: amount = held_shares * per10_dividend / 10. Stock legs are
    kept as per-10 ratios and applied during replay.
    """

    supported_kinds = frozenset({TransactionKind.DIVIDEND})

    def _build(self, request: TransactionInput, fee_config: FeeConfig, held_shares: Decimal) -> TransactionRecord:
        per10_dividend = request.per10_dividend or _ZERO
        amount = held_shares * per10_dividend / _TEN

        parts = []
        if per10_dividend > 0:
            parts.append(f"cash {per10_dividend} per 10")
        if request.per10_transfer:
            parts.append(f"transfer {request.per10_transfer} per 10")
        if request.per10_bonus:
            parts.append(f"bonus {request.per10_bonus} per 10")
        if request.tax > 0:
            parts.append(f"tax {request.tax}")
        description = f"Dividend on {held_shares} shares: {', '.join(parts)}"

        return TransactionRecord(
            portfolio_id=request.portfolio_id,
            symbol=request.symbol,
            name=request.name,
            kind=request.kind,
            trade_date=request.trade_date,
            amount=amount,
            tax=request.tax,
            per10_dividend=request.per10_dividend,
            per10_transfer=request.per10_transfer,
            per10_bonus=request.per10_bonus,
            description=description,
            comment=request.comment,
        )


_TRADE_HANDLER = TradeHandler()
_RATIO_HANDLER = RatioHandler()
_DIVIDEND_HANDLER = DividendHandler()


def get_handler(kind: TransactionKind) -> TransactionHandler:
    """Return the handler for a transaction kind.

    Args:
        kind: Transaction kind

    Returns:
        Handler whose ``supported_kinds`` contains ``kind``
    """
    match kind:
        case TransactionKind.BUY | TransactionKind.SELL:
            return _TRADE_HANDLER
        case TransactionKind.MERGE | TransactionKind.SPLIT:
            return _RATIO_HANDLER
        case TransactionKind.DIVIDEND:
            return _DIVIDEND_HANDLER
        case _:
            assert_never(kind)
