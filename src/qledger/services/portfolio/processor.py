"""Replay engine for transaction histories.

Folds an ordered slice of transactions into a SharesAggregate. The fold is
a pure function of its input: no clock, no storage, no counters. Replaying
the same history always yields the same aggregate.

Fold rules:
- BUY: shares += n, buy_shares += n, buy_amount += amount; first BUY sets open_time
- SELL: shares -= n, sell_amount += amount; shares reaching 0 sets liquidation_time
- MERGE: shares and buy_shares divided by the ratio
- SPLIT: shares and buy_shares multiplied by the ratio
- DIVIDEND: dividends += per10_dividend / 10 * shares; transfer and bonus legs
  each add per10 / 10 * shares to shares and buy_shares, both computed from
  the share count before the event
- Fees: commission and tax go to the buy or sell bucket of the trade;
  transfer fees and all fees of non-trade events go to other_fees
"""

from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal
from typing import assert_never

from qledger.errors import StateError
from qledger.result import Err, Ok, Result
from qledger.services.portfolio.models import DayTradingData, SharesAggregate
from qledger.services.transactions.models import TransactionKind, TransactionRecord

_ZERO = Decimal("0")
_TEN = Decimal("10")


class RunningTotals:
    """Mutable running totals for a single fold.

    Shared by the replay and by cycle derivation so both apply events the
    same way.
    """

    def __init__(self) -> None:
        self.total_shares = _ZERO
        self.buy_shares = _ZERO
        self.buy_amount = _ZERO
        self.sell_amount = _ZERO
        self.dividends = _ZERO
        self.buy_commission = _ZERO
        self.sell_commission = _ZERO
        self.buy_tax = _ZERO
        self.sell_tax = _ZERO
        self.other_fees = _ZERO
        self.open_time: date | None = None
        self.liquidation_time: date | None = None

    def apply(self, txn: TransactionRecord) -> None:
        match txn.kind:
            case TransactionKind.BUY:
                self.total_shares += txn.shares
                self.buy_shares += txn.shares
                self.buy_amount += txn.amount
                self.buy_commission += txn.commission
                self.buy_tax += txn.tax
                self.other_fees += txn.transfer_fee
                if self.open_time is None:
                    self.open_time = txn.trade_date
            case TransactionKind.SELL:
                if txn.shares > self.total_shares:
                    raise StateError(
                        f"Sell of {txn.shares} {txn.symbol} on {txn.trade_date.isoformat()} "
                        f"exceeds the {self.total_shares} shares held"
                    )
                self.total_shares -= txn.shares
                self.sell_amount += txn.amount
                self.sell_commission += txn.commission
                self.sell_tax += txn.tax
                self.other_fees += txn.transfer_fee
                if self.total_shares <= 0:
                    self.liquidation_time = txn.trade_date
            case TransactionKind.MERGE:
                ratio = self._ratio(txn)
                self.total_shares /= ratio
                self.buy_shares /= ratio
                self.other_fees += txn.total_fees
            case TransactionKind.SPLIT:
                ratio = self._ratio(txn)
                self.total_shares *= ratio
                self.buy_shares *= ratio
                self.other_fees += txn.total_fees
            case TransactionKind.DIVIDEND:
                held = self.total_shares
                if txn.per10_dividend:
                    self.dividends += txn.per10_dividend / _TEN * held
                stock_added = _ZERO
                if txn.per10_transfer:
                    stock_added += txn.per10_transfer / _TEN * held
                if txn.per10_bonus:
                    stock_added += txn.per10_bonus / _TEN * held
                self.total_shares += stock_added
                self.buy_shares += stock_added
                self.other_fees += txn.total_fees
            case _:
                assert_never(txn.kind)

    @staticmethod
    def _ratio(txn: TransactionRecord) -> Decimal:
        if txn.unit_shares is None or txn.unit_shares <= 0:
            raise StateError(f"{txn.kind.name} on {txn.trade_date.isoformat()} has no positive ratio")
        return txn.unit_shares

    def freeze(self) -> SharesAggregate:
        return SharesAggregate(
            total_shares=self.total_shares,
            buy_shares=self.buy_shares,
            buy_amount=self.buy_amount,
            sell_amount=self.sell_amount,
            dividends=self.dividends,
            buy_commission=self.buy_commission,
            sell_commission=self.sell_commission,
            buy_tax=self.buy_tax,
            sell_tax=self.sell_tax,
            other_fees=self.other_fees,
            open_time=self.open_time,
            liquidation_time=self.liquidation_time,
        )


class TransactionProcessor:
    """
    Replays transaction slices into aggregates.

    Input must already be in ledger order, (trade_date, id).

    Example:
        >>> processor = TransactionProcessor()
        >>> result = processor.replay(repository.list_transactions(1, "600000"))
        >>> result.unwrap().total_shares
        Decimal('500')
    """

    def replay(self, transactions: Iterable[TransactionRecord]) -> Result[SharesAggregate]:
        """
        Fold transactions into a SharesAggregate.

        Args:
            transactions: Ordered transactions of one symbol

        Returns:
            Ok(SharesAggregate), or Err(StateError) when the history is
            inconsistent (a sell exceeding the shares held, a ratio event
            without a positive ratio)
        """
        acc = RunningTotals()
        try:
            for txn in transactions:
                acc.apply(txn)
        except StateError as e:
            return Err(e)
        return Ok(acc.freeze())

    def day_trading(self, transactions: Sequence[TransactionRecord], as_of: date) -> Result[DayTradingData]:
        """
        Collect the inputs for today's P&L.

        Args:
            transactions: Ordered transactions of one symbol
            as_of: The day treated as "today"

        Returns:
            Ok(DayTradingData) with shares held at the end of the previous
            day and today's gross buys and sells, or Err(StateError)
        """
        earlier = [txn for txn in transactions if txn.trade_date < as_of]
        result = self.replay(earlier)
        if isinstance(result, Err):
            return result
        yesterday = result.value

        today_buys = _ZERO
        today_sells = _ZERO
        for txn in transactions:
            if txn.trade_date != as_of:
                continue
            if txn.kind == TransactionKind.BUY:
                today_buys += txn.amount
            elif txn.kind == TransactionKind.SELL:
                today_sells += txn.amount

        return Ok(
            DayTradingData(
                yesterday_shares=yesterday.total_shares,
                today_buy_amount=today_buys,
                today_sell_amount=today_sells,
            )
        )
