"""Data models for ledger transactions.

Defines the three shapes a transaction takes on its way into the ledger:
- TransactionInput: Raw write request from a caller
- TransactionRecord: Canonical record produced by a handler, ready to persist
- Transaction: Persisted record with its storage id and position cycle
"""

from datetime import date
from decimal import Decimal
from enum import IntEnum

from pydantic import BaseModel, ConfigDict, field_validator


class TransactionKind(IntEnum):
    """Kind of ledger event.

    The integer value is the persisted kind code.
    """

    BUY = 1
    SELL = 2
    MERGE = 3
    SPLIT = 4
    DIVIDEND = 9

    @property
    def is_trade(self) -> bool:
        return self in (TransactionKind.BUY, TransactionKind.SELL)


_ZERO = Decimal("0")


class TransactionInput(BaseModel):
    """
    Write request for a single ledger event.

    Which fields matter depends on the kind:
    - BUY/SELL: shares, price
    - MERGE/SPLIT: unit_shares (the ratio, e.g. 10 for 10-to-1)
    - DIVIDEND: per10_dividend / per10_transfer / per10_bonus, tax

    Attributes:
        portfolio_id: Owning portfolio
        symbol: Security code
        name: Display name of the security
        kind: Event kind
        trade_date: Date the event takes effect
        shares: Shares traded
        price: Price per share
        unit_shares: Merge/split ratio
        per10_dividend: Cash dividend per 10 shares held
        per10_transfer: Capitalization-transfer shares per 10 held
        per10_bonus: Bonus shares per 10 held
        tax: Dividend withholding tax
        comment: Free-form note

    Example:
        >>> request = TransactionInput(
        ...     portfolio_id=1,
        ...     symbol="600000",
        ...     kind=TransactionKind.BUY,
        ...     trade_date=date(2024, 3, 1),
        ...     shares=Decimal("1000"),
        ...     price=Decimal("10.00"),
        ... )
    """

    portfolio_id: int
    symbol: str
    name: str = ""
    kind: TransactionKind
    trade_date: date

    shares: Decimal = _ZERO
    price: Decimal = _ZERO

    unit_shares: Decimal | None = None

    per10_dividend: Decimal | None = None
    per10_transfer: Decimal | None = None
    per10_bonus: Decimal | None = None
    tax: Decimal = _ZERO

    comment: str | None = None

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        """Strip whitespace and upper-case the symbol."""
        return v.strip().upper()

    model_config = ConfigDict(frozen=True)


class TransactionRecord(BaseModel):
    """
    Canonical transaction produced by a handler.

    ``amount`` is the gross value of the event: shares * price for trades and
    the cash paid out for dividends. Fees are never folded into it; they sit
    in ``commission``, ``tax`` and ``transfer_fee``.

    Attributes:
        portfolio_id: Owning portfolio
        symbol: Security code
        name: Display name
        kind: Event kind
        trade_date: Date the event takes effect
        shares: Shares traded (zero for corporate actions)
        price: Price per share (zero for corporate actions)
        amount: Gross amount
        commission: Broker commission
        tax: Stamp tax (trades) or withholding tax (dividends)
        transfer_fee: Transfer fee
        unit_shares: Merge/split ratio
        per10_dividend: Cash dividend per 10 shares
        per10_transfer: Transfer shares per 10
        per10_bonus: Bonus shares per 10
        description: Human-readable summary
        comment: Free-form note
    """

    portfolio_id: int
    symbol: str
    name: str = ""
    kind: TransactionKind
    trade_date: date

    shares: Decimal = _ZERO
    price: Decimal = _ZERO
    amount: Decimal = _ZERO

    commission: Decimal = _ZERO
    tax: Decimal = _ZERO
    transfer_fee: Decimal = _ZERO

    unit_shares: Decimal | None = None
    per10_dividend: Decimal | None = None
    per10_transfer: Decimal | None = None
    per10_bonus: Decimal | None = None

    description: str = ""
    comment: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def total_fees(self) -> Decimal:
        """Commission + tax + transfer fee."""
        return self.commission + self.tax + self.transfer_fee


class Transaction(TransactionRecord):
    """
    Persisted transaction.

    Ordering within a symbol is (trade_date, id): same-day events keep the
    order in which they were recorded.

    Attributes:
        id: Storage id, strictly increasing in insertion order
        cycle_id: Position cycle the event belongs to
    """

    id: int
    cycle_id: int

    @property
    def sort_key(self) -> tuple[date, int]:
        return (self.trade_date, self.id)
