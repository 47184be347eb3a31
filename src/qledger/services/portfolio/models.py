"""Data models for portfolio derivation.

Defines the derived entities of the ledger:
- SharesAggregate: Result of replaying a slice of transactions
- DayTradingData: Inputs for today's P&L
- Holding: Persisted per-symbol summary
- Quote: Market price supplied by a quote provider
- HoldingDetail: Holding valued against a quote
- Transfer / CashPosition: Cash ledger
- PortfolioOverview: Portfolio-wide totals
- WriteResult / BulkImportResult: Outcomes of write operations
"""

from datetime import date
from decimal import Decimal
from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from qledger.services.transactions.models import Transaction

_ZERO = Decimal("0")


class SharesAggregate(BaseModel):
    """
    Totals obtained by folding a slice of transactions.

    Attributes:
        total_shares: Shares held after the last event
        buy_shares: Shares bought, rescaled by merges/splits and grown by stock dividends
        buy_amount: Gross amount bought
        sell_amount: Gross amount sold
        dividends: Cash dividends received
        buy_commission: Commission on buys
        sell_commission: Commission on sells
        buy_tax: Tax on buys
        sell_tax: Tax on sells
        other_fees: Transfer fees and every fee of non-trade events
        open_time: Date of the first buy in the slice
        liquidation_time: Date of the last sell that emptied the position
    """

    total_shares: Decimal = _ZERO
    buy_shares: Decimal = _ZERO
    buy_amount: Decimal = _ZERO
    sell_amount: Decimal = _ZERO
    dividends: Decimal = _ZERO

    buy_commission: Decimal = _ZERO
    sell_commission: Decimal = _ZERO
    buy_tax: Decimal = _ZERO
    sell_tax: Decimal = _ZERO
    other_fees: Decimal = _ZERO

    open_time: date | None = None
    liquidation_time: date | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def total_fees(self) -> Decimal:
        """Every fee and tax recorded in the slice."""
        return self.buy_commission + self.sell_commission + self.buy_tax + self.sell_tax + self.other_fees


class DayTradingData(BaseModel):
    """
    Inputs for today's P&L.

    Attributes:
        yesterday_shares: Shares held at the end of the previous day
        today_buy_amount: Gross amount bought today
        today_sell_amount: Gross amount sold today
    """

    yesterday_shares: Decimal = _ZERO
    today_buy_amount: Decimal = _ZERO
    today_sell_amount: Decimal = _ZERO

    model_config = ConfigDict(frozen=True)


class Holding(BaseModel):
    """
    Persisted summary of one symbol in one portfolio.

    Always re-derivable from the transaction history; written only by the
    holding recompute.

    Attributes:
        portfolio_id: Owning portfolio
        symbol: Security code
        name: Display name
        shares: Shares currently held
        hold_cost: Per-share cost of the current cycle, buy commission included
        diluted_cost: Per-share cost net of everything realised over all history
        total_buy_amount: Lifetime gross buys
        total_sell_amount: Lifetime gross sells
        total_dividend: Lifetime cash dividends
        buy_commission: Lifetime buy commission
        sell_commission: Lifetime sell commission
        buy_tax: Lifetime buy tax
        sell_tax: Lifetime sell tax
        other_fees: Lifetime other fees
        cycle_id: Current position cycle
        is_active: True while shares are held
        open_time: Open date of the current cycle
        liquidation_time: Liquidation date of the current cycle, if closed
    """

    portfolio_id: int
    symbol: str
    name: str = ""

    shares: Decimal = _ZERO
    hold_cost: Decimal = _ZERO
    diluted_cost: Decimal = _ZERO

    total_buy_amount: Decimal = _ZERO
    total_sell_amount: Decimal = _ZERO
    total_dividend: Decimal = _ZERO

    buy_commission: Decimal = _ZERO
    sell_commission: Decimal = _ZERO
    buy_tax: Decimal = _ZERO
    sell_tax: Decimal = _ZERO
    other_fees: Decimal = _ZERO

    cycle_id: int = 0
    is_active: bool = False
    open_time: date | None = None
    liquidation_time: date | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def total_fees(self) -> Decimal:
        return self.buy_commission + self.sell_commission + self.buy_tax + self.sell_tax + self.other_fees


class Quote(BaseModel):
    """
    Market quote for a symbol.

    Attributes:
        symbol: Security code
        price: Latest price
        change: Price change versus the previous close
        name: Display name, if the provider knows it
    """

    symbol: str
    price: Decimal
    change: Decimal = _ZERO
    name: str | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: Decimal) -> Decimal:
        """Validate price is non-negative."""
        if v < 0:
            raise ValueError(f"Quote price cannot be negative, got {v}")
        return v

    @property
    def previous_close(self) -> Decimal:
        return self.price - self.change


class HoldingDetail(BaseModel):
    """
    Holding valued against a quote.

    Each ``*_basis`` field is the denominator of the matching rate, exposed
    so that portfolio totals can compute rates over sums.

    Attributes:
        portfolio_id: Owning portfolio
        symbol: Security code
        name: Display name
        shares: Shares held
        price: Quote price used
        hold_cost: Current-cycle per-share cost
        diluted_cost: All-history per-share cost
        market_value: shares * price
        float_amount: Unrealised P&L of the current cycle
        float_rate: float_amount / float_basis
        float_basis: hold_cost * shares
        accum_amount: Lifetime P&L
        accum_rate: accum_amount / accum_basis
        accum_basis: Lifetime buy amount + buy commission
        day_float_amount: Today's P&L
        day_float_rate: day_float_amount / day_float_basis
        day_float_basis: Denominator of today's rate
        is_active: True while shares are held
        open_time: Open date of the current cycle
        liquidation_time: Liquidation date of the current cycle
    """

    portfolio_id: int
    symbol: str
    name: str = ""
    shares: Decimal
    price: Decimal

    hold_cost: Decimal
    diluted_cost: Decimal
    market_value: Decimal

    float_amount: Decimal
    float_rate: Decimal
    float_basis: Decimal

    accum_amount: Decimal
    accum_rate: Decimal
    accum_basis: Decimal

    day_float_amount: Decimal
    day_float_rate: Decimal
    day_float_basis: Decimal

    is_active: bool
    open_time: date | None = None
    liquidation_time: date | None = None

    model_config = ConfigDict(frozen=True)


class TransferKind(IntEnum):
    """Direction of a cash transfer; the value is the persisted code."""

    DEPOSIT = 1
    WITHDRAW = 2


class Transfer(BaseModel):
    """
    Cash moved into or out of a portfolio.

    Attributes:
        id: Storage id (0 until persisted)
        portfolio_id: Owning portfolio
        kind: Deposit or withdrawal
        amount: Amount moved (positive)
        transfer_date: Date of the transfer
        comment: Free-form note
    """

    id: int = 0
    portfolio_id: int
    kind: TransferKind
    amount: Decimal
    transfer_date: date
    comment: str | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        """Validate transfer amount is positive."""
        if v <= 0:
            raise ValueError(f"Transfer amount must be positive, got {v}")
        return v


class CashPosition(BaseModel):
    """
    Cash ledger totals.

    Attributes:
        cash: Deposits - withdrawals - buys - fees + sells + dividends
        principal: Total deposits
        withdrawals: Total withdrawals
    """

    cash: Decimal = _ZERO
    principal: Decimal = _ZERO
    withdrawals: Decimal = _ZERO

    model_config = ConfigDict(frozen=True)


class PortfolioOverview(BaseModel):
    """
    Portfolio-wide totals.

    Rates are the summed amount divided by the summed basis of the same
    metric across holdings; zero when the basis is zero.

    Attributes:
        portfolio_id: Portfolio
        as_of: Valuation date
        total_assets: market_value + cash
        market_value: Sum of holding market values
        cash: Cash balance
        principal: Total deposits
        float_amount / float_rate: Unrealised P&L
        accum_amount / accum_rate: Lifetime P&L
        day_float_amount / day_float_rate: Today's P&L
        holdings: Per-symbol details the totals were built from
    """

    portfolio_id: int
    as_of: date

    total_assets: Decimal
    market_value: Decimal
    cash: Decimal
    principal: Decimal

    float_amount: Decimal
    float_rate: Decimal
    accum_amount: Decimal
    accum_rate: Decimal
    day_float_amount: Decimal
    day_float_rate: Decimal

    holdings: list[HoldingDetail] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class WriteResult(BaseModel):
    """
    Outcome of a committed write.

    The write itself succeeded; ``recompute_error`` is set when the holding
    could not be re-derived afterwards.

    Attributes:
        transaction: Written (or deleted) transaction
        holding: Holding after recompute, None when deleted or not recomputed
        recompute_error: Failure message from the recompute, if any
    """

    transaction: Transaction
    holding: Holding | None = None
    recompute_error: str | None = None

    model_config = ConfigDict(frozen=True)


class ImportRowError(BaseModel):
    """A rejected row of a bulk import."""

    index: int
    symbol: str | None = None
    message: str

    model_config = ConfigDict(frozen=True)


class BulkImportResult(BaseModel):
    """
    Outcome of a bulk import.

    Attributes:
        success_count: Rows written
        failure_count: Rows rejected
        errors: Rejected rows by original input index
        recompute_errors: Symbols whose holding recompute failed
    """

    success_count: int = 0
    failure_count: int = 0
    errors: list[ImportRowError] = Field(default_factory=list)
    recompute_errors: dict[str, str] = Field(default_factory=dict)
