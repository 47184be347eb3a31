"""Fee calculation for trades.

Calculates commission, stamp tax and transfer fee for a single trade from
the symbol's classification and the portfolio's fee configuration.
"""

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict

from qledger.services.fees.classifier import Exchange, InstrumentInfo, InstrumentKind, classify_symbol
from qledger.services.fees.config import FeeConfig


class TradeDirection(str, Enum):
    """Side of a trade."""

    BUY = "buy"
    SELL = "sell"


class FeeBreakdown(BaseModel):
    """Itemised fees for one trade.

    Attributes:
        commission: Broker commission
        stamp_tax: Stamp tax (equity sells only)
        transfer_fee: Transfer fee (SH equities only)
        total: Sum of the three items
        description: Human-readable summary of the non-zero items
        instrument: Classification the rules were applied to
    """

    commission: Decimal
    stamp_tax: Decimal
    transfer_fee: Decimal
    total: Decimal
    description: str
    instrument: InstrumentInfo

    model_config = ConfigDict(frozen=True)


class FeeCalculator:
    """Calculates trade fees.

    Rules:
    - Commission: max(amount * rate, minimum), schedule chosen by instrument kind
    - Stamp tax: amount * stamp_tax_rate, equity sells only
    - Transfer fee: amount * transfer_fee_rate, SH-listed equities, both sides

    Each item is rounded half-up to ``config.money_places``.

    Attributes:
        config: Fee configuration

    Example:
        >>> calc = FeeCalculator(FeeConfig())
        >>> fees = calc.calculate("600000", TradeDirection.SELL, Decimal("10000"))
        >>> fees.commission, fees.stamp_tax, fees.transfer_fee
        (Decimal('5.00'), Decimal('5.00'), Decimal('0.10'))
    """

    def __init__(self, config: FeeConfig | None = None) -> None:
        """Initialize fee calculator.

        Args:
            config: Fee configuration (defaults to FeeConfig())
        """
        self.config = config or FeeConfig()

    def calculate(self, symbol: str, direction: TradeDirection, amount: Decimal) -> FeeBreakdown:
        """Calculate fees for a trade.

        Args:
            symbol: Security code, optionally venue-prefixed
            direction: Buy or sell
            amount: Gross trade amount (shares * price)

        Returns:
            FeeBreakdown with each item and the total

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Trade amount cannot be negative, got {amount}")

        instrument = classify_symbol(symbol)
        direction = TradeDirection(direction)

        commission = self._commission(instrument, amount)

        stamp_tax = Decimal("0")
        if instrument.kind == InstrumentKind.EQUITY and direction == TradeDirection.SELL:
            stamp_tax = self._round(amount * self.config.stamp_tax_rate)

        transfer_fee = Decimal("0")
        if instrument.kind == InstrumentKind.EQUITY and instrument.exchange == Exchange.SH:
            transfer_fee = self._round(amount * self.config.transfer_fee_rate)

        return FeeBreakdown(
            commission=commission,
            stamp_tax=stamp_tax,
            transfer_fee=transfer_fee,
            total=commission + stamp_tax + transfer_fee,
            description=self._describe(instrument, commission, stamp_tax, transfer_fee),
            instrument=instrument,
        )

    def _commission(self, instrument: InstrumentInfo, amount: Decimal) -> Decimal:
        schedule = self.config.fund if instrument.is_fund else self.config.equity
        return self._round(max(amount * schedule.rate, schedule.minimum))

    def _round(self, value: Decimal) -> Decimal:
        quantum = Decimal(1).scaleb(-self.config.money_places)
        return value.quantize(quantum, rounding=ROUND_HALF_UP)

    @staticmethod
    def _describe(instrument: InstrumentInfo, commission: Decimal, stamp_tax: Decimal, transfer_fee: Decimal) -> str:
        """Build e.g. ``SH equity - commission: 5.00, transfer fee: 0.10``."""
        items = [
            ("commission", commission),
            ("stamp tax", stamp_tax),
            ("transfer fee", transfer_fee),
        ]
        parts = [f"{label}: {value}" for label, value in items if value > 0]
        header = f"{instrument.exchange.value} {instrument.kind.value}"
        if not parts:
            return f"{header} - no fees"
        return f"{header} - {', '.join(parts)}"
