"""Configuration for fee calculation.

Defines the per-portfolio commission schedules and the statutory levies
applied to trades.
"""

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class CommissionSchedule:
    """Broker commission for one instrument class.

    Commission is ``max(amount * rate, minimum)``.

    Attributes:
        rate: Fraction of the trade amount (e.g., 0.0003 = 0.03%)
        minimum: Minimum commission per trade

    Example:
        >>> schedule = CommissionSchedule(rate=Decimal("0.0003"), minimum=Decimal("5"))
        >>> # 10,000 traded: max(3.00, 5) = 5.00
        >>> # 50,000 traded: max(15.00, 5) = 15.00
    """

    rate: Decimal = Decimal("0.0003")
    minimum: Decimal = Decimal("5")

    def __post_init__(self) -> None:
        """Validate schedule values."""
        if self.rate < 0:
            raise ValueError(f"Commission rate cannot be negative, got {self.rate}")
        if self.minimum < 0:
            raise ValueError(f"Minimum commission cannot be negative, got {self.minimum}")


@dataclass(frozen=True)
class FeeConfig:
    """Fee settings for a portfolio.

    Attributes:
        equity: Commission schedule for equities
        fund: Commission schedule for fund-like instruments (ETFs)
        stamp_tax_rate: Stamp tax charged on equity sells
        transfer_fee_rate: Transfer fee charged on SH-listed equity trades
        money_places: Decimal places fees are rounded to
    """

    equity: CommissionSchedule = field(default_factory=CommissionSchedule)
    fund: CommissionSchedule = field(default_factory=CommissionSchedule)
    stamp_tax_rate: Decimal = Decimal("0.0005")
    transfer_fee_rate: Decimal = Decimal("0.00001")
    money_places: int = 2

    def __post_init__(self) -> None:
        """Validate levy rates."""
        if self.stamp_tax_rate < 0:
            raise ValueError(f"Stamp tax rate cannot be negative, got {self.stamp_tax_rate}")
        if self.transfer_fee_rate < 0:
            raise ValueError(f"Transfer fee rate cannot be negative, got {self.transfer_fee_rate}")
        if self.money_places < 0:
            raise ValueError(f"money_places cannot be negative, got {self.money_places}")

    @classmethod
    def from_dict(cls, data: dict) -> "FeeConfig":
        """Build a FeeConfig from plain (YAML/JSON) values.

        Numbers are converted through ``str`` so YAML floats keep their
        written digits.

        Args:
            data: Mapping with optional ``equity``/``fund`` sub-mappings
                (``rate``, ``minimum``) and top-level levy rates

        Returns:
            FeeConfig with defaults for anything not given
        """

        def schedule(raw: dict | None) -> CommissionSchedule:
            raw = raw or {}
            defaults = CommissionSchedule()
            return CommissionSchedule(
                rate=Decimal(str(raw.get("rate", defaults.rate))),
                minimum=Decimal(str(raw.get("minimum", defaults.minimum))),
            )

        defaults = cls()
        return cls(
            equity=schedule(data.get("equity")),
            fund=schedule(data.get("fund")),
            stamp_tax_rate=Decimal(str(data.get("stamp_tax_rate", defaults.stamp_tax_rate))),
            transfer_fee_rate=Decimal(str(data.get("transfer_fee_rate", defaults.transfer_fee_rate))),
            money_places=int(data.get("money_places", defaults.money_places)),
        )
