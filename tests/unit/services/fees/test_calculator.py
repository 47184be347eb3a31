"""Tests for trade fee calculation."""

from decimal import Decimal

import pytest

from qledger.services.fees import CommissionSchedule, FeeCalculator, FeeConfig, TradeDirection


@pytest.fixture
def calculator() -> FeeCalculator:
    """Calculator with the default fee settings."""
    return FeeCalculator(FeeConfig())


class TestFeeConfigValidation:
    """Test fee configuration validation."""

    def test_negative_commission_rate_rejected(self) -> None:
        with pytest.raises(ValueError, match="Commission rate cannot be negative"):
            CommissionSchedule(rate=Decimal("-0.0003"))

    def test_negative_minimum_rejected(self) -> None:
        with pytest.raises(ValueError, match="Minimum commission cannot be negative"):
            CommissionSchedule(minimum=Decimal("-1"))

    def test_negative_stamp_tax_rejected(self) -> None:
        with pytest.raises(ValueError, match="Stamp tax rate cannot be negative"):
            FeeConfig(stamp_tax_rate=Decimal("-0.001"))

    def test_from_dict_keeps_written_digits(self) -> None:
        """Test that YAML floats are read through str."""
        config = FeeConfig.from_dict({"equity": {"rate": 0.00025, "minimum": 5}, "stamp_tax_rate": 0.001})

        assert config.equity.rate == Decimal("0.00025")
        assert config.equity.minimum == Decimal("5")
        assert config.stamp_tax_rate == Decimal("0.001")
        assert config.fund == CommissionSchedule()
        assert config.transfer_fee_rate == Decimal("0.00001")


class TestEquityFees:
    """Test fees on equities."""

    def test_sh_equity_sell(self, calculator: FeeCalculator) -> None:
        """Test an SH equity sell pays commission, stamp tax and transfer fee."""
        fees = calculator.calculate("600000", TradeDirection.SELL, Decimal("10000"))

        assert fees.commission == Decimal("5.00")
        assert fees.stamp_tax == Decimal("5.00")
        assert fees.transfer_fee == Decimal("0.10")
        assert fees.total == Decimal("10.10")
        assert fees.description == "SH equity - commission: 5.00, stamp tax: 5.00, transfer fee: 0.10"

    def test_sh_equity_buy_has_no_stamp_tax(self, calculator: FeeCalculator) -> None:
        fees = calculator.calculate("600000", TradeDirection.BUY, Decimal("10000"))

        assert fees.stamp_tax == Decimal("0")
        assert fees.transfer_fee == Decimal("0.10")
        assert fees.total == Decimal("5.10")

    def test_sz_equity_has_no_transfer_fee(self, calculator: FeeCalculator) -> None:
        fees = calculator.calculate("000001", TradeDirection.SELL, Decimal("100000"))

        assert fees.commission == Decimal("30.00")
        assert fees.stamp_tax == Decimal("50.00")
        assert fees.transfer_fee == Decimal("0")
        assert fees.total == Decimal("80.00")

    def test_minimum_commission_applies(self, calculator: FeeCalculator) -> None:
        """Test max(amount * rate, minimum) on a small trade."""
        fees = calculator.calculate("000001", TradeDirection.BUY, Decimal("1000"))

        assert fees.commission == Decimal("5.00")

    def test_commission_rounds_half_up(self) -> None:
        config = FeeConfig(equity=CommissionSchedule(rate=Decimal("0.0003"), minimum=Decimal("0")))
        fees = FeeCalculator(config).calculate("000001", TradeDirection.BUY, Decimal("21650"))

        # 21650 * 0.0003 = 6.495
        assert fees.commission == Decimal("6.50")


class TestFundFees:
    """Test fees on fund-like instruments."""

    def test_etf_sell_has_no_stamp_tax_or_transfer_fee(self, calculator: FeeCalculator) -> None:
        fees = calculator.calculate("510300", TradeDirection.SELL, Decimal("100000"))

        assert fees.commission == Decimal("30.00")
        assert fees.stamp_tax == Decimal("0")
        assert fees.transfer_fee == Decimal("0")
        assert fees.description == "SH fund - commission: 30.00"

    def test_fund_schedule_is_used(self) -> None:
        config = FeeConfig(fund=CommissionSchedule(rate=Decimal("0.0001"), minimum=Decimal("0.1")))
        fees = FeeCalculator(config).calculate("159915", TradeDirection.BUY, Decimal("10000"))

        assert fees.commission == Decimal("1.00")

    def test_description_without_fees(self) -> None:
        config = FeeConfig(fund=CommissionSchedule(rate=Decimal("0"), minimum=Decimal("0")))
        fees = FeeCalculator(config).calculate("SPY", TradeDirection.BUY, Decimal("5000"))

        assert fees.total == Decimal("0")
        assert fees.description == "US fund - no fees"


class TestInputValidation:
    """Test input validation."""

    def test_negative_amount_rejected(self, calculator: FeeCalculator) -> None:
        with pytest.raises(ValueError, match="Trade amount cannot be negative"):
            calculator.calculate("600000", TradeDirection.BUY, Decimal("-1"))

    def test_direction_accepts_plain_string(self, calculator: FeeCalculator) -> None:
        fees = calculator.calculate("600000", "sell", Decimal("10000"))  # type: ignore[arg-type]

        assert fees.stamp_tax == Decimal("5.00")
