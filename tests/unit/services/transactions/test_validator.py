"""Tests for transaction request validation."""

from datetime import date
from decimal import Decimal

import pytest

from qledger.errors import ValidationError
from qledger.result import Err, Ok
from qledger.services.transactions import TransactionInput, TransactionKind, TransactionValidator, parse_input

TODAY = date(2024, 6, 30)


def make_request(**overrides) -> TransactionInput:
    fields = {
        "portfolio_id": 1,
        "symbol": "600000",
        "kind": TransactionKind.BUY,
        "trade_date": date(2024, 3, 1),
        "shares": Decimal("1000"),
        "price": Decimal("10"),
    }
    fields.update(overrides)
    return TransactionInput(**fields)


@pytest.fixture
def validator() -> TransactionValidator:
    return TransactionValidator()


class TestSymbolNormalization:
    """Test symbol clean-up on the request model."""

    def test_symbol_is_stripped_and_upper_cased(self) -> None:
        assert make_request(symbol="  sh600000 ").symbol == "SH600000"


class TestTradeValidation:
    """Test BUY/SELL rules."""

    def test_valid_buy(self, validator: TransactionValidator) -> None:
        request = make_request()

        result = validator.validate(request, TODAY)

        assert result == Ok(request)

    @pytest.mark.parametrize("kind", [TransactionKind.BUY, TransactionKind.SELL])
    def test_zero_shares_rejected(self, validator: TransactionValidator, kind: TransactionKind) -> None:
        result = validator.validate(make_request(kind=kind, shares=Decimal("0")), TODAY)

        assert isinstance(result, Err)
        assert isinstance(result.error, ValidationError)
        assert str(result.error) == "Shares must be greater than 0"

    def test_zero_price_rejected(self, validator: TransactionValidator) -> None:
        result = validator.validate(make_request(price=Decimal("0")), TODAY)

        assert str(result.error) == "Price must be greater than 0"

    def test_negative_value_rejected(self, validator: TransactionValidator) -> None:
        result = validator.validate(make_request(shares=Decimal("-100")), TODAY)

        assert str(result.error) == "shares cannot be negative, got -100"

    def test_empty_symbol_rejected(self, validator: TransactionValidator) -> None:
        result = validator.validate(make_request(symbol="   "), TODAY)

        assert str(result.error) == "Symbol is required"


class TestDateValidation:
    """Test future-date rejection."""

    def test_future_date_rejected(self, validator: TransactionValidator) -> None:
        result = validator.validate(make_request(trade_date=date(2024, 7, 1)), TODAY)

        assert not result.is_ok
        assert str(result.error) == "Trade date 2024-07-01 is in the future"

    def test_today_is_accepted(self, validator: TransactionValidator) -> None:
        assert validator.validate(make_request(trade_date=TODAY), TODAY).is_ok


class TestCorporateActionValidation:
    """Test MERGE/SPLIT/DIVIDEND rules."""

    @pytest.mark.parametrize("kind", [TransactionKind.MERGE, TransactionKind.SPLIT])
    def test_ratio_required(self, validator: TransactionValidator, kind: TransactionKind) -> None:
        request = make_request(kind=kind, shares=Decimal("0"), price=Decimal("0"))

        result = validator.validate(request, TODAY)

        assert str(result.error) == "Unit shares must be greater than 0 for merge/split"

    def test_split_with_ratio_is_valid(self, validator: TransactionValidator) -> None:
        request = make_request(kind=TransactionKind.SPLIT, shares=Decimal("0"), unit_shares=Decimal("2"))

        assert validator.validate(request, TODAY).is_ok

    def test_dividend_needs_a_positive_leg(self, validator: TransactionValidator) -> None:
        request = make_request(kind=TransactionKind.DIVIDEND, per10_dividend=Decimal("0"))

        result = validator.validate(request, TODAY)

        assert str(result.error) == "Dividend requires a positive cash, transfer or bonus amount per 10 shares"

    def test_stock_only_dividend_is_valid(self, validator: TransactionValidator) -> None:
        request = make_request(kind=TransactionKind.DIVIDEND, per10_bonus=Decimal("3"))

        assert validator.validate(request, TODAY).is_ok


class TestParseInput:
    """Test building requests from untyped rows."""

    def test_parses_mapping(self) -> None:
        result = parse_input(
            {
                "portfolio_id": 1,
                "symbol": "000001",
                "kind": 2,
                "trade_date": "2024-03-01",
                "shares": "100",
                "price": "12.5",
            }
        )

        request = result.unwrap()
        assert request.kind == TransactionKind.SELL
        assert request.trade_date == date(2024, 3, 1)
        assert request.price == Decimal("12.5")

    def test_bad_row_becomes_err(self) -> None:
        result = parse_input({"portfolio_id": 1, "symbol": "000001", "kind": 7, "trade_date": "2024-03-01"})

        assert isinstance(result, Err)
        assert str(result.error).startswith("Invalid transaction data: kind")

    def test_unwrap_raises_carried_error(self) -> None:
        result = parse_input({"symbol": "000001"})

        with pytest.raises(ValidationError, match="Invalid transaction data"):
            result.unwrap()
