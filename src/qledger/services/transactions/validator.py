"""Validation of transaction write requests.

Checks a TransactionInput against the rules for its kind before any handler
runs. Failures come back as ``Err(ValidationError)`` with the message the
caller will see.
"""

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from qledger.errors import ValidationError
from qledger.result import Err, Ok, Result
from qledger.services.transactions.models import TransactionInput, TransactionKind

_NUMERIC_FIELDS = (
    "shares",
    "price",
    "unit_shares",
    "per10_dividend",
    "per10_transfer",
    "per10_bonus",
    "tax",
)


def parse_input(raw: dict[str, Any]) -> Result[TransactionInput]:
    """Build a TransactionInput from untyped data.

    Args:
        raw: Mapping of field values (e.g. a parsed YAML/JSON row)

    Returns:
        Ok(TransactionInput) or Err(ValidationError) describing the bad fields
    """
    try:
        return Ok(TransactionInput.model_validate(raw))
    except PydanticValidationError as e:
        details = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        return Err(ValidationError(f"Invalid transaction data: {details}"))


class TransactionValidator:
    """
    Validates transaction requests.

    Rules:
    - Symbol must be non-empty
    - No numeric field may be negative
    - Trade date may not lie in the future
    - BUY/SELL: shares > 0 and price > 0
    - MERGE/SPLIT: unit_shares > 0
    - DIVIDEND: at least one per-10 field > 0

    Example:
        >>> validator = TransactionValidator()
        >>> result = validator.validate(request, today=date(2024, 3, 1))
        >>> if not result.is_ok:
        ...     print(result.error)
    """

    def validate(self, request: TransactionInput, today: date) -> Result[TransactionInput]:
        """
        Validate a request.

        Args:
            request: Transaction request
            today: Current date; later trade dates are rejected

        Returns:
            Ok(request) when valid, otherwise Err(ValidationError)
        """
        message = self._check(request, today)
        if message is not None:
            return Err(ValidationError(message))
        return Ok(request)

    def _check(self, request: TransactionInput, today: date) -> str | None:
        if not request.symbol:
            return "Symbol is required"

        for field_name in _NUMERIC_FIELDS:
            value = getattr(request, field_name)
            if value is not None and value < 0:
                return f"{field_name} cannot be negative, got {value}"

        if request.trade_date > today:
            return f"Trade date {request.trade_date.isoformat()} is in the future"

        match request.kind:
            case TransactionKind.BUY | TransactionKind.SELL:
                if request.shares <= 0:
                    return "Shares must be greater than 0"
                if request.price <= 0:
                    return "Price must be greater than 0"
            case TransactionKind.MERGE | TransactionKind.SPLIT:
                if request.unit_shares is None or request.unit_shares <= 0:
                    return "Unit shares must be greater than 0 for merge/split"
            case TransactionKind.DIVIDEND:
                per10 = [request.per10_dividend, request.per10_transfer, request.per10_bonus]
                if not any(value is not None and value > Decimal("0") for value in per10):
                    return "Dividend requires a positive cash, transfer or bonus amount per 10 shares"

        return None
