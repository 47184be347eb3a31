"""Ledger file loader.

Reads a YAML ledger file describing one portfolio's cash transfers,
transactions and quotes:

    portfolio_id: 1
    transfers:
      - kind: deposit
        amount: 100000
        date: 2024-01-02
    transactions:
      - symbol: "600000"
        kind: buy
        date: 2024-01-03
        shares: 1000
        price: 10
      - symbol: "600000"
        kind: dividend
        date: 2024-06-20
        per10_dividend: 2.5
    quotes:
      "600000": {price: 12, change: 0.2}

Numbers are converted through ``str`` so YAML floats keep their written
digits. Transactions are returned as plain mappings; they are validated
row by row by the bulk import.
"""

from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from qledger.services.portfolio.models import Quote, TransferKind
from qledger.services.transactions.models import TransactionKind

_NUMERIC_KEYS = {
    "shares",
    "price",
    "unit_shares",
    "per10_dividend",
    "per10_transfer",
    "per10_bonus",
    "tax",
    "amount",
    "change",
}


class TransferEntry(BaseModel):
    """A transfer line of a ledger file."""

    kind: TransferKind
    amount: Decimal
    transfer_date: date
    comment: str | None = None


class LedgerFile(BaseModel):
    """
    Parsed ledger file.

    Attributes:
        portfolio_id: Portfolio the entries belong to (None when the file does not say)
        transfers: Cash transfers
        transactions: Raw transaction rows (validated on import)
        quotes: Quotes by symbol
    """

    portfolio_id: int | None = None
    transfers: list[TransferEntry] = Field(default_factory=list)
    transactions: list[dict[str, Any]] = Field(default_factory=list)
    quotes: dict[str, Quote] = Field(default_factory=dict)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _decimalize(row: dict[str, Any]) -> dict[str, Any]:
    return {
        key: Decimal(str(value)) if key in _NUMERIC_KEYS and _is_number(value) else value
        for key, value in row.items()
    }


def _normalize_transaction(row: dict[str, Any]) -> dict[str, Any]:
    row = _decimalize(row)
    if "date" in row and "trade_date" not in row:
        row["trade_date"] = row.pop("date")
    kind = row.get("kind")
    if isinstance(kind, str) and kind.strip().upper() in TransactionKind.__members__:
        row["kind"] = TransactionKind[kind.strip().upper()]
    if "symbol" in row and row["symbol"] is not None:
        row["symbol"] = str(row["symbol"])
    return row


def _normalize_transfer(row: dict[str, Any]) -> dict[str, Any]:
    row = _decimalize(row)
    if "date" in row and "transfer_date" not in row:
        row["transfer_date"] = row.pop("date")
    kind = row.get("kind")
    if isinstance(kind, str) and kind.strip().upper() in TransferKind.__members__:
        row["kind"] = TransferKind[kind.strip().upper()]
    return row


def parse_ledger(data: dict[str, Any]) -> LedgerFile:
    """
    Build a LedgerFile from already-parsed YAML data.

    Args:
        data: Mapping with ``portfolio_id``, ``transfers``, ``transactions``, ``quotes``

    Returns:
        LedgerFile

    Raises:
        pydantic.ValidationError: If transfers or quotes are malformed
    """
    quotes = {
        str(symbol).upper(): {"symbol": str(symbol).upper(), **_decimalize(values or {})}
        for symbol, values in (data.get("quotes") or {}).items()
    }
    return LedgerFile.model_validate(
        {
            "portfolio_id": data.get("portfolio_id"),
            "transfers": [_normalize_transfer(row) for row in data.get("transfers") or []],
            "transactions": [_normalize_transaction(row) for row in data.get("transactions") or []],
            "quotes": quotes,
        }
    )


def load_ledger_file(path: str | Path) -> LedgerFile:
    """
    Load a YAML ledger file.

    Args:
        path: Path to the ledger file

    Returns:
        Parsed LedgerFile (an empty file yields an empty ledger)

    Raises:
        FileNotFoundError: If the file does not exist
        yaml.YAMLError: If the YAML cannot be parsed
        ValueError: If the top level is not a mapping
        pydantic.ValidationError: If transfers or quotes are malformed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Ledger file not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Ledger file {path} must contain a mapping at the top level")

    return parse_ledger(data)
