"""Shared fixtures for portfolio tests."""

from collections.abc import Callable
from datetime import date
from decimal import Decimal

import pytest

from qledger.services.storage import InMemoryLedgerRepository
from qledger.services.transactions import Transaction, TransactionKind, TransactionRecord


@pytest.fixture
def repository() -> InMemoryLedgerRepository:
    """Empty in-memory ledger."""
    return InMemoryLedgerRepository()


@pytest.fixture
def make_record() -> Callable[..., TransactionRecord]:
    """
    Factory for canonical records with explicit amounts and fees.

    Numbers may be given as str or int; they are converted to Decimal.
    """

    def _make(kind: TransactionKind, trade_date: date, symbol: str = "000001", **fields) -> TransactionRecord:
        values = {
            key: Decimal(str(value)) if isinstance(value, (int, str)) and key not in ("name", "comment") else value
            for key, value in fields.items()
        }
        return TransactionRecord(portfolio_id=1, symbol=symbol, kind=kind, trade_date=trade_date, **values)

    return _make


@pytest.fixture
def make_txn(make_record) -> Callable[..., Transaction]:
    """Factory for persisted transactions (record plus id and cycle id)."""

    def _make(kind: TransactionKind, trade_date: date, txn_id: int = 1, cycle_id: int = 1, **fields) -> Transaction:
        record = make_record(kind, trade_date, **fields)
        return Transaction(**record.model_dump(), id=txn_id, cycle_id=cycle_id)

    return _make
