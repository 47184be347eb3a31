"""Tests for position cycle assignment."""

from datetime import date
from decimal import Decimal

import pytest

from qledger.errors import StateError
from qledger.result import Err
from qledger.services.portfolio.cycle_manager import PositionCycleManager, next_cycle_id
from qledger.services.transactions import TransactionKind

BUY = TransactionKind.BUY
SELL = TransactionKind.SELL


class TestStateMachine:
    """Test next_cycle_id."""

    @pytest.mark.parametrize(
        "kind,shares,latest,expected",
        [
            (BUY, "0", 0, 1),
            (BUY, "0", 3, 4),
            (BUY, "100", 3, 3),
            (SELL, "100", 3, 3),
            (TransactionKind.SPLIT, "100", 2, 2),
            (TransactionKind.DIVIDEND, "0", 2, 2),
        ],
    )
    def test_transitions(self, kind: TransactionKind, shares: str, latest: int, expected: int) -> None:
        assert next_cycle_id(kind, Decimal(shares), latest) == expected

    def test_sell_at_zero_rejected(self) -> None:
        with pytest.raises(StateError, match="Cannot sell with no shares held"):
            next_cycle_id(SELL, Decimal("0"), 1)

    @pytest.mark.parametrize("kind", [TransactionKind.MERGE, TransactionKind.SPLIT, TransactionKind.DIVIDEND])
    def test_corporate_action_without_cycle_rejected(self, kind: TransactionKind) -> None:
        with pytest.raises(StateError, match=f"Cannot record {kind.name} before any position was opened"):
            next_cycle_id(kind, Decimal("0"), 0)


class TestDeriveCycleIds:
    """Test deriving cycle ids from an ordered history."""

    def test_liquidate_and_reopen(self, make_txn) -> None:
        history = [
            make_txn(BUY, date(2024, 1, 2), 1, shares=100, price=10, amount=1000),
            make_txn(BUY, date(2024, 1, 3), 2, shares=100, price=10, amount=1000),
            make_txn(SELL, date(2024, 2, 1), 3, shares=200, price=11, amount=2200),
            make_txn(BUY, date(2024, 3, 1), 4, shares=50, price=12, amount=600),
            make_txn(TransactionKind.DIVIDEND, date(2024, 6, 1), 5, per10_dividend=1),
        ]

        assert PositionCycleManager.derive_cycle_ids(history).unwrap() == [1, 1, 1, 2, 2]

    def test_over_sell_is_err(self, make_txn) -> None:
        history = [
            make_txn(BUY, date(2024, 1, 2), 1, shares=100, price=10, amount=1000),
            make_txn(SELL, date(2024, 2, 1), 2, shares=101, price=11, amount=1111),
        ]

        result = PositionCycleManager.derive_cycle_ids(history)

        assert isinstance(result, Err)
        assert isinstance(result.error, StateError)

    def test_sell_first_is_err(self, make_txn) -> None:
        history = [make_txn(SELL, date(2024, 2, 1), 1, shares=100, price=11, amount=1100)]

        assert not PositionCycleManager.derive_cycle_ids(history).is_ok


class TestRepositoryOperations:
    """Test the repository-backed operations."""

    def test_assign_for_new_and_open_positions(self, repository, make_record) -> None:
        manager = PositionCycleManager(repository)

        assert manager.assign_cycle_id(1, "000001", BUY, Decimal("0")) == 1

        repository.add_transaction(make_record(BUY, date(2024, 1, 2), shares=100, price=10, amount=1000), 1)
        assert manager.assign_cycle_id(1, "000001", BUY, Decimal("100")) == 1
        assert manager.assign_cycle_id(1, "000001", BUY, Decimal("0")) == 2

    def test_renumber_fixes_stale_ids(self, repository, make_record) -> None:
        repository.add_transaction(make_record(BUY, date(2024, 1, 2), shares=100, price=10, amount=1000), 1)
        repository.add_transaction(make_record(SELL, date(2024, 2, 1), shares=100, price=11, amount=1100), 3)
        repository.add_transaction(make_record(BUY, date(2024, 3, 1), shares=100, price=12, amount=1200), 7)
        manager = PositionCycleManager(repository)

        history = manager.renumber_cycles(1, "000001")

        assert [txn.cycle_id for txn in history] == [1, 1, 2]
        manager.validate_cycle_integrity(1, "000001")

    def test_integrity_check_detects_gap(self, repository, make_record) -> None:
        repository.add_transaction(make_record(BUY, date(2024, 1, 2), shares=100, price=10, amount=1000), 1)
        repository.add_transaction(make_record(SELL, date(2024, 2, 1), shares=100, price=11, amount=1100), 1)
        repository.add_transaction(make_record(BUY, date(2024, 3, 1), shares=100, price=12, amount=1200), 3)

        with pytest.raises(StateError, match="not contiguous"):
            PositionCycleManager(repository).validate_cycle_integrity(1, "000001")

    def test_current_cycle_transactions(self, repository, make_record) -> None:
        repository.add_transaction(make_record(BUY, date(2024, 1, 2), shares=100, price=10, amount=1000), 1)
        repository.add_transaction(make_record(SELL, date(2024, 2, 1), shares=100, price=11, amount=1100), 1)
        repository.add_transaction(make_record(BUY, date(2024, 3, 1), shares=100, price=12, amount=1200), 2)

        current = PositionCycleManager(repository).current_cycle_transactions(1, "000001")

        assert [txn.id for txn in current] == [3]
        assert PositionCycleManager.slice_current_cycle([]) == []
