"""Tests for holding derivation and valuation."""

from datetime import date
from decimal import Decimal

import pytest

from qledger.errors import RecomputeFailure
from qledger.services.portfolio.holding_service import HoldingService
from qledger.services.portfolio.models import Quote
from qledger.services.storage import InMemoryLedgerRepository
from qledger.services.transactions import TransactionKind

BUY = TransactionKind.BUY
SELL = TransactionKind.SELL


@pytest.fixture
def service(repository) -> HoldingService:
    return HoldingService(repository)


@pytest.fixture
def reopened(repository, make_record):
    """Bought, fully sold, then bought again."""
    repository.add_transaction(
        make_record(BUY, date(2024, 1, 2), shares=1000, price=10, amount=10000, commission=5, name="Ping An Bank"), 1
    )
    repository.add_transaction(
        make_record(SELL, date(2024, 2, 1), shares=1000, price=12, amount=12000, commission=5, tax=6), 1
    )
    repository.add_transaction(make_record(BUY, date(2024, 3, 1), shares=500, price=11, amount=5500, commission=5), 2)
    return repository


class TestRecompute:
    """Test recompute from history."""

    def test_no_history_deletes_holding(self, service, repository) -> None:
        assert service.recompute(1, "000001") is None
        assert repository.get_holding(1, "000001") is None

    def test_single_buy(self, service, repository, make_record) -> None:
        repository.add_transaction(
            make_record(BUY, date(2024, 1, 2), shares=1000, price=10, amount=10000, commission=5), 1
        )

        holding = service.recompute(1, "000001")

        assert holding is not None
        assert holding.shares == Decimal("1000")
        assert holding.hold_cost == Decimal("10.005")
        assert holding.diluted_cost == Decimal("10.005")
        assert holding.is_active
        assert holding.cycle_id == 1
        assert holding.open_time == date(2024, 1, 2)
        assert repository.get_holding(1, "000001") == holding

    def test_liquidated_position_is_kept_inactive(self, service, repository, make_record) -> None:
        repository.add_transaction(make_record(BUY, date(2024, 1, 2), shares=100, price=10, amount=1000), 1)
        repository.add_transaction(make_record(SELL, date(2024, 2, 1), shares=100, price=12, amount=1200), 1)

        holding = service.recompute(1, "000001")

        assert holding is not None
        assert holding.shares == Decimal("0")
        assert not holding.is_active
        assert holding.diluted_cost == Decimal("0")
        assert holding.liquidation_time == date(2024, 2, 1)
        assert repository.list_holdings(1) == []
        assert repository.list_holdings(1, include_inactive=True) == [holding]

    def test_reopened_position_uses_new_cycle_cost(self, service, reopened) -> None:
        holding = service.recompute(1, "000001")

        assert holding.cycle_id == 2
        assert holding.shares == Decimal("500")
        # (5500 + 5) / 500
        assert holding.hold_cost == Decimal("11.01")
        # (15500 - 12000 + 21) / 500
        assert holding.diluted_cost == Decimal("7.042")
        assert holding.open_time == date(2024, 3, 1)
        assert holding.liquidation_time is None
        assert holding.total_buy_amount == Decimal("15500")
        assert holding.total_sell_amount == Decimal("12000")
        assert holding.name == "Ping An Bank"

    def test_cycle_cut_ignores_stale_stored_ids(self, service, repository, make_record) -> None:
        """Test that the current cycle is derived from the history, not from stored ids."""
        repository.add_transaction(make_record(BUY, date(2024, 1, 2), shares=100, price=10, amount=1000), 1)
        repository.add_transaction(make_record(BUY, date(2024, 1, 3), shares=100, price=12, amount=1200), 2)

        holding = service.recompute(1, "000001")

        assert holding.cycle_id == 1
        assert holding.hold_cost == Decimal("11")

    def test_gap_in_stored_cycle_ids_fails(self, service, repository, make_record) -> None:
        repository.add_transaction(make_record(BUY, date(2024, 1, 2), shares=100, price=10, amount=1000), 1)
        repository.add_transaction(make_record(SELL, date(2024, 2, 1), shares=100, price=11, amount=1100), 1)
        repository.add_transaction(make_record(BUY, date(2024, 3, 1), shares=100, price=12, amount=1200), 5)

        with pytest.raises(RecomputeFailure, match="not contiguous"):
            service.recompute(1, "000001")

    def test_store_errors_become_recompute_failures(self, make_record) -> None:
        class LockedStore(InMemoryLedgerRepository):
            def upsert_holding(self, holding) -> None:
                raise RuntimeError("database is locked")

        store = LockedStore()
        store.add_transaction(make_record(BUY, date(2024, 1, 2), shares=100, price=10, amount=1000), 1)

        with pytest.raises(RecomputeFailure, match="database is locked") as exc_info:
            HoldingService(store).recompute(1, "000001")

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_recompute_is_idempotent(self, service, reopened) -> None:
        first = service.recompute(1, "000001")
        second = service.recompute(1, "000001")

        assert first == second
        assert reopened.get_holding(1, "000001") == second

    def test_inconsistent_history_raises_recompute_failure(self, service, repository, make_record) -> None:
        repository.add_transaction(make_record(SELL, date(2024, 2, 1), shares=100, price=12, amount=1200), 1)

        with pytest.raises(RecomputeFailure) as exc_info:
            service.recompute(1, "000001")

        assert exc_info.value.symbol == "000001"
        assert "Cannot sell with no shares held" in exc_info.value.reason

    def test_recompute_all(self, service, repository, make_record) -> None:
        repository.add_transaction(make_record(BUY, date(2024, 1, 2), shares=100, price=10, amount=1000), 1)
        repository.add_transaction(
            make_record(BUY, date(2024, 1, 2), symbol="600000", shares=200, price=8, amount=1600), 1
        )

        results = service.recompute_all(1)

        assert sorted(results) == ["000001", "600000"]
        assert results["600000"].shares == Decimal("200")


class TestHoldingDetail:
    """Test valuation against a quote."""

    def test_detail_of_reopened_position(self, service, reopened) -> None:
        quote = Quote(symbol="000001", price=Decimal("12"), change=Decimal("0.5"))

        detail = service.compute_holding_detail(1, "000001", quote, date(2024, 3, 4))

        assert detail.market_value == Decimal("6000")
        assert detail.float_amount == Decimal("495")
        assert detail.float_basis == Decimal("5505")
        # 6000 - (15500 + 21) + 12000
        assert detail.accum_amount == Decimal("2479")
        assert detail.accum_basis == Decimal("15510")
        # 500 * 12 - 500 * 11.5
        assert detail.day_float_amount == Decimal("250")
        assert detail.day_float_basis == Decimal("5750")
        assert detail.is_active

    def test_detail_without_history(self, service) -> None:
        quote = Quote(symbol="000001", price=Decimal("12"))

        assert service.compute_holding_detail(1, "000001", quote, date(2024, 3, 4)) is None

    def test_name_falls_back_to_quote(self, service, repository, make_record) -> None:
        repository.add_transaction(make_record(BUY, date(2024, 1, 2), shares=100, price=10, amount=1000), 1)
        quote = Quote(symbol="000001", price=Decimal("12"), name="PAB")

        detail = service.compute_holding_detail(1, "000001", quote, date(2024, 3, 4))

        assert detail.name == "PAB"
