"""
Integration tests for a symbol's full lifecycle through LedgerService.

Flow: deposit -> buy -> dividend with bonus shares -> split -> liquidate ->
reopen -> value the portfolio; then edit and delete history and check that
holdings and cycles are re-derived.
"""

from datetime import date
from decimal import Decimal

import pytest

from qledger.services.portfolio import LedgerService
from qledger.services.portfolio.models import Quote, TransferKind
from qledger.services.quotes import CachingQuoteProvider, StaticQuoteProvider, TTLCache
from qledger.services.storage import InMemoryLedgerRepository
from qledger.services.transactions import TransactionInput, TransactionKind

TODAY = date(2024, 6, 28)
SYMBOL = "000001"


def request(kind: TransactionKind, trade_date: date, **fields) -> TransactionInput:
    values = {key: Decimal(str(value)) for key, value in fields.items()}
    return TransactionInput(portfolio_id=1, symbol=SYMBOL, kind=kind, trade_date=trade_date, **values)


@pytest.fixture
def service() -> LedgerService:
    quotes = CachingQuoteProvider(
        StaticQuoteProvider({SYMBOL: Quote(symbol=SYMBOL, price=Decimal("6"), change=Decimal("0.1"))}),
        TTLCache(ttl_seconds=60),
    )
    return LedgerService(InMemoryLedgerRepository(), quotes=quotes, clock=lambda: TODAY)


@pytest.fixture
def populated(service: LedgerService) -> dict[str, int]:
    """Record the full history; returns transaction ids by step name."""
    service.add_transfer(1, TransferKind.DEPOSIT, Decimal("50000"), date(2024, 1, 2))

    ids = {}
    ids["buy"] = service.create_transaction(
        request(TransactionKind.BUY, date(2024, 1, 3), shares=1000, price=10)
    ).transaction.id
    ids["dividend"] = service.create_transaction(
        request(TransactionKind.DIVIDEND, date(2024, 2, 1), per10_dividend=2, per10_bonus=5, tax=20)
    ).transaction.id
    ids["split"] = service.create_transaction(
        request(TransactionKind.SPLIT, date(2024, 3, 1), unit_shares=2)
    ).transaction.id
    ids["sell"] = service.create_transaction(
        request(TransactionKind.SELL, date(2024, 4, 1), shares=3000, price=6)
    ).transaction.id
    ids["reopen"] = service.create_transaction(
        request(TransactionKind.BUY, date(2024, 5, 6), shares=2000, price="5.5")
    ).transaction.id
    return ids


class TestFullLifecycle:
    """Test a symbol through liquidation and reopening."""

    def test_recorded_amounts_and_fees(self, service: LedgerService, populated) -> None:
        history = {txn.id: txn for txn in service.list_transactions(1, SYMBOL)}

        dividend = history[populated["dividend"]]
        assert dividend.amount == Decimal("200")
        assert dividend.tax == Decimal("20")

        sell = history[populated["sell"]]
        assert sell.amount == Decimal("18000")
        assert sell.commission == Decimal("5.40")
        assert sell.tax == Decimal("9.00")
        assert sell.transfer_fee == Decimal("0")

    def test_cycles(self, service: LedgerService, populated) -> None:
        cycles = [txn.cycle_id for txn in service.list_transactions(1, SYMBOL)]

        assert cycles == [1, 1, 1, 1, 2]

    def test_holding_after_reopen(self, service: LedgerService, populated) -> None:
        holding = service.list_holdings(1)[0]

        assert holding.shares == Decimal("2000")
        assert holding.cycle_id == 2
        assert holding.is_active is True
        assert holding.open_time == date(2024, 5, 6)
        # (11000 + 5) / 2000
        assert holding.hold_cost == Decimal("5.5025")
        # (21000 - 18000 + 44.40 - 200) / 2000
        assert holding.diluted_cost == Decimal("1.4222")
        assert holding.total_dividend == Decimal("200")

    def test_holding_detail(self, service: LedgerService, populated) -> None:
        detail = service.compute_holding_detail(1, SYMBOL)

        assert detail.market_value == Decimal("12000")
        assert detail.float_amount == Decimal("995")
        assert detail.float_basis == Decimal("11005")
        # 12000 - (21000 + 44.40) + 18000 + 200
        assert detail.accum_amount == Decimal("9155.60")
        assert detail.accum_basis == Decimal("21010")
        # 2000 * 6 - 2000 * 5.9
        assert detail.day_float_amount == Decimal("200")
        assert detail.day_float_basis == Decimal("11800")

    def test_portfolio_overview(self, service: LedgerService, populated) -> None:
        overview = service.compute_portfolio_overview(1)

        assert overview.as_of == TODAY
        assert overview.principal == Decimal("50000")
        assert overview.cash == Decimal("47155.60")
        assert overview.market_value == Decimal("12000")
        assert overview.total_assets == Decimal("59155.60")
        assert overview.accum_rate == Decimal("9155.60") / Decimal("21010")
        assert [d.symbol for d in overview.holdings] == [SYMBOL]


class TestHistoryEdits:
    """Test that edits re-derive holdings and cycles."""

    def test_deleting_the_liquidating_sell_merges_cycles(self, service: LedgerService, populated) -> None:
        result = service.delete_transaction(populated["sell"])

        assert [txn.cycle_id for txn in service.list_transactions(1, SYMBOL)] == [1, 1, 1, 1]
        assert result.holding.shares == Decimal("5000")
        assert result.holding.cycle_id == 1
        # (21000 + 10) / 5000
        assert result.holding.hold_cost == Decimal("4.202")

    def test_repricing_the_reopen_buy(self, service: LedgerService, populated) -> None:
        result = service.update_transaction(
            populated["reopen"],
            request(TransactionKind.BUY, date(2024, 5, 6), shares=2000, price=5),
        )

        assert result.transaction.id == populated["reopen"]
        assert result.transaction.amount == Decimal("10000")
        # (10000 + 5) / 2000
        assert result.holding.hold_cost == Decimal("5.0025")
        assert result.holding.cycle_id == 2

    def test_bulk_import_matches_one_by_one(self, populated, service: LedgerService) -> None:
        other = LedgerService(InMemoryLedgerRepository(), clock=lambda: TODAY)
        rows = [
            {"symbol": txn.symbol, "kind": txn.kind, "trade_date": txn.trade_date, **fields}
            for txn, fields in zip(
                reversed(service.list_transactions(1, SYMBOL)),
                [
                    {"shares": Decimal("2000"), "price": Decimal("5.5")},
                    {"shares": Decimal("3000"), "price": Decimal("6")},
                    {"unit_shares": Decimal("2")},
                    {"per10_dividend": Decimal("2"), "per10_bonus": Decimal("5"), "tax": Decimal("20")},
                    {"shares": Decimal("1000"), "price": Decimal("10")},
                ],
            )
        ]

        result = other.bulk_import(1, rows)

        assert result.success_count == 5
        assert result.errors == []
        imported = other.list_holdings(1)[0]
        original = service.list_holdings(1)[0]
        assert imported.shares == original.shares
        assert imported.hold_cost == original.hold_cost
        assert imported.diluted_cost == original.diluted_cost
        assert imported.cycle_id == original.cycle_id
