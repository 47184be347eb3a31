"""In-memory ledger repository.

Reference implementation of ILedgerRepository. Keeps everything in
dictionaries behind a single lock; used by the command line and the tests.
"""

import threading

from qledger.services.portfolio.models import Holding, Transfer
from qledger.services.transactions.models import Transaction, TransactionRecord


def _stamp(record: TransactionRecord, transaction_id: int, cycle_id: int) -> Transaction:
    fields = record.model_dump(exclude={"id", "cycle_id"})
    return Transaction(**fields, id=transaction_id, cycle_id=cycle_id)


class InMemoryLedgerRepository:
    """
    Thread-safe in-memory store for transactions, holdings and transfers.

    Ids start at 1 and increase in insertion order, separately for
    transactions and transfers.

    Example:
        >>> repository = InMemoryLedgerRepository()
        >>> txn = repository.add_transaction(record, cycle_id=1)
        >>> txn.id
        1
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._transactions: dict[int, Transaction] = {}
        self._holdings: dict[tuple[int, str], Holding] = {}
        self._transfers: dict[int, Transfer] = {}
        self._next_transaction_id = 1
        self._next_transfer_id = 1

    # ==================== Transactions ====================

    def list_transactions(self, portfolio_id: int, symbol: str) -> list[Transaction]:
        with self._lock:
            matching = [
                txn for txn in self._transactions.values() if txn.portfolio_id == portfolio_id and txn.symbol == symbol
            ]
        return sorted(matching, key=lambda txn: txn.sort_key)

    def list_symbols(self, portfolio_id: int) -> list[str]:
        with self._lock:
            return sorted({txn.symbol for txn in self._transactions.values() if txn.portfolio_id == portfolio_id})

    def get_transaction(self, transaction_id: int) -> Transaction | None:
        with self._lock:
            return self._transactions.get(transaction_id)

    def add_transaction(self, record: TransactionRecord, cycle_id: int) -> Transaction:
        with self._lock:
            txn = _stamp(record, self._next_transaction_id, cycle_id)
            self._transactions[txn.id] = txn
            self._next_transaction_id += 1
            return txn

    def replace_transaction(self, transaction_id: int, record: TransactionRecord, cycle_id: int) -> Transaction:
        with self._lock:
            if transaction_id not in self._transactions:
                raise KeyError(f"Transaction {transaction_id} not found")
            txn = _stamp(record, transaction_id, cycle_id)
            self._transactions[transaction_id] = txn
            return txn

    def delete_transaction(self, transaction_id: int) -> Transaction:
        with self._lock:
            if transaction_id not in self._transactions:
                raise KeyError(f"Transaction {transaction_id} not found")
            return self._transactions.pop(transaction_id)

    def set_cycle_id(self, transaction_id: int, cycle_id: int) -> None:
        with self._lock:
            txn = self._transactions[transaction_id]
            self._transactions[transaction_id] = txn.model_copy(update={"cycle_id": cycle_id})

    # ==================== Holdings ====================

    def get_holding(self, portfolio_id: int, symbol: str) -> Holding | None:
        with self._lock:
            return self._holdings.get((portfolio_id, symbol))

    def list_holdings(self, portfolio_id: int, include_inactive: bool = False) -> list[Holding]:
        with self._lock:
            holdings = [
                holding
                for (pid, _), holding in self._holdings.items()
                if pid == portfolio_id and (include_inactive or holding.is_active)
            ]
        return sorted(holdings, key=lambda holding: holding.symbol)

    def upsert_holding(self, holding: Holding) -> None:
        with self._lock:
            self._holdings[(holding.portfolio_id, holding.symbol)] = holding

    def delete_holding(self, portfolio_id: int, symbol: str) -> None:
        with self._lock:
            self._holdings.pop((portfolio_id, symbol), None)

    # ==================== Transfers ====================

    def list_transfers(self, portfolio_id: int) -> list[Transfer]:
        with self._lock:
            transfers = [t for t in self._transfers.values() if t.portfolio_id == portfolio_id]
        return sorted(transfers, key=lambda t: (t.transfer_date, t.id))

    def add_transfer(self, transfer: Transfer) -> Transfer:
        with self._lock:
            stored = transfer.model_copy(update={"id": self._next_transfer_id})
            self._transfers[stored.id] = stored
            self._next_transfer_id += 1
            return stored
