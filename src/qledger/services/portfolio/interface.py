"""Collaborator interfaces (Protocol).

Defines the contracts the ledger engine needs from its surroundings: a
store for transactions, holdings and transfers, and a source of quotes.
Enables dependency injection and keeps the engine independently testable.
"""

from typing import Protocol

from qledger.services.portfolio.models import Holding, Quote, Transfer
from qledger.services.transactions.models import Transaction, TransactionRecord


class ILedgerRepository(Protocol):
    """
    Storage contract for the ledger.

    Implementations own persistence only; every derivation happens in the
    engine. Ids are assigned by the store and increase strictly in
    insertion order.

    Example:
        >>> repository: ILedgerRepository = InMemoryLedgerRepository()
        >>> txn = repository.add_transaction(record, cycle_id=1)
        >>> repository.list_transactions(txn.portfolio_id, txn.symbol)
    """

    # ==================== Transactions ====================

    def list_transactions(self, portfolio_id: int, symbol: str) -> list[Transaction]:
        """
        List a symbol's transactions ordered by (trade_date, id).

        Args:
            portfolio_id: Portfolio
            symbol: Security code

        Returns:
            Ordered transactions (empty if none)
        """
        ...

    def list_symbols(self, portfolio_id: int) -> list[str]:
        """
        List every symbol with at least one transaction, sorted.

        Args:
            portfolio_id: Portfolio

        Returns:
            Sorted symbols
        """
        ...

    def get_transaction(self, transaction_id: int) -> Transaction | None:
        """Get a transaction by id, or None."""
        ...

    def add_transaction(self, record: TransactionRecord, cycle_id: int) -> Transaction:
        """
        Persist a new transaction.

        Args:
            record: Canonical transaction
            cycle_id: Position cycle it belongs to

        Returns:
            Persisted transaction with its new id
        """
        ...

    def replace_transaction(self, transaction_id: int, record: TransactionRecord, cycle_id: int) -> Transaction:
        """
        Overwrite an existing transaction, keeping its id.

        Raises:
            KeyError: If no transaction has this id
        """
        ...

    def delete_transaction(self, transaction_id: int) -> Transaction:
        """
        Delete a transaction.

        Returns:
            The deleted transaction

        Raises:
            KeyError: If no transaction has this id
        """
        ...

    def set_cycle_id(self, transaction_id: int, cycle_id: int) -> None:
        """Re-assign the position cycle of a stored transaction."""
        ...

    # ==================== Holdings ====================

    def get_holding(self, portfolio_id: int, symbol: str) -> Holding | None:
        """Get the persisted holding, or None."""
        ...

    def list_holdings(self, portfolio_id: int, include_inactive: bool = False) -> list[Holding]:
        """
        List persisted holdings sorted by symbol.

        Args:
            portfolio_id: Portfolio
            include_inactive: Include fully liquidated holdings
        """
        ...

    def upsert_holding(self, holding: Holding) -> None:
        """Insert or replace the holding for (portfolio_id, symbol)."""
        ...

    def delete_holding(self, portfolio_id: int, symbol: str) -> None:
        """Delete the holding if present."""
        ...

    # ==================== Transfers ====================

    def list_transfers(self, portfolio_id: int) -> list[Transfer]:
        """List cash transfers ordered by (transfer_date, id)."""
        ...

    def add_transfer(self, transfer: Transfer) -> Transfer:
        """Persist a transfer and return it with its new id."""
        ...


class IQuoteProvider(Protocol):
    """
    Source of market quotes.

    Example:
        >>> provider: IQuoteProvider = StaticQuoteProvider({"600000": quote})
        >>> provider.get_quote("600000").price
        Decimal('12.00')
    """

    def get_quote(self, symbol: str) -> Quote | None:
        """
        Get the latest quote for a symbol.

        Args:
            symbol: Security code

        Returns:
            Quote, or None when the provider has nothing for the symbol
        """
        ...
