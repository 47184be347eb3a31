"""Position cycle management.

A position cycle runs from the buy that opens a position out of zero shares
to the sell that takes it back to zero. Each transaction is tagged with the
cycle it belongs to; cycle ids per (portfolio, symbol) are contiguous from 1.

State machine:
- BUY at 0 shares: new cycle (max id + 1)
- BUY above 0 shares: latest cycle
- SELL at 0 shares: rejected
- SELL above 0 shares: latest cycle
- MERGE/SPLIT/DIVIDEND: latest cycle; rejected when no cycle exists yet
"""

from collections.abc import Sequence
from decimal import Decimal

from qledger.errors import StateError
from qledger.result import Err, Ok, Result
from qledger.services.portfolio.interface import ILedgerRepository
from qledger.services.portfolio.processor import RunningTotals
from qledger.services.transactions.models import Transaction, TransactionKind, TransactionRecord
from qledger.system import LoggerFactory

logger = LoggerFactory.get_logger()

_ZERO = Decimal("0")


def next_cycle_id(kind: TransactionKind, current_shares: Decimal, latest_cycle_id: int) -> int:
    """
    Apply the cycle state machine to one event.

    Args:
        kind: Event kind
        current_shares: Shares held before the event
        latest_cycle_id: Highest cycle id so far (0 when none)

    Returns:
        Cycle id for the event

    Raises:
        StateError: For a sell with no shares held, or a corporate action
            before any position existed
    """
    if kind == TransactionKind.BUY:
        return latest_cycle_id + 1 if current_shares <= 0 else latest_cycle_id
    if kind == TransactionKind.SELL and current_shares <= 0:
        raise StateError("Cannot sell with no shares held")
    if latest_cycle_id == 0:
        raise StateError(f"Cannot record {kind.name} before any position was opened")
    return latest_cycle_id


class PositionCycleManager:
    """
    Assigns and verifies position cycle ids.

    Attributes:
        repository: Ledger storage

    Example:
        >>> manager = PositionCycleManager(repository)
        >>> manager.assign_cycle_id(1, "600000", TransactionKind.BUY, Decimal("0"))
        1
    """

    def __init__(self, repository: ILedgerRepository) -> None:
        """
        Initialize cycle manager.

        Args:
            repository: Ledger storage
        """
        self.repository = repository

    def latest_cycle_id(self, portfolio_id: int, symbol: str) -> int:
        """Highest stored cycle id for the symbol, 0 when none."""
        transactions = self.repository.list_transactions(portfolio_id, symbol)
        return max((txn.cycle_id for txn in transactions), default=0)

    def assign_cycle_id(self, portfolio_id: int, symbol: str, kind: TransactionKind, current_shares: Decimal) -> int:
        """
        Cycle id for a new event appended to the symbol's history.

        Args:
            portfolio_id: Portfolio
            symbol: Security code
            kind: Event kind
            current_shares: Shares held before the event

        Returns:
            Cycle id

        Raises:
            StateError: See ``next_cycle_id``
        """
        cycle_id = next_cycle_id(kind, current_shares, self.latest_cycle_id(portfolio_id, symbol))
        logger.debug(
            "cycle.assigned",
            portfolio_id=portfolio_id,
            symbol=symbol,
            kind=kind.name,
            cycle_id=cycle_id,
        )
        return cycle_id

    @staticmethod
    def derive_cycle_ids(history: Sequence[TransactionRecord]) -> Result[list[int]]:
        """
        Derive the cycle id of every event of an ordered history.

        Also enforces share conservation: the running share count may never
        go below zero.

        Args:
            history: Ordered transactions of one symbol

        Returns:
            Ok(cycle ids aligned with ``history``) or Err(StateError)
        """
        acc = RunningTotals()
        latest = 0
        cycle_ids: list[int] = []
        try:
            for txn in history:
                latest = next_cycle_id(txn.kind, acc.total_shares, latest)
                acc.apply(txn)
                cycle_ids.append(latest)
        except StateError as e:
            return Err(e)
        return Ok(cycle_ids)

    def renumber_cycles(self, portfolio_id: int, symbol: str) -> list[Transaction]:
        """
        Re-derive and store cycle ids for a symbol's full history.

        Needed after edits, deletes and back-dated inserts, which can move
        cycle boundaries.

        Returns:
            The symbol's transactions with up-to-date cycle ids

        Raises:
            StateError: If the stored history is inconsistent
        """
        history = self.repository.list_transactions(portfolio_id, symbol)
        cycle_ids = self.derive_cycle_ids(history).unwrap()

        changed = 0
        for txn, cycle_id in zip(history, cycle_ids):
            if txn.cycle_id != cycle_id:
                self.repository.set_cycle_id(txn.id, cycle_id)
                changed += 1

        if changed:
            logger.info("cycle.renumbered", portfolio_id=portfolio_id, symbol=symbol, changed=changed)
            history = self.repository.list_transactions(portfolio_id, symbol)
        return history

    def validate_cycle_integrity(self, portfolio_id: int, symbol: str) -> None:
        """
        Check that stored cycle ids are exactly 1..N.

        Raises:
            StateError: On a gap or a non-positive id
        """
        self.ensure_contiguous(self.repository.list_transactions(portfolio_id, symbol))

    @staticmethod
    def ensure_contiguous(history: Sequence[Transaction]) -> None:
        """
        Check that the cycle ids stored on a history are exactly 1..N.

        Raises:
            StateError: On a gap or a non-positive id
        """
        ids = sorted({txn.cycle_id for txn in history})
        if ids != list(range(1, len(ids) + 1)):
            txn = history[0]
            raise StateError(
                f"Cycle ids for {txn.symbol} in portfolio {txn.portfolio_id} are not contiguous: {ids}"
            )

    def current_cycle_transactions(self, portfolio_id: int, symbol: str) -> list[Transaction]:
        """Transactions of the latest cycle, in ledger order."""
        history = self.repository.list_transactions(portfolio_id, symbol)
        return self.slice_current_cycle(history)

    @staticmethod
    def slice_current_cycle(history: Sequence[Transaction]) -> list[Transaction]:
        """Transactions of the latest cycle within an ordered history."""
        latest = max((txn.cycle_id for txn in history), default=0)
        return [txn for txn in history if txn.cycle_id == latest]
