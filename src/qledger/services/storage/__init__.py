"""Ledger storage.

Key components:
- InMemoryLedgerRepository: Thread-safe reference ILedgerRepository
- load_ledger_file: YAML ledger file (transfers, transactions, quotes)
"""

from qledger.services.storage.loader import LedgerFile, TransferEntry, load_ledger_file, parse_ledger
from qledger.services.storage.memory import InMemoryLedgerRepository

__all__ = [
    "InMemoryLedgerRepository",
    "LedgerFile",
    "TransferEntry",
    "load_ledger_file",
    "parse_ledger",
]
