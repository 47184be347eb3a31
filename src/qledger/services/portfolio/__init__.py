"""Portfolio derivation: cycles, replay, holdings and totals.

This module turns the per-symbol transaction history into derived state:
holdings with cost basis, valuations with P&L, and portfolio totals. Every
derived value can be rebuilt from the history at any time.

Key components:
- LedgerService: Public write and query surface
- HoldingService: Rebuilds a holding from history
- PortfolioAggregator: Cash ledger and portfolio totals
- PositionCycleManager: Position cycle numbering
- TransactionProcessor: Pure replay engine
- KeyedLock: Per-(portfolio, symbol) locking
- ILedgerRepository / IQuoteProvider: Collaborator protocols

Example:
    >>> from qledger.services.portfolio import LedgerService
    >>> from qledger.services.storage import InMemoryLedgerRepository
    >>>
    >>> service = LedgerService(InMemoryLedgerRepository())
    >>> service.create_transaction(request)
    >>> service.list_holdings(portfolio_id=1)
"""

from qledger.services.portfolio.aggregator import PortfolioAggregator
from qledger.services.portfolio.cycle_manager import PositionCycleManager
from qledger.services.portfolio.holding_service import HoldingService
from qledger.services.portfolio.interface import ILedgerRepository, IQuoteProvider
from qledger.services.portfolio.locks import KeyedLock
from qledger.services.portfolio.models import (
    BulkImportResult,
    CashPosition,
    DayTradingData,
    Holding,
    HoldingDetail,
    ImportRowError,
    PortfolioOverview,
    Quote,
    SharesAggregate,
    Transfer,
    TransferKind,
    WriteResult,
)
from qledger.services.portfolio.processor import TransactionProcessor
from qledger.services.portfolio.service import LedgerService

__all__ = [
    # Services
    "LedgerService",
    "HoldingService",
    "PortfolioAggregator",
    "PositionCycleManager",
    "TransactionProcessor",
    "KeyedLock",
    # Interfaces
    "ILedgerRepository",
    "IQuoteProvider",
    # Models
    "SharesAggregate",
    "DayTradingData",
    "Holding",
    "HoldingDetail",
    "Quote",
    "Transfer",
    "TransferKind",
    "CashPosition",
    "PortfolioOverview",
    "WriteResult",
    "BulkImportResult",
    "ImportRowError",
]
