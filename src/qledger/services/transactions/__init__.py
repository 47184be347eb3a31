"""Transaction requests, validation and handlers.

Key components:
- TransactionInput / TransactionRecord / Transaction: Request, canonical and persisted shapes
- TransactionKind: Closed set of event kinds (BUY, SELL, MERGE, SPLIT, DIVIDEND)
- TransactionValidator: Per-kind request validation
- get_handler: Dispatch from kind to TradeHandler, RatioHandler or DividendHandler
"""

from qledger.services.transactions.handlers import (
    DividendHandler,
    RatioHandler,
    TradeHandler,
    TransactionHandler,
    get_handler,
)
from qledger.services.transactions.models import (
    Transaction,
    TransactionInput,
    TransactionKind,
    TransactionRecord,
)
from qledger.services.transactions.validator import TransactionValidator, parse_input

__all__ = [
    # Models
    "Transaction",
    "TransactionInput",
    "TransactionKind",
    "TransactionRecord",
    # Validation
    "TransactionValidator",
    "parse_input",
    # Handlers
    "TransactionHandler",
    "TradeHandler",
    "RatioHandler",
    "DividendHandler",
    "get_handler",
]
