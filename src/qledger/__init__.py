"""
QLedger - Portfolio Ledger & Position Calculation Engine

Public API for recording trades and corporate actions and deriving holdings,
cost basis and P&L from the transaction history.
"""

from importlib.metadata import version

try:
    __version__ = version("qledger")
except Exception:
    __version__ = "0.0.0.dev"  # Fallback for development


__all__ = [
    "__version__",
]
