"""Trade fee calculation.

Key components:
- FeeCalculator: Commission, stamp tax and transfer fee for a trade
- FeeConfig / CommissionSchedule: Per-portfolio fee settings
- classify_symbol: Instrument kind and venue from a security code
"""

from qledger.services.fees.calculator import FeeBreakdown, FeeCalculator, TradeDirection
from qledger.services.fees.classifier import Exchange, InstrumentInfo, InstrumentKind, classify_symbol
from qledger.services.fees.config import CommissionSchedule, FeeConfig

__all__ = [
    "FeeCalculator",
    "FeeBreakdown",
    "TradeDirection",
    "FeeConfig",
    "CommissionSchedule",
    "classify_symbol",
    "InstrumentInfo",
    "InstrumentKind",
    "Exchange",
]
