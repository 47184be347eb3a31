"""Instrument classification from a security code.

Fee rules depend on two facts about a symbol: whether it is an equity or a
fund-like instrument, and which venue lists it. Both are inferred from the
code itself; an explicit ``SH``/``SZ``/``HK``/``US`` prefix fixes the venue.
"""

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict


class InstrumentKind(str, Enum):
    """Instrument class used to pick the commission schedule."""

    EQUITY = "equity"
    FUND = "fund"


class Exchange(str, Enum):
    """Listing venue."""

    SH = "SH"
    SZ = "SZ"
    HK = "HK"
    US = "US"


class InstrumentInfo(BaseModel):
    """Classification result for a symbol.

    Attributes:
        code: Symbol with any venue prefix removed
        kind: Equity or fund-like
        exchange: Listing venue
    """

    code: str
    kind: InstrumentKind
    exchange: Exchange

    model_config = ConfigDict(frozen=True)

    @property
    def is_fund(self) -> bool:
        return self.kind == InstrumentKind.FUND


_PREFIX = re.compile(r"^(?:(SH|SZ)[.:]?(\d{6})|(HK)[.:]?(\d{5})|(US)[.:]([A-Z][A-Z.]*))$")

_A_SHARE_CODE = re.compile(r"^\d{6}$")
_A_SHARE_FUND = re.compile(r"^(51|15|588|159|50|16)")
_SH_CODES = re.compile(r"^(60|68|51|50|588)")
_HK_CODE = re.compile(r"^\d{5}$")
_HK_FUND = re.compile(r"^(03|08)\d{3}$")

US_FUNDS = frozenset({"SPY", "QQQ", "VTI", "VOO", "IVV"})


def split_prefix(symbol: str) -> tuple[Exchange | None, str]:
    """Split an optional venue prefix from a symbol.

    Prefixes are only recognised in front of a code of the right shape
    (``SH600000``, ``HK.00700``, ``US:SPY``), so tickers such as ``SHOP``
    stay intact.

    Args:
        symbol: Raw symbol such as ``SH600000`` or ``600000``

    Returns:
        Tuple of (prefix venue or None, bare code)
    """
    cleaned = symbol.strip().upper()
    match = _PREFIX.match(cleaned)
    if match:
        venue, code = [group for group in match.groups() if group is not None]
        return Exchange(venue), code
    return None, cleaned


def classify_symbol(symbol: str) -> InstrumentInfo:
    """Classify a symbol into instrument kind and venue.

    Rules:
    - 6-digit A-share codes: funds start with 51/15/588/159/50/16; SH venue
      for 60/68/51/50/588, SZ otherwise
    - 5-digit codes are HK; 03xxx/08xxx are funds
    - Anything else is US; SPY/QQQ/VTI/VOO/IVV are funds

    Args:
        symbol: Security code, optionally venue-prefixed

    Returns:
        InstrumentInfo for the symbol

    Example:
        >>> classify_symbol("600000").exchange
        <Exchange.SH: 'SH'>
        >>> classify_symbol("510300").kind
        <InstrumentKind.FUND: 'fund'>
    """
    prefix, code = split_prefix(symbol)

    if prefix in (Exchange.SH, Exchange.SZ) or (prefix is None and _A_SHARE_CODE.match(code)):
        kind = InstrumentKind.FUND if _A_SHARE_FUND.match(code) else InstrumentKind.EQUITY
        if prefix is not None:
            exchange = prefix
        else:
            exchange = Exchange.SH if _SH_CODES.match(code) else Exchange.SZ
        return InstrumentInfo(code=code, kind=kind, exchange=exchange)

    if prefix == Exchange.HK or (prefix is None and _HK_CODE.match(code)):
        kind = InstrumentKind.FUND if _HK_FUND.match(code) else InstrumentKind.EQUITY
        return InstrumentInfo(code=code, kind=kind, exchange=Exchange.HK)

    kind = InstrumentKind.FUND if code in US_FUNDS else InstrumentKind.EQUITY
    return InstrumentInfo(code=code, kind=kind, exchange=Exchange.US)
