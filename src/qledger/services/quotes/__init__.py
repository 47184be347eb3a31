"""Quote providers and the injectable cache they use.

Key components:
- ICache / TTLCache: Caller-owned cache with expiry
- StaticQuoteProvider: Quotes from a mapping
- CachingQuoteProvider: Cache in front of any IQuoteProvider
"""

from qledger.services.quotes.cache import ICache, TTLCache
from qledger.services.quotes.provider import CachingQuoteProvider, StaticQuoteProvider

__all__ = [
    "ICache",
    "TTLCache",
    "StaticQuoteProvider",
    "CachingQuoteProvider",
]
