"""Quote providers.

- StaticQuoteProvider: Quotes from a fixed mapping (ledger files, tests)
- CachingQuoteProvider: Wraps another provider with an injected cache
"""

from collections.abc import Mapping

from qledger.services.portfolio.interface import IQuoteProvider
from qledger.services.portfolio.models import Quote
from qledger.services.quotes.cache import ICache
from qledger.system import LoggerFactory

logger = LoggerFactory.get_logger()


class StaticQuoteProvider:
    """
    Serves quotes from a fixed mapping.

    Example:
        >>> provider = StaticQuoteProvider({"600000": Quote(symbol="600000", price=Decimal("12"))})
        >>> provider.get_quote("600000").price
        Decimal('12')
    """

    def __init__(self, quotes: Mapping[str, Quote] | None = None) -> None:
        self._quotes = {symbol.upper(): quote for symbol, quote in (quotes or {}).items()}

    def get_quote(self, symbol: str) -> Quote | None:
        return self._quotes.get(symbol.strip().upper())

    def set_quote(self, quote: Quote) -> None:
        """Add or replace a quote."""
        self._quotes[quote.symbol.upper()] = quote


class CachingQuoteProvider:
    """
    Caches the quotes of an upstream provider.

    Misses are not cached, so a symbol the upstream cannot quote is asked
    for again on the next call.

    Attributes:
        upstream: Provider consulted on a cache miss
        cache: Cache owned by the caller
    """

    def __init__(self, upstream: IQuoteProvider, cache: ICache) -> None:
        self.upstream = upstream
        self.cache = cache

    def get_quote(self, symbol: str) -> Quote | None:
        key = symbol.strip().upper()
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        quote = self.upstream.get_quote(key)
        if quote is None:
            logger.debug("quotes.miss", symbol=key)
            return None

        self.cache.set(key, quote)
        return quote

    def invalidate(self, symbol: str | None = None) -> None:
        """Drop one cached quote, or all of them."""
        self.cache.expire(symbol.strip().upper() if symbol else None)
