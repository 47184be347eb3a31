"""Tests for the quote cache and providers."""

from decimal import Decimal

import pytest

from qledger.services.portfolio.models import Quote
from qledger.services.quotes import CachingQuoteProvider, StaticQuoteProvider, TTLCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class CountingProvider:
    """Upstream provider that records every lookup."""

    def __init__(self, quotes: dict[str, Quote]) -> None:
        self.quotes = quotes
        self.calls: list[str] = []

    def get_quote(self, symbol: str) -> Quote | None:
        self.calls.append(symbol)
        return self.quotes.get(symbol)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def quote() -> Quote:
    return Quote(symbol="600000", price=Decimal("12.3"), change=Decimal("0.1"))


class TestTTLCache:
    """Test expiry behaviour."""

    def test_entry_expires_after_ttl(self, clock) -> None:
        cache = TTLCache(ttl_seconds=60, clock=clock)
        cache.set("k", 1)

        clock.now = 59.9
        assert cache.get("k") == 1

        clock.now = 60.0
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_per_entry_ttl(self, clock) -> None:
        cache = TTLCache(ttl_seconds=60, clock=clock)
        cache.set("short", "a", ttl_seconds=5)
        cache.set("long", "b")

        clock.now = 10
        assert cache.get("short") is None
        assert cache.get("long") == "b"

    def test_expire_one_or_all(self, clock) -> None:
        cache = TTLCache(clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)

        cache.expire("a")
        assert cache.get("a") is None
        assert len(cache) == 1

        cache.expire()
        assert len(cache) == 0

    @pytest.mark.parametrize("ttl", [0, -1])
    def test_ttl_must_be_positive(self, ttl: float) -> None:
        with pytest.raises(ValueError, match="ttl_seconds must be positive"):
            TTLCache(ttl_seconds=ttl)


class TestProviders:
    """Test static and caching providers."""

    def test_static_provider_is_case_insensitive(self, quote) -> None:
        provider = StaticQuoteProvider({"600000": quote})

        assert provider.get_quote(" 600000 ") == quote
        assert provider.get_quote("000001") is None

        provider.set_quote(Quote(symbol="spy", price=Decimal("500")))
        assert provider.get_quote("SPY").price == Decimal("500")

    def test_hits_are_served_from_cache(self, clock, quote) -> None:
        upstream = CountingProvider({"600000": quote})
        provider = CachingQuoteProvider(upstream, TTLCache(ttl_seconds=300, clock=clock))

        assert provider.get_quote("600000") == quote
        assert provider.get_quote("600000") == quote
        assert upstream.calls == ["600000"]

        clock.now = 301
        provider.get_quote("600000")
        assert upstream.calls == ["600000", "600000"]

    def test_misses_are_not_cached(self, clock) -> None:
        upstream = CountingProvider({})
        provider = CachingQuoteProvider(upstream, TTLCache(clock=clock))

        assert provider.get_quote("000001") is None
        assert provider.get_quote("000001") is None
        assert upstream.calls == ["000001", "000001"]

    def test_invalidate(self, clock, quote) -> None:
        upstream = CountingProvider({"600000": quote})
        provider = CachingQuoteProvider(upstream, TTLCache(clock=clock))

        provider.get_quote("600000")
        provider.invalidate("600000")
        provider.get_quote("600000")

        assert len(upstream.calls) == 2
