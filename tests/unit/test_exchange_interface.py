"""
Unit Tests for Exchange Interface and Manager

These tests verify that:
- ExchangeAdapter is properly defined as an abstract class
- quote() converts every error into a QuoteFailure and never raises
- ExchangeManager keeps adapters in configuration order
- Exchange capabilities are properly declared
- Lifecycle methods work as expected

Run with:
    pytest tests/unit/test_exchange_interface.py -v
"""

import asyncio
from decimal import Decimal

import pytest

from core.config import ALL_EXCHANGES, Settings
from core.exceptions import ExchangeError
from core.exchange_interface import ExchangeAdapter
from core.exchange_manager import ExchangeManager, build_default_adapters
from core.schemas import PriceQuote, QuoteFailure, QuoteSuccess


# ============================================
# Dummy Exchange for Testing
# ============================================

class DummyExchange(ExchangeAdapter):
    """
    Minimal ExchangeAdapter whose fetch_quote() behavior is injected.

    `behavior` is either a price string or an exception instance to raise.
    """

    category = "cex"
    capabilities = {
        "volume_24h": True,
        "change_24h": False,  # Intentionally not supported
        "multi_chain": False,
        "requires_api_key": False,
    }

    def __init__(self, name: str = "dummy", behavior="100", delay: float = 0.0, **kwargs):
        self.name = name
        self.display_name = name.title()
        self.behavior = behavior
        self.delay = delay
        self.initialized = False
        self.closed = False
        super().__init__(**kwargs)

    async def fetch_quote(self, symbol, chain_id=None):
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.behavior, BaseException):
            raise self.behavior
        return PriceQuote(exchange=self.name, symbol=symbol, price=self.behavior)

    async def initialize(self):
        self.initialized = True

    async def shutdown(self):
        self.closed = True


# ============================================
# Tests for ExchangeAdapter
# ============================================

class TestExchangeAdapter:
    """Test the ExchangeAdapter abstract class"""

    def test_cannot_instantiate_abstract_interface(self):
        """Verify that ExchangeAdapter cannot be instantiated directly"""
        with pytest.raises(TypeError):
            ExchangeAdapter()

    def test_supports_reads_capabilities(self):
        exchange = DummyExchange()
        assert exchange.supports("volume_24h") is True
        assert exchange.supports("change_24h") is False
        assert exchange.supports("unknown_feature") is False

    def test_no_client_without_base_url(self):
        assert DummyExchange().client is None

    def test_cex_is_chain_agnostic(self):
        assert DummyExchange().resolve_chain(1, 1) is None

    def test_repr(self):
        assert repr(DummyExchange("alpha")) == "<DummyExchange(name='alpha')>"


class TestQuoteBoundary:
    """quote() returns exactly one outcome and never raises"""

    @pytest.mark.asyncio
    async def test_success(self):
        outcome = await DummyExchange(behavior="42.5").quote(" eth ")
        assert isinstance(outcome, QuoteSuccess)
        assert outcome.quote.symbol == "ETH"
        assert outcome.price == Decimal("42.5")

    @pytest.mark.asyncio
    async def test_exchange_error_message_becomes_reason(self):
        outcome = await DummyExchange(behavior=ExchangeError("Invalid symbol")).quote("BTC")
        assert isinstance(outcome, QuoteFailure)
        assert outcome.reason == "Invalid symbol"

    @pytest.mark.asyncio
    async def test_call_timeout(self):
        exchange = DummyExchange(delay=1.0, call_timeout=0.05)
        outcome = await exchange.quote("BTC")
        assert not outcome.success
        assert "timed out" in outcome.reason

    @pytest.mark.asyncio
    async def test_malformed_response(self):
        outcome = await DummyExchange(behavior=KeyError("lastPrice")).quote("BTC")
        assert not outcome.success
        assert "Unexpected response format" in outcome.reason
        assert "lastPrice" in outcome.reason

    @pytest.mark.asyncio
    async def test_unexpected_exception(self):
        outcome = await DummyExchange(behavior=RuntimeError("kaboom")).quote("BTC")
        assert not outcome.success
        assert outcome.reason == "Unexpected error: kaboom"

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        exchange = DummyExchange(delay=5.0)
        task = asyncio.ensure_future(exchange.quote("BTC"))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


# ============================================
# Tests for ExchangeManager
# ============================================

class TestExchangeManager:
    """Test the ExchangeManager class"""

    def test_manager_keeps_order(self):
        names = ["kraken", "binance", "uniswap"]
        manager = ExchangeManager(adapters=[DummyExchange(n) for n in names])
        assert manager.list_exchanges() == names
        assert [a.name for a in manager.adapters()] == names
        assert len(manager) == 3

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            ExchangeManager(adapters=[DummyExchange("a"), DummyExchange("a")])

    def test_get_exchange_is_case_insensitive(self):
        manager = ExchangeManager(adapters=[DummyExchange("binance")])
        assert manager.get_exchange("BINANCE").name == "binance"
        assert manager.has_exchange("Binance")

    def test_get_unknown_exchange(self):
        manager = ExchangeManager(adapters=[DummyExchange("binance")])
        with pytest.raises(ValueError, match="not supported"):
            manager.get_exchange("mtgox")

    def test_feature_queries(self):
        manager = ExchangeManager(adapters=[DummyExchange("a"), DummyExchange("b")])
        assert manager.get_exchanges_with_feature("volume_24h") == ["a", "b"]
        assert manager.get_exchanges_with_feature("change_24h") == []
        caps = manager.get_exchange_capabilities("a")
        caps["volume_24h"] = False
        assert manager.get_exchange("a").supports("volume_24h") is True

    @pytest.mark.asyncio
    async def test_lifecycle(self):
        adapters = [DummyExchange("a"), DummyExchange("b")]
        manager = ExchangeManager(adapters=adapters)

        await manager.initialize_all()
        assert all(a.initialized for a in adapters)

        await manager.shutdown_all()
        assert all(a.closed for a in adapters)

    @pytest.mark.asyncio
    async def test_health_check_all(self):
        manager = ExchangeManager(adapters=[
            DummyExchange("up"),
            DummyExchange("down", behavior=ExchangeError("HTTP 503: unavailable")),
        ])
        assert await manager.health_check_all() == {"up": True, "down": False}


class TestDefaultAdapters:

    def test_all_twelve_built_in_configuration_order(self):
        adapters = build_default_adapters(Settings(_env_file=None))
        assert [a.name for a in adapters] == list(ALL_EXCHANGES)
        assert {a.category for a in adapters} == {"cex", "dex"}

    def test_subset_keeps_configured_order(self):
        adapters = build_default_adapters(Settings(enabled_exchanges="curve,binance"))
        assert [a.name for a in adapters] == ["curve", "binance"]

    def test_unknown_name_rejected(self):
        with pytest.raises(ValueError, match="not supported"):
            build_default_adapters(Settings(enabled_exchanges="binance,mtgox"))
