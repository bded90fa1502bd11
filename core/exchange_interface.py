"""
Exchange Adapter Interface - Abstract Contract for All Price Sources

This module defines the abstract base class every exchange adapter implements,
whether it is a centralized exchange ticker, a swap-routing API, an on-chain
pool or a subgraph. By enforcing a consistent interface, we ensure:
- The aggregator treats all twelve venues the same way
- A new venue needs a new adapter class and a registry entry, nothing else
- Failures never escape an adapter as exceptions

Contract:
    async quote(symbol, chain_id=None) -> AdapterOutcome

    quote() never raises. Subclasses implement fetch_quote(), which is free to
    raise; quote() wraps it, enforces an overall time bound, and converts every
    error into a QuoteFailure carrying a human-readable reason.

Example:
    class BinanceAdapter(ExchangeAdapter):
        name = "binance"
        display_name = "Binance"
        category = "cex"

        async def fetch_quote(self, symbol, chain_id=None):
            data = await self.client.get("/api/v3/ticker/24hr", params={"symbol": f"{symbol}USDT"})
            return PriceQuote(exchange=self.name, symbol=data["symbol"], price=data["lastPrice"])

    outcome = await BinanceAdapter().quote("BTC")
    if outcome.success:
        print(outcome.quote.price)
    else:
        print(outcome.reason)

Capabilities System:
    Each adapter declares what it reports via the `capabilities` dict, e.g.
    whether a quote carries 24h volume or whether the venue needs an API key.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, Optional

import aiohttp

from core.exceptions import ExchangeError
from core.http_client import HTTPClient
from core.logging import get_logger
from core.schemas import AdapterOutcome, PriceQuote, QuoteFailure, QuoteSuccess


class ExchangeAdapter(ABC):
    """
    Abstract Base Class for Exchange Adapters

    Class Attributes:
        name: Registry key (lowercase, e.g., "binance", "okx-dex")
        display_name: Human-readable venue name used in formatted output
        category: "cex" or "dex"
        capabilities: Which optional quote fields / requirements the venue has

    Instance Attributes:
        base_url: Venue base URL
        timeout: Per-HTTP-request timeout in seconds
        rate_limit: Requests per second allowed against this venue
        call_timeout: Upper bound for one whole quote() call, including token
            resolution and every request it makes
        client: HTTPClient for REST venues (None for purely on-chain adapters)

    Abstract Methods:
        - fetch_quote: Produce a PriceQuote or raise

    Optional Methods (can be overridden):
        - initialize: Open sessions
        - shutdown: Close sessions
        - health_check: Verify the venue is reachable
        - resolve_chain: Decide which chain a call runs on
    """

    # ============================================
    # Class Attributes (must be set by subclasses)
    # ============================================

    name: str
    """Unique adapter identifier (lowercase). Example: "binance", "1inch" """

    display_name: str = ""

    category: str = "cex"

    capabilities: Dict[str, bool] = {
        "volume_24h": False,
        "change_24h": False,
        "multi_chain": False,
        "requires_api_key": False,
    }

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 10.0,
        rate_limit: Optional[float] = None,
        call_timeout: Optional[float] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.rate_limit = rate_limit
        self.call_timeout = call_timeout if call_timeout is not None else timeout * 3
        self.logger = get_logger(f"exchanges.{self.name}")
        self.client: Optional[HTTPClient] = (
            self.create_client() if base_url else None
        )

    def create_client(self) -> HTTPClient:
        """Build the HTTP client for this venue. Override to add auth headers."""
        return HTTPClient(
            self.base_url,
            exchange=self.name,
            timeout=self.timeout,
            rate_limit=self.rate_limit,
        )

    # ============================================
    # Quote Contract
    # ============================================

    @abstractmethod
    async def fetch_quote(self, symbol: str, chain_id: Optional[int] = None) -> PriceQuote:
        """
        Fetch the current USD price of `symbol` from this venue.

        Args:
            symbol: Base asset symbol, upper-case (e.g., "BTC", "ETH")
            chain_id: Chain to query; only meaningful for on-chain venues

        Returns:
            PriceQuote: Normalized quote

        Raises:
            ExchangeError: Any declared failure (HTTP error, missing field,
                unsupported chain, token or pool not found)
        """
        pass

    async def quote(self, symbol: str, chain_id: Optional[int] = None) -> AdapterOutcome:
        """
        Quote `symbol`, converting every failure into a QuoteFailure.

        Returns:
            QuoteSuccess or QuoteFailure (exactly one, never raises)

        Example:
            >>> outcome = await adapter.quote("ETH", chain_id=1)
            >>> outcome.success
            True
        """
        symbol = symbol.strip().upper()
        try:
            price_quote = await asyncio.wait_for(
                self.fetch_quote(symbol, chain_id), timeout=self.call_timeout
            )
            return QuoteSuccess(exchange=self.name, quote=price_quote)
        except asyncio.CancelledError:
            raise
        except ExchangeError as e:
            reason = str(e)
        except asyncio.TimeoutError:
            reason = f"Request timed out after {self.call_timeout:g}s"
        except aiohttp.ClientError as e:
            reason = f"Connection error: {e}"
        except (KeyError, IndexError, TypeError, ValueError) as e:
            reason = f"Unexpected response format: {e!r}"
        except Exception as e:
            self.logger.exception(f"{self.name} raised an unexpected error for {symbol}")
            reason = f"Unexpected error: {e}"

        self.logger.warning(f"{self.name} failed for {symbol}: {reason}")
        return QuoteFailure(exchange=self.name, reason=reason)

    def resolve_chain(self, requested: Optional[int], default: Optional[int]) -> Optional[int]:
        """
        Chain this adapter should run on for a request.

        Centralized exchanges are chain-agnostic and always get None.
        DEX adapters override this (fixed venue chain, or request/default).
        """
        return None

    # ============================================
    # Lifecycle
    # ============================================

    async def initialize(self) -> None:
        """
        Open network resources.

        Safe to call multiple times. Adapters that are never initialized still
        work: the HTTP client opens its session lazily on first request.
        """
        if self.client:
            await self.client.open()

    async def shutdown(self) -> None:
        """Close network resources. Never raises."""
        if self.client:
            try:
                await self.client.close()
            except Exception as e:
                self.logger.error(f"Error closing {self.name} client: {e}")

    async def health_check(self) -> bool:
        """
        Check if the venue is reachable.

        Default: a BTC quote succeeds (or ETH on DEX venues that do not list BTC).
        """
        outcome = await self.quote("ETH" if self.category == "dex" else "BTC")
        return outcome.success

    # ============================================
    # Helper Methods
    # ============================================

    def supports(self, feature: str) -> bool:
        """
        Check if this adapter supports a specific feature.

        Example:
            >>> adapter.supports("volume_24h")
            True
        """
        return self.capabilities.get(feature, False)

    def __repr__(self) -> str:
        """String representation of the adapter."""
        return f"<{self.__class__.__name__}(name='{self.name}')>"
