"""
Shared Async HTTP Client

Every REST-based exchange adapter talks to its venue through one HTTPClient.
It owns:
- An aiohttp ClientSession (opened in __aenter__ / open(), closed in close())
- A total request timeout (aiohttp.ClientTimeout)
- A simple async rate limiter (minimum spacing between requests)
- Request/response debug logging

No retries: a timeout or non-2xx response is raised
as an ExchangeError and becomes a failed quote for that exchange.

Usage:
    async with HTTPClient("https://api.binance.com", exchange="binance", timeout=5.0) as client:
        data = await client.get("/api/v3/ticker/24hr", params={"symbol": "BTCUSDT"})
"""

import asyncio
import json
import time
from typing import Any, Dict, Optional

import aiohttp

from core.config import settings
from core.exceptions import ExchangeError, ExchangeHTTPError
from core.logging import get_logger, log_api_request, log_api_response


class RateLimiter:
    """
    Spaces requests at least 1/rate seconds apart.

    Callers await acquire() before each request. The lock serializes waiters,
    so a burst of concurrent quotes against one venue goes out evenly paced.
    """

    def __init__(self, rate: float):
        self.interval = 1.0 / rate if rate and rate > 0 else 0.0
        self._lock = asyncio.Lock()
        self._next_allowed = 0.0

    async def acquire(self) -> None:
        if self.interval <= 0:
            return
        async with self._lock:
            now = time.monotonic()
            wait = self._next_allowed - now
            if wait > 0:
                await asyncio.sleep(wait)
                now = time.monotonic()
            self._next_allowed = now + self.interval


class HTTPClient:
    """
    Async JSON-over-HTTP client bound to one base URL.

    Attributes:
        base_url: Venue base URL, without trailing slash
        exchange: Exchange name used in logs and raised errors
        timeout: Total per-request timeout in seconds
        headers: Default headers sent with every request
        rate_limiter: Per-client request pacing
        session: aiohttp ClientSession (None until opened)

    Example:
        >>> client = HTTPClient("https://api.kraken.com", exchange="kraken")
        >>> await client.open()
        >>> data = await client.get("/0/public/Ticker", params={"pair": "XBTUSDT"})
        >>> await client.close()
    """

    def __init__(
        self,
        base_url: str,
        exchange: str,
        timeout: float = 10.0,
        rate_limit: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.exchange = exchange
        self.timeout = timeout
        self.headers = {"User-Agent": settings.user_agent, "Accept": "application/json"}
        if headers:
            self.headers.update(headers)
        self.rate_limiter = RateLimiter(rate_limit or settings.max_requests_per_second)
        self.session: Optional[aiohttp.ClientSession] = None
        self.logger = get_logger(__name__)

    # ============================================
    # Session Management
    # ============================================

    async def open(self) -> None:
        """Create the underlying session if it is not open yet."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=self.headers,
            )
            self.logger.debug(f"HTTP session opened for {self.exchange}")

    async def close(self) -> None:
        """Close the session. Safe to call more than once."""
        if self.session and not self.session.closed:
            await self.session.close()
            self.logger.debug(f"HTTP session closed for {self.exchange}")
        self.session = None

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ============================================
    # Requests
    # ============================================

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}{path}"

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Send one request and return the decoded JSON body.

        Raises:
            ExchangeHTTPError: Non-2xx status (carries the raw body text)
            ExchangeError: Timeout, connection failure or a non-JSON body
        """
        await self.open()
        await self.rate_limiter.acquire()

        url = self._url(path)
        log_api_request(self.exchange, path, params or json_body)
        started = time.monotonic()

        try:
            async with self.session.request(
                method, url, params=params, json=json_body, headers=headers
            ) as resp:
                text = await resp.text()
                log_api_response(self.exchange, path, resp.status, time.monotonic() - started)
                if resp.status < 200 or resp.status >= 300:
                    raise ExchangeHTTPError(resp.status, text, url=url, exchange=self.exchange)
        except asyncio.TimeoutError:
            raise ExchangeError(f"Request timed out after {self.timeout:g}s", exchange=self.exchange)
        except aiohttp.ClientError as e:
            raise ExchangeError(f"Connection error: {e}", exchange=self.exchange) from e

        try:
            return json.loads(text)
        except ValueError:
            raise ExchangeError(f"Invalid JSON response: {text[:200]}", exchange=self.exchange)

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None,
                  headers: Optional[Dict[str, str]] = None) -> Any:
        return await self.request("GET", path, params=params, headers=headers)

    async def post(self, path: str, json_body: Any = None,
                   headers: Optional[Dict[str, str]] = None) -> Any:
        return await self.request("POST", path, json_body=json_body, headers=headers)
