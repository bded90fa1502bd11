"""
Exception Hierarchy

Adapters raise ExchangeError subclasses from inside fetch_quote(); the adapter
base class turns them into QuoteFailure outcomes, so none of these escape an
adapter. AggregatorInputError is the only one that reaches a caller.
"""

from typing import Optional


class PriceCheckError(Exception):
    """Base class for all application errors."""


class ExchangeError(PriceCheckError):
    """One exchange or data source could not produce a price."""

    def __init__(self, message: str, exchange: Optional[str] = None):
        super().__init__(message)
        self.exchange = exchange


class ExchangeHTTPError(ExchangeError):
    """Non-2xx HTTP response. The raw body is kept for the failure reason."""

    def __init__(self, status: int, body: str, url: str = "", exchange: Optional[str] = None):
        body = " ".join((body or "").split())
        if len(body) > 300:
            body = body[:300] + "..."
        super().__init__(f"HTTP {status}: {body or 'empty response'}", exchange=exchange)
        self.status = status
        self.body = body
        self.url = url


class UnsupportedChainError(ExchangeError):
    """The venue does not operate on the requested chain."""


class TokenNotFoundError(ExchangeError):
    """No token source could map the symbol to an address on the chain."""


class AggregatorInputError(PriceCheckError, ValueError):
    """Malformed aggregation request (empty symbol, empty symbol list, ...)."""
