"""
Price Aggregator Service

Fans one symbol out to every configured exchange adapter concurrently and folds
the per-exchange outcomes into an AggregateResult.

Semantics:
    - Every adapter task is created before any is awaited (true fan-out)
    - "Settle all": asyncio.gather(..., return_exceptions=True); nothing
      short-circuits on the first failure
    - An adapter that raises past its own boundary is converted into a
      QuoteFailure naming that exchange
    - Outcomes are listed in registry order, not completion order

Chain routing (ExchangeAdapter.resolve_chain):
    - Fixed-venue adapters (Jupiter -> Solana, PancakeSwap -> BSC) keep their chain
    - General EVM adapters use the requested chain, else the configured default
    - CEX and chain-agnostic adapters get None

Example Usage:
    aggregator = PriceAggregator(get_manager())
    result = await aggregator.get_price("ETH")
    print(result.successful_exchanges, result.average_price)

    results = await aggregator.get_prices(["BTC", "ETH"], chain_id=42161)
"""

import asyncio
from typing import List, Optional, Sequence

from core.config import settings
from core.exceptions import AggregatorInputError
from core.exchange_interface import ExchangeAdapter
from core.exchange_manager import ExchangeManager, get_manager
from core.logging import get_logger
from core.schemas import AggregateResult, QuoteFailure

logger = get_logger(__name__)


def normalize_symbol(symbol) -> str:
    """
    Strip and upper-case a symbol.

    Raises:
        AggregatorInputError: If symbol is not a non-blank string
    """
    if not isinstance(symbol, str) or not symbol.strip():
        raise AggregatorInputError("Symbol must be a non-empty string")
    return symbol.strip().upper()


def normalize_symbols(symbols) -> List[str]:
    """
    Validate a symbol batch, keeping input order.

    Raises:
        AggregatorInputError: If symbols is not a non-empty list/tuple of symbols
    """
    if not isinstance(symbols, (list, tuple)):
        raise AggregatorInputError("Symbols must be provided as a list")
    if not symbols:
        raise AggregatorInputError("Symbols array is required and must not be empty")
    return [normalize_symbol(s) for s in symbols]


class PriceAggregator:
    """
    Multi-exchange price aggregation.

    Attributes:
        manager: Adapter registry; its order is the outcome order
        default_chain_id: Chain for general EVM adapters when a request names none
    """

    def __init__(self, manager: Optional[ExchangeManager] = None,
                 default_chain_id: Optional[int] = None):
        self.manager = manager if manager is not None else get_manager()
        self.default_chain_id = default_chain_id if default_chain_id is not None else settings.default_chain_id

    def list_exchanges(self) -> List[str]:
        """Configured adapter names, in configuration order."""
        return self.manager.list_exchanges()

    async def get_price(self, symbol: str, chain_id: Optional[int] = None) -> AggregateResult:
        """
        Query every adapter for one symbol and summarize.

        Args:
            symbol: Token symbol (case-insensitive)
            chain_id: Requested chain for general EVM adapters

        Returns:
            AggregateResult; a symbol nobody can price yields 0 successes, not an error

        Raises:
            AggregatorInputError: If symbol is blank
        """
        symbol = normalize_symbol(symbol)
        adapters = self.manager.adapters()

        logger.info(f"Fetching {symbol} price from {len(adapters)} exchange(s)")

        # Create all tasks first so every request is in flight before we wait
        tasks = [
            asyncio.ensure_future(self._quote(adapter, symbol, chain_id))
            for adapter in adapters
        ]
        settled = await asyncio.gather(*tasks, return_exceptions=True)

        outcomes = []
        for adapter, outcome in zip(adapters, settled):
            if isinstance(outcome, asyncio.CancelledError):
                # Caller cancellation raises out of gather; this one came from inside the adapter
                logger.warning(f"{adapter.name} adapter was cancelled while quoting {symbol}")
                outcome = QuoteFailure(exchange=adapter.name, reason="Cancelled unexpectedly")
            elif isinstance(outcome, BaseException):
                logger.error(
                    f"Unexpected fault in {adapter.name} adapter for {symbol}",
                    exc_info=(type(outcome), outcome, outcome.__traceback__),
                )
                outcome = QuoteFailure(exchange=adapter.name, reason=f"Unexpected error: {outcome}")
            outcomes.append(outcome)

        result = AggregateResult.from_outcomes(symbol, outcomes)
        logger.info(
            f"{symbol}: {result.successful_exchanges}/{result.total_exchanges} exchanges returned a price"
        )
        return result

    async def get_prices(self, symbols: Sequence[str], chain_id: Optional[int] = None) -> List[AggregateResult]:
        """
        Aggregate several symbols concurrently, one result per symbol in input order.

        Raises:
            AggregatorInputError: If symbols is empty, not a list, or holds a blank symbol
        """
        normalized = normalize_symbols(symbols)
        return list(await asyncio.gather(*(self.get_price(s, chain_id) for s in normalized)))

    async def _quote(self, adapter: ExchangeAdapter, symbol: str, chain_id: Optional[int]):
        chain = adapter.resolve_chain(chain_id, self.default_chain_id)
        return await adapter.quote(symbol, chain)
