"""
Tool Surface

The three operations an automation client calls, with their JSON input schemas
and a dispatcher that always answers with a ToolResult:

    get_crypto_price(symbol)              -> format_price_result text
    get_multiple_crypto_prices(symbols)   -> format_multiple_price_results text
    list_supported_exchanges()            -> format_supported_exchanges text

Request-level problems (unknown tool, missing or malformed arguments) come back
as ToolResult(is_error=True) with "Error: ..." text. An unpriceable symbol is
not an error: it is a normal result with zero successful exchanges.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from core.exceptions import AggregatorInputError
from core.logging import get_logger
from core.schemas import AggregateResult
from services.price_aggregator import PriceAggregator
from services.price_formatter import (
    format_multiple_price_results,
    format_price_result,
    format_supported_exchanges,
)

logger = get_logger(__name__)


TOOL_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "name": "get_crypto_price",
        "description": "Get the current price of a cryptocurrency across multiple exchanges (CEX and DEX)",
        "inputSchema": {
            "type": "object",
            "properties": {
                "symbol": {
                    "type": "string",
                    "description": "The cryptocurrency symbol (e.g., BTC, ETH, SOL)",
                },
            },
            "required": ["symbol"],
        },
    },
    {
        "name": "get_multiple_crypto_prices",
        "description": "Get prices for multiple cryptocurrencies across all exchanges",
        "inputSchema": {
            "type": "object",
            "properties": {
                "symbols": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": 'Array of cryptocurrency symbols (e.g., ["BTC", "ETH", "SOL"])',
                },
            },
            "required": ["symbols"],
        },
    },
    {
        "name": "list_supported_exchanges",
        "description": "List all supported exchanges (CEX and DEX)",
        "inputSchema": {"type": "object", "properties": {}},
    },
]


class ToolResult(BaseModel):
    """Tool call answer: a list of text content blocks plus an error flag."""

    content: List[Dict[str, str]] = Field(default_factory=list)
    is_error: bool = False

    @classmethod
    def text(cls, text: str, is_error: bool = False) -> "ToolResult":
        return cls(content=[{"type": "text", "text": text}], is_error=is_error)


class ToolService:
    """
    Tool operations backed by a PriceAggregator.

    Example:
        >>> tools = ToolService(PriceAggregator(manager))
        >>> result = await tools.call_tool("get_crypto_price", {"symbol": "eth"})
        >>> result.is_error
        False
    """

    def __init__(self, aggregator: Optional[PriceAggregator] = None):
        self.aggregator = aggregator if aggregator is not None else PriceAggregator()

    # ============================================
    # Operations
    # ============================================

    async def get_crypto_price(self, symbol: str) -> AggregateResult:
        """Aggregate one symbol on the configured default chain."""
        return await self.aggregator.get_price(symbol)

    async def get_multiple_crypto_prices(self, symbols: List[str]) -> List[AggregateResult]:
        """
        Aggregate several symbols.

        Raises:
            AggregatorInputError: symbols is empty or not a list
        """
        return await self.aggregator.get_prices(symbols)

    def list_supported_exchanges(self) -> List[str]:
        return self.aggregator.list_exchanges()

    # ============================================
    # Dispatch
    # ============================================

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        """
        Run a tool by name and render its text answer. Never raises for bad input.
        """
        arguments = arguments or {}
        try:
            if name == "get_crypto_price":
                result = await self.get_crypto_price(arguments.get("symbol"))
                return ToolResult.text(format_price_result(result))

            if name == "get_multiple_crypto_prices":
                results = await self.get_multiple_crypto_prices(arguments.get("symbols"))
                return ToolResult.text(format_multiple_price_results(results))

            if name == "list_supported_exchanges":
                return ToolResult.text(format_supported_exchanges(self.list_supported_exchanges()))

            raise AggregatorInputError(f"Unknown tool: {name}")
        except AggregatorInputError as e:
            logger.warning(f"Rejected {name} call: {e}")
            return ToolResult.text(f"Error: {e}", is_error=True)
