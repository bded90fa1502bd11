"""
FastAPI Application - Multi-Exchange Crypto Price Checker

Quotes a symbol on every configured exchange (4 CEX, 8 DEX) concurrently and
returns the per-exchange outcomes with average / best / worst prices.

Usage:
    uvicorn app.main:app --reload --host 0.0.0.0 --port 8000

Docs:
    - Swagger: http://localhost:8000/docs
    - ReDoc: http://localhost:8000/redoc
"""

from fastapi import FastAPI, HTTPException, Query, Body
from fastapi.middleware.cors import CORSMiddleware
from typing import Any, Dict, List, Optional
from contextlib import asynccontextmanager

from core.exchange_manager import ExchangeManager
from core.exceptions import AggregatorInputError
from core.schemas import AggregateResult
from core.logging import logger, set_log_level
from core.config import settings, validate_configuration
from services.price_aggregator import PriceAggregator
from app.tools import TOOL_DEFINITIONS, ToolResult, ToolService


# ============================================
# Lifespan Management
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    # Startup
    logger.info("=== Application Starting ===")
    try:
        validate_configuration()
        set_log_level(settings.log_level)
        await manager.initialize_all()
        logger.info("=== Started Successfully ===")
    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    yield

    # Shutdown
    logger.info("=== Shutting Down ===")
    try:
        await manager.shutdown_all()
        logger.info("=== Shutdown Complete ===")
    except Exception as e:
        logger.error(f"Shutdown error: {e}")


# ============================================
# FastAPI Application
# ============================================

app = FastAPI(
    title="Crypto Price Checker API",
    description=(
        "Aggregated spot prices across centralized and decentralized exchanges.\n\n"
        "**CEX:** Binance, OKX, Coinbase, Kraken\n\n"
        "**DEX:** Hyperliquid, Uniswap V3, 0x, Jupiter, OKX DEX, 1inch, PancakeSwap, Curve\n\n"
        "## REST Endpoints\n"
        "- `GET /price/{symbol}` - One symbol across all exchanges (optional `?chain_id=`)\n"
        "- `GET /prices?symbols=BTC,ETH` - Several symbols (optional `&chain_id=`)\n"
        "- `GET /exchanges` - Configured exchanges and capabilities\n"
        "- `GET /health` - Health check\n\n"
        "## Tool Calls\n"
        "- `GET /tools` - Tool definitions (name, description, input schema)\n"
        "- `POST /tools/{name}` - Call a tool with a JSON arguments object\n"
    ),
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

manager = ExchangeManager()  # Global exchange manager
aggregator = PriceAggregator(manager, settings.default_chain_id)
tools = ToolService(aggregator)


# ============================================
# System Endpoints
# ============================================

@app.get("/", tags=["System"])
async def root():
    """API information and configured exchanges."""
    return {
        "name": "Crypto Price Checker API",
        "version": "1.0.0",
        "status": "operational",
        "docs": "/docs",
        "default_chain_id": aggregator.default_chain_id,
        "exchanges": manager.list_exchanges()
    }


@app.get("/health", tags=["System"])
async def health_check():
    """Health check - quotes a reference symbol on every exchange."""
    health = await manager.health_check_all()
    return {
        "status": "healthy" if all(health.values()) else "degraded",
        "exchanges": health
    }


@app.get("/exchanges", tags=["System"])
async def list_exchanges():
    """List configured exchanges and their capabilities."""
    return {
        "exchanges": [
            {
                "name": name,
                "display_name": manager.get_exchange(name).display_name,
                "category": manager.get_exchange(name).category,
                "capabilities": manager.get_exchange_capabilities(name)
            }
            for name in manager.list_exchanges()
        ]
    }


# ============================================
# Price Endpoints
# ============================================

@app.get("/price/{symbol}", response_model=AggregateResult, tags=["Prices"])
async def get_price(
    symbol: str,
    chain_id: Optional[int] = Query(default=None, description="Chain for EVM DEX venues (default: configured)")
):
    """
    Aggregate one symbol across all exchanges.

    Examples:
        GET /price/BTC
        GET /price/LINK?chain_id=42161
    """
    try:
        return await aggregator.get_price(symbol, chain_id)
    except AggregatorInputError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/prices", response_model=List[AggregateResult], tags=["Prices"])
async def get_prices(
    symbols: str = Query(default="", description="Comma-separated symbols, e.g. BTC,ETH,SOL"),
    chain_id: Optional[int] = Query(default=None, description="Chain for EVM DEX venues (default: configured)")
):
    """
    Aggregate several symbols, one result per symbol in request order.

    Example:
        GET /prices?symbols=BTC,ETH
    """
    symbol_list = [s.strip() for s in symbols.split(",") if s.strip()]
    try:
        return await aggregator.get_prices(symbol_list, chain_id)
    except AggregatorInputError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ============================================
# Tool Endpoints
# ============================================

@app.get("/tools", tags=["Tools"])
async def list_tools():
    """Tool definitions for automation clients."""
    return {"tools": TOOL_DEFINITIONS}


@app.post("/tools/{name}", response_model=ToolResult, tags=["Tools"])
async def call_tool(name: str, arguments: Optional[Dict[str, Any]] = Body(default=None)):
    """
    Call a tool. Request-level errors come back with is_error=true.

    Example:
        POST /tools/get_crypto_price  {"symbol": "ETH"}
    """
    return await tools.call_tool(name, arguments)
