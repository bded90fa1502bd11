"""
Logging for the price checker

Everything logs under one root logger, "pricecheck", which writes to stdout.
The root logger itself carries lifecycle messages and the HTTP request/response
traces from log_api_request / log_api_response. Child loggers follow where the
message comes from:

    pricecheck.exchanges.<name>           one per adapter (binance, uniswap, curve, ...)
    pricecheck.services.token_resolver    token source lookups and votes
    pricecheck.services.price_aggregator  fan-out summaries
    pricecheck.app.tools                  tool calls

Usage:
    from core.logging import logger, get_logger

    logger.info("=== Application Starting ===")

    log = get_logger(__name__)
    log.warning("Token source coingecko failed for PEPE on chain 1: HTTP 429")

What goes at each level:
    DEBUG    - HTTP traces ("API Request: binance /api/v3/ticker/24hr")
    INFO     - Startup/shutdown and one summary line per symbol
               ("ETH: 9/12 exchanges returned a price")
    WARNING  - A single adapter or token source failed; the aggregate continues
    ERROR    - Unexpected adapter faults, logged with traceback

web3 request logging is capped at WARNING so RPC chatter stays out of DEBUG runs.

Configuration:
    LOG_LEVEL in the environment or .env (default INFO); re-applied at app startup.
"""

import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "pricecheck"


def setup_logging(
    log_level: str = "INFO",
    log_format: Optional[str] = None,
    include_timestamp: bool = True,
    include_module: bool = True
) -> logging.Logger:
    """
    Configure and return the application logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Custom log format string (uses default if None)
        include_timestamp: Include timestamp in log messages
        include_module: Include module name in log messages

    Returns:
        logging.Logger: Configured logger instance

    Example:
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Application started")
        2024-01-01 12:00:00 [INFO] pricecheck: Application started
    """
    if log_format is None:
        format_parts = []

        if include_timestamp:
            format_parts.append("%(asctime)s")

        format_parts.append("[%(levelname)s]")

        if include_module:
            format_parts.append("%(name)s")

        format_parts.append("%(message)s")

        log_format = " ".join(format_parts)

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True
    )

    # web3 logs every provider request at DEBUG; keep it out of ours
    logging.getLogger("web3").setLevel(logging.WARNING)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    return logger


# ============================================
# Initialize Logger with Settings
# ============================================

try:
    from core.config import settings
    log_level = settings.log_level if hasattr(settings, 'log_level') else "INFO"
except ImportError:
    log_level = "INFO"

# Create the global logger instance
logger = setup_logging(log_level=log_level)


# ============================================
# Convenience Functions
# ============================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module or component.

    Args:
        name: Name for the logger (typically __name__)

    Returns:
        logging.Logger: Logger instance for the specified name

    Example:
        # In services/token_resolver.py:
        logger = get_logger(__name__)  # Creates "pricecheck.services.token_resolver"
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def set_log_level(level: str) -> None:
    """
    Change the log level at runtime.

    Args:
        level: New log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))


# ============================================
# Log Helper Functions
# ============================================

def log_api_request(exchange: str, endpoint: str, params: dict = None) -> None:
    """
    Log an API request with consistent formatting.

    Example:
        >>> log_api_request("binance", "/api/v3/ticker/24hr", {"symbol": "BTCUSDT"})
        [DEBUG] API Request: binance /api/v3/ticker/24hr | Params: {'symbol': 'BTCUSDT'}
    """
    if params:
        logger.debug(f"API Request: {exchange} {endpoint} | Params: {params}")
    else:
        logger.debug(f"API Request: {exchange} {endpoint}")


def log_api_response(exchange: str, endpoint: str, status: int, response_time: float = None) -> None:
    """
    Log an API response with status and timing information.

    Example:
        >>> log_api_response("binance", "/api/v3/ticker/24hr", 200, 0.142)
        [DEBUG] API Response: binance /api/v3/ticker/24hr | Status: 200 | Time: 0.142s
    """
    time_str = f" | Time: {response_time:.3f}s" if response_time else ""
    logger.debug(f"API Response: {exchange} {endpoint} | Status: {status}{time_str}")


logger.debug("Logging system initialized")
