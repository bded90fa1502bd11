"""
Configuration Management Module

This module handles loading, validating, and providing access to application configuration
from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Key Features:
- Loads configuration from .env file
- Validates the enabled exchange list and timeouts
- Provides type-safe access to configuration values
- Converts comma-separated strings to lists (exchanges, fee tiers, RPC overrides)
- Treats every API key as optional (empty string = not configured)

Usage:
    from core.config import settings

    # Access configuration values
    print(settings.default_chain_id)
    print(settings.exchanges_list)  # Returns a list of adapter names
"""

from typing import Dict, List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


# Canonical adapter order. Outcome order in every aggregate follows this list.
ALL_EXCHANGES = (
    "binance",
    "okx",
    "coinbase",
    "kraken",
    "hyperliquid",
    "uniswap",
    "0x",
    "jupiter",
    "okx-dex",
    "1inch",
    "pancakeswap",
    "curve",
)

# Requests per second each venue tolerates on its public / free tier.
# Venues missing here fall back to MAX_REQUESTS_PER_SECOND.
DEFAULT_RATE_LIMITS: Dict[str, float] = {
    "binance": 20.0,
    "okx": 10.0,
    "coinbase": 10.0,
    "kraken": 1.0,
    "hyperliquid": 10.0,
    "0x": 5.0,
    "jupiter": 10.0,
    "okx-dex": 1.0,
    "1inch": 1.0,
    "pancakeswap": 5.0,
    "curve": 5.0,
}


class Settings(BaseSettings):
    """
    Application Settings

    This class defines all configuration parameters for the application.
    Values are automatically loaded from environment variables or .env file.

    Attributes:
        default_chain_id: Chain used by general EVM adapters when a request has none
        enabled_exchanges: Comma-separated adapter names, in display/aggregation order
        cex_timeout: Timeout (seconds) for centralized exchange ticker requests
        dex_timeout: Timeout (seconds) for swap-routing / indexer requests
        rpc_timeout: Timeout (seconds) for JSON-RPC calls against chain nodes
        max_requests_per_second: Fallback rate limit for adapters without their own
        rpc_url_overrides: "chainId=url" pairs replacing the default public RPCs
        uniswap_fee_tiers: Fee tiers probed (in order) when looking up a pool
        resolver_exhaustive: Query every token source and vote (True) or stop at first hit
        resolver_cache_ttl: Seconds a resolved token address is reused (0 disables)
        *_api_key: Optional credentials; absence downgrades gracefully
    """

    # ============================================
    # Application Configuration
    # ============================================

    app_host: str = Field(
        default="0.0.0.0",
        description="FastAPI server host address"
    )

    app_port: int = Field(
        default=8000,
        description="FastAPI server port"
    )

    environment: str = Field(
        default="development",
        description="Application environment (development, production)"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    user_agent: str = Field(
        default="CryptoPriceChecker/1.0.0",
        description="User-Agent header sent to every exchange"
    )

    # ============================================
    # Aggregation Configuration
    # ============================================

    default_chain_id: int = Field(
        default=1,
        description="Default EVM chain for DEX adapters (1 = Ethereum mainnet)"
    )

    enabled_exchanges: str = Field(
        default=",".join(ALL_EXCHANGES),
        description="Comma-separated list of exchanges to query, in order"
    )

    # ============================================
    # Timeouts & Rate Limiting
    # ============================================

    cex_timeout: float = Field(
        default=5.0,
        description="HTTP timeout for CEX ticker requests in seconds"
    )

    dex_timeout: float = Field(
        default=10.0,
        description="HTTP timeout for DEX API / subgraph requests in seconds"
    )

    rpc_timeout: float = Field(
        default=10.0,
        description="Timeout for chain JSON-RPC calls in seconds"
    )

    max_requests_per_second: float = Field(
        default=10.0,
        description="Default per-adapter request rate when the venue has no specific limit"
    )

    # ============================================
    # Chain / On-chain Configuration
    # ============================================

    rpc_url_overrides: str = Field(
        default="",
        description="Comma-separated chainId=url pairs (e.g. 1=https://eth.example,56=https://bsc.example)"
    )

    uniswap_fee_tiers: str = Field(
        default="3000,500,10000",
        description="Uniswap V3 fee tiers to probe for a token/USDC pool, in order"
    )

    # ============================================
    # Token Resolver Configuration
    # ============================================

    resolver_exhaustive: bool = Field(
        default=True,
        description="Query all token sources and vote instead of stopping at the first answer"
    )

    resolver_cache_ttl: int = Field(
        default=300,
        description="Resolved token address cache TTL in seconds (0 disables caching)"
    )

    # ============================================
    # API Credentials (all optional)
    # ============================================

    coinmarketcap_api_key: str = Field(
        default="",
        description="CoinMarketCap API key (enables the CoinMarketCap token source)"
    )

    moralis_api_key: str = Field(
        default="",
        description="Moralis API key (enables the Moralis token source)"
    )

    etherscan_api_key: str = Field(
        default="",
        description="Etherscan API key (optional, raises Etherscan rate limits)"
    )

    zerox_api_key: str = Field(
        default="",
        description="0x API key (required by the 0x swap API)"
    )

    oneinch_api_key: str = Field(
        default="",
        description="1inch Developer Portal API key"
    )

    okx_api_key: str = Field(
        default="",
        description="OKX Web3 API key (OKX DEX aggregator)"
    )

    okx_secret_key: str = Field(
        default="",
        description="OKX Web3 API secret used to sign DEX aggregator requests"
    )

    okx_passphrase: str = Field(
        default="",
        description="OKX Web3 API passphrase"
    )

    thegraph_api_key: str = Field(
        default="",
        description="The Graph gateway API key (used when the subgraph URL contains {api_key})"
    )

    # ============================================
    # Endpoints
    # ============================================

    binance_base_url: str = Field(default="https://api.binance.com")
    okx_base_url: str = Field(default="https://www.okx.com")
    coinbase_base_url: str = Field(default="https://api.exchange.coinbase.com")
    kraken_base_url: str = Field(default="https://api.kraken.com")
    hyperliquid_base_url: str = Field(default="https://api.hyperliquid.xyz")
    zerox_base_url: str = Field(default="https://api.0x.org")
    oneinch_base_url: str = Field(default="https://api.1inch.dev")
    okx_dex_base_url: str = Field(default="https://web3.okx.com")
    jupiter_base_url: str = Field(default="https://lite-api.jup.ag")
    curve_base_url: str = Field(default="https://api.curve.finance")
    coingecko_base_url: str = Field(default="https://api.coingecko.com/api/v3")
    coinmarketcap_base_url: str = Field(default="https://pro-api.coinmarketcap.com")
    moralis_base_url: str = Field(default="https://deep-index.moralis.io/api/v2.2")
    etherscan_base_url: str = Field(default="https://api.etherscan.io")

    pancakeswap_subgraph_url: str = Field(
        default="https://gateway.thegraph.com/api/{api_key}/subgraphs/id/Hv1GncLY5docZoGtXjo4kwbTvxm3MAhVZqBZE4sUT9eZ",
        description="PancakeSwap V3 (BSC) subgraph endpoint; {api_key} is filled from THEGRAPH_API_KEY"
    )

    # ============================================
    # Pydantic Settings Configuration
    # ============================================

    model_config = SettingsConfigDict(
        # Look for .env file in the project root
        env_file=".env",
        # Ignore extra fields in .env that aren't defined here
        extra="ignore",
        # Case-insensitive environment variable matching
        case_sensitive=False
    )

    # ============================================
    # Custom Properties
    # ============================================

    @property
    def exchanges_list(self) -> List[str]:
        """
        Convert the comma-separated exchange string to a list.

        Returns:
            List of lowercase adapter names in configured order

        Example:
            >>> settings.exchanges_list
            ['binance', 'okx', 'coinbase', ...]
        """
        return [e.strip().lower() for e in self.enabled_exchanges.split(",") if e.strip()]

    @property
    def rpc_overrides(self) -> Dict[int, str]:
        """
        Parse RPC_URL_OVERRIDES into a chain id -> url mapping.

        Example:
            >>> Settings(rpc_url_overrides="1=https://a,56=https://b").rpc_overrides
            {1: 'https://a', 56: 'https://b'}
        """
        overrides: Dict[int, str] = {}
        for pair in self.rpc_url_overrides.split(","):
            if "=" not in pair:
                continue
            chain, url = pair.split("=", 1)
            if chain.strip().isdigit() and url.strip():
                overrides[int(chain.strip())] = url.strip()
        return overrides

    @property
    def fee_tiers_list(self) -> List[int]:
        """Uniswap fee tiers as integers, in probe order."""
        return [int(t.strip()) for t in self.uniswap_fee_tiers.split(",") if t.strip()]

    @property
    def has_okx_credentials(self) -> bool:
        """True when all three OKX Web3 credentials are present."""
        return bool(self.okx_api_key and self.okx_secret_key and self.okx_passphrase)


# ============================================
# Global Settings Instance
# ============================================

# Create a single instance of settings to be imported throughout the application
settings = Settings()


# ============================================
# Configuration Validation
# ============================================

def validate_configuration(config: Settings = None) -> None:
    """
    Validate critical configuration settings on application startup.

    Args:
        config: Settings to validate (defaults to the global instance)

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    # Import here to avoid circular import (logging.py imports config.py)
    from core.logging import logger
    from core.chains import CHAIN_PROFILES

    config = config or settings

    exchanges = config.exchanges_list
    if not exchanges:
        raise ValueError("ENABLED_EXCHANGES must contain at least one exchange")

    unknown = [name for name in exchanges if name not in ALL_EXCHANGES]
    if unknown:
        raise ValueError(
            f"Unknown exchange(s) in ENABLED_EXCHANGES: {', '.join(unknown)}. "
            f"Must be among: {', '.join(ALL_EXCHANGES)}"
        )

    if len(set(exchanges)) != len(exchanges):
        raise ValueError("ENABLED_EXCHANGES contains duplicate entries")

    for field_name in ("cex_timeout", "dex_timeout", "rpc_timeout", "max_requests_per_second"):
        if getattr(config, field_name) <= 0:
            raise ValueError(f"{field_name.upper()} must be positive")

    if config.default_chain_id not in CHAIN_PROFILES:
        raise ValueError(
            f"DEFAULT_CHAIN_ID {config.default_chain_id} is not a known chain. "
            f"Known: {', '.join(str(c) for c in CHAIN_PROFILES)}"
        )

    if not config.fee_tiers_list:
        raise ValueError("UNISWAP_FEE_TIERS must contain at least one fee tier")

    if not (1 <= config.app_port <= 65535):
        raise ValueError(f"Invalid port number: {config.app_port}. Must be between 1 and 65535")

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if config.log_level.upper() not in valid_log_levels:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{config.log_level}'. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )

    logger.info("Configuration validated successfully")
    logger.info(f"Exchanges: {', '.join(exchanges)}")
    logger.info(f"Default chain: {config.default_chain_id}")
    logger.info(f"Timeouts: cex={config.cex_timeout}s dex={config.dex_timeout}s rpc={config.rpc_timeout}s")
    logger.info(f"Resolver: exhaustive={config.resolver_exhaustive} cache_ttl={config.resolver_cache_ttl}s")
    logger.info(f"Log level: {config.log_level.upper()}")

    if "okx-dex" in exchanges and not config.has_okx_credentials:
        logger.warning("okx-dex is enabled without OKX_API_KEY / OKX_SECRET_KEY / OKX_PASSPHRASE; its quotes will fail")
