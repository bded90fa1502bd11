"""
Exchange Manager - Ordered Registry of Exchange Adapters

The ExchangeManager owns every configured adapter instance, in configuration
order. That order matters: aggregate results list one outcome per adapter in
exactly this order, whichever adapter answers first.

Design Benefits:
    - Single source of truth for which venues are queried
    - Centralized lifecycle management (initialize/shutdown)
    - Adapters are looked up by name for the HTTP and tool surfaces

Example Usage:
    manager = ExchangeManager()           # built from ENABLED_EXCHANGES
    await manager.initialize_all()

    for adapter in manager.adapters():
        outcome = await adapter.quote("ETH", chain_id=1)

    await manager.shutdown_all()

    # Tests inject their own adapters:
    manager = ExchangeManager(adapters=[FakeAdapter("a"), FakeAdapter("b")])
"""

from typing import Callable, Dict, List, Optional, Sequence

from core.config import Settings, settings
from core.exchange_interface import ExchangeAdapter
from core.logging import logger


def _adapter_factories(config: Settings, resolver) -> Dict[str, Callable[[], ExchangeAdapter]]:
    # Import here to avoid circular imports (exchanges import core)
    from exchanges.cex import BinanceAdapter, CoinbaseAdapter, KrakenAdapter, OKXAdapter
    from exchanges.dex import (
        CurveAdapter,
        HyperliquidAdapter,
        JupiterAdapter,
        OKXDexAdapter,
        OneInchAdapter,
        PancakeSwapAdapter,
        UniswapV3Adapter,
        ZeroExAdapter,
    )

    chain = config.default_chain_id
    return {
        "binance": lambda: BinanceAdapter(),
        "okx": lambda: OKXAdapter(),
        "coinbase": lambda: CoinbaseAdapter(),
        "kraken": lambda: KrakenAdapter(),
        "hyperliquid": lambda: HyperliquidAdapter(),
        "uniswap": lambda: UniswapV3Adapter(default_chain_id=chain, resolver=resolver,
                                            fee_tiers=config.fee_tiers_list),
        "0x": lambda: ZeroExAdapter(default_chain_id=chain, resolver=resolver),
        "jupiter": lambda: JupiterAdapter(resolver=resolver),
        "okx-dex": lambda: OKXDexAdapter(default_chain_id=chain, resolver=resolver),
        "1inch": lambda: OneInchAdapter(default_chain_id=chain, resolver=resolver),
        "pancakeswap": lambda: PancakeSwapAdapter(resolver=resolver),
        "curve": lambda: CurveAdapter(default_chain_id=chain, resolver=resolver),
    }


def build_default_adapters(config: Optional[Settings] = None, resolver=None) -> List[ExchangeAdapter]:
    """
    Instantiate the adapters named in ENABLED_EXCHANGES, in that order.

    Args:
        config: Settings to read (defaults to the global instance)
        resolver: TokenResolver shared by the DEX adapters (global one if None)

    Raises:
        ValueError: If an unknown exchange name is configured
    """
    config = config or settings
    factories = _adapter_factories(config, resolver)

    adapters = []
    for name in config.exchanges_list:
        if name not in factories:
            raise ValueError(
                f"Exchange '{name}' is not supported. Available exchanges: {', '.join(factories)}"
            )
        adapters.append(factories[name]())
    return adapters


class ExchangeManager:
    """
    Central Manager for Exchange Adapters

    Attributes:
        exchanges: Dict mapping adapter names to instances, in configuration order

    Example:
        >>> manager = ExchangeManager()
        >>> manager.list_exchanges()
        ['binance', 'okx', 'coinbase', 'kraken', 'hyperliquid', 'uniswap', ...]
    """

    def __init__(self, adapters: Optional[Sequence[ExchangeAdapter]] = None,
                 config: Optional[Settings] = None, resolver=None):
        """
        Register adapters.

        Args:
            adapters: Explicit adapter instances; built from settings when None
            config: Settings used when building the default adapters
            resolver: TokenResolver handed to DEX adapters when building defaults

        Raises:
            ValueError: If two adapters share a name
        """
        if adapters is None:
            adapters = build_default_adapters(config, resolver)

        self.exchanges: Dict[str, ExchangeAdapter] = {}
        for adapter in adapters:
            if adapter.name in self.exchanges:
                raise ValueError(f"Duplicate exchange adapter: {adapter.name}")
            self.exchanges[adapter.name] = adapter

        logger.info(
            f"ExchangeManager initialized with {len(self.exchanges)} exchange(s): "
            f"{', '.join(self.exchanges.keys())}"
        )

    # ============================================
    # Exchange Retrieval Methods
    # ============================================

    def get_exchange(self, name: str) -> ExchangeAdapter:
        """
        Get an adapter by name.

        Raises:
            ValueError: If the exchange is not configured
        """
        name = name.lower()

        if name not in self.exchanges:
            available = ", ".join(self.exchanges.keys())
            raise ValueError(
                f"Exchange '{name}' is not supported. "
                f"Available exchanges: {available}"
            )

        return self.exchanges[name]

    def has_exchange(self, name: str) -> bool:
        """Check if an exchange is configured (case-insensitive)."""
        return name.lower() in self.exchanges

    def list_exchanges(self) -> List[str]:
        """Configured adapter names, in configuration order."""
        return list(self.exchanges.keys())

    def adapters(self) -> List[ExchangeAdapter]:
        """Configured adapter instances, in configuration order."""
        return list(self.exchanges.values())

    # ============================================
    # Lifecycle Management
    # ============================================

    async def initialize_all(self) -> None:
        """
        Initialize all registered adapters.

        A failing adapter is logged and skipped; it will still report its own
        failures per quote.
        """
        logger.info("Initializing all exchanges...")

        for name, exchange in self.exchanges.items():
            try:
                logger.debug(f"Initializing {name}...")
                await exchange.initialize()
                logger.info(f"✓ {exchange.display_name or name} initialized")
            except Exception as e:
                logger.error(f"✗ Failed to initialize {name}: {e}")

        logger.info("All exchanges initialized")

    async def shutdown_all(self) -> None:
        """Shutdown all adapters, continuing past individual errors."""
        logger.info("Shutting down all exchanges...")

        for name, exchange in self.exchanges.items():
            try:
                await exchange.shutdown()
                logger.debug(f"✓ {name} shut down")
            except Exception as e:
                logger.error(f"✗ Error shutting down {name}: {e}")

        logger.info("All exchanges shut down")

    # ============================================
    # Health Check Methods
    # ============================================

    async def health_check_all(self) -> Dict[str, bool]:
        """
        Check health status of all adapters.

        Returns:
            Dict[str, bool]: exchange name -> reachable, in configuration order
        """
        logger.debug("Running health check on all exchanges...")

        health_status = {}
        for name, exchange in self.exchanges.items():
            try:
                health_status[name] = await exchange.health_check()
            except Exception as e:
                logger.error(f"Health check failed for {name}: {e}")
                health_status[name] = False

        return health_status

    # ============================================
    # Capability Queries
    # ============================================

    def get_exchanges_with_feature(self, feature: str) -> List[str]:
        """
        Names of adapters that support a feature.

        Example:
            >>> manager.get_exchanges_with_feature("volume_24h")
            ['binance', 'okx', 'coinbase', 'kraken', 'hyperliquid', 'pancakeswap']
        """
        return [name for name, exchange in self.exchanges.items() if exchange.supports(feature)]

    def get_exchange_capabilities(self, name: str) -> Dict[str, bool]:
        """Capabilities dict of one adapter (copy)."""
        return dict(self.get_exchange(name).capabilities)

    # ============================================
    # Utility Methods
    # ============================================

    def __repr__(self) -> str:
        """String representation of the manager."""
        return f"<ExchangeManager(exchanges={list(self.exchanges.keys())})>"

    def __len__(self) -> int:
        """Number of registered exchanges."""
        return len(self.exchanges)


# ============================================
# Global Manager Instance
# ============================================

_manager: Optional[ExchangeManager] = None


def get_manager() -> ExchangeManager:
    """
    Get the global ExchangeManager instance (singleton pattern).

    The instance is created on first call from the global settings.
    """
    global _manager
    if _manager is None:
        _manager = ExchangeManager()
        logger.debug("Created global ExchangeManager instance")
    return _manager
