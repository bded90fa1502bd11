"""
Exchange Adapters Package

One module per venue, split by category:
- cex/: centralized exchange tickers (Binance, OKX, Coinbase, Kraken)
- dex/: decentralized venues (Hyperliquid, Uniswap V3, 0x, Jupiter, OKX DEX,
  1inch, PancakeSwap, Curve) plus the shared DEX base classes

Every adapter implements core.exchange_interface.ExchangeAdapter, so adding a
venue means adding a module and registering it in core.exchange_manager.
"""
