"""
Centralized exchange adapters.

Each venue is one module with one ExchangeAdapter subclass that reads a public
ticker endpoint. No API keys are needed.
"""

from .binance import BinanceAdapter
from .coinbase import CoinbaseAdapter
from .kraken import KrakenAdapter
from .okx import OKXAdapter

__all__ = ["BinanceAdapter", "OKXAdapter", "CoinbaseAdapter", "KrakenAdapter"]
