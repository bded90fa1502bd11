"""
Decentralized exchange adapters.

Request shapes live in base.py; each venue module fills in the venue-specific
request and chain list.
"""

from .curve import CurveAdapter
from .hyperliquid import HyperliquidAdapter
from .jupiter import JupiterAdapter
from .okx_dex import OKXDexAdapter
from .oneinch import OneInchAdapter
from .pancakeswap import PancakeSwapAdapter
from .uniswap import UniswapV3Adapter
from .zerox import ZeroExAdapter

__all__ = [
    "HyperliquidAdapter",
    "UniswapV3Adapter",
    "ZeroExAdapter",
    "JupiterAdapter",
    "OKXDexAdapter",
    "OneInchAdapter",
    "PancakeSwapAdapter",
    "CurveAdapter",
]
