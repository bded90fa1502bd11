"""
Uniswap V3 Adapter

Prices a token against the chain's USDC by reading the token/USDC pool
directly from chain:

1. UniswapV3Factory.getPool(token, usdc, fee) for each configured fee tier,
   in order (default 0.3%, 0.05%, 1%); the first initialized pool with
   liquidity wins.
2. token0/token1/slot0/liquidity from the pool, decimals() from both tokens.
3. price_from_sqrt_price_x96(), inverted when the token is the pool's token1.

Factory Addresses:
    0x1F98431c8aD98523631AE4a59f267346ea31F984 (Ethereum, Optimism, Polygon, Arbitrum)
    0x33128a8fC17869897dcE68Ed026d694621f6FDfD (Base)
"""

from typing import Any, Dict, List, Optional, Sequence

from core.chains import ARBITRUM, BASE, ETHEREUM, OPTIMISM, POLYGON, get_chain_profile
from core.config import settings
from core.exceptions import ExchangeError, UnsupportedChainError
from core.schemas import PoolState, TokenRecord
from exchanges.dex.base import ZERO_ADDRESS, PoolAdapter, known_chains


FACTORY_ABI: List[Dict[str, Any]] = [
    {
        "inputs": [
            {"internalType": "address", "name": "tokenA", "type": "address"},
            {"internalType": "address", "name": "tokenB", "type": "address"},
            {"internalType": "uint24", "name": "fee", "type": "uint24"},
        ],
        "name": "getPool",
        "outputs": [{"internalType": "address", "name": "pool", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
]


class UniswapV3Adapter(PoolAdapter):
    """Uniswap V3 pool reader."""

    name = "uniswap"
    display_name = "Uniswap V3"
    supported_chains = known_chains(ETHEREUM, OPTIMISM, POLYGON, ARBITRUM, BASE)
    capabilities = {
        "volume_24h": False,
        "change_24h": False,
        "multi_chain": True,
        "requires_api_key": False,
    }

    def __init__(self, fee_tiers: Optional[Sequence[int]] = None, **kwargs):
        super().__init__(**kwargs)
        self.fee_tiers = list(fee_tiers or settings.fee_tiers_list)

    def factory_address(self, chain_id: int) -> str:
        profile = get_chain_profile(chain_id)
        if profile is None or not profile.uniswap_v3_factory:
            raise UnsupportedChainError(f"Uniswap V3 is not deployed on chain {chain_id}", exchange=self.name)
        return profile.uniswap_v3_factory

    async def find_pool(self, token: TokenRecord, reference: TokenRecord, chain_id: int) -> PoolState:
        factory = self.contract(chain_id, self.factory_address(chain_id), FACTORY_ABI)
        for fee in self.fee_tiers:
            pool_address = await factory.functions.getPool(
                self.checksum(token.address), self.checksum(reference.address), fee
            ).call()
            if not pool_address or pool_address.lower() == ZERO_ADDRESS:
                continue
            state = await self.read_pool_state(chain_id, pool_address, fee)
            if state.sqrt_price_x96 == 0 or state.liquidity == 0:
                self.logger.debug(f"Skipping empty {token.symbol} pool {pool_address} (fee {fee})")
                continue
            return state

        tiers = ", ".join(str(f) for f in self.fee_tiers)
        raise ExchangeError(
            f"No Uniswap V3 pool with liquidity for {token.symbol}/{reference.symbol} "
            f"on chain {chain_id} (fee tiers {tiers})",
            exchange=self.name,
        )
