"""
Curve Finance Adapter

Curve pools hold two or more assets, so there is no single "pool price".
Instead of the pool's aggregate virtual price, this adapter asks the pool
what one whole token swaps for:

1. GET /v1/getPools/all/{network} from the Curve API and keep pools that hold
   both the token and a USD stable (the chain's USDC first, then USDT, DAI).
   The pool with the largest TVL wins.
2. Call pool.get_dy(i, j, 10**decimals_i) on-chain. Stable pools take int128
   coin indices; crypto pools take uint256, so int128 is tried first.
3. price = dy / 10**decimals_j

get_dy includes the pool fee, so the result is the marginal execution rate
for a one-token trade, not a fee-free mid price.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from web3.exceptions import Web3Exception

from core.chains import ARBITRUM, BASE, ETHEREUM, OPTIMISM, POLYGON, get_reference_token
from core.config import DEFAULT_RATE_LIMITS, settings
from core.exceptions import ExchangeError
from core.schemas import PriceQuote, TokenRecord
from core.utils.numbers import scale_down, to_decimal
from exchanges.dex.base import OnChainAdapter, known_chains

# Curve API network slugs
NETWORKS: Dict[int, str] = {
    ETHEREUM: "ethereum",
    OPTIMISM: "optimism",
    POLYGON: "polygon",
    BASE: "base",
    ARBITRUM: "arbitrum",
}

STABLE_SYMBOLS = ("USDC", "USDT", "DAI")


def _get_dy_abi(index_type: str) -> List[Dict[str, Any]]:
    return [{
        "inputs": [
            {"name": "i", "type": index_type},
            {"name": "j", "type": index_type},
            {"name": "dx", "type": "uint256"},
        ],
        "name": "get_dy",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    }]


GET_DY_INT128_ABI = _get_dy_abi("int128")
GET_DY_UINT256_ABI = _get_dy_abi("uint256")


def select_pool(pools: List[Dict[str, Any]], token_address: str,
                stable_addresses: List[str]) -> Optional[Tuple[Dict[str, Any], int, int]]:
    """
    Pick the deepest pool holding the token and one of the stables.

    Stables are tried in order; for the first stable with any matching pool,
    the pool with the largest usdTotal is returned with the coin indices
    (token index, stable index).
    """
    token = token_address.lower()
    for stable in (s.lower() for s in stable_addresses):
        if stable == token:
            continue
        best = None
        for pool in pools:
            coins = [str(c.get("address", "")).lower() for c in pool.get("coins") or []]
            if token in coins and stable in coins:
                tvl = to_decimal(pool.get("usdTotal")) or Decimal(0)
                if best is None or tvl > best[0]:
                    best = (tvl, pool, coins.index(token), coins.index(stable))
        if best is not None:
            return best[1], best[2], best[3]
    return None


class CurveAdapter(OnChainAdapter):
    """Curve pool adapter using on-chain get_dy."""

    name = "curve"
    display_name = "Curve Finance"
    supported_chains = known_chains(*NETWORKS)
    capabilities = {
        "volume_24h": False,
        "change_24h": False,
        "multi_chain": True,
        "requires_api_key": False,
    }

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 rate_limit: Optional[float] = None, **kwargs):
        super().__init__(
            base_url=base_url or settings.curve_base_url,
            timeout=timeout,
            rate_limit=rate_limit or DEFAULT_RATE_LIMITS.get(self.name),
            **kwargs,
        )

    def stable_candidates(self, chain_id: int, reference: TokenRecord) -> List[TokenRecord]:
        candidates = [reference]
        for symbol in STABLE_SYMBOLS:
            record = get_reference_token(symbol, chain_id)
            if record and all(record.address.lower() != c.address.lower() for c in candidates):
                candidates.append(record)
        return candidates

    async def fetch_pools(self, chain_id: int) -> List[Dict[str, Any]]:
        payload = await self.client.get(f"/v1/getPools/all/{NETWORKS[chain_id]}")
        if not isinstance(payload, dict) or not payload.get("success", True):
            raise ExchangeError("Curve API returned an error", exchange=self.name)
        return (payload.get("data") or {}).get("poolData") or []

    async def get_dy(self, chain_id: int, pool_address: str, i: int, j: int, dx: int) -> int:
        try:
            pool = self.contract(chain_id, pool_address, GET_DY_INT128_ABI)
            return int(await pool.functions.get_dy(i, j, dx).call())
        except Web3Exception:
            self.logger.debug(f"get_dy(int128) failed on {pool_address}, retrying with uint256 indices")
        pool = self.contract(chain_id, pool_address, GET_DY_UINT256_ABI)
        return int(await pool.functions.get_dy(i, j, dx).call())

    async def read_price(self, token: TokenRecord, reference: TokenRecord, chain_id: int) -> PriceQuote:
        stables = self.stable_candidates(chain_id, reference)
        pools = await self.fetch_pools(chain_id)
        match = select_pool(pools, token.address, [s.address for s in stables])
        if match is None:
            raise ExchangeError(
                f"No Curve pool pairs {token.symbol} with a USD stable on chain {chain_id}",
                exchange=self.name,
            )

        pool, i, j = match
        coins = pool["coins"]
        decimals_in = int(coins[i].get("decimals") or token.decimals)
        decimals_out = int(coins[j].get("decimals") or 18)

        dy = await self.get_dy(chain_id, pool["address"], i, j, 10 ** decimals_in)
        price = scale_down(dy, decimals_out)
        if price is None or price <= 0:
            raise ExchangeError(f"Curve pool {pool['address']} returned no output", exchange=self.name)

        return PriceQuote(
            exchange=self.name,
            symbol=token.symbol,
            price=price,
            chain_id=chain_id,
            pool_address=pool["address"],
        )
