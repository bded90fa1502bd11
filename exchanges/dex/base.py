"""
DEX Adapter Base Classes

Decentralized venues share more plumbing than centralized ones: before any
price request they must pick a chain, turn a symbol into a token address, and
pick a stable reference token to price against. This module holds that shared
behavior plus the three request shapes DEX venues come in:

1. AggregatorQuoteAdapter - swap-routing APIs (0x, 1inch, OKX DEX, Jupiter).
   Ask to sell one whole token for the reference stable; price = out / in.
   Providers name the amounts differently (and change names between API
   versions), so amounts are read through AMOUNT_EXTRACTORS, an ordered list of
   named strategies tried until one matches.

2. PoolAdapter - concentrated-liquidity pools read on-chain (Uniswap V3).
   Locate the pool through the factory, read slot0.sqrtPriceX96 and both
   tokens' decimals, convert with price_from_sqrt_price_x96().

3. SubgraphAdapter - GraphQL indexers exposing a USD-derived price field
   (PancakeSwap V3 subgraph).

Chain Handling:
    Every DEX adapter is constructed with a default chain and accepts a per-call
    override. A chain outside `supported_chains` fails the quote. Adapters with
    `fixed_chain_id` (a Solana-only or BSC-only venue) always run on that chain
    and reject any other chain passed in explicitly.
"""

import asyncio
from abc import abstractmethod
from decimal import Decimal, localcontext
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

import aiohttp
from web3 import AsyncWeb3, Web3
from web3.exceptions import Web3Exception

from core.chains import CHAIN_PROFILES, get_rpc_url, get_stable_reference
from core.config import settings
from core.exceptions import ExchangeError, TokenNotFoundError, UnsupportedChainError
from core.exchange_interface import ExchangeAdapter
from core.schemas import PoolState, PriceQuote, TokenRecord
from core.utils.numbers import to_decimal


# ============================================
# Common DEX Behavior
# ============================================

class DEXAdapter(ExchangeAdapter):
    """
    Base class for every decentralized venue.

    Class Attributes:
        supported_chains: Chains the protocol is deployed on
        fixed_chain_id: Set for venues that only exist on one chain
        chain_agnostic: Set for venues with their own L1 (chain ids ignored)

    Instance Attributes:
        default_chain_id: Chain used when a call does not specify one
        resolver: TokenResolver used to map symbols to addresses
    """

    category = "dex"
    supported_chains: FrozenSet[int] = frozenset()
    fixed_chain_id: Optional[int] = None
    chain_agnostic: bool = False

    def __init__(
        self,
        base_url: str = "",
        timeout: Optional[float] = None,
        rate_limit: Optional[float] = None,
        default_chain_id: Optional[int] = None,
        resolver=None,
        call_timeout: Optional[float] = None,
    ):
        super().__init__(
            base_url=base_url,
            timeout=timeout or settings.dex_timeout,
            rate_limit=rate_limit,
            call_timeout=call_timeout,
        )
        self.default_chain_id = self.fixed_chain_id or default_chain_id or settings.default_chain_id
        self._resolver = resolver

    @property
    def resolver(self):
        if self._resolver is None:
            # Import here to avoid circular imports (services import exchanges)
            from services.token_resolver import get_resolver
            self._resolver = get_resolver()
        return self._resolver

    # ============================================
    # Chain Selection
    # ============================================

    def resolve_chain(self, requested: Optional[int], default: Optional[int]) -> Optional[int]:
        if self.chain_agnostic:
            return None
        if self.fixed_chain_id is not None:
            return self.fixed_chain_id
        return requested or default or self.default_chain_id

    def chain_for_call(self, chain_id: Optional[int]) -> int:
        """
        Validate and return the chain a quote runs on.

        Raises:
            UnsupportedChainError: chain not served by this venue
        """
        if self.fixed_chain_id is not None:
            if chain_id is not None and chain_id != self.fixed_chain_id:
                raise UnsupportedChainError(
                    f"{self.display_name} does not support chain {chain_id} "
                    f"(only chain {self.fixed_chain_id})",
                    exchange=self.name,
                )
            return self.fixed_chain_id

        chain = chain_id or self.default_chain_id
        if chain not in self.supported_chains:
            supported = ", ".join(str(c) for c in sorted(self.supported_chains))
            raise UnsupportedChainError(
                f"{self.display_name} does not support chain {chain} (supported: {supported})",
                exchange=self.name,
            )
        return chain

    # ============================================
    # Token Helpers
    # ============================================

    async def resolve_token(self, symbol: str, chain_id: int) -> TokenRecord:
        result = await self.resolver.resolve(symbol, chain_id)
        if not result.found:
            raise TokenNotFoundError(f"Token {symbol} not found on chain {chain_id}", exchange=self.name)
        return result.record

    def reference_token(self, chain_id: int) -> TokenRecord:
        reference = get_stable_reference(chain_id)
        if reference is None:
            raise UnsupportedChainError(
                f"No reference stable token configured for chain {chain_id}", exchange=self.name
            )
        return reference

    async def token_pair(self, symbol: str, chain_id: int) -> Tuple[TokenRecord, TokenRecord]:
        """Resolve (token, reference stable) and refuse to price the stable against itself."""
        token = await self.resolve_token(symbol, chain_id)
        reference = self.reference_token(chain_id)
        if token.address.lower() == reference.address.lower():
            raise ExchangeError(
                f"{symbol} is the reference stable on chain {chain_id}; nothing to price it against",
                exchange=self.name,
            )
        return token, reference


# ============================================
# Shape 1: Aggregator Quote
# ============================================

AmountPair = Tuple[Decimal, Decimal]
AmountExtractor = Callable[[Any, int], Optional[AmountPair]]


def _dig(payload: Any, *path) -> Any:
    """Follow dict keys / list indices; None as soon as a step is missing."""
    current = payload
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, list) or len(current) <= step:
                return None
            current = current[step]
        else:
            if not isinstance(current, dict):
                return None
            current = current.get(step)
        if current is None:
            return None
    return current


def _pair(amount_in: Any, amount_out: Any) -> Optional[AmountPair]:
    a_in = to_decimal(amount_in)
    a_out = to_decimal(amount_out)
    if a_in is None or a_out is None or a_in <= 0 or a_out <= 0:
        return None
    return a_in, a_out


def amounts_from_fields(in_field: str, out_field: str, *prefix) -> AmountExtractor:
    """Strategy reading payload[...prefix][in_field] / [out_field]."""
    def extract(payload: Any, requested: int) -> Optional[AmountPair]:
        node = _dig(payload, *prefix) if prefix else payload
        if not isinstance(node, dict):
            return None
        return _pair(node.get(in_field), node.get(out_field))
    return extract


def amount_out_only(out_field: str, *prefix) -> AmountExtractor:
    """Strategy for responses that echo no input amount: pair out_field with the requested input."""
    def extract(payload: Any, requested: int) -> Optional[AmountPair]:
        node = _dig(payload, *prefix) if prefix else payload
        if not isinstance(node, dict):
            return None
        return _pair(requested, node.get(out_field))
    return extract


# Tried in order; the first strategy returning a pair wins.
AMOUNT_EXTRACTORS: Tuple[Tuple[str, AmountExtractor], ...] = (
    ("sellAmount/buyAmount", amounts_from_fields("sellAmount", "buyAmount")),
    ("fromTokenAmount/toTokenAmount", amounts_from_fields("fromTokenAmount", "toTokenAmount")),
    ("srcAmount/dstAmount", amounts_from_fields("srcAmount", "dstAmount")),
    ("inAmount/outAmount", amounts_from_fields("inAmount", "outAmount")),
    ("data[0].fromTokenAmount/toTokenAmount", amounts_from_fields("fromTokenAmount", "toTokenAmount", "data", 0)),
    ("data[0].routerResult", amounts_from_fields("fromTokenAmount", "toTokenAmount", "data", 0, "routerResult")),
    ("dstAmount", amount_out_only("dstAmount")),
    ("toAmount", amount_out_only("toAmount")),
    ("toTokenAmount", amount_out_only("toTokenAmount")),
)


def extract_amounts(
    payload: Any,
    requested: int,
    extractors: Sequence[Tuple[str, AmountExtractor]] = AMOUNT_EXTRACTORS,
) -> Optional[Tuple[str, Decimal, Decimal]]:
    """
    Run extraction strategies in order.

    Returns:
        (strategy name, amount_in, amount_out) for the first match, else None

    Example:
        >>> extract_amounts({"inAmount": "1000000000", "outAmount": "150250000"}, 10**9)
        ('inAmount/outAmount', Decimal('1000000000'), Decimal('150250000'))
    """
    for name, extractor in extractors:
        pair = extractor(payload, requested)
        if pair is not None:
            return name, pair[0], pair[1]
    return None


def price_from_amounts(amount_in: Decimal, amount_out: Decimal,
                       decimals_in: int, decimals_out: int) -> Decimal:
    """
    (amount_out / 10**decimals_out) / (amount_in / 10**decimals_in)

    Example:
        >>> price_from_amounts(Decimal(10**18), Decimal(3_000_500_000), 18, 6)
        Decimal('3000.5')
    """
    with localcontext() as ctx:
        ctx.prec = 60
        human_in = amount_in / (Decimal(10) ** decimals_in)
        human_out = amount_out / (Decimal(10) ** decimals_out)
        return human_out / human_in


class AggregatorQuoteAdapter(DEXAdapter):
    """
    Swap-routing API venue.

    Subclasses implement request_quote() and may override `extractors` to put
    their own field names first.
    """

    extractors: Sequence[Tuple[str, AmountExtractor]] = AMOUNT_EXTRACTORS

    @abstractmethod
    async def request_quote(self, token: TokenRecord, reference: TokenRecord,
                            amount: int, chain_id: int) -> Any:
        """Ask the venue to sell `amount` raw units of token for reference; return raw JSON."""
        pass

    def check_payload(self, payload: Any) -> None:
        """Raise ExchangeError for provider-level errors embedded in a 200 response."""
        if isinstance(payload, dict):
            message = payload.get("error") or payload.get("description")
            if message and not any(key in payload for key in ("buyAmount", "dstAmount", "outAmount", "toTokenAmount")):
                raise ExchangeError(f"{self.display_name} error: {message}", exchange=self.name)

    async def fetch_quote(self, symbol: str, chain_id: Optional[int] = None) -> PriceQuote:
        chain = self.chain_for_call(chain_id)
        token, reference = await self.token_pair(symbol, chain)
        amount = 10 ** token.decimals

        payload = await self.request_quote(token, reference, amount, chain)
        self.check_payload(payload)

        extracted = extract_amounts(payload, amount, self.extractors)
        if extracted is None:
            raise ExchangeError(f"No quote amounts in {self.display_name} response", exchange=self.name)
        strategy, amount_in, amount_out = extracted
        self.logger.debug(f"{self.name}: amounts read via '{strategy}'")

        return PriceQuote(
            exchange=self.name,
            symbol=symbol,
            price=price_from_amounts(amount_in, amount_out, token.decimals, reference.decimals),
            chain_id=chain,
        )


# ============================================
# On-chain Access
# ============================================

ERC20_ABI: List[Dict[str, Any]] = [
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"internalType": "uint8", "name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
]


class ChainConnections:
    """
    One AsyncWeb3 instance per chain, created on first use.

    RPC endpoints come from RPC_URL_OVERRIDES first, then the chain profile.
    """

    def __init__(self, timeout: float):
        self.timeout = timeout
        self._connections: Dict[int, AsyncWeb3] = {}

    def get(self, chain_id: int) -> AsyncWeb3:
        w3 = self._connections.get(chain_id)
        if w3 is None:
            rpc_url = get_rpc_url(chain_id, settings.rpc_overrides)
            if rpc_url is None:
                raise UnsupportedChainError(f"No RPC endpoint configured for chain {chain_id}")
            w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(
                rpc_url,
                request_kwargs={"timeout": aiohttp.ClientTimeout(total=self.timeout)},
            ))
            self._connections[chain_id] = w3
        return w3

    async def close(self) -> None:
        for w3 in self._connections.values():
            await w3.provider.disconnect()
        self._connections.clear()


class OnChainAdapter(DEXAdapter):
    """DEX adapter that reads contracts over JSON-RPC."""

    def __init__(self, rpc_timeout: Optional[float] = None, **kwargs):
        super().__init__(**kwargs)
        self.rpc_timeout = rpc_timeout or settings.rpc_timeout
        self.chains = ChainConnections(self.rpc_timeout)

    @staticmethod
    def checksum(address: str) -> str:
        return Web3.to_checksum_address(address)

    def contract(self, chain_id: int, address: str, abi: List[Dict[str, Any]]):
        w3 = self.chains.get(chain_id)
        return w3.eth.contract(address=self.checksum(address), abi=abi)

    async def token_decimals(self, chain_id: int, address: str) -> int:
        return int(await self.contract(chain_id, address, ERC20_ABI).functions.decimals().call())

    @abstractmethod
    async def read_price(self, token: TokenRecord, reference: TokenRecord, chain_id: int) -> PriceQuote:
        """Read the on-chain price of token in reference units."""
        pass

    async def fetch_quote(self, symbol: str, chain_id: Optional[int] = None) -> PriceQuote:
        chain = self.chain_for_call(chain_id)
        token, reference = await self.token_pair(symbol, chain)
        try:
            return await self.read_price(token, reference, chain)
        except Web3Exception as e:
            raise ExchangeError(f"Contract call failed: {e}", exchange=self.name) from e

    async def shutdown(self) -> None:
        await super().shutdown()
        try:
            await self.chains.close()
        except Exception as e:
            self.logger.error(f"Error closing {self.name} RPC connections: {e}")


# ============================================
# Shape 2: Concentrated-Liquidity Pool
# ============================================

Q96 = Decimal(2) ** 96


def price_from_sqrt_price_x96(sqrt_price_x96: int, decimals0: int, decimals1: int,
                              invert: bool = False) -> Decimal:
    """
    Convert a pool's sqrtPriceX96 to a human price.

    sqrtPriceX96 encodes sqrt(token1/token0) in raw units as a Q64.96 number:
        price(token0 in token1) = (sqrtPriceX96 / 2**96)**2 * 10**(decimals0 - decimals1)

    Args:
        sqrt_price_x96: slot0.sqrtPriceX96
        decimals0: Decimals of the pool's token0
        decimals1: Decimals of the pool's token1
        invert: Return the price of token1 in token0 units instead

    Example (USDC/WETH pool, USDC is token0, WETH is token1, 1 WETH = 2500 USDC):
        >>> sqrt_price = 20000 * 2**96
        >>> price_from_sqrt_price_x96(sqrt_price, 6, 18) == Decimal("0.0004")
        True
        >>> price_from_sqrt_price_x96(sqrt_price, 6, 18, invert=True) == Decimal("2500")
        True
    """
    if sqrt_price_x96 <= 0:
        raise ValueError("sqrtPriceX96 must be positive")
    with localcontext() as ctx:
        ctx.prec = 60
        ratio = (Decimal(sqrt_price_x96) / Q96) ** 2
        price = ratio * (Decimal(10) ** (decimals0 - decimals1))
        if invert:
            price = Decimal(1) / price
        return price


POOL_ABI: List[Dict[str, Any]] = [
    {
        "inputs": [],
        "name": "token0",
        "outputs": [{"internalType": "address", "name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "token1",
        "outputs": [{"internalType": "address", "name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "liquidity",
        "outputs": [{"internalType": "uint128", "name": "", "type": "uint128"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "slot0",
        "outputs": [
            {"internalType": "uint160", "name": "sqrtPriceX96", "type": "uint160"},
            {"internalType": "int24", "name": "tick", "type": "int24"},
            {"internalType": "uint16", "name": "observationIndex", "type": "uint16"},
            {"internalType": "uint16", "name": "observationCardinality", "type": "uint16"},
            {"internalType": "uint16", "name": "observationCardinalityNext", "type": "uint16"},
            {"internalType": "uint8", "name": "feeProtocol", "type": "uint8"},
            {"internalType": "bool", "name": "unlocked", "type": "bool"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
]

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class PoolAdapter(OnChainAdapter):
    """
    Concentrated-liquidity AMM venue.

    Subclasses implement find_pool(); reading pool state and turning it into
    a price is shared.
    """

    @abstractmethod
    async def find_pool(self, token: TokenRecord, reference: TokenRecord, chain_id: int) -> PoolState:
        """Locate the token/reference pool and return its state; raise ExchangeError if none exists."""
        pass

    async def read_pool_state(self, chain_id: int, pool_address: str, fee: int = 0) -> PoolState:
        pool = self.contract(chain_id, pool_address, POOL_ABI)
        token0, token1, slot0, liquidity = await asyncio.gather(
            pool.functions.token0().call(),
            pool.functions.token1().call(),
            pool.functions.slot0().call(),
            pool.functions.liquidity().call(),
        )
        decimals0, decimals1 = await asyncio.gather(
            self.token_decimals(chain_id, token0),
            self.token_decimals(chain_id, token1),
        )
        return PoolState(
            address=pool_address,
            token0=token0,
            token1=token1,
            token0_decimals=decimals0,
            token1_decimals=decimals1,
            sqrt_price_x96=int(slot0[0]),
            liquidity=int(liquidity),
            fee=fee,
        )

    async def read_price(self, token: TokenRecord, reference: TokenRecord, chain_id: int) -> PriceQuote:
        state = await self.find_pool(token, reference, chain_id)
        pool_address = state.address

        token_lower = token.address.lower()
        if token_lower == state.token0.lower():
            invert = False
        elif token_lower == state.token1.lower():
            invert = True
        else:
            raise ExchangeError(f"Pool {pool_address} does not hold {token.symbol}", exchange=self.name)

        if state.sqrt_price_x96 == 0:
            raise ExchangeError(f"Pool {pool_address} is not initialized", exchange=self.name)

        price = price_from_sqrt_price_x96(
            state.sqrt_price_x96, state.token0_decimals, state.token1_decimals, invert=invert
        )
        return PriceQuote(
            exchange=self.name,
            symbol=token.symbol,
            price=price,
            chain_id=chain_id,
            pool_address=pool_address,
            liquidity=str(state.liquidity),
        )


# ============================================
# Shape 3: Indexer / Subgraph
# ============================================

class SubgraphAdapter(DEXAdapter):
    """
    GraphQL indexer venue.

    Subclasses set QUERY (taking an $id variable) and PRICE_FIELDS, the
    synonym field names for the USD-derived price, tried in order.
    """

    QUERY: str = ""
    PRICE_FIELDS: Tuple[str, ...] = ("derivedUSD", "priceUSD")

    def check_endpoint(self) -> None:
        """Raise ExchangeError when the endpoint cannot be used (e.g. missing key)."""

    def extract_price(self, token_data: Dict[str, Any]) -> Optional[Decimal]:
        for field in self.PRICE_FIELDS:
            value = to_decimal(token_data.get(field))
            if value is not None and value > 0:
                return value
        return None

    async def fetch_quote(self, symbol: str, chain_id: Optional[int] = None) -> PriceQuote:
        chain = self.chain_for_call(chain_id)
        self.check_endpoint()
        token = await self.resolve_token(symbol, chain)

        payload = await self.client.post(
            "", json_body={"query": self.QUERY, "variables": {"id": token.address.lower()}}
        )

        errors = payload.get("errors") if isinstance(payload, dict) else None
        if errors:
            message = errors[0].get("message") if isinstance(errors[0], dict) else errors[0]
            raise ExchangeError(f"Subgraph error: {message}", exchange=self.name)

        token_data = _dig(payload, "data", "token")
        if not token_data:
            raise ExchangeError(f"{symbol} is not indexed by the {self.display_name} subgraph", exchange=self.name)

        price = self.extract_price(token_data)
        if price is None:
            raise ExchangeError(f"No USD price for {symbol} in subgraph", exchange=self.name)

        return PriceQuote(
            exchange=self.name,
            symbol=symbol,
            price=price,
            chain_id=chain,
            volume_24h=to_decimal(token_data.get("volumeUSD")),
        )


def known_chains(*chain_ids: int) -> FrozenSet[int]:
    """frozenset of the given chains, restricted to chains with a profile."""
    return frozenset(c for c in chain_ids if c in CHAIN_PROFILES)
