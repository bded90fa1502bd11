"""
Token Resolver Service

Maps a symbol to a token contract address on a chain, for the DEX adapters.

Cascade:
    1. Static reference table (core.chains.REFERENCE_TOKENS), no network call
    2. External sources in fixed priority order:
         coingecko -> coinmarketcap (API key) -> moralis (API key)
         -> etherscan (Ethereum only) -> tokenlists
       Each lookup is wrapped on its own: a failing source is logged and the
       cascade moves on.
    3. Vote: the address reported by the most sources wins; ties go to the
       higher-priority source (select_best_record).

In exhaustive mode (default) all sources are queried concurrently and every
answer takes part in the vote. Otherwise sources are queried one at a time and
the first answer is used.

Caching:
    Optional TTL cache keyed by (SYMBOL, chain_id). One asyncio.Lock guards
    the cache and the in-flight map; concurrent lookups for the same key share
    one resolution task, and only that task writes the cache. NotFound results
    are never cached.

HTTP:
    Sources call third-party metadata APIs with httpx.AsyncClient, one client
    per lookup.
"""

import asyncio
import re
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import httpx

from core.chains import ARBITRUM, BASE, BSC, ETHEREUM, OPTIMISM, POLYGON, REFERENCE_TOKENS, SOLANA
from core.config import Settings, settings
from core.logging import get_logger
from core.schemas import ResolutionResult, TokenRecord

logger = get_logger(__name__)

DEFAULT_DECIMALS = 18

_EVM_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_valid_evm_address(address: str) -> bool:
    """
    Check EVM address format (0x + 40 hex chars). No checksum validation.

    Example:
        >>> is_valid_evm_address("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48")
        True
        >>> is_valid_evm_address("EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v")
        False
    """
    return bool(address) and bool(_EVM_ADDRESS.match(address))


def _int_or_default(value: Any, default: int = DEFAULT_DECIMALS) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 0 else default


# ============================================
# Vote
# ============================================

def select_best_record(records: Sequence[TokenRecord]) -> Optional[TokenRecord]:
    """
    Pick the winning record from source answers listed in priority order.

    Records are grouped by lower-cased address. The group with the most
    records wins; among equally large groups, the one whose first record
    came earliest wins. The earliest record of the winning group is returned.

    Example:
        >>> a = TokenRecord(address="0xAAA", chain_id=1, symbol="X", source_name="coingecko")
        >>> b = TokenRecord(address="0xbbb", chain_id=1, symbol="X", source_name="moralis")
        >>> c = TokenRecord(address="0xBBB", chain_id=1, symbol="X", source_name="etherscan")
        >>> select_best_record([a, b, c]).source_name
        'moralis'
    """
    groups: Dict[str, Tuple[int, int, TokenRecord]] = {}
    for index, record in enumerate(records):
        key = record.address.lower()
        if key in groups:
            count, first_index, first_record = groups[key]
            groups[key] = (count + 1, first_index, first_record)
        else:
            groups[key] = (1, index, record)

    if not groups:
        return None

    _, _, best = min(groups.values(), key=lambda g: (-g[0], g[1]))
    return best


# ============================================
# Sources
# ============================================

class TokenSource(ABC):
    """
    One external token metadata source.

    Attributes:
        name: Source identifier, used as TokenRecord.source_name
        requires_api_key: Source is skipped when no key is configured
        chains: Chains the source can answer for (chain id -> source's own slug)
    """

    name: str
    requires_api_key: bool = False
    chains: Mapping[int, str] = {}

    def __init__(self, base_url: str, timeout: float = 10.0, api_key: str = ""):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.api_key = api_key

    @property
    def enabled(self) -> bool:
        return bool(self.api_key) or not self.requires_api_key

    def supports_chain(self, chain_id: int) -> bool:
        return chain_id in self.chains

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None,
                       headers: Optional[Dict[str, str]] = None) -> Any:
        """GET base_url + path; raises httpx.HTTPStatusError on non-2xx."""
        request_headers = {"User-Agent": settings.user_agent, "Accept": "application/json"}
        if headers:
            request_headers.update(headers)
        url = path if path.startswith("http") else f"{self.base_url}{path}"
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(url, params=params, headers=request_headers)
            response.raise_for_status()
            return response.json()

    @abstractmethod
    async def lookup(self, symbol: str, chain_id: int) -> Optional[TokenRecord]:
        """Return the token on chain_id, None when the source has no match. May raise."""
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name='{self.name}')>"


class CoinGeckoSource(TokenSource):
    """
    CoinGecko: /search for the coin id, then /coins/{id} for per-platform
    contract addresses and decimals. Free, no key needed.
    """

    name = "coingecko"
    chains = {
        ETHEREUM: "ethereum",
        BSC: "binance-smart-chain",
        POLYGON: "polygon-pos",
        ARBITRUM: "arbitrum-one",
        OPTIMISM: "optimistic-ethereum",
        BASE: "base",
        SOLANA: "solana",
    }

    async def lookup(self, symbol: str, chain_id: int) -> Optional[TokenRecord]:
        search = await self.get_json("/search", params={"query": symbol})
        coin = next(
            (c for c in search.get("coins") or [] if str(c.get("symbol", "")).upper() == symbol),
            None,
        )
        if coin is None:
            return None

        details = await self.get_json(
            f"/coins/{coin['id']}",
            params={
                "localization": "false",
                "tickers": "false",
                "market_data": "false",
                "community_data": "false",
                "developer_data": "false",
                "sparkline": "false",
            },
        )
        platform = self.chains[chain_id]
        detail = (details.get("detail_platforms") or {}).get(platform) or {}
        address = detail.get("contract_address") or (details.get("platforms") or {}).get(platform)
        if not address:
            return None

        return TokenRecord(
            address=address,
            chain_id=chain_id,
            symbol=str(details.get("symbol") or symbol).upper(),
            name=details.get("name") or "",
            decimals=_int_or_default(detail.get("decimal_place")),
            source_name=self.name,
            verified=True,
        )


class CoinMarketCapSource(TokenSource):
    """CoinMarketCap /v2/cryptocurrency/info by symbol; decimals are not provided."""

    name = "coinmarketcap"
    requires_api_key = True
    # Prefix of contract_address[].platform.name, lower-cased
    chains = {
        ETHEREUM: "ethereum",
        BSC: "bnb smart chain",
        POLYGON: "polygon",
        ARBITRUM: "arbitrum",
        OPTIMISM: "optimism",
        BASE: "base",
        SOLANA: "solana",
    }

    async def lookup(self, symbol: str, chain_id: int) -> Optional[TokenRecord]:
        payload = await self.get_json(
            "/v2/cryptocurrency/info",
            params={"symbol": symbol},
            headers={"X-CMC_PRO_API_KEY": self.api_key},
        )
        entries = (payload.get("data") or {}).get(symbol) or []
        if isinstance(entries, dict):
            entries = [entries]

        prefix = self.chains[chain_id]
        for entry in entries:
            for contract in entry.get("contract_address") or []:
                platform_name = str((contract.get("platform") or {}).get("name", "")).lower()
                if platform_name.startswith(prefix) and contract.get("contract_address"):
                    return TokenRecord(
                        address=contract["contract_address"],
                        chain_id=chain_id,
                        symbol=str(entry.get("symbol") or symbol).upper(),
                        name=entry.get("name") or "",
                        decimals=DEFAULT_DECIMALS,
                        source_name=self.name,
                        verified=True,
                    )
        return None


class MoralisSource(TokenSource):
    """Moralis ERC-20 metadata by symbol; spam-flagged contracts are ignored."""

    name = "moralis"
    requires_api_key = True
    chains = {
        ETHEREUM: "eth",
        BSC: "bsc",
        POLYGON: "polygon",
        ARBITRUM: "arbitrum",
        OPTIMISM: "optimism",
        BASE: "base",
    }

    async def lookup(self, symbol: str, chain_id: int) -> Optional[TokenRecord]:
        payload = await self.get_json(
            "/erc20/metadata/symbols",
            params={"chain": self.chains[chain_id], "symbols": symbol},
            headers={"X-API-Key": self.api_key},
        )
        candidates = [
            t for t in payload or []
            if str(t.get("symbol", "")).upper() == symbol and t.get("address") and not t.get("possible_spam")
        ]
        if not candidates:
            return None

        # Verified contracts first, input order otherwise
        candidates.sort(key=lambda t: not t.get("verified_contract"))
        token = candidates[0]
        return TokenRecord(
            address=token["address"],
            chain_id=chain_id,
            symbol=symbol,
            name=token.get("name") or "",
            decimals=_int_or_default(token.get("decimals")),
            source_name=self.name,
            verified=bool(token.get("verified_contract")),
        )


class EtherscanSource(TokenSource):
    """Etherscan token list (Ethereum mainnet only)."""

    name = "etherscan"
    chains = {ETHEREUM: "mainnet"}

    async def lookup(self, symbol: str, chain_id: int) -> Optional[TokenRecord]:
        params = {"module": "token", "action": "tokenlist"}
        if self.api_key:
            params["apikey"] = self.api_key
        payload = await self.get_json("/api", params=params)

        result = payload.get("result")
        if not isinstance(result, list):
            # Etherscan returns status "0" with a text result on errors
            return None
        token = next((t for t in result if str(t.get("symbol", "")).upper() == symbol), None)
        if token is None or not token.get("address"):
            return None

        return TokenRecord(
            address=token["address"],
            chain_id=chain_id,
            symbol=symbol,
            name=token.get("name") or "",
            decimals=_int_or_default(token.get("decimals")),
            source_name=self.name,
            verified=True,
        )


TOKEN_LIST_URLS: Mapping[int, Tuple[str, ...]] = {
    ETHEREUM: (
        "https://tokens.uniswap.org/",
        "https://raw.githubusercontent.com/compound-finance/token-list/master/compound.tokenlist.json",
    ),
    BSC: (
        "https://tokens.pancakeswap.finance/pancakeswap-extended.json",
    ),
    POLYGON: (
        "https://tokens.uniswap.org/",
        "https://unpkg.com/@quickswap/sdk@latest/dist/constants/tokenLists/polygon.json",
    ),
    ARBITRUM: (
        "https://tokens.uniswap.org/",
        "https://bridge.arbitrum.io/token-list-42161.json",
    ),
    OPTIMISM: (
        "https://tokens.uniswap.org/",
        "https://static.optimism.io/optimism.tokenlist.json",
    ),
    BASE: (
        "https://tokens.uniswap.org/",
    ),
}


class TokenListSource(TokenSource):
    """
    Public token lists (tokenlists.org format). Lists are tried in order and
    the first list containing the symbol on the chain answers.
    """

    name = "tokenlists"

    def __init__(self, timeout: float = 10.0, urls: Optional[Mapping[int, Sequence[str]]] = None):
        super().__init__(base_url="", timeout=timeout)
        self.urls = urls if urls is not None else TOKEN_LIST_URLS

    def supports_chain(self, chain_id: int) -> bool:
        return bool(self.urls.get(chain_id))

    @staticmethod
    def find_in_list(token_list: Any, symbol: str, chain_id: int) -> Optional[Dict[str, Any]]:
        for token in (token_list or {}).get("tokens") or []:
            if token.get("chainId") == chain_id and str(token.get("symbol", "")).upper() == symbol:
                return token
        return None

    async def lookup(self, symbol: str, chain_id: int) -> Optional[TokenRecord]:
        for url in self.urls.get(chain_id, ()):
            try:
                token_list = await self.get_json(url)
            except (httpx.HTTPError, ValueError) as e:
                logger.debug(f"Token list {url} unavailable: {e}")
                continue
            token = self.find_in_list(token_list, symbol, chain_id)
            if token and token.get("address"):
                return TokenRecord(
                    address=token["address"],
                    chain_id=chain_id,
                    symbol=symbol,
                    name=token.get("name") or "",
                    decimals=_int_or_default(token.get("decimals")),
                    source_name=self.name,
                    verified=False,
                )
        return None


def default_sources(config: Optional[Settings] = None) -> List[TokenSource]:
    """Sources in priority order, configured from settings."""
    config = config or settings
    timeout = config.dex_timeout
    return [
        CoinGeckoSource(config.coingecko_base_url, timeout),
        CoinMarketCapSource(config.coinmarketcap_base_url, timeout, config.coinmarketcap_api_key),
        MoralisSource(config.moralis_base_url, timeout, config.moralis_api_key),
        EtherscanSource(config.etherscan_base_url, timeout, config.etherscan_api_key),
        TokenListSource(timeout),
    ]


# ============================================
# Resolver
# ============================================

class TokenResolver:
    """
    Symbol -> TokenRecord resolution with cross-source voting.

    Example:
        >>> resolver = TokenResolver()
        >>> result = await resolver.resolve("LINK", 1)
        >>> result.record.address
        '0x514910771AF9Ca656af840dff83E8264EcF986CA'
    """

    def __init__(
        self,
        sources: Optional[Sequence[TokenSource]] = None,
        exhaustive: Optional[bool] = None,
        cache_ttl: Optional[float] = None,
        reference_tokens: Mapping[int, Mapping[str, TokenRecord]] = REFERENCE_TOKENS,
    ):
        self.sources = list(sources) if sources is not None else default_sources()
        self.exhaustive = settings.resolver_exhaustive if exhaustive is None else exhaustive
        self.cache_ttl = settings.resolver_cache_ttl if cache_ttl is None else cache_ttl
        self.reference_tokens = reference_tokens

        self._lock = asyncio.Lock()
        self._cache: Dict[Tuple[str, int], Tuple[float, ResolutionResult]] = {}
        self._inflight: Dict[Tuple[str, int], asyncio.Future] = {}

    async def resolve(self, symbol: str, chain_id: int) -> ResolutionResult:
        """
        Resolve symbol on chain_id. Never raises for lookup failures.

        Returns:
            ResolutionResult with record set, or record=None and an error text
        """
        symbol = (symbol or "").strip().upper()
        if not symbol:
            return ResolutionResult(error="Symbol is required")

        reference = self.reference_tokens.get(chain_id, {}).get(symbol)
        if reference is not None:
            return ResolutionResult(record=reference, sources=[reference.source_name])

        if self.cache_ttl and self.cache_ttl > 0:
            return await self._resolve_cached(symbol, chain_id)
        return await self._resolve_from_sources(symbol, chain_id)

    async def resolve_many(self, symbols: Sequence[str], chain_id: int) -> Dict[str, ResolutionResult]:
        """Resolve several symbols concurrently; keys keep the input order."""
        results = await asyncio.gather(*(self.resolve(s, chain_id) for s in symbols))
        return dict(zip(symbols, results))

    # ============================================
    # Cache (single-flight)
    # ============================================

    async def _resolve_cached(self, symbol: str, chain_id: int) -> ResolutionResult:
        key = (symbol, chain_id)
        async with self._lock:
            entry = self._cache.get(key)
            if entry is not None:
                expires_at, cached = entry
                if expires_at > time.monotonic():
                    return cached
                del self._cache[key]

            task = self._inflight.get(key)
            if task is None:
                task = asyncio.ensure_future(self._resolve_and_store(key))
                self._inflight[key] = task

        # shield: one caller timing out must not cancel the lookup others share
        return await asyncio.shield(task)

    async def _resolve_and_store(self, key: Tuple[str, int]) -> ResolutionResult:
        result = None
        try:
            result = await self._resolve_from_sources(*key)
            return result
        finally:
            async with self._lock:
                self._inflight.pop(key, None)
                if result is not None and result.found:
                    self._cache[key] = (time.monotonic() + self.cache_ttl, result)

    def clear_cache(self) -> None:
        self._cache.clear()

    # ============================================
    # Cascade
    # ============================================

    async def _query(self, source: TokenSource, symbol: str, chain_id: int) -> Optional[TokenRecord]:
        try:
            return await source.lookup(symbol, chain_id)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Token source {source.name} failed for {symbol} on chain {chain_id}: {e}")
            return None

    async def _resolve_from_sources(self, symbol: str, chain_id: int) -> ResolutionResult:
        active = [s for s in self.sources if s.enabled and s.supports_chain(chain_id)]
        if not active:
            return ResolutionResult(error=f"No token sources available for chain {chain_id}")

        if self.exhaustive:
            answers = await asyncio.gather(*(self._query(s, symbol, chain_id) for s in active))
        else:
            answers = []
            for source in active:
                answer = await self._query(source, symbol, chain_id)
                if answer is not None:
                    answers.append(answer)
                    break

        records = [a for a in answers if a is not None]
        best = select_best_record(records)
        sources = [r.source_name for r in records]
        if best is None:
            return ResolutionResult(
                sources=sources,
                error=f"No token address found for {symbol} on chain {chain_id}",
            )

        if len(records) > 1:
            agreeing = sum(1 for r in records if r.address.lower() == best.address.lower())
            logger.debug(
                f"Resolved {symbol} on chain {chain_id} to {best.address} "
                f"({agreeing}/{len(records)} sources agree)"
            )
        return ResolutionResult(record=best, sources=sources)


# ============================================
# Global Resolver Instance
# ============================================

_resolver: Optional[TokenResolver] = None


def get_resolver() -> TokenResolver:
    """Process-wide TokenResolver built from settings."""
    global _resolver
    if _resolver is None:
        _resolver = TokenResolver()
    return _resolver
