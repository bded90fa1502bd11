"""
Chain Profiles and Reference Token Tables

Static, read-only configuration for every chain the DEX adapters can talk to:
default RPC endpoint, the Uniswap V3 factory address and the stable token
used as the USD reference.

REFERENCE_TOKENS is the token resolver's fast path: well-known tokens per
chain that never need a network lookup. Native coins (ETH, BNB, MATIC, BTC)
are listed under their own symbol pointing at the wrapped ERC-20, since that
is what pools and routers trade.

Both tables are MappingProxyType views built once at import; nothing in the
process mutates them.

Usage:
    from core.chains import get_chain_profile, get_reference_token

    profile = get_chain_profile(1)
    usdc = get_reference_token("USDC", 1)
"""

from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

from core.schemas import ChainProfile, TokenRecord


# ============================================
# Chain Identifiers
# ============================================

ETHEREUM = 1
OPTIMISM = 10
BSC = 56
POLYGON = 137
BASE = 8453
ARBITRUM = 42161
SOLANA = 101

UNISWAP_V3_FACTORY = "0x1F98431c8aD98523631AE4a59f267346ea31F984"
UNISWAP_V3_FACTORY_BASE = "0x33128a8fC17869897dcE68Ed026d694621f6FDfD"


# ============================================
# Chain Profiles
# ============================================

CHAIN_PROFILES: Mapping[int, ChainProfile] = MappingProxyType({
    ETHEREUM: ChainProfile(
        chain_id=ETHEREUM,
        name="ethereum",
        rpc_url="https://eth.llamarpc.com",
        uniswap_v3_factory=UNISWAP_V3_FACTORY,
        stable_reference="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
        stable_decimals=6,
    ),
    OPTIMISM: ChainProfile(
        chain_id=OPTIMISM,
        name="optimism",
        rpc_url="https://optimism.llamarpc.com",
        uniswap_v3_factory=UNISWAP_V3_FACTORY,
        stable_reference="0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85",
        stable_decimals=6,
    ),
    BSC: ChainProfile(
        chain_id=BSC,
        name="bsc",
        rpc_url="https://bsc.llamarpc.com",
        stable_reference="0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d",
        stable_decimals=18,
    ),
    POLYGON: ChainProfile(
        chain_id=POLYGON,
        name="polygon",
        rpc_url="https://polygon.llamarpc.com",
        uniswap_v3_factory=UNISWAP_V3_FACTORY,
        stable_reference="0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174",
        stable_decimals=6,
    ),
    BASE: ChainProfile(
        chain_id=BASE,
        name="base",
        rpc_url="https://mainnet.base.org",
        uniswap_v3_factory=UNISWAP_V3_FACTORY_BASE,
        stable_reference="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
        stable_decimals=6,
    ),
    ARBITRUM: ChainProfile(
        chain_id=ARBITRUM,
        name="arbitrum",
        rpc_url="https://arbitrum.llamarpc.com",
        uniswap_v3_factory=UNISWAP_V3_FACTORY,
        stable_reference="0xaf88d065e77c8cC2239327C5EDb3A432268e5831",
        stable_decimals=6,
    ),
    SOLANA: ChainProfile(
        chain_id=SOLANA,
        name="solana",
        rpc_url="https://api.mainnet-beta.solana.com",
        stable_reference="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
        stable_decimals=6,
        is_evm=False,
    ),
})


# ============================================
# Reference Tokens
# ============================================

# (symbol, address, decimals, name) per chain
_REFERENCE_TOKEN_ROWS: Dict[int, Tuple[Tuple[str, str, int, str], ...]] = {
    ETHEREUM: (
        ("WETH", "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", 18, "Wrapped Ether"),
        ("ETH", "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", 18, "Wrapped Ether"),
        ("USDC", "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", 6, "USD Coin"),
        ("USDT", "0xdAC17F958D2ee523a2206206994597C13D831ec7", 6, "Tether USD"),
        ("DAI", "0x6B175474E89094C44Da98b954EedeAC495271d0F", 18, "Dai Stablecoin"),
        ("WBTC", "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599", 8, "Wrapped BTC"),
        ("BTC", "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599", 8, "Wrapped BTC"),
        ("UNI", "0x1f9840a85d5aF5bf1D1762F925BDADdC4201F984", 18, "Uniswap"),
        ("LINK", "0x514910771AF9Ca656af840dff83E8264EcF986CA", 18, "ChainLink Token"),
        ("AAVE", "0x7Fc66500c84A76Ad7e9c93437bFc5Ac33E2DDaE9", 18, "Aave Token"),
        ("CRV", "0xD533a949740bb3306d119CC777fa900bA034cd52", 18, "Curve DAO Token"),
        ("MKR", "0x9f8F72aA9304c8B593d555F12eF6589cC3A579A2", 18, "Maker"),
    ),
    BSC: (
        ("WBNB", "0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c", 18, "Wrapped BNB"),
        ("BNB", "0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c", 18, "Wrapped BNB"),
        ("USDC", "0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d", 18, "USD Coin"),
        ("USDT", "0x55d398326f99059fF775485246999027B3197955", 18, "Tether USD"),
        ("BUSD", "0xe9e7CEA3DedcA5984780Bafc599bD69ADd087D56", 18, "BUSD Token"),
        ("CAKE", "0x0E09FaBB73Bd3Ade0a17ECC321fD13a19e81cE82", 18, "PancakeSwap Token"),
        ("LINK", "0xF8A0BF9cF54Bb92F17374d9e9A321E6a111a51bD", 18, "ChainLink Token"),
    ),
    POLYGON: (
        ("WMATIC", "0x0d500B1d8E8eF31E21C99d1Db9A6444d3ADf1270", 18, "Wrapped Matic"),
        ("MATIC", "0x0d500B1d8E8eF31E21C99d1Db9A6444d3ADf1270", 18, "Wrapped Matic"),
        ("USDC", "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174", 6, "USD Coin (PoS)"),
        ("USDT", "0xc2132D05D31c914a87C6611C10748AEb04B58e8F", 6, "Tether USD (PoS)"),
        ("DAI", "0x8f3Cf7ad23Cd3CaDbD9735AFf958023239c6A063", 18, "Dai Stablecoin (PoS)"),
        ("LINK", "0x53E0bca35eC356BD5ddDFebbD1Fc0fD03FaBad39", 18, "ChainLink Token"),
    ),
    ARBITRUM: (
        ("WETH", "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1", 18, "Wrapped Ether"),
        ("ETH", "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1", 18, "Wrapped Ether"),
        ("USDC", "0xaf88d065e77c8cC2239327C5EDb3A432268e5831", 6, "USD Coin"),
        ("USDT", "0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9", 6, "Tether USD"),
        ("ARB", "0x912CE59144191C1204E64559FE8253a0e49E6548", 18, "Arbitrum"),
        ("LINK", "0xf97f4df75117a78c1A5a0DBb814Af92458539FB4", 18, "ChainLink Token"),
    ),
    OPTIMISM: (
        ("WETH", "0x4200000000000000000000000000000000000006", 18, "Wrapped Ether"),
        ("ETH", "0x4200000000000000000000000000000000000006", 18, "Wrapped Ether"),
        ("USDC", "0x0b2C639c533813f4Aa9D7837CAf62653d097Ff85", 6, "USD Coin"),
        ("USDT", "0x94b008aA00579c1307B0EF2c499aD98a8ce58e58", 6, "Tether USD"),
        ("OP", "0x4200000000000000000000000000000000000042", 18, "Optimism"),
        ("LINK", "0x350a791Bfc2C21F9Ed5d10980Dad2e2638ffa7f6", 18, "ChainLink Token"),
    ),
    BASE: (
        ("WETH", "0x4200000000000000000000000000000000000006", 18, "Wrapped Ether"),
        ("ETH", "0x4200000000000000000000000000000000000006", 18, "Wrapped Ether"),
        ("USDC", "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913", 6, "USD Coin"),
    ),
    SOLANA: (
        ("SOL", "So11111111111111111111111111111111111111112", 9, "Wrapped SOL"),
        ("WSOL", "So11111111111111111111111111111111111111112", 9, "Wrapped SOL"),
        ("USDC", "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v", 6, "USD Coin"),
        ("USDT", "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB", 6, "USDT"),
        ("JUP", "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN", 6, "Jupiter"),
    ),
}


def _build_reference_tokens(
    rows: Mapping[int, Iterable[Tuple[str, str, int, str]]]
) -> Mapping[int, Mapping[str, TokenRecord]]:
    tables = {}
    for chain_id, entries in rows.items():
        tables[chain_id] = MappingProxyType({
            symbol: TokenRecord(
                address=address,
                chain_id=chain_id,
                symbol=symbol,
                name=name,
                decimals=decimals,
                source_name="reference",
                verified=True,
            )
            for symbol, address, decimals, name in entries
        })
    return MappingProxyType(tables)


REFERENCE_TOKENS: Mapping[int, Mapping[str, TokenRecord]] = _build_reference_tokens(_REFERENCE_TOKEN_ROWS)


# ============================================
# Lookup Helpers
# ============================================

def get_chain_profile(chain_id: int) -> Optional[ChainProfile]:
    """Return the profile for chain_id, or None if the chain is unknown."""
    return CHAIN_PROFILES.get(chain_id)


def get_reference_token(symbol: str, chain_id: int) -> Optional[TokenRecord]:
    """Return the static record for symbol on chain_id, if it is a well-known token."""
    return REFERENCE_TOKENS.get(chain_id, {}).get(symbol.strip().upper())


def get_stable_reference(chain_id: int) -> Optional[TokenRecord]:
    """
    The stable token used as USD denominator on chain_id.

    Example:
        >>> get_stable_reference(1).address
        '0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48'
    """
    profile = CHAIN_PROFILES.get(chain_id)
    if profile is None:
        return None
    for record in REFERENCE_TOKENS.get(chain_id, {}).values():
        if record.address.lower() == profile.stable_reference.lower():
            return record
    return TokenRecord(
        address=profile.stable_reference,
        chain_id=chain_id,
        symbol="USDC",
        decimals=profile.stable_decimals,
        source_name="reference",
        verified=True,
    )


def get_rpc_url(chain_id: int, overrides: Optional[Mapping[int, str]] = None) -> Optional[str]:
    """RPC endpoint for chain_id, honoring RPC_URL_OVERRIDES first."""
    if overrides and chain_id in overrides:
        return overrides[chain_id]
    profile = CHAIN_PROFILES.get(chain_id)
    return profile.rpc_url if profile else None
