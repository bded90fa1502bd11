"""
Unit Tests for Decentralized Exchange Adapters

These tests verify that:
- Every amount-field synonym is read, in priority order
- sqrtPriceX96 conversion respects pool token order (inverting for token1)
- Chains a venue does not serve are reported as failures
- Each DEX request shape maps its response into a PriceQuote

Token resolution is stubbed with a fixed table; HTTP and contract reads are
replaced with fakes, so no test touches the network.

Run with:
    pytest tests/unit/test_dex_adapters.py -v
"""

import base64
import hashlib
import hmac
from decimal import Decimal

import pytest

from core.chains import BSC, ETHEREUM, REFERENCE_TOKENS, SOLANA
from core.exceptions import ExchangeError
from core.schemas import PoolState, ResolutionResult, TokenRecord
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
from exchanges.dex.base import ZERO_ADDRESS, extract_amounts, price_from_amounts, price_from_sqrt_price_x96
from exchanges.dex.curve import select_pool
from exchanges.dex.okx_dex import sign_request

WETH = REFERENCE_TOKENS[ETHEREUM]["WETH"]
USDC = REFERENCE_TOKENS[ETHEREUM]["USDC"]
CRV = REFERENCE_TOKENS[ETHEREUM]["CRV"]
CAKE = REFERENCE_TOKENS[BSC]["CAKE"]
SOL = REFERENCE_TOKENS[SOLANA]["SOL"]


# ============================================
# Fakes
# ============================================

class FakeResolver:
    """Resolves from a fixed {(symbol, chain_id): TokenRecord} table."""

    def __init__(self, *records: TokenRecord):
        self.records = {(r.symbol, r.chain_id): r for r in records}
        self.calls = []

    async def resolve(self, symbol, chain_id):
        self.calls.append((symbol, chain_id))
        record = self.records.get((symbol, chain_id))
        if record is None:
            return ResolutionResult(error=f"No token address found for {symbol} on chain {chain_id}")
        return ResolutionResult(record=record, sources=[record.source_name])


def stub_client(monkeypatch, adapter, method, payload):
    """Replace adapter.client.<method>; returns the recorded calls."""
    calls = []

    async def fake(path, *args, **kwargs):
        calls.append((path, args, kwargs))
        return payload

    monkeypatch.setattr(adapter.client, method, fake)
    return calls


class FakeCall:
    def __init__(self, value):
        self.value = value

    async def call(self):
        return self.value


class FakeFactoryFunctions:
    def __init__(self, pools_by_fee):
        self.pools_by_fee = pools_by_fee

    def getPool(self, token_a, token_b, fee):
        return FakeCall(self.pools_by_fee.get(fee, ZERO_ADDRESS))


class FakeFactory:
    def __init__(self, pools_by_fee):
        self.functions = FakeFactoryFunctions(pools_by_fee)


# ============================================
# Amount Extraction
# ============================================

class TestAmountExtraction:

    @pytest.mark.parametrize("payload,strategy", [
        ({"sellAmount": "1000", "buyAmount": "2500"}, "sellAmount/buyAmount"),
        ({"fromTokenAmount": "1000", "toTokenAmount": "2500"}, "fromTokenAmount/toTokenAmount"),
        ({"srcAmount": "1000", "dstAmount": "2500"}, "srcAmount/dstAmount"),
        ({"inAmount": "1000", "outAmount": "2500"}, "inAmount/outAmount"),
        ({"data": [{"fromTokenAmount": "1000", "toTokenAmount": "2500"}]}, "data[0].fromTokenAmount/toTokenAmount"),
        ({"data": [{"routerResult": {"fromTokenAmount": "1000", "toTokenAmount": "2500"}}]}, "data[0].routerResult"),
        ({"dstAmount": "2500"}, "dstAmount"),
        ({"toAmount": "2500"}, "toAmount"),
        ({"toTokenAmount": "2500"}, "toTokenAmount"),
    ])
    def test_each_synonym_is_recognized(self, payload, strategy):
        assert extract_amounts(payload, 1000) == (strategy, Decimal("1000"), Decimal("2500"))

    def test_earlier_strategy_wins(self):
        payload = {"dstAmount": "1", "sellAmount": "1000", "buyAmount": "2500"}
        assert extract_amounts(payload, 1000)[0] == "sellAmount/buyAmount"

    def test_zero_amount_falls_through_to_next_strategy(self):
        payload = {"sellAmount": "1000", "buyAmount": "0", "toAmount": "2400"}
        assert extract_amounts(payload, 1000) == ("toAmount", Decimal("1000"), Decimal("2400"))

    @pytest.mark.parametrize("payload", [{}, {"price": "1"}, [], None, {"data": []}])
    def test_unrecognized_payload(self, payload):
        assert extract_amounts(payload, 1000) is None

    def test_price_adjusts_for_decimals(self):
        assert price_from_amounts(Decimal(10 ** 18), Decimal(2_500_500_000), 18, 6) == Decimal("2500.5")


# ============================================
# sqrtPriceX96 Conversion
# ============================================

class TestSqrtPriceConversion:
    # USDC (6 decimals) is token0 and WETH (18 decimals) token1 in the mainnet pool;
    # sqrtPriceX96 = 20000 * 2**96 encodes 1 WETH = 2500 USDC.
    SQRT_PRICE = 20000 * 2 ** 96

    def test_token0_price(self):
        assert price_from_sqrt_price_x96(self.SQRT_PRICE, 6, 18) == Decimal("0.0004")

    def test_token1_price_is_reciprocal(self):
        assert price_from_sqrt_price_x96(self.SQRT_PRICE, 6, 18, invert=True) == Decimal("2500")

    def test_zero_rejected(self):
        with pytest.raises(ValueError):
            price_from_sqrt_price_x96(0, 6, 18)


class TestPoolAdapter:

    @pytest.mark.asyncio
    async def test_inverts_when_token_is_token1(self, monkeypatch):
        adapter = UniswapV3Adapter(resolver=FakeResolver(WETH))
        state = PoolState(
            address="0x88e6A0c2dDD26FEEb64F039a2c41296FcB3f5640",
            token0=USDC.address,
            token1=WETH.address,
            token0_decimals=6,
            token1_decimals=18,
            sqrt_price_x96=TestSqrtPriceConversion.SQRT_PRICE,
            liquidity=123456789,
            fee=500,
        )

        async def fake_find_pool(token, reference, chain_id):
            assert reference.address == USDC.address
            return state

        monkeypatch.setattr(adapter, "find_pool", fake_find_pool)

        outcome = await adapter.quote("WETH", 1)

        assert outcome.success, outcome
        assert outcome.quote.price == Decimal("2500")
        assert outcome.quote.chain_id == 1
        assert outcome.quote.pool_address == state.address
        assert outcome.quote.liquidity == "123456789"

    @pytest.mark.asyncio
    async def test_no_inversion_when_token_is_token0(self, monkeypatch):
        token = TokenRecord(
            address="0x0000000000000000000000000000000000000001",
            chain_id=1, symbol="LOW", decimals=6, source_name="test",
        )
        adapter = UniswapV3Adapter(resolver=FakeResolver(token))
        state = PoolState(
            address="0x00000000000000000000000000000000000000aa",
            token0=token.address,
            token1=USDC.address,
            token0_decimals=6,
            token1_decimals=6,
            sqrt_price_x96=2 * 2 ** 96,
            liquidity=1,
        )

        async def fake_find_pool(token, reference, chain_id):
            return state

        monkeypatch.setattr(adapter, "find_pool", fake_find_pool)

        outcome = await adapter.quote("LOW", 1)

        assert outcome.success, outcome
        assert outcome.quote.price == Decimal("4")

    @pytest.mark.asyncio
    async def test_pool_without_token_is_failure(self, monkeypatch):
        adapter = UniswapV3Adapter(resolver=FakeResolver(WETH))
        state = PoolState(
            address="0x00000000000000000000000000000000000000aa",
            token0=USDC.address,
            token1=CRV.address,
            token0_decimals=6,
            token1_decimals=18,
            sqrt_price_x96=2 ** 96,
            liquidity=1,
        )

        async def fake_find_pool(token, reference, chain_id):
            return state

        monkeypatch.setattr(adapter, "find_pool", fake_find_pool)

        outcome = await adapter.quote("WETH", 1)

        assert not outcome.success
        assert "does not hold" in outcome.reason


class TestUniswapPoolDiscovery:

    @pytest.mark.asyncio
    async def test_skips_missing_and_empty_pools(self, monkeypatch):
        adapter = UniswapV3Adapter(fee_tiers=[3000, 500, 10000], resolver=FakeResolver(WETH))
        pools = {500: "0x00000000000000000000000000000000000000b5", 10000: "0x00000000000000000000000000000000000000c1"}
        monkeypatch.setattr(adapter, "contract", lambda chain_id, address, abi: FakeFactory(pools))

        async def fake_state(chain_id, pool_address, fee=0):
            return PoolState(
                address=pool_address, token0=USDC.address, token1=WETH.address,
                token0_decimals=6, token1_decimals=18,
                sqrt_price_x96=2 ** 96, liquidity=0 if fee == 500 else 10, fee=fee,
            )

        monkeypatch.setattr(adapter, "read_pool_state", fake_state)

        state = await adapter.find_pool(WETH, USDC, 1)

        assert state.fee == 10000
        assert state.address == pools[10000]

    @pytest.mark.asyncio
    async def test_no_pool_raises(self, monkeypatch):
        adapter = UniswapV3Adapter(fee_tiers=[3000], resolver=FakeResolver(WETH))
        monkeypatch.setattr(adapter, "contract", lambda chain_id, address, abi: FakeFactory({}))

        with pytest.raises(ExchangeError, match="No Uniswap V3 pool"):
            await adapter.find_pool(WETH, USDC, 1)


# ============================================
# Chain Handling
# ============================================

class TestChainHandling:

    @pytest.mark.asyncio
    async def test_solana_venue_rejects_evm_chain(self):
        adapter = JupiterAdapter(resolver=FakeResolver(SOL))
        outcome = await adapter.quote("SOL", chain_id=1)
        assert not outcome.success
        assert "does not support chain 1" in outcome.reason

    @pytest.mark.asyncio
    async def test_evm_venue_rejects_solana(self):
        adapter = ZeroExAdapter(api_key="key", resolver=FakeResolver(WETH))
        outcome = await adapter.quote("WETH", chain_id=SOLANA)
        assert not outcome.success
        assert f"does not support chain {SOLANA}" in outcome.reason

    def test_resolve_chain_routing(self):
        assert JupiterAdapter().resolve_chain(1, 1) == SOLANA
        assert PancakeSwapAdapter(api_key="k").resolve_chain(42161, 1) == BSC
        assert ZeroExAdapter(api_key="k").resolve_chain(42161, 1) == 42161
        assert ZeroExAdapter(api_key="k").resolve_chain(None, 10) == 10
        assert HyperliquidAdapter().resolve_chain(42161, 1) is None

    @pytest.mark.asyncio
    async def test_unresolvable_token_is_failure(self):
        adapter = ZeroExAdapter(api_key="key", resolver=FakeResolver())
        outcome = await adapter.quote("FOO", chain_id=1)
        assert not outcome.success
        assert outcome.reason == "Token FOO not found on chain 1"

    @pytest.mark.asyncio
    async def test_reference_stable_is_not_priced_against_itself(self):
        adapter = OneInchAdapter(api_key="key", resolver=FakeResolver(USDC))
        outcome = await adapter.quote("USDC", chain_id=1)
        assert not outcome.success
        assert "reference stable" in outcome.reason


# ============================================
# Aggregator-Quote Venues
# ============================================

class TestAggregatorQuoteVenues:

    @pytest.mark.asyncio
    async def test_zerox_price(self, monkeypatch):
        adapter = ZeroExAdapter(api_key="key", resolver=FakeResolver(WETH))
        calls = stub_client(monkeypatch, adapter, "get", {
            "liquidityAvailable": True,
            "sellAmount": str(10 ** 18),
            "buyAmount": "2501250000",
        })

        outcome = await adapter.quote("weth", 1)

        assert outcome.success, outcome
        assert outcome.quote.price == Decimal("2501.25")
        assert outcome.quote.chain_id == 1
        path, _, kwargs = calls[0]
        assert path == "/swap/permit2/price"
        assert kwargs["params"]["sellToken"] == WETH.address
        assert kwargs["params"]["buyToken"] == USDC.address
        assert kwargs["params"]["sellAmount"] == str(10 ** 18)
        assert kwargs["headers"]["0x-api-key"] == "key"

    @pytest.mark.asyncio
    async def test_zerox_without_key_is_failure(self):
        adapter = ZeroExAdapter(api_key="", resolver=FakeResolver(WETH))
        outcome = await adapter.quote("WETH", 1)
        assert not outcome.success
        assert "ZEROX_API_KEY" in outcome.reason

    @pytest.mark.asyncio
    async def test_zerox_no_liquidity_is_failure(self, monkeypatch):
        adapter = ZeroExAdapter(api_key="key", resolver=FakeResolver(WETH))
        stub_client(monkeypatch, adapter, "get", {"liquidityAvailable": False})
        outcome = await adapter.quote("WETH", 1)
        assert not outcome.success
        assert "No 0x liquidity" in outcome.reason

    @pytest.mark.asyncio
    async def test_oneinch_reads_dst_amount_only(self, monkeypatch):
        adapter = OneInchAdapter(api_key="key", resolver=FakeResolver(WETH))
        calls = stub_client(monkeypatch, adapter, "get", {"dstAmount": "2499000000"})

        outcome = await adapter.quote("WETH", 1)

        assert outcome.success, outcome
        assert outcome.quote.price == Decimal("2499")
        assert calls[0][0] == "/swap/v6.0/1/quote"

    @pytest.mark.asyncio
    async def test_oneinch_error_body_is_failure(self, monkeypatch):
        adapter = OneInchAdapter(api_key="key", resolver=FakeResolver(WETH))
        stub_client(monkeypatch, adapter, "get", {"error": "Bad Request", "description": "insufficient liquidity"})
        outcome = await adapter.quote("WETH", 1)
        assert not outcome.success
        assert "Bad Request" in outcome.reason

    @pytest.mark.asyncio
    async def test_okx_dex_signed_quote(self, monkeypatch):
        adapter = OKXDexAdapter(api_key="k", secret_key="s", passphrase="p", resolver=FakeResolver(WETH))
        calls = stub_client(monkeypatch, adapter, "get", {
            "code": "0",
            "data": [{"fromTokenAmount": str(10 ** 18), "toTokenAmount": "2500000000"}],
        })

        outcome = await adapter.quote("WETH", 1)

        assert outcome.success, outcome
        assert outcome.quote.price == Decimal("2500")
        path, _, kwargs = calls[0]
        assert path.startswith("/api/v5/dex/aggregator/quote?chainId=1&")
        headers = kwargs["headers"]
        assert headers["OK-ACCESS-KEY"] == "k"
        assert headers["OK-ACCESS-PASSPHRASE"] == "p"
        assert headers["OK-ACCESS-SIGN"] == sign_request("s", headers["OK-ACCESS-TIMESTAMP"], "GET", path)

    @pytest.mark.asyncio
    async def test_okx_dex_error_code_is_failure(self, monkeypatch):
        adapter = OKXDexAdapter(api_key="k", secret_key="s", passphrase="p", resolver=FakeResolver(WETH))
        stub_client(monkeypatch, adapter, "get", {"code": "50011", "msg": "Too Many Requests", "data": []})
        outcome = await adapter.quote("WETH", 1)
        assert not outcome.success
        assert "50011" in outcome.reason

    @pytest.mark.asyncio
    async def test_okx_dex_without_credentials_is_failure(self):
        adapter = OKXDexAdapter(api_key="", secret_key="", passphrase="", resolver=FakeResolver(WETH))
        outcome = await adapter.quote("WETH", 1)
        assert not outcome.success
        assert "credentials not configured" in outcome.reason

    def test_sign_request_is_base64_hmac_sha256(self):
        expected = base64.b64encode(
            hmac.new(b"secret", b"2024-01-01T00:00:00.000ZGET/api/v5/x?a=1", hashlib.sha256).digest()
        ).decode()
        assert sign_request("secret", "2024-01-01T00:00:00.000Z", "get", "/api/v5/x?a=1") == expected

    @pytest.mark.asyncio
    async def test_jupiter_runs_on_solana(self, monkeypatch):
        adapter = JupiterAdapter(resolver=FakeResolver(SOL))
        calls = stub_client(monkeypatch, adapter, "get", {"inAmount": "1000000000", "outAmount": "150250000"})

        outcome = await adapter.quote("SOL")

        assert outcome.success, outcome
        assert outcome.quote.price == Decimal("150.25")
        assert outcome.quote.chain_id == SOLANA
        params = calls[0][2]["params"]
        assert params["inputMint"] == SOL.address
        assert params["amount"] == "1000000000"


# ============================================
# Subgraph Venue
# ============================================

class TestPancakeSwapSubgraph:
    URL = "https://subgraph.example/pancakeswap-v3"

    @pytest.mark.asyncio
    async def test_derived_usd_price(self, monkeypatch):
        adapter = PancakeSwapAdapter(subgraph_url=self.URL, resolver=FakeResolver(CAKE))
        calls = stub_client(monkeypatch, adapter, "post", {
            "data": {"token": {"id": CAKE.address.lower(), "symbol": "Cake", "derivedUSD": "2.5", "volumeUSD": "1000"}},
        })

        outcome = await adapter.quote("CAKE")

        assert outcome.success, outcome
        assert outcome.quote.price == Decimal("2.5")
        assert outcome.quote.chain_id == BSC
        assert outcome.quote.volume_24h == Decimal("1000")
        assert calls[0][2]["json_body"]["variables"] == {"id": CAKE.address.lower()}

    @pytest.mark.asyncio
    async def test_price_usd_synonym(self, monkeypatch):
        adapter = PancakeSwapAdapter(subgraph_url=self.URL, resolver=FakeResolver(CAKE))
        stub_client(monkeypatch, adapter, "post", {"data": {"token": {"derivedUSD": "0", "priceUSD": "2.4"}}})
        outcome = await adapter.quote("CAKE")
        assert outcome.success, outcome
        assert outcome.quote.price == Decimal("2.4")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload,reason", [
        ({"data": {"token": None}}, "not indexed"),
        ({"data": {"token": {"id": "0x0", "volumeUSD": "1"}}}, "No USD price"),
        ({"errors": [{"message": "indexing error"}]}, "indexing error"),
    ])
    async def test_empty_or_missing_price_is_failure(self, monkeypatch, payload, reason):
        adapter = PancakeSwapAdapter(subgraph_url=self.URL, resolver=FakeResolver(CAKE))
        stub_client(monkeypatch, adapter, "post", payload)
        outcome = await adapter.quote("CAKE")
        assert not outcome.success
        assert reason in outcome.reason

    @pytest.mark.asyncio
    async def test_gateway_url_without_key_is_failure(self):
        adapter = PancakeSwapAdapter(
            subgraph_url="https://gateway.thegraph.com/api/{api_key}/subgraphs/id/abc",
            api_key="",
            resolver=FakeResolver(CAKE),
        )
        outcome = await adapter.quote("CAKE")
        assert not outcome.success
        assert "THEGRAPH_API_KEY" in outcome.reason

    @pytest.mark.asyncio
    async def test_rejects_other_chain(self):
        adapter = PancakeSwapAdapter(subgraph_url=self.URL, resolver=FakeResolver(CAKE))
        outcome = await adapter.quote("CAKE", chain_id=1)
        assert not outcome.success
        assert "does not support chain 1" in outcome.reason


# ============================================
# Curve
# ============================================

class TestCurvePoolSelection:
    POOLS = [
        {
            "address": "0xsmall",
            "usdTotal": 1000,
            "coins": [{"address": CRV.address, "decimals": "18"}, {"address": USDC.address, "decimals": "6"}],
        },
        {
            "address": "0xbig",
            "usdTotal": 5_000_000,
            "coins": [
                {"address": "0xother", "decimals": "18"},
                {"address": USDC.address.lower(), "decimals": "6"},
                {"address": CRV.address.lower(), "decimals": "18"},
            ],
        },
        {
            "address": "0xusdt",
            "usdTotal": 9_000_000,
            "coins": [{"address": CRV.address, "decimals": "18"}, {"address": "0xusdt-token", "decimals": "6"}],
        },
    ]

    def test_deepest_pool_for_first_matching_stable(self):
        pool, i, j = select_pool(self.POOLS, CRV.address, [USDC.address, "0xusdt-token"])
        assert pool["address"] == "0xbig"
        assert (i, j) == (2, 1)

    def test_falls_back_to_next_stable(self):
        pool, i, j = select_pool(self.POOLS, CRV.address, ["0xmissing", "0xusdt-token"])
        assert pool["address"] == "0xusdt"
        assert (i, j) == (0, 1)

    def test_no_match(self):
        assert select_pool(self.POOLS, "0xunknown", [USDC.address]) is None

    def test_stable_candidates_from_reference_table(self):
        adapter = CurveAdapter(resolver=FakeResolver(CRV))
        candidates = adapter.stable_candidates(ETHEREUM, USDC)
        assert [c.symbol for c in candidates] == ["USDC", "USDT", "DAI"]
        assert candidates[1].address == REFERENCE_TOKENS[ETHEREUM]["USDT"].address

    @pytest.mark.asyncio
    async def test_price_from_get_dy(self, monkeypatch):
        adapter = CurveAdapter(resolver=FakeResolver(CRV))
        dy_calls = []

        async def fake_pools(chain_id):
            return self.POOLS

        async def fake_get_dy(chain_id, pool_address, i, j, dx):
            dy_calls.append((pool_address, i, j, dx))
            return 550_000

        monkeypatch.setattr(adapter, "fetch_pools", fake_pools)
        monkeypatch.setattr(adapter, "get_dy", fake_get_dy)

        outcome = await adapter.quote("CRV", 1)

        assert outcome.success, outcome
        assert outcome.quote.price == Decimal("0.55")
        assert outcome.quote.pool_address == "0xbig"
        assert dy_calls == [("0xbig", 2, 1, 10 ** 18)]

    @pytest.mark.asyncio
    async def test_no_pool_is_failure(self, monkeypatch):
        adapter = CurveAdapter(resolver=FakeResolver(CRV))

        async def fake_pools(chain_id):
            return []

        monkeypatch.setattr(adapter, "fetch_pools", fake_pools)

        outcome = await adapter.quote("CRV", 1)

        assert not outcome.success
        assert "No Curve pool" in outcome.reason


# ============================================
# Hyperliquid
# ============================================

class TestHyperliquidAdapter:
    PAYLOAD = [
        {"universe": [{"name": "BTC", "szDecimals": 5}, {"name": "ETH", "szDecimals": 4}]},
        [
            {"midPx": "64000.5", "markPx": "64001", "prevDayPx": "60000", "dayNtlVlm": "1500000000"},
            {"midPx": None, "markPx": "2500", "prevDayPx": "2500", "dayNtlVlm": "900000000"},
        ],
    ]

    @pytest.mark.asyncio
    async def test_mid_price_and_context_fields(self, monkeypatch):
        adapter = HyperliquidAdapter()
        calls = stub_client(monkeypatch, adapter, "post", self.PAYLOAD)

        outcome = await adapter.quote("btc")

        assert outcome.success, outcome
        assert outcome.quote.price == Decimal("64000.5")
        assert outcome.quote.volume_24h == Decimal("1500000000")
        assert outcome.quote.chain_id is None
        assert calls[0][0] == "/info"
        assert calls[0][2]["json_body"] == {"type": "metaAndAssetCtxs"}

    @pytest.mark.asyncio
    async def test_mark_price_fallback(self, monkeypatch):
        adapter = HyperliquidAdapter()
        stub_client(monkeypatch, adapter, "post", self.PAYLOAD)
        outcome = await adapter.quote("ETH")
        assert outcome.success
        assert outcome.quote.price == Decimal("2500")

    @pytest.mark.asyncio
    async def test_unlisted_coin_is_failure(self, monkeypatch):
        adapter = HyperliquidAdapter()
        stub_client(monkeypatch, adapter, "post", self.PAYLOAD)
        outcome = await adapter.quote("DOGE")
        assert not outcome.success
        assert "not listed on Hyperliquid" in outcome.reason
