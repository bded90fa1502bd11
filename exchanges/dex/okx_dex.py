"""
OKX DEX Aggregator Adapter

API Documentation:
    https://web3.okx.com/build/dev-docs/dex-api/dex-get-quote

Endpoint Used:
    GET /api/v5/dex/aggregator/quote?chainId=1&amount=<raw>&fromTokenAddress=<token>&toTokenAddress=<usdc>

Authentication:
    OKX Web3 requests are signed:
        OK-ACCESS-SIGN = base64(HMAC-SHA256(secret, timestamp + "GET" + path_with_query))
    along with OK-ACCESS-KEY, OK-ACCESS-TIMESTAMP and OK-ACCESS-PASSPHRASE.
    Without all three credentials the adapter reports a failure.

Response:
    {"code": "0", "msg": "", "data": [{"fromTokenAmount": "...", "toTokenAmount": "...", ...}]}
"""

import base64
import hashlib
import hmac
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from core.chains import ARBITRUM, BASE, BSC, ETHEREUM, OPTIMISM, POLYGON
from core.config import DEFAULT_RATE_LIMITS, settings
from core.exceptions import ExchangeError
from core.schemas import TokenRecord
from core.utils.time import iso_timestamp_ms
from exchanges.dex.base import AggregatorQuoteAdapter, known_chains


def sign_request(secret: str, timestamp: str, method: str, request_path: str, body: str = "") -> str:
    """
    OKX request signature: base64 HMAC-SHA256 of timestamp + method + path + body.

    request_path must include the query string exactly as sent.
    """
    message = f"{timestamp}{method.upper()}{request_path}{body}"
    digest = hmac.new(secret.encode(), message.encode(), hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


class OKXDexAdapter(AggregatorQuoteAdapter):
    """OKX DEX aggregator quote adapter."""

    name = "okx-dex"
    display_name = "OKX DEX"
    supported_chains = known_chains(ETHEREUM, OPTIMISM, BSC, POLYGON, BASE, ARBITRUM)
    capabilities = {
        "volume_24h": False,
        "change_24h": False,
        "multi_chain": True,
        "requires_api_key": True,
    }

    QUOTE_PATH = "/api/v5/dex/aggregator/quote"

    def __init__(self, api_key: Optional[str] = None, secret_key: Optional[str] = None,
                 passphrase: Optional[str] = None, base_url: Optional[str] = None,
                 timeout: Optional[float] = None, rate_limit: Optional[float] = None, **kwargs):
        self.api_key = api_key if api_key is not None else settings.okx_api_key
        self.secret_key = secret_key if secret_key is not None else settings.okx_secret_key
        self.passphrase = passphrase if passphrase is not None else settings.okx_passphrase
        super().__init__(
            base_url=base_url or settings.okx_dex_base_url,
            timeout=timeout,
            rate_limit=rate_limit or DEFAULT_RATE_LIMITS.get(self.name),
            **kwargs,
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.secret_key and self.passphrase)

    def auth_headers(self, request_path: str) -> Dict[str, str]:
        timestamp = iso_timestamp_ms()
        return {
            "OK-ACCESS-KEY": self.api_key,
            "OK-ACCESS-SIGN": sign_request(self.secret_key, timestamp, "GET", request_path),
            "OK-ACCESS-TIMESTAMP": timestamp,
            "OK-ACCESS-PASSPHRASE": self.passphrase,
        }

    def check_payload(self, payload: Any) -> None:
        if isinstance(payload, dict) and str(payload.get("code", "0")) != "0":
            raise ExchangeError(
                f"OKX DEX error {payload.get('code')}: {payload.get('msg') or 'unknown error'}",
                exchange=self.name,
            )
        if isinstance(payload, dict) and not payload.get("data"):
            raise ExchangeError("OKX DEX returned no route", exchange=self.name)

    async def request_quote(self, token: TokenRecord, reference: TokenRecord,
                            amount: int, chain_id: int) -> Any:
        if not self.has_credentials:
            raise ExchangeError(
                "OKX DEX credentials not configured (set OKX_API_KEY, OKX_SECRET_KEY, OKX_PASSPHRASE)",
                exchange=self.name,
            )

        query = urlencode({
            "chainId": chain_id,
            "amount": str(amount),
            "fromTokenAddress": token.address,
            "toTokenAddress": reference.address,
        })
        request_path = f"{self.QUOTE_PATH}?{query}"
        return await self.client.get(request_path, headers=self.auth_headers(request_path))
