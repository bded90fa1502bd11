"""
Unit Tests for the Price Formatter

These tests verify that:
- Prices render with 2 decimals from 1 upward and up to 8 decimals below 1
- Outcomes are grouped into CEX / DEX sections by exchange name
- The no-results warning appears exactly when nothing succeeded
- Batch and exchange-list output carry the expected headers

Run with:
    pytest tests/unit/test_price_formatter.py -v
"""

from decimal import Decimal

import pytest

from core.schemas import AggregateResult, PriceQuote, QuoteFailure, QuoteSuccess
from services.price_formatter import (
    format_multiple_price_results,
    format_price,
    format_price_result,
    format_supported_exchanges,
)

WARNING_TEXT = "No exchanges returned successful results"


def success(exchange, price, **fields):
    return QuoteSuccess(
        exchange=exchange,
        quote=PriceQuote(exchange=exchange, symbol="ETH", price=price, **fields),
    )


def failure(exchange, reason="HTTP 400: Invalid symbol."):
    return QuoteFailure(exchange=exchange, reason=reason)


class TestFormatPrice:

    @pytest.mark.parametrize("value,expected", [
        (Decimal("64250.5"), "64,250.50"),
        (Decimal("1"), "1.00"),
        (Decimal("0.5"), "0.50"),
        (Decimal("0.1234567"), "0.1235"),
        (Decimal("0.000012345"), "0.00001234"),
        (Decimal("0.000000001"), "0.00"),
        (None, "n/a"),
    ])
    def test_format(self, value, expected):
        assert format_price(value) == expected


class TestFormatPriceResult:

    def test_sections_and_statistics(self):
        result = AggregateResult.from_outcomes("ETH", [
            success("binance", "2500", volume_24h="1000000", change_24h_percent="-1.5"),
            failure("kraken"),
            success("uniswap", "2510", chain_id=1),
            success("hyperliquid", "2490"),
        ])

        text = format_price_result(result)

        assert text.startswith("# ETH Price Check\n")
        assert "- Total Exchanges: 4" in text
        assert "- Successful: 3" in text
        assert "- Success Rate: 75.0%" in text
        assert "- Average Price: $2,500.00" in text
        assert "- Best Price: $2,490.00 (Lowest)" in text
        assert "- Worst Price: $2,510.00 (Highest)" in text
        assert "- Price Spread: $20.00" in text

        cex_at = text.index("### CEX (Centralized Exchanges)")
        dex_at = text.index("### DEX (Decentralized Exchanges)")
        assert cex_at < text.index("**Binance**") < text.index("**Kraken**") < dex_at
        assert dex_at < text.index("**Uniswap V3**") < text.index("**Hyperliquid**")

        assert "✅ **Binance**: $2,500.00 (24h Vol: $1,000,000.00) (24h: -1.50%)" in text
        assert "❌ **Kraken**: HTTP 400: Invalid symbol." in text
        assert "✅ **Uniswap V3**: $2,510.00 (chain 1)" in text
        assert WARNING_TEXT not in text

    def test_warning_when_nothing_succeeded(self):
        result = AggregateResult.from_outcomes("NOTACOIN", [failure("binance"), failure("0x")])

        text = format_price_result(result)

        assert WARNING_TEXT in text
        assert "NOTACOIN" in text
        assert "**Price Statistics:**" not in text
        assert "❌ **0x Protocol**" in text

    def test_unknown_exchange_goes_to_other(self):
        result = AggregateResult.from_outcomes("ETH", [success("mystery", "1")])
        assert "### Other" in format_price_result(result)

    def test_empty_section_omitted(self):
        result = AggregateResult.from_outcomes("BTC", [success("binance", "50000")])
        text = format_price_result(result)
        assert "### CEX" in text
        assert "### DEX" not in text


class TestFormatMultiple:

    def test_numbered_blocks(self):
        results = [
            AggregateResult.from_outcomes("BTC", [success("binance", "50000"), success("okx", "50100")]),
            AggregateResult.from_outcomes("NOPE", [failure("binance")]),
        ]

        text = format_multiple_price_results(results)

        assert text.startswith("# Multiple Crypto Price Check\n")
        assert "**Total Cryptocurrencies:** 2" in text
        assert "## 1. BTC" in text
        assert "- Success Rate: 2/2 (100.0%)" in text
        assert "- Average Price: $50,050.00" in text
        assert "- Price Range: $50,000.00 - $50,100.00" in text
        assert "## 2. NOPE" in text
        assert "- ⚠️ No successful price data" in text


class TestFormatSupportedExchanges:

    def test_grouped_by_category(self):
        text = format_supported_exchanges(["binance", "uniswap", "okx", "jupiter"])

        assert text.startswith("Supported Exchanges:")
        cex_at = text.index("CEX (Centralized Exchanges):")
        dex_at = text.index("DEX (Decentralized Exchanges):")
        assert cex_at < text.index("- Binance") < text.index("- OKX") < dex_at
        assert dex_at < text.index("- Uniswap V3") < text.index("- Jupiter")
        assert text.rstrip().endswith("Total: 4 exchanges")
