"""
Price Result Formatter

Pure functions that render AggregateResults as Markdown text for the tool
surface. Outcomes are split into CEX and DEX sections by the static
EXCHANGE_CATEGORIES lookup, never by anything inside the outcome.
"""

from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from core.schemas import AggregateResult

EXCHANGE_CATEGORIES: Dict[str, str] = {
    "binance": "cex",
    "okx": "cex",
    "coinbase": "cex",
    "kraken": "cex",
    "hyperliquid": "dex",
    "uniswap": "dex",
    "0x": "dex",
    "jupiter": "dex",
    "okx-dex": "dex",
    "1inch": "dex",
    "pancakeswap": "dex",
    "curve": "dex",
}

EXCHANGE_DISPLAY_NAMES: Dict[str, str] = {
    "binance": "Binance",
    "okx": "OKX",
    "coinbase": "Coinbase",
    "kraken": "Kraken",
    "hyperliquid": "Hyperliquid",
    "uniswap": "Uniswap V3",
    "0x": "0x Protocol",
    "jupiter": "Jupiter",
    "okx-dex": "OKX DEX",
    "1inch": "1inch",
    "pancakeswap": "PancakeSwap",
    "curve": "Curve Finance",
}

SECTION_TITLES = {
    "cex": "CEX (Centralized Exchanges)",
    "dex": "DEX (Decentralized Exchanges)",
    "other": "Other",
}

NO_RESULTS_WARNING = (
    "⚠️ **Warning**: No exchanges returned successful results for {symbol}. "
    "Please check the symbol and try again."
)


def display_name(exchange: str) -> str:
    return EXCHANGE_DISPLAY_NAMES.get(exchange.lower(), exchange)


def format_price(value: Optional[Decimal]) -> str:
    """
    Format a USD price: 2 decimals from 1 upward, up to 8 decimals below 1.

    Example:
        >>> format_price(Decimal("64250.5"))
        '64,250.50'
        >>> format_price(Decimal("0.000012345"))
        '0.00001234'
        >>> format_price(Decimal("0.5"))
        '0.50'
    """
    if value is None:
        return "n/a"
    value = Decimal(value)
    if value == 0 or abs(value) >= 1:
        return f"{value:,.2f}"

    # Four significant digits, 2..8 decimals, trailing zeros trimmed past 2
    places = min(max(2, -value.adjusted() + 3), 8)
    text = f"{value:.{places}f}".rstrip("0")
    whole, _, fraction = text.partition(".")
    return f"{whole}.{fraction.ljust(2, '0')}"


def format_change(change: Decimal) -> str:
    return f"+{change:.2f}%" if change >= 0 else f"{change:.2f}%"


def _outcome_line(outcome, category: str) -> str:
    name = display_name(outcome.exchange)
    if not outcome.success:
        return f"❌ **{name}**: {outcome.reason}"

    quote = outcome.quote
    line = f"✅ **{name}**: ${format_price(quote.price)}"
    if category == "cex":
        if quote.volume_24h:
            line += f" (24h Vol: ${quote.volume_24h:,.2f})"
        if quote.change_24h_percent is not None:
            line += f" (24h: {format_change(quote.change_24h_percent)})"
    elif quote.chain_id is not None:
        line += f" (chain {quote.chain_id})"
    return line


def format_price_result(result: AggregateResult) -> str:
    """
    Render one symbol's aggregate as Markdown.

    The "no exchanges returned successful results" warning is present exactly
    when successful_exchanges == 0.
    """
    lines: List[str] = [
        f"# {result.symbol} Price Check",
        "",
        "**Summary:**",
        f"- Total Exchanges: {result.total_exchanges}",
        f"- Successful: {result.successful_exchanges}",
        f"- Success Rate: {result.success_rate:.1f}%",
        "",
    ]

    if result.average_price is not None:
        lines += [
            "**Price Statistics:**",
            f"- Average Price: ${format_price(result.average_price)}",
            f"- Best Price: ${format_price(result.best_price)} (Lowest)",
            f"- Worst Price: ${format_price(result.worst_price)} (Highest)",
            f"- Price Spread: ${format_price(result.price_spread)}",
            "",
        ]

    lines += ["**Exchange Results:**", ""]

    sections: Dict[str, List[str]] = {"cex": [], "dex": [], "other": []}
    for outcome in result.outcomes:
        category = EXCHANGE_CATEGORIES.get(outcome.exchange.lower(), "other")
        sections[category].append(_outcome_line(outcome, category))

    for category, entries in sections.items():
        if entries:
            lines.append(f"### {SECTION_TITLES[category]}")
            lines += entries
            lines.append("")

    if result.successful_exchanges == 0:
        lines.append(NO_RESULTS_WARNING.format(symbol=result.symbol))

    return "\n".join(lines).rstrip("\n") + "\n"


def format_multiple_price_results(results: Sequence[AggregateResult]) -> str:
    """Numbered summary block per symbol, without per-exchange detail."""
    lines: List[str] = [
        "# Multiple Crypto Price Check",
        "",
        f"**Total Cryptocurrencies:** {len(results)}",
        "",
    ]

    for index, result in enumerate(results, start=1):
        lines.append(f"## {index}. {result.symbol}")
        lines.append(
            f"- Success Rate: {result.successful_exchanges}/{result.total_exchanges} "
            f"({result.success_rate:.1f}%)"
        )
        if result.average_price is not None:
            lines.append(f"- Average Price: ${format_price(result.average_price)}")
            lines.append(
                f"- Price Range: ${format_price(result.best_price)} - ${format_price(result.worst_price)}"
            )
        else:
            lines.append("- ⚠️ No successful price data")
        lines.append("")

    return "\n".join(lines).rstrip("\n") + "\n"


def format_supported_exchanges(names: Sequence[str]) -> str:
    """Configured exchanges grouped by category."""
    lines: List[str] = ["Supported Exchanges:", ""]
    for category in ("cex", "dex", "other"):
        members = [n for n in names if EXCHANGE_CATEGORIES.get(n.lower(), "other") == category]
        if members:
            lines.append(f"{SECTION_TITLES[category]}:")
            lines += [f"- {display_name(n)}" for n in members]
            lines.append("")
    lines.append(f"Total: {len(names)} exchanges")
    return "\n".join(lines) + "\n"
