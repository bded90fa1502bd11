"""
Normalized Data Schemas

This module defines Pydantic models for every data type that flows through the
price aggregator. These schemas provide a unified, exchange-agnostic format.

Key Principle:
    Regardless of which venue a price comes from (a CEX ticker, a swap-routing
    quote, a pool's sqrtPriceX96, a subgraph field), it gets normalized into a
    PriceQuote. Adapters wrap that quote in an AdapterOutcome, and the
    aggregator folds outcomes into one AggregateResult.

Models:
    - PriceQuote: One venue's spot price for a symbol
    - QuoteSuccess / QuoteFailure: The two branches of AdapterOutcome
    - AggregateResult: All outcomes for one symbol plus summary statistics
    - TokenRecord / ResolutionResult: Token address resolution
    - ChainProfile: Static per-chain configuration
    - PoolState: Snapshot of a concentrated-liquidity pool

All models are frozen: once constructed they are never mutated.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Literal, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.utils.time import current_utc_datetime


# ============================================
# Price Quote Schema
# ============================================

class PriceQuote(BaseModel):
    """
    Spot price of a symbol on one exchange.

    Attributes:
        exchange: Source exchange identifier (lowercase registry name)
        symbol: Venue-specific symbol or pair (e.g., "BTCUSDT", "BTC-USD", "ETH")
        price: Price in USD (or USD stablecoin) units, strictly positive
        timestamp: When the price was observed, UTC
        volume_24h: 24h traded volume as reported by the venue (optional)
        change_24h_percent: 24h change in percent (optional)
        chain_id: Chain the price was read from (DEX only)
        pool_address: Pool contract the price came from (pool-style DEX only)
        liquidity: Pool liquidity as a raw integer string (pool-style DEX only)

    Example:
        >>> PriceQuote(exchange="binance", symbol="BTCUSDT", price=Decimal("50123.45"))
    """

    model_config = ConfigDict(frozen=True)

    exchange: str = Field(
        ...,
        description="Source exchange identifier (lowercase)",
        examples=["binance", "uniswap", "1inch"]
    )

    symbol: str = Field(
        ...,
        description="Symbol or pair as queried on the venue",
        examples=["BTCUSDT", "BTC-USD", "ETH"]
    )

    price: Decimal = Field(
        ...,
        gt=0,
        description="Spot price in USD terms"
    )

    timestamp: datetime = Field(
        default_factory=current_utc_datetime,
        description="Observation time in UTC"
    )

    volume_24h: Optional[Decimal] = Field(
        default=None,
        description="24h volume as reported by the venue"
    )

    change_24h_percent: Optional[Decimal] = Field(
        default=None,
        description="24h price change in percent"
    )

    chain_id: Optional[int] = Field(
        default=None,
        description="Chain identifier for on-chain venues"
    )

    pool_address: Optional[str] = Field(
        default=None,
        description="Pool contract address the price was derived from"
    )

    liquidity: Optional[str] = Field(
        default=None,
        description="Raw pool liquidity"
    )

    @field_validator('exchange')
    @classmethod
    def validate_exchange(cls, v: str) -> str:
        """Ensure exchange is lowercase"""
        return v.lower()

    @field_validator('symbol')
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        """Ensure symbol is uppercase"""
        return v.upper()


# ============================================
# Adapter Outcome Schemas
# ============================================

class QuoteSuccess(BaseModel):
    """An adapter produced a price."""

    model_config = ConfigDict(frozen=True)

    status: Literal["success"] = "success"
    exchange: str
    quote: PriceQuote

    @property
    def success(self) -> bool:
        return True

    @property
    def price(self) -> Decimal:
        return self.quote.price


class QuoteFailure(BaseModel):
    """An adapter could not produce a price; reason is human readable."""

    model_config = ConfigDict(frozen=True)

    status: Literal["failure"] = "failure"
    exchange: str
    reason: str

    @property
    def success(self) -> bool:
        return False


AdapterOutcome = Annotated[Union[QuoteSuccess, QuoteFailure], Field(discriminator="status")]


# ============================================
# Aggregate Result Schema
# ============================================

class AggregateResult(BaseModel):
    """
    Outcome of querying every configured exchange for one symbol.

    Invariants (enforced by a model validator):
        - successful_exchanges == number of QuoteSuccess outcomes
        - total_exchanges == len(outcomes)
        - average/best/worst present iff successful_exchanges > 0
        - best_price <= average_price <= worst_price

    Build instances with AggregateResult.from_outcomes(); it computes the
    statistics from the outcomes so the invariants hold by construction.

    Example:
        >>> result = AggregateResult.from_outcomes("btc", outcomes)
        >>> result.symbol
        'BTC'
        >>> result.best_price <= result.average_price <= result.worst_price
        True
    """

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., description="Requested symbol, upper-case")
    outcomes: List[AdapterOutcome] = Field(
        default_factory=list,
        description="One outcome per configured exchange, in configuration order"
    )
    average_price: Optional[Decimal] = Field(default=None, description="Mean of successful prices")
    best_price: Optional[Decimal] = Field(default=None, description="Lowest successful price (best for a buyer)")
    worst_price: Optional[Decimal] = Field(default=None, description="Highest successful price")
    total_exchanges: int = Field(..., ge=0)
    successful_exchanges: int = Field(..., ge=0)

    @field_validator('symbol')
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        """Ensure symbol is uppercase"""
        return v.strip().upper()

    @model_validator(mode="after")
    def check_invariants(self) -> "AggregateResult":
        successes = sum(1 for o in self.outcomes if o.success)
        if self.successful_exchanges != successes:
            raise ValueError(
                f"successful_exchanges={self.successful_exchanges} but {successes} outcomes succeeded"
            )
        if self.total_exchanges != len(self.outcomes):
            raise ValueError(
                f"total_exchanges={self.total_exchanges} but there are {len(self.outcomes)} outcomes"
            )
        stats = (self.average_price, self.best_price, self.worst_price)
        if successes > 0:
            if any(s is None for s in stats):
                raise ValueError("price statistics are required when at least one exchange succeeded")
            if not (self.best_price <= self.average_price <= self.worst_price):
                raise ValueError("expected best_price <= average_price <= worst_price")
        elif any(s is not None for s in stats):
            raise ValueError("price statistics must be empty when no exchange succeeded")
        return self

    @classmethod
    def from_outcomes(cls, symbol: str, outcomes: Sequence[Union[QuoteSuccess, QuoteFailure]]) -> "AggregateResult":
        """
        Compute summary statistics over the successful outcomes.

        No outlier filtering happens here; the statistics are informational.
        """
        outcomes = list(outcomes)
        prices = [o.quote.price for o in outcomes if o.success]

        average = best = worst = None
        if prices:
            best = min(prices)
            worst = max(prices)
            average = sum(prices, Decimal(0)) / len(prices)
            # Decimal rounding can push the mean a hair outside [min, max]
            average = min(max(average, best), worst)

        return cls(
            symbol=symbol,
            outcomes=outcomes,
            average_price=average,
            best_price=best,
            worst_price=worst,
            total_exchanges=len(outcomes),
            successful_exchanges=len(prices),
        )

    @property
    def success_rate(self) -> float:
        """Percentage of exchanges that returned a price (0.0 when none configured)."""
        if self.total_exchanges == 0:
            return 0.0
        return self.successful_exchanges / self.total_exchanges * 100

    @property
    def price_spread(self) -> Optional[Decimal]:
        """worst_price - best_price, when available."""
        if self.best_price is None or self.worst_price is None:
            return None
        return self.worst_price - self.best_price


# ============================================
# Token Resolution Schemas
# ============================================

class TokenRecord(BaseModel):
    """
    A token's contract address on one chain, as reported by one source.

    decimals defaults to 18 when the source cannot supply it; that is an
    approximation, not a verified value.
    """

    model_config = ConfigDict(frozen=True)

    address: str = Field(..., description="Chain-specific contract address / mint")
    chain_id: int
    symbol: str
    name: str = ""
    decimals: int = Field(default=18, ge=0)
    source_name: str = Field(..., description="Which lookup source produced this record")
    verified: bool = False

    @field_validator('symbol')
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        """Ensure symbol is uppercase"""
        return v.upper()


class ResolutionResult(BaseModel):
    """
    Result of TokenResolver.resolve(): a record, or NotFound with an error text.

    sources lists every source that answered, in priority order, whether or not
    its answer won the vote.
    """

    model_config = ConfigDict(frozen=True)

    record: Optional[TokenRecord] = None
    sources: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.record is not None


# ============================================
# Chain / Pool Schemas
# ============================================

class ChainProfile(BaseModel):
    """
    Static configuration for one chain.

    Attributes:
        chain_id: Numeric chain identifier (EVM chain id; 101 for Solana mainnet)
        name: Short name (e.g., "ethereum")
        rpc_url: Default public JSON-RPC endpoint
        uniswap_v3_factory: Uniswap V3 factory address, if deployed
        stable_reference: Stable token used as the USD reference (USDC)
        stable_decimals: Decimals of stable_reference
        is_evm: False for non-EVM chains (Solana)
    """

    model_config = ConfigDict(frozen=True)

    chain_id: int
    name: str
    rpc_url: str
    uniswap_v3_factory: Optional[str] = None
    stable_reference: str
    stable_decimals: int = Field(default=6, ge=0)
    is_evm: bool = True


class PoolState(BaseModel):
    """Snapshot of a concentrated-liquidity pool read from chain."""

    model_config = ConfigDict(frozen=True)

    address: str
    token0: str
    token1: str
    token0_decimals: int = Field(..., ge=0)
    token1_decimals: int = Field(..., ge=0)
    sqrt_price_x96: int = Field(..., ge=0)
    liquidity: int = Field(default=0, ge=0)
    fee: int = 0
