"""
Core Package

Contains the venue-agnostic core logic including:
- ExchangeAdapter: Abstract base class every price source implements
- ExchangeManager: Ordered registry of configured adapters and their lifecycle
- Schemas: Pydantic models for quotes, outcomes, aggregates and token records
- Chains: Read-only chain profiles and well-known token tables

Every adapter returns the same outcome type, so the aggregator never needs to
know which venue it is talking to.
"""
