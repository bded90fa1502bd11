"""
Services Package

Aggregation-level services built on the exchange adapters:

- token_resolver: symbol -> contract address on a chain, with source voting
- price_aggregator: concurrent fan-out and summary statistics
- price_formatter: Markdown rendering of aggregate results
"""
