"""
Test Suite

Contains unit tests for the price checker.

Structure:
- tests/unit/: Tests for individual components (config, schemas, HTTP client,
  adapters, resolver, aggregator, formatter, tool surface, HTTP API)

Every test stubs network access (adapter clients, token source lookups or a
local aiohttp test server), so the suite runs offline.

Uses pytest with pytest-asyncio for testing async functionality.
"""
