"""
FastAPI Application Package

This package contains the FastAPI application and the tool surface.
It serves as the entry point for the price checker, exposing REST endpoints
and tool calls over the aggregation services.
"""
