"""
FastAPI application layer for the Model Fit Lab generation pipeline.

This module exposes the generation gateway, the guarded image endpoint and
the full describer -> interpreter -> execution pipeline over HTTP.
"""
