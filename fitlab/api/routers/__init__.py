"""
API route handlers for different endpoint groups.

Each router handles one area: raw generation, the full pipeline, and health.
"""
