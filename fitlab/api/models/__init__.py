"""
Pydantic models for API request/response schemas.

These models define the JSON shapes exchanged with the frontend. They are
kept separate from the internal pipeline types to maintain clear API boundaries.
"""
