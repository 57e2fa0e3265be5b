"""
Common API models used across different endpoints.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime, timezone

class ErrorResponse(BaseModel):
    """Error body returned by the generation endpoints."""
    error: str = Field(..., description="Human-readable error message")
    details: Optional[str] = Field(None, description="Underlying provider error, when there is one")

class APIResponse(BaseModel):
    """Base response wrapper for pipeline endpoints."""
    success: bool = Field(..., description="Whether the request was successful")
    message: Optional[str] = Field(None, description="Human-readable response message")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class HealthStatus(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    uptime: float = Field(..., description="Uptime in seconds")
    dependencies: Dict[str, str] = Field(..., description="Status of external dependencies")
    stats: Dict[str, Any] = Field(default_factory=dict, description="Per-task call statistics")
