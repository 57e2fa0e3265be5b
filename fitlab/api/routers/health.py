"""
Health check endpoints for monitoring and diagnostics.
"""

import time
from fastapi import APIRouter, Depends

from ..models.common import HealthStatus
from ..dependencies.services import get_model_manager
from fitlab.models.manager import ModelManager
from fitlab.models.providers.base import GenerationKind

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()

@router.get("/", response_model=HealthStatus)
def health_check(model_manager: ModelManager = Depends(get_model_manager)):
    """
    Basic health check endpoint.

    Reports credential availability and the resolved text/image models.
    Does not call the model provider.
    """
    uptime = time.time() - _server_start_time

    dependencies = {}
    try:
        missing = model_manager.missing_credentials()
        dependencies["credentials"] = f"missing for: {', '.join(missing)}" if missing else "configured"
    except Exception as e:
        dependencies["credentials"] = f"error: {e}"

    for kind in GenerationKind:
        task = model_manager.task_for(None, kind)
        dependencies[f"{kind.value}_model"] = f"{task.provider}/{task.model}"

    return HealthStatus(
        status="healthy",
        version="1.0.0",
        uptime=uptime,
        dependencies=dependencies,
        stats=model_manager.get_stats(),
    )

@router.get("/ready")
def readiness_check(model_manager: ModelManager = Depends(get_model_manager)):
    """
    Readiness check for container deployments.

    The server starts without credentials, but it cannot serve generation
    requests until they are present.
    """
    missing = model_manager.missing_credentials()
    if missing:
        return {"ready": False, "reason": f"No API credential for: {', '.join(missing)}"}

    return {"ready": True, "message": "Service ready to handle requests"}
