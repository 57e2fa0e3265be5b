"""
Service wiring for the API.

The model manager and gateway are created once at startup and shared; they
hold no per-run state. Guards, executors and orchestrators are cheap and are
built per request so concurrent runs never share mutable state.
"""

from fastapi import Depends

from fitlab.models.gateway import GenerationGateway
from fitlab.models.manager import ModelManager
from fitlab.pipeline.execution import GuardedImageExecutor
from fitlab.pipeline.guard import ContentGuard, ForbiddenTermPolicy
from fitlab.pipeline.orchestrator import PipelineOrchestrator


def get_model_manager() -> ModelManager:
    """FastAPI dependency to get the model manager from app state."""
    from ..main import app_state
    return app_state["model_manager"]

def get_gateway() -> GenerationGateway:
    """FastAPI dependency to get the shared generation gateway."""
    from ..main import app_state
    return app_state["gateway"]

def get_guard(
    gateway: GenerationGateway = Depends(get_gateway),
    model_manager: ModelManager = Depends(get_model_manager),
) -> ContentGuard:
    terms = model_manager.forbidden_terms
    policy = ForbiddenTermPolicy(terms) if terms else None
    return ContentGuard(gateway, policy)

def get_executor(
    gateway: GenerationGateway = Depends(get_gateway),
    guard: ContentGuard = Depends(get_guard),
) -> GuardedImageExecutor:
    return GuardedImageExecutor(gateway, guard)

def get_orchestrator(
    gateway: GenerationGateway = Depends(get_gateway),
    executor: GuardedImageExecutor = Depends(get_executor),
) -> PipelineOrchestrator:
    return PipelineOrchestrator(gateway, executor)
