from dataclasses import dataclass
from typing import Callable, Optional

from fitlab.models.gateway import GenerationGateway, GenerationResult
from fitlab.models.providers.base import GenerationKind
from .guard import ContentGuard, ValidationOutcome


@dataclass(frozen=True)
class ExecutionOutcome:
    validation: ValidationOutcome
    result: Optional[GenerationResult] = None #None when the guard rejected the prompt or the run went stale
    abandoned: bool = False

    @property
    def ok(self) -> bool:
        return self.validation.passed and self.result is not None and self.result.ok

    @property
    def image_url(self) -> Optional[str]:
        return self.result.image_url if self.ok else None


class GuardedImageExecutor:
    """Run the content guard, then render the image only if the guard let the prompt through."""

    def __init__(self, gateway: GenerationGateway, guard: ContentGuard):
        self.gateway = gateway
        self.guard = guard

    def render(
        self,
        prompt: str,
        run_id: Optional[str] = None,
        is_current: Optional[Callable[[], bool]] = None,
    ) -> ExecutionOutcome:
        """Validate ``prompt`` and render it.

        ``is_current`` is checked after validation; once it reports the run as
        stale no image call is started.
        """
        validation = self.guard.validate(prompt, run_id=run_id)
        if not validation.passed:
            return ExecutionOutcome(validation=validation)
        if is_current is not None and not is_current():
            return ExecutionOutcome(validation=validation, abandoned=True)

        result = self.gateway.invoke(GenerationKind.IMAGE, validation.prompt, step="image", run_id=run_id)
        return ExecutionOutcome(validation=validation, result=result)
