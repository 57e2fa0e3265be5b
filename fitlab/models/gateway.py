"""
Generation gateway: the single seam between pipeline logic and model providers.

Every call builds one immutable GenerationRequest, makes exactly one provider
call through the ModelManager and returns a GenerationResult. Provider
exceptions never escape; they become failure results carrying a normalized
error code. The gateway does not retry.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union
import logging

from .manager import ModelManager, TaskConfig
from .providers.base import GenerationKind, GenerationRequest, ModelError, error_code_from
from fitlab.utils.image_converter import to_data_uri
from fitlab.utils.request_log import traced_generation

logger = logging.getLogger(__name__)

EMPTY_RESPONSE = "empty_response"
MALFORMED_RESPONSE = "malformed_response"


class GenerationStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class ImagePayload:
    data: bytes = field(repr=False)
    media_type: str

    @property
    def data_uri(self) -> str:
        return to_data_uri(self.data, self.media_type)


@dataclass(frozen=True)
class GenerationFailure:
    code: str
    message: str


@dataclass(frozen=True)
class GenerationResult:
    request_id: str
    kind: GenerationKind
    status: GenerationStatus
    elapsed_ms: int = 0
    text: Optional[str] = None
    image: Optional[ImagePayload] = None
    error: Optional[GenerationFailure] = None

    def __post_init__(self):
        populated = [name for name in ("text", "image", "error") if getattr(self, name) is not None]
        if len(populated) != 1:
            raise ValueError(f"GenerationResult needs exactly one of text/image/error, got {populated or 'none'}")
        if self.status is GenerationStatus.FAILURE and self.error is None:
            raise ValueError("Failed GenerationResult must carry an error")
        if self.status is GenerationStatus.SUCCESS:
            expected = "image" if self.kind is GenerationKind.IMAGE else "text"
            if populated[0] != expected:
                raise ValueError(f"Successful {self.kind.value} result must carry {expected}")

    @property
    def ok(self) -> bool:
        return self.status is GenerationStatus.SUCCESS

    @property
    def image_url(self) -> Optional[str]:
        return self.image.data_uri if self.image else None

    @classmethod
    def failed(cls, request: GenerationRequest, code: str, message: str) -> "GenerationResult":
        return cls(
            request_id=request.request_id,
            kind=request.kind,
            status=GenerationStatus.FAILURE,
            error=GenerationFailure(code=code, message=message),
        )


class GenerationGateway:
    def __init__(self, model_manager: ModelManager):
        self.model_manager = model_manager

    def invoke(
        self,
        kind: Union[GenerationKind, str],
        prompt: str,
        system_instruction: Optional[str] = None,
        step: Optional[str] = None,
        task: Optional[str] = None,
        run_id: Optional[str] = None,
    ) -> GenerationResult:
        """Make one provider call.

        ``step`` only labels the request for logging. ``task`` names the config
        task to route through; without it the kind's default task is used.
        """
        kind = GenerationKind(kind)
        if not prompt or not prompt.strip():
            raise ValueError("prompt must be a non-empty string")

        task_config = self.model_manager.task_for(task, kind)
        request = GenerationRequest(
            kind=kind,
            model=task_config.model,
            prompt=prompt,
            # system instructions only apply to text generation
            system_instruction=system_instruction if kind is GenerationKind.TEXT else None,
            step=step or kind.value,
            params=task_config.params,
            run_id=run_id,
        )
        return self._execute(request, task_config)

    @traced_generation
    def _execute(self, request: GenerationRequest, task: TaskConfig) -> GenerationResult:
        try:
            output = self.model_manager.generate(task, request)
        except ModelError as e:
            logger.warning(f"{request.step} generation failed ({e.code}): {e}")
            return GenerationResult.failed(request, e.code, str(e))
        except Exception as e:
            logger.exception(f"{request.step} generation raised unexpectedly")
            return GenerationResult.failed(request, error_code_from(e), str(e))

        if request.kind is GenerationKind.IMAGE:
            if not output.image_data or not output.media_type:
                return GenerationResult.failed(request, MALFORMED_RESPONSE, "No image data in response")
            return GenerationResult(
                request_id=request.request_id,
                kind=request.kind,
                status=GenerationStatus.SUCCESS,
                image=ImagePayload(data=output.image_data, media_type=output.media_type),
            )

        text = (output.text or "").strip()
        if not text:
            return GenerationResult.failed(request, EMPTY_RESPONSE, "Model returned no text")
        return GenerationResult(
            request_id=request.request_id,
            kind=request.kind,
            status=GenerationStatus.SUCCESS,
            text=text,
        )
