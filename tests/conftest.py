import io
import itertools

import pytest
from PIL import Image

from fitlab.models.gateway import (
    GenerationResult, GenerationStatus, GenerationFailure, ImagePayload,
)
from fitlab.models.providers.base import GenerationKind

_ids = itertools.count(1)


def make_text_result(text: str) -> GenerationResult:
    return GenerationResult(
        request_id=f"req_test_{next(_ids)}",
        kind=GenerationKind.TEXT,
        status=GenerationStatus.SUCCESS,
        text=text,
    )


def make_image_result(data: bytes = b"\x89PNG-fake", media_type: str = "image/png") -> GenerationResult:
    return GenerationResult(
        request_id=f"req_test_{next(_ids)}",
        kind=GenerationKind.IMAGE,
        status=GenerationStatus.SUCCESS,
        image=ImagePayload(data=data, media_type=media_type),
    )


def make_failed_result(kind: GenerationKind, code: str = "unknown", message: str = "boom") -> GenerationResult:
    return GenerationResult(
        request_id=f"req_test_{next(_ids)}",
        kind=kind,
        status=GenerationStatus.FAILURE,
        error=GenerationFailure(code=code, message=message),
    )


class ScriptedGateway:
    """Gateway stand-in that replays queued results per step and records every call."""

    def __init__(self, **results_by_step):
        self.results = {step: list(results) for step, results in results_by_step.items()}
        self.calls = []

    def invoke(self, kind, prompt, system_instruction=None, step=None, task=None, run_id=None):
        kind = GenerationKind(kind)
        self.calls.append({
            "kind": kind, "prompt": prompt, "system_instruction": system_instruction,
            "step": step, "task": task, "run_id": run_id,
        })
        queued = self.results.get(step)
        if not queued:
            raise AssertionError(f"Unexpected gateway call for step {step!r}")
        result = queued.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result

    def calls_for(self, step):
        return [call for call in self.calls if call["step"] == step]


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color="white").save(buffer, format="PNG")
    return buffer.getvalue()
