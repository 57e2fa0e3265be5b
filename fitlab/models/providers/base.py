from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
import time
import uuid


class GenerationKind(str, Enum):
    TEXT = "text"
    IMAGE = "image"


#unified model errors
class ModelError(RuntimeError):
    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code or "unknown"

class ModelTimeout(ModelError): ...
class MalformedResponseError(ModelError):
    def __init__(self, message: str):
        super().__init__(message, code="malformed_response")


def error_code_from(exc: BaseException) -> str:
    """Normalize a provider-native exception into a short error code.

    Providers disagree on where the code lives; prefer a status field,
    then a code field, then fall back to "unknown".
    """
    for attr in ("status", "code", "status_code"):
        value = getattr(exc, attr, None)
        if value not in (None, ""):
            return str(value)
    return "unknown"


def new_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{uuid.uuid4().hex[:7]}"


@dataclass(frozen=True)
class GenerationRequest:
    kind: GenerationKind
    model: str
    prompt: str
    system_instruction: Optional[str] = None
    step: str = "text"
    params: Dict[str, Any] = field(default_factory=dict)
    run_id: Optional[str] = None #pipeline run that issued the call, if any
    request_id: str = field(default_factory=new_request_id)
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class ProviderOutput:
    text: Optional[str] = None
    image_data: Optional[bytes] = None
    media_type: Optional[str] = None
    raw: Any = field(default=None, repr=False) #provider-native response obj/dict
    meta: Dict[str, Any] = field(default_factory=dict) #model, usage, finish reason, etc.


class ModelProvider(ABC):
    @abstractmethod
    def generate_text(self, req: GenerationRequest) -> ProviderOutput:
        raise NotImplementedError

    @abstractmethod
    def generate_image(self, req: GenerationRequest) -> ProviderOutput:
        raise NotImplementedError

    @abstractmethod
    def health_check(self) -> bool:
        raise NotImplementedError

    @property
    def has_credentials(self) -> bool:
        return True
