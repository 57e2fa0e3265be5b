"""
Pipeline run state.

A run's state is one of the variants below. Each variant only offers the
transitions that are legal from it, so a run cannot jump to executing
before it has an interpreter output.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, List, Optional, Union

from .guard import Verdict


class Stage(str, Enum):
    IDLE = "idle"
    DESCRIBING = "describing"
    INTERPRETING = "interpreting"
    EXECUTING = "executing"
    COMPLETE = "complete"
    FAILED = "failed"


class RunStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureReason(str, Enum):
    DESCRIBER_FAILED = "describer_failed"
    INTERPRETER_FAILED = "interpreter_failed"
    VALIDATION_REJECTED = "validation_rejected"
    REWRITE_FAILED = "rewrite_failed"
    GENERATION_FAILED = "generation_failed"
    MALFORMED_RESPONSE = "malformed_response"


@dataclass(frozen=True)
class Failed:
    stage: ClassVar[Stage] = Stage.FAILED
    user_input: str
    failed_stage: Stage
    reason: FailureReason
    message: str
    error_code: Optional[str] = None
    detail: Optional[str] = None
    description: Optional[str] = None
    specification: Optional[str] = None

    @property
    def policy_violation(self) -> bool:
        return self.reason is FailureReason.VALIDATION_REJECTED


@dataclass(frozen=True)
class Complete:
    stage: ClassVar[Stage] = Stage.COMPLETE
    user_input: str
    description: str
    specification: str
    image_url: str
    verdict: Verdict


@dataclass(frozen=True)
class Executing:
    stage: ClassVar[Stage] = Stage.EXECUTING
    user_input: str
    description: str
    specification: str

    def succeed(self, image_url: str, verdict: Verdict) -> Complete:
        return Complete(self.user_input, self.description, self.specification, image_url, verdict)

    def fail(self, reason: FailureReason, message: str, error_code: Optional[str] = None, detail: Optional[str] = None) -> Failed:
        return Failed(self.user_input, self.stage, reason, message, error_code, detail,
                      description=self.description, specification=self.specification)


@dataclass(frozen=True)
class Interpreting:
    stage: ClassVar[Stage] = Stage.INTERPRETING
    user_input: str
    description: str

    def succeed(self, specification: str) -> Executing:
        return Executing(self.user_input, self.description, specification)

    def fail(self, reason: FailureReason, message: str, error_code: Optional[str] = None, detail: Optional[str] = None) -> Failed:
        return Failed(self.user_input, self.stage, reason, message, error_code, detail, description=self.description)


@dataclass(frozen=True)
class Describing:
    stage: ClassVar[Stage] = Stage.DESCRIBING
    user_input: str

    def succeed(self, description: str) -> Interpreting:
        return Interpreting(self.user_input, description)

    def fail(self, reason: FailureReason, message: str, error_code: Optional[str] = None, detail: Optional[str] = None) -> Failed:
        return Failed(self.user_input, self.stage, reason, message, error_code, detail)


@dataclass(frozen=True)
class Idle:
    stage: ClassVar[Stage] = Stage.IDLE

    def submit(self, user_input: str) -> Describing:
        return Describing(user_input)


RunState = Union[Idle, Describing, Interpreting, Executing, Complete, Failed]


@dataclass
class PipelineRun:
    """One traversal of the three stages. Only the orchestrator assigns ``state``."""
    run_id: str
    state: RunState
    history: List[Stage] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
    superseded: bool = False

    @property
    def stage(self) -> Stage:
        return self.state.stage

    @property
    def user_input(self) -> Optional[str]:
        return getattr(self.state, "user_input", None)

    @property
    def status(self) -> RunStatus:
        if isinstance(self.state, Complete):
            return RunStatus.SUCCEEDED
        if isinstance(self.state, Failed):
            return RunStatus.FAILED
        return RunStatus.PENDING

    @property
    def describer_output(self) -> Optional[str]:
        return getattr(self.state, "description", None)

    @property
    def interpreter_output(self) -> Optional[str]:
        return getattr(self.state, "specification", None)

    @property
    def image_url(self) -> Optional[str]:
        return getattr(self.state, "image_url", None)

    @property
    def failure(self) -> Optional[Failed]:
        return self.state if isinstance(self.state, Failed) else None
