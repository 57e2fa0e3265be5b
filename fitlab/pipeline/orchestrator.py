"""
Pipeline orchestrator: describer -> interpreter -> guarded execution.

Stages run strictly in order inside ``submit``. Each stage consumes only the
previous stage's text output. Any stage failure ends the run in a Failed
state with a stage-attributed reason; nothing here retries.

A run can be superseded while a provider call is in flight (``reset`` or a
newer ``submit``). Results that come back for a superseded run are dropped
and the stale traversal stops.
"""

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional

from fitlab.models.gateway import GenerationGateway, MALFORMED_RESPONSE
from fitlab.models.providers.base import GenerationKind
from .composer import compose_describer, compose_interpreter, compose_executor
from .execution import ExecutionOutcome, GuardedImageExecutor
from .guard import REWRITE_FAILED
from .types import (
    PipelineRun, RunState, Idle, Describing, Interpreting, Executing, Failed,
    FailureReason, Stage,
)

logger = logging.getLogger(__name__)

RunListener = Callable[[PipelineRun], None]

_STAGE_FAILURES = {
    Stage.DESCRIBING: (FailureReason.DESCRIBER_FAILED, "Failed to stabilize garment structure."),
    Stage.INTERPRETING: (FailureReason.INTERPRETER_FAILED, "Failed to interpret garment structure."),
    Stage.EXECUTING: (FailureReason.GENERATION_FAILED, "Failed to generate image."),
}


class EmptyInputError(ValueError):
    pass


class PipelineOrchestrator:
    def __init__(self, gateway: GenerationGateway, executor: GuardedImageExecutor):
        self.gateway = gateway
        self.executor = executor
        self._lock = threading.Lock()
        self._current: Optional[PipelineRun] = None
        self._listeners: List[RunListener] = []

    @property
    def current(self) -> Optional[PipelineRun]:
        return self._current

    @property
    def stage(self) -> Stage:
        run = self._current
        return run.stage if run else Stage.IDLE

    def subscribe(self, listener: RunListener) -> Callable[[], None]:
        """Register a callback invoked with the run after every transition."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
        return unsubscribe

    def reset(self):
        with self._lock:
            if self._current is not None:
                self._current.superseded = True
            self._current = None

    def submit(self, user_input: str) -> PipelineRun:
        if not user_input or not user_input.strip():
            raise EmptyInputError("Input must not be empty")

        run = PipelineRun(run_id=uuid.uuid4().hex, state=Idle())
        with self._lock:
            if self._current is not None:
                self._current.superseded = True
            self._current = run
        logger.info(f"Starting pipeline run {run.run_id}")
        if not self._advance(run, Idle().submit(user_input)):
            return run

        for step in (self._describe, self._interpret, self._execute):
            state = run.state
            try:
                next_state = step(run, state)
            except Exception as e:
                logger.exception(f"Run {run.run_id}: {state.stage.value} stage raised")
                reason, message = _STAGE_FAILURES[state.stage]
                next_state = state.fail(reason, message, "internal_error", str(e))

            if not self._advance(run, next_state):
                break
            if isinstance(next_state, Failed):
                logger.warning(f"Run {run.run_id} failed at {next_state.failed_stage.value}: {next_state.reason.value}")
                break

        return run

    def _is_current(self, run: PipelineRun) -> bool:
        with self._lock:
            return run is self._current

    def _describe(self, run: PipelineRun, state: Describing) -> RunState:
        composed = compose_describer(state.user_input)
        result = self.gateway.invoke(GenerationKind.TEXT, composed.prompt, composed.system_instruction, step="describer", run_id=run.run_id)
        if not result.ok:
            reason, message = _STAGE_FAILURES[state.stage]
            return state.fail(reason, message, result.error.code, result.error.message)
        return state.succeed(result.text)

    def _interpret(self, run: PipelineRun, state: Interpreting) -> RunState:
        composed = compose_interpreter(state.description)
        result = self.gateway.invoke(GenerationKind.TEXT, composed.prompt, composed.system_instruction, step="interpreter", run_id=run.run_id)
        if not result.ok:
            reason, message = _STAGE_FAILURES[state.stage]
            return state.fail(reason, message, result.error.code, result.error.message)
        return state.succeed(result.text)

    def _execute(self, run: PipelineRun, state: Executing) -> RunState:
        composed = compose_executor(state.specification)
        outcome = self.executor.render(composed.prompt, run_id=run.run_id, is_current=lambda: self._is_current(run))
        if outcome.abandoned:
            # dropped by _advance; the run is no longer current
            return state.fail(FailureReason.GENERATION_FAILED, "Run superseded before image generation.", "superseded")
        if outcome.ok:
            return state.succeed(outcome.image_url, outcome.validation.verdict)
        return self._execution_failure(state, outcome)

    def _execution_failure(self, state: Executing, outcome: ExecutionOutcome) -> Failed:
        validation = outcome.validation
        if not validation.passed:
            if validation.error_code == REWRITE_FAILED:
                return state.fail(FailureReason.REWRITE_FAILED, validation.message, validation.error_code)
            terms = ", ".join(validation.matched_terms)
            return state.fail(
                FailureReason.VALIDATION_REJECTED,
                "Content policy violation: the garment specification still references "
                "secondary garments or accessories after rewrite.",
                validation.error_code,
                f"Forbidden terms: {terms}" if terms else None,
            )

        error = outcome.result.error
        if error.code == MALFORMED_RESPONSE:
            return state.fail(FailureReason.MALFORMED_RESPONSE, "Image generation returned no image data.", error.code, error.message)
        reason, message = _STAGE_FAILURES[state.stage]
        return state.fail(reason, message, error.code, error.message)

    def _advance(self, run: PipelineRun, state: RunState) -> bool:
        with self._lock:
            if run is not self._current:
                logger.info(f"Discarding {state.stage.value} result for superseded run {run.run_id}")
                return False
            run.state = state
            run.history.append(state.stage)
            if state.stage in (Stage.COMPLETE, Stage.FAILED):
                run.finished_at = datetime.now(timezone.utc)
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(run)
            except Exception:
                logger.exception(f"Run listener failed on {state.stage.value}")
        return True
