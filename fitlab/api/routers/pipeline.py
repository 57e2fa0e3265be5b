"""
Full pipeline endpoint: describer -> interpreter -> guarded execution in one request.
"""

import time
import logging
from fastapi import APIRouter, Depends, HTTPException

from ..models.pipeline import PipelineRunRequest, PipelineRunResponse, PipelineRunData, PipelineFailureData
from ..dependencies.services import get_orchestrator
from fitlab.pipeline.orchestrator import PipelineOrchestrator, EmptyInputError
from fitlab.pipeline.types import PipelineRun, RunStatus

logger = logging.getLogger(__name__)

router = APIRouter()


def _run_data(run: PipelineRun, processing_time: float) -> PipelineRunData:
    failure = None
    if run.failure is not None:
        failed = run.failure
        failure = PipelineFailureData(
            stage=failed.failed_stage.value,
            reason=failed.reason.value,
            message=failed.message,
            error_code=failed.error_code,
            detail=failed.detail,
            policy_violation=failed.policy_violation,
        )

    verdict = getattr(run.state, "verdict", None)
    return PipelineRunData(
        run_id=run.run_id,
        status=run.status.value,
        stage=run.stage.value,
        stages=[stage.value for stage in run.history],
        describer_output=run.describer_output,
        interpreter_output=run.interpreter_output,
        image_url=run.image_url,
        validation=verdict.value if verdict else None,
        failure=failure,
        processing_time=processing_time,
    )


@router.post("/run", response_model=PipelineRunResponse)
def run_pipeline(
    request: PipelineRunRequest,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator)
):
    """
    Run the three-stage pipeline on a free-form garment request.

    Returns every stage output on success, or the failing stage with a
    human-readable cause that tells a content policy violation apart from
    a generation failure.
    """
    start_time = time.time()
    try:
        run = orchestrator.submit(request.user_input)
    except EmptyInputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    processing_time = time.time() - start_time
    logger.info(f"Pipeline run {run.run_id} finished as {run.status.value} in {processing_time:.2f}s")

    if run.status is RunStatus.SUCCEEDED:
        message = "Pipeline completed successfully"
    elif run.failure is not None:
        message = run.failure.message
    else:
        message = "Pipeline run was superseded before it finished"

    return PipelineRunResponse(
        success=run.status is RunStatus.SUCCEEDED,
        message=message,
        data=_run_data(run, processing_time),
    )
