"""
Raw generation endpoints.

/api/text runs a single text generation (describer and interpreter calls from
the frontend). /api/image runs the content guard and, when the prompt passes,
the image model.
"""

import logging
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..models.common import ErrorResponse
from ..models.generation import TextRequest, TextResponse, ImageRequest, ImageResponse
from ..dependencies.services import get_gateway, get_executor
from fitlab.models.gateway import GenerationGateway
from fitlab.models.providers.base import GenerationKind
from fitlab.pipeline.composer import apply_describer_prefix
from fitlab.pipeline.execution import GuardedImageExecutor
from fitlab.pipeline.guard import REWRITE_FAILED

logger = logging.getLogger(__name__)

router = APIRouter()


def _error(status_code: int, error: str, details: str = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=error, details=details).model_dump(exclude_none=True))


@router.post("/text", response_model=TextResponse, responses={500: {"model": ErrorResponse}})
def generate_text(
    request: TextRequest,
    gateway: GenerationGateway = Depends(get_gateway)
):
    """
    Generate text for one pipeline step.

    When ``step`` is ``describer`` the prompt gets the main-garment-only
    prefix before it is sent to the model.
    """
    prompt = request.prompt
    if request.step == "describer":
        prompt = apply_describer_prefix(prompt)

    result = gateway.invoke(GenerationKind.TEXT, prompt, request.system_instruction, step=request.step or "text")
    if not result.ok:
        logger.error(f"Text API Error: {result.error.message}")
        return _error(500, "Failed to generate text", result.error.message)

    return TextResponse(text=result.text)


@router.post("/image", response_model=ImageResponse, responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}})
def generate_image(
    request: ImageRequest,
    executor: GuardedImageExecutor = Depends(get_executor)
):
    """
    Render an execution prompt as an image.

    This endpoint:
    1. Checks the prompt against the forbidden-content policy
    2. On a match, rewrites it once and checks again
    3. Renders the image only if the prompt is clean or was cleaned by the rewrite
    """
    outcome = executor.render(request.prompt)

    validation = outcome.validation
    if not validation.passed:
        if validation.error_code == REWRITE_FAILED:
            return _error(500, validation.message)
        return _error(400, validation.message)

    if not outcome.result.ok:
        logger.error(f"Image API Error: {outcome.result.error.message}")
        return _error(500, "Failed to generate image", outcome.result.error.message)

    return ImageResponse(image_url=outcome.image_url)
