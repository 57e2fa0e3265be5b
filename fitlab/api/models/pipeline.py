"""
API models for the full generation pipeline endpoint.
"""

from pydantic import BaseModel, Field
from typing import List, Optional

from .common import APIResponse


class PipelineRunRequest(BaseModel):
    """Free-form garment request that starts a new pipeline run."""
    user_input: str = Field(..., alias="input", description="Free-form garment description from the user")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {"input": "a long wool coat"}
        }

class PipelineFailureData(BaseModel):
    stage: str = Field(..., description="Stage that failed")
    reason: str = Field(..., description="Machine-readable failure reason")
    message: str = Field(..., description="Human-readable cause")
    error_code: Optional[str] = Field(None, description="Provider or validation error code")
    detail: Optional[str] = Field(None, description="Underlying error detail")
    policy_violation: bool = Field(..., description="True when the run was stopped by the content policy")

class PipelineRunData(BaseModel):
    run_id: str
    status: str = Field(..., description="pending, succeeded or failed")
    stage: str = Field(..., description="Stage the run ended in")
    stages: List[str] = Field(default_factory=list, description="Stages entered, in order")
    describer_output: Optional[str] = None
    interpreter_output: Optional[str] = None
    image_url: Optional[str] = Field(None, description="data:<mediaType>;base64,<payload> URI")
    validation: Optional[str] = Field(None, description="Guard verdict: clean or rewritten")
    failure: Optional[PipelineFailureData] = None
    processing_time: float = Field(..., description="Processing time in seconds")

    class Config:
        json_schema_extra = {
            "example": {
                "run_id": "5f0c1f3e8e1b4d7c9a6b2f1e0d3c4b5a",
                "status": "succeeded",
                "stage": "complete",
                "stages": ["describing", "interpreting", "executing", "complete"],
                "describer_output": "Long single-breasted coat in heavy wool...",
                "interpreter_output": "- Garment Type: Coat\n- Silhouette Structure: ...",
                "image_url": "data:image/png;base64,iVBORw0KGgo...",
                "validation": "clean",
                "failure": None,
                "processing_time": 14.2
            }
        }

class PipelineRunResponse(APIResponse):
    data: Optional[PipelineRunData] = None
