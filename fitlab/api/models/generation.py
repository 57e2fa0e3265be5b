"""
API models for the raw generation endpoints (/api/text and /api/image).

Field names on the wire are camelCase to match the frontend.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional


class TextRequest(BaseModel):
    """Request for a single text generation."""
    prompt: str = Field(..., description="Prompt sent to the text model")
    system_instruction: Optional[str] = Field(None, alias="systemInstruction", description="Optional system instruction")
    step: Optional[str] = Field(None, description="Pipeline step label, used for logging and the describer prefix")

    @field_validator("prompt")
    @classmethod
    def prompt_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("prompt must not be empty")
        return value

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "prompt": "a long wool coat",
                "systemInstruction": "You are a \"Garment Structure Stabilizer\".",
                "step": "describer"
            }
        }

class TextResponse(BaseModel):
    text: str


class ImageRequest(BaseModel):
    """Request for rendering an execution-stage prompt."""
    prompt: str = Field(..., description="Composed execution prompt")

    @field_validator("prompt")
    @classmethod
    def prompt_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("prompt must not be empty")
        return value

    class Config:
        json_schema_extra = {
            "example": {
                "prompt": "Generate a high-quality fashion image based STRICTLY on these specifications. ..."
            }
        }

class ImageResponse(BaseModel):
    image_url: str = Field(..., alias="imageUrl", description="data:<mediaType>;base64,<payload> URI")

    class Config:
        populate_by_name = True
