"""
Stage prompt composition.

Each function combines a fixed, versioned template with the output of the
previous stage and returns the exact payload handed to the generation
gateway. Nothing here touches the network or holds per-run state, so the
same input always yields the same payload.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from fitlab.models.prompts import PromptManager

DESCRIBER_PROMPT = "garment/describe@v1"
INTERPRETER_PROMPT = "garment/interpret@v1"
EXECUTOR_PROMPT = "garment/execute@v1"
REWRITE_PROMPT = "guard/rewrite@v1"

SPECIFICATION_SECTIONS = (
    "Garment Type",
    "Silhouette Structure",
    "Construction Details",
    "Fabric Weight & Texture",
    "Fit Description",
    "Structural Stability Notes",
)

REALISM_DIRECTIVES = (
    "realistic tailoring construction",
    "logical seam alignment",
    "natural fabric gravity",
    "balanced human proportions",
    "no distorted garment structure",
    "no extra fabric",
    "no melting textile",
    "no warped symmetry",
)


@dataclass(frozen=True)
class StagePrompt:
    prompt: str
    system_instruction: Optional[str] = None


@lru_cache(maxsize=1)
def _prompts() -> PromptManager:
    return PromptManager()


def apply_describer_prefix(prompt: str) -> str:
    """Prepend the main-garment-only directive to raw describer input."""
    return _prompts().render(DESCRIBER_PROMPT, {"user_input": prompt}).user


def compose_describer(user_input: str) -> StagePrompt:
    rendered = _prompts().render(DESCRIBER_PROMPT, {"user_input": user_input})
    return StagePrompt(prompt=rendered.user, system_instruction=rendered.system)


def compose_interpreter(description: str) -> StagePrompt:
    rendered = _prompts().render(INTERPRETER_PROMPT, {
        "description": description,
        "sections": SPECIFICATION_SECTIONS,
    })
    return StagePrompt(prompt=rendered.user, system_instruction=rendered.system)


def compose_executor(specification: str) -> StagePrompt:
    rendered = _prompts().render(EXECUTOR_PROMPT, {
        "specification": specification,
        "directives": REALISM_DIRECTIVES,
    })
    return StagePrompt(prompt=rendered.user)


def compose_rewrite(prompt: str) -> StagePrompt:
    return StagePrompt(prompt=_prompts().render(REWRITE_PROMPT, {"prompt": prompt}).user)
