"""
Content validation and rewrite guard for execution-stage prompts.

Validation model:
    - The forbidden-content policy is an enumerated, case-insensitive term set.
      Terms match as whole words, optionally followed by a plural "s"/"es".
    - A prompt with no match passes through unchanged.
    - A prompt with a match gets exactly one rewrite through the gateway and
      is checked again. A second match, or a failed rewrite call, rejects the
      prompt. There is no further attempt.

A rejected outcome must never reach the image gateway.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple
import logging
import re
import time

from fitlab.models.gateway import GenerationGateway
from fitlab.models.providers.base import GenerationKind
from fitlab.utils.request_log import emit_generation_log
from .composer import compose_rewrite

logger = logging.getLogger(__name__)

VALIDATION_FAILED = "validation_failed"
REWRITE_FAILED = "rewrite_failed"

DEFAULT_FORBIDDEN_TERMS = (
    # secondary garments
    "pants", "trousers", "skirt", "miniskirt", "overskirt", "skirted", "leggings", "legwear", "denim",
    # jewelry
    "jewelry", "jewellery", "necklace", "ring", "earring", "bracelet", "watch", "wristwatch",
    # bags and eyewear
    "bag", "handbag", "purse", "sunglasses", "eyeglasses", "eyewear",
)


class ForbiddenTermPolicy:
    def __init__(self, terms: Iterable[str] = DEFAULT_FORBIDDEN_TERMS):
        normalized = {term.strip().lower() for term in terms if term and term.strip()}
        if not normalized:
            raise ValueError("ForbiddenTermPolicy needs at least one term")
        self.terms = frozenset(normalized)

        # longest first so "earring" wins over "ring"
        alternation = "|".join(re.escape(term) for term in sorted(normalized, key=len, reverse=True))
        self._pattern = re.compile(rf"\b({alternation})(?:s|es)?\b", re.IGNORECASE)

    def find(self, text: str) -> Tuple[str, ...]:
        """Matched terms in order of first appearance, without duplicates."""
        seen = []
        for match in self._pattern.finditer(text or ""):
            term = match.group(1).lower()
            if term not in seen:
                seen.append(term)
        return tuple(seen)

    def violates(self, text: str) -> bool:
        return self._pattern.search(text or "") is not None


class Verdict(str, Enum):
    CLEAN = "clean"
    REWRITTEN = "rewritten"
    REJECTED = "rejected"


@dataclass(frozen=True)
class ValidationOutcome:
    verdict: Verdict
    prompt: str
    matched_terms: Tuple[str, ...] = ()
    rewrite_attempted: bool = False
    error_code: Optional[str] = None
    message: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.verdict is not Verdict.REJECTED


class ContentGuard:
    def __init__(self, gateway: GenerationGateway, policy: Optional[ForbiddenTermPolicy] = None):
        self.gateway = gateway
        self.policy = policy or ForbiddenTermPolicy()

    def validate(self, prompt: str, run_id: Optional[str] = None) -> ValidationOutcome:
        start_time = time.perf_counter()
        matched = self.policy.find(prompt)
        if not matched:
            return ValidationOutcome(verdict=Verdict.CLEAN, prompt=prompt)

        logger.info(f"[Validation] Forbidden terms {list(matched)} detected in image prompt. Triggering rewrite.")
        rewrite = compose_rewrite(prompt)
        result = self.gateway.invoke(GenerationKind.TEXT, rewrite.prompt, step="rewrite", task="rewrite", run_id=run_id)

        if not result.ok:
            logger.error(f"[Validation] Rewrite failed: {result.error.message}")
            return ValidationOutcome(
                verdict=Verdict.REJECTED,
                prompt=prompt,
                matched_terms=matched,
                rewrite_attempted=True,
                error_code=REWRITE_FAILED,
                message="Validation rewrite failed.",
            )

        remaining = self.policy.find(result.text)
        if remaining:
            emit_generation_log(
                request_id=result.request_id,
                step="image_validation",
                model="validation_check",
                latency_ms=int(round((time.perf_counter() - start_time) * 1000)),
                status="failure",
                error_code=VALIDATION_FAILED,
                run_id=run_id,
            )
            return ValidationOutcome(
                verdict=Verdict.REJECTED,
                prompt=result.text,
                matched_terms=remaining,
                rewrite_attempted=True,
                error_code=VALIDATION_FAILED,
                message=(
                    "Validation Failed: Input contains forbidden items "
                    "(secondary garments or accessories) even after rewrite."
                ),
            )

        logger.info("[Validation] Prompt rewritten.")
        return ValidationOutcome(
            verdict=Verdict.REWRITTEN,
            prompt=result.text,
            matched_terms=matched,
            rewrite_attempted=True,
        )
