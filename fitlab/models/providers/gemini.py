from __future__ import annotations
from typing import Any, Dict, Optional
from os import getenv
import logging

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from .base import (
    ModelProvider, GenerationRequest, ProviderOutput,
    ModelError, ModelTimeout, MalformedResponseError, error_code_from,
)

logger = logging.getLogger(__name__)


class GeminiProvider(ModelProvider):
    def __init__(self, api_key: Optional[str] = None, api_key_env: str = "GEMINI_API_KEY", timeout_s: Optional[float] = None):
        self.api_key_env = api_key_env
        self.api_key = api_key or getenv(api_key_env)
        self.timeout_s = timeout_s
        self._client = None

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)

    @property
    def client(self):
        #genai.Client refuses to construct without a key, so build it on first use
        if self._client is None:
            if not self.api_key:
                raise ModelError(f"{self.api_key_env} is not set", code="missing_api_key")
            http_options = None
            if self.timeout_s:
                http_options = types.HttpOptions(timeout=int(self.timeout_s * 1000))
            self._client = genai.Client(api_key=self.api_key, http_options=http_options)
        return self._client

    def _generate(self, req: GenerationRequest, config: types.GenerateContentConfig):
        try:
            return self.client.models.generate_content(
                model=req.model,
                contents=req.prompt,
                config=config,
            )
        except ModelError:
            raise
        except genai_errors.APIError as e:
            raise ModelError(f"Gemini API error: {e}", code=error_code_from(e)) from e
        except httpx.TimeoutException as e:
            raise ModelTimeout(f"Gemini timeout: {e}", code="timeout") from e
        except Exception as e:
            raise ModelError(f"Gemini provider error: {e}", code=error_code_from(e)) from e

    def generate_text(self, req: GenerationRequest) -> ProviderOutput:
        config_kwargs: Dict[str, Any] = dict(req.params or {})
        if req.system_instruction:
            config_kwargs["system_instruction"] = req.system_instruction

        response = self._generate(req, types.GenerateContentConfig(**config_kwargs))
        return ProviderOutput(text=response.text or "", raw=response, meta=self._meta(req, response))

    def generate_image(self, req: GenerationRequest) -> ProviderOutput:
        config_kwargs: Dict[str, Any] = dict(req.params or {})
        config_kwargs.setdefault("response_modalities", ["IMAGE", "TEXT"])

        response = self._generate(req, types.GenerateContentConfig(**config_kwargs))

        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            raise MalformedResponseError("No image data in response")
        content = getattr(candidates[0], "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if inline is not None and inline.data:
                if not inline.mime_type:
                    raise MalformedResponseError("Image part has no declared media type")
                return ProviderOutput(
                    image_data=inline.data,
                    media_type=inline.mime_type,
                    raw=response,
                    meta=self._meta(req, response),
                )
        raise MalformedResponseError("No image data in response")

    def _meta(self, req: GenerationRequest, response: Any) -> Dict[str, Any]:
        meta: Dict[str, Any] = {"provider": "gemini", "model": getattr(response, "model_version", None) or req.model}
        usage = getattr(response, "usage_metadata", None)
        if usage is not None:
            meta["usage"] = {
                "prompt_tokens": getattr(usage, "prompt_token_count", None),
                "completion_tokens": getattr(usage, "candidates_token_count", None),
                "total_tokens": getattr(usage, "total_token_count", None),
            }
        return meta

    def health_check(self) -> bool:
        try:
            next(iter(self.client.models.list()), None)
            return True
        except Exception:
            return False
