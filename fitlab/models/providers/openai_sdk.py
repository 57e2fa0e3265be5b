from __future__ import annotations
from typing import Dict, Any, Optional, List
import base64
import binascii
from os import getenv

from openai import OpenAI
from openai import APIError, APITimeoutError

from .base import (
    ModelProvider, GenerationRequest, ProviderOutput,
    ModelError, ModelTimeout, MalformedResponseError, error_code_from,
)
from ...utils.image_converter import sniff_media_type


class OpenAIProvider(ModelProvider):
    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None, api_key_env: str = "OPENAI_API_KEY", default_headers: Optional[Dict[str, str]] = None, timeout: float = 60.0, **kwargs):
        self.api_key = api_key or getenv(api_key_env)
        self.client = OpenAI(
            base_url=base_url,
            # the SDK raises at construction without a key; defer the failure to the first call
            api_key=self.api_key or "missing",
            default_headers=default_headers or {},
            timeout=timeout,
            max_retries=0,
            **kwargs
        )
        self.base_url = base_url
        self.timeout = timeout

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)

    def _messages(self, req: GenerationRequest) -> List[Dict[str, Any]]:
        messages = []
        if req.system_instruction:
            messages.append({"role": "system", "content": req.system_instruction})
        messages.append({"role": "user", "content": req.prompt})
        return messages

    def _raise_from(self, e: Exception):
        if isinstance(e, APITimeoutError):
            raise ModelTimeout(f"OpenAI timeout: {e}", code="timeout") from e
        if isinstance(e, APIError):
            raise ModelError(f"OpenAI API error: {e}", code=error_code_from(e)) from e
        raise ModelError(f"OpenAI provider error: {e}", code=error_code_from(e)) from e

    def generate_text(self, req: GenerationRequest) -> ProviderOutput:
        try:
            response = self.client.chat.completions.create(
                model=req.model,
                messages=self._messages(req),
                **dict(req.params or {})
            )
        except Exception as e:
            self._raise_from(e)

        try:
            content = response.choices[0].message.content or ""
        except (IndexError, AttributeError) as e:
            raise MalformedResponseError(f"Invalid response structure from OpenAI API: {e}") from e

        meta = {
            "provider": "openai",
            "model": getattr(response, 'model', req.model),
            "base_url": self.base_url or "https://api.openai.com/v1",
        }
        if getattr(response, 'usage', None):
            meta["usage"] = response.usage.model_dump()
        if response.choices:
            meta["finish_reason"] = getattr(response.choices[0], 'finish_reason', None)

        return ProviderOutput(text=content, raw=response, meta=meta)

    def generate_image(self, req: GenerationRequest) -> ProviderOutput:
        try:
            response = self.client.images.generate(
                model=req.model,
                prompt=req.prompt,
                **dict(req.params or {})
            )
        except Exception as e:
            self._raise_from(e)

        data = getattr(response, "data", None) or []
        encoded = getattr(data[0], "b64_json", None) if data else None
        if not encoded:
            raise MalformedResponseError("No image data in response")
        try:
            image_bytes = base64.b64decode(encoded)
        except (binascii.Error, ValueError) as e:
            raise MalformedResponseError(f"Image payload is not valid base64: {e}") from e

        # the images API does not declare a media type, so read it from the bytes
        media_type = sniff_media_type(image_bytes)
        if media_type is None:
            raise MalformedResponseError("Image payload is not a recognised image format")

        return ProviderOutput(
            image_data=image_bytes,
            media_type=media_type,
            raw=response,
            meta={"provider": "openai", "model": req.model},
        )

    def health_check(self) -> bool:
        try:
            _ = self.client.models.list()
            return True
        except Exception:
            return False
