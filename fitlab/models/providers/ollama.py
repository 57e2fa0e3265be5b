from __future__ import annotations
from typing import Any, Dict, List
import httpx
from ollama import Client, ResponseError
from .base import (
    ModelProvider, GenerationRequest, ProviderOutput,
    ModelError, ModelTimeout, MalformedResponseError, error_code_from,
)


class OllamaProvider(ModelProvider):
    """Local text provider. Ollama has no image generation endpoint."""

    def __init__(self, host: str = "http://localhost:11434", request_timeout_s: float = 300, keep_alive: str = "5m"):
        self.client = Client(host=host, timeout=request_timeout_s)
        self.keep_alive = keep_alive
        self.host = host
        self.request_timeout_s = request_timeout_s

    def _messages(self, req: GenerationRequest) -> List[Dict[str, Any]]:
        messages = []
        if req.system_instruction:
            messages.append({"role": "system", "content": req.system_instruction})
        messages.append({"role": "user", "content": req.prompt})
        return messages

    def generate_text(self, req: GenerationRequest) -> ProviderOutput:
        options = dict(req.params or {})
        keep_alive = options.pop('keep_alive', self.keep_alive)

        try:
            response = self.client.chat(
                model=req.model,
                messages=self._messages(req),
                options=options,
                keep_alive=keep_alive
            )
        except httpx.TimeoutException as e:
            raise ModelTimeout(f"Ollama timeout after {self.request_timeout_s}s: {e}", code="timeout") from e
        except ResponseError as e:
            raise ModelError(str(e), code=error_code_from(e)) from e
        except Exception as e:
            raise ModelError(f"Ollama request failed: {e}", code=error_code_from(e)) from e

        # The ollama client returns either a dict or a response object depending on version
        if isinstance(response, dict):
            message = response.get('message') or {}
            content = message.get('content', '') if isinstance(message, dict) else ''
            model_name = response.get('model', req.model)
        elif hasattr(response, 'message') and hasattr(response.message, 'content'):
            content = response.message.content or ''
            model_name = getattr(response, 'model', req.model)
        else:
            raise MalformedResponseError(f"Received unexpected response structure from Ollama: {response!r}")

        return ProviderOutput(text=content, raw=response, meta={"provider": "ollama", "model": model_name})

    def generate_image(self, req: GenerationRequest) -> ProviderOutput:
        raise ModelError("Ollama does not support image generation", code="unsupported")

    def health_check(self) -> bool:
        try:
            self.client.list()
            return True
        except Exception:
            return False
