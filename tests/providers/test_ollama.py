import httpx
import pytest
from types import SimpleNamespace
from unittest.mock import patch

from fitlab.models.providers.base import (
    GenerationKind, GenerationRequest, ModelError, ModelTimeout, MalformedResponseError,
)
from fitlab.models.providers.ollama import OllamaProvider


@pytest.fixture
def mock_client():
    with patch("fitlab.models.providers.ollama.Client") as mock_client_class:
        yield mock_client_class.return_value


@pytest.fixture
def provider(mock_client):
    return OllamaProvider(host="http://localhost:11434", request_timeout_s=30)


def text_request(**overrides):
    fields = dict(kind=GenerationKind.TEXT, model="llama3.1:8b", prompt="rewrite this", step="rewrite")
    fields.update(overrides)
    return GenerationRequest(**fields)


class TestOllamaProvider:
    def test_generate_text_dict_response(self, provider, mock_client):
        """
        Test: Text generation with a dict response
        How: Mock the client to return the legacy dict shape
        Ensures: Content is extracted and keep_alive/options are passed through
        """
        mock_client.chat.return_value = {"message": {"content": "Boxy wool coat"}, "model": "llama3.1:8b"}

        output = provider.generate_text(text_request(system_instruction="Rewrite.", params={"temperature": 0.0}))

        assert output.text == "Boxy wool coat"
        assert output.meta == {"provider": "ollama", "model": "llama3.1:8b"}
        kwargs = mock_client.chat.call_args.kwargs
        assert kwargs["messages"][0] == {"role": "system", "content": "Rewrite."}
        assert kwargs["options"] == {"temperature": 0.0}
        assert kwargs["keep_alive"] == "5m"

    def test_generate_text_object_response(self, provider, mock_client):
        mock_client.chat.return_value = SimpleNamespace(message=SimpleNamespace(content="Coat"), model="llama3.1:8b")

        assert provider.generate_text(text_request()).text == "Coat"

    def test_unexpected_response_structure(self, provider, mock_client):
        mock_client.chat.return_value = "not a response"

        with pytest.raises(MalformedResponseError):
            provider.generate_text(text_request())

    def test_timeout(self, provider, mock_client):
        mock_client.chat.side_effect = httpx.ReadTimeout("slow")

        with pytest.raises(ModelTimeout):
            provider.generate_text(text_request())

    def test_image_generation_unsupported(self, provider):
        with pytest.raises(ModelError) as exc_info:
            provider.generate_image(text_request(kind=GenerationKind.IMAGE))

        assert exc_info.value.code == "unsupported"
