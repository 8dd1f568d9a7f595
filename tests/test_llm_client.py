"""
Tests for the OpenAI-backed generation service.
"""

import httpx
import openai
import pytest
from unittest.mock import MagicMock

from leadbot.errors import ErrorCode, GenerationServiceError
from leadbot.llm_client import OpenAIGenerationService, classify_openai_error

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _status_error(cls, status):
    return cls("error", response=httpx.Response(status, request=_REQUEST), body=None)


def _mock_client(content="Which city are you looking in?"):
    mock_response = MagicMock()
    mock_response.choices = [MagicMock()]
    mock_response.choices[0].message.content = content
    client = MagicMock()
    client.chat.completions.create.return_value = mock_response
    return client


def test_generate_returns_text():
    client = _mock_client("  Which city?  ")
    service = OpenAIGenerationService(client=client, model="gpt-4o-mini")

    result = service.generate("prompt", 300, 0.7)

    assert result.text == "Which city?"
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["max_tokens"] == 300
    assert kwargs["temperature"] == 0.7
    assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]


def test_empty_choices_is_service_error():
    client = _mock_client()
    client.chat.completions.create.return_value.choices = []
    with pytest.raises(GenerationServiceError) as exc:
        OpenAIGenerationService(client=client).generate("p", 10, 0.1)
    assert exc.value.code == ErrorCode.SERVICE_ERROR


def test_missing_key_is_auth_error(monkeypatch):
    from leadbot.config import Config, config
    monkeypatch.setattr(Config, "OPENAI_API_KEY", "")
    monkeypatch.setattr(config, "OPENAI_API_KEY", "")

    with pytest.raises(GenerationServiceError) as exc:
        OpenAIGenerationService().generate("p", 10, 0.1)
    assert exc.value.kind == "auth"
    assert exc.value.code == ErrorCode.AUTH_ERROR


@pytest.mark.parametrize("error,kind,code", [
    (openai.APITimeoutError(request=_REQUEST), "timeout", ErrorCode.TIMEOUT_ERROR),
    (_status_error(openai.AuthenticationError, 401), "auth", ErrorCode.AUTH_ERROR),
    (_status_error(openai.PermissionDeniedError, 403), "auth", ErrorCode.AUTH_ERROR),
    (_status_error(openai.RateLimitError, 429), "rate_limit", ErrorCode.RATE_LIMIT),
    (_status_error(openai.InternalServerError, 503), "server", ErrorCode.SERVICE_ERROR),
    (_status_error(openai.BadRequestError, 400), "unknown", ErrorCode.UNKNOWN_ERROR),
    (openai.APIConnectionError(request=_REQUEST), "server", ErrorCode.SERVICE_ERROR),
    (RuntimeError("weird"), "unknown", ErrorCode.UNKNOWN_ERROR),
])
def test_error_mapping(error, kind, code):
    mapped = classify_openai_error(error)
    assert mapped.kind == kind
    assert mapped.code == code


def test_client_errors_are_reraised_mapped():
    client = MagicMock()
    client.chat.completions.create.side_effect = _status_error(openai.RateLimitError, 429)

    with pytest.raises(GenerationServiceError) as exc:
        OpenAIGenerationService(client=client).generate("p", 10, 0.1)
    assert exc.value.kind == "rate_limit"
    assert exc.value.status == 429
    assert "try again" in exc.value.user_message
