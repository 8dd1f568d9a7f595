"""
Text-generation service backed by the OpenAI chat completions API.

The engine only depends on the small ``GenerationService`` protocol; this
module adapts the OpenAI client to it and folds every client failure into a
``GenerationServiceError`` with a kind the engine can act on.
"""

from dataclasses import dataclass
from typing import Optional, Protocol

import openai
from openai import OpenAI

from leadbot.config import config
from leadbot.errors import GenerationServiceError
from leadbot.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class GenerationResult:
    text: str


class GenerationService(Protocol):
    def generate(self, prompt: str, max_output_tokens: int, temperature: float) -> GenerationResult:
        ...


def classify_openai_error(error: Exception) -> GenerationServiceError:
    """Map an OpenAI client exception onto the engine's error kinds."""
    if isinstance(error, openai.APITimeoutError):
        return GenerationServiceError(str(error) or "Generation timed out", kind="timeout")
    if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return GenerationServiceError(str(error), kind="auth", status=error.status_code)
    if isinstance(error, openai.RateLimitError):
        return GenerationServiceError(str(error), kind="rate_limit", status=error.status_code)
    if isinstance(error, openai.APIStatusError):
        kind = "server" if error.status_code >= 500 else "unknown"
        return GenerationServiceError(str(error), kind=kind, status=error.status_code)
    if isinstance(error, openai.APIConnectionError):
        return GenerationServiceError(str(error), kind="server")
    return GenerationServiceError(str(error), kind="unknown")


class OpenAIGenerationService:
    """Single-prompt generation over OpenAI chat completions.

    Retries are disabled on the client: a failed call surfaces immediately and
    the caller decides what to do. Every call is bounded by ``timeout``.
    """

    def __init__(
        self,
        client: Optional[OpenAI] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.model = model or config.OPENAI_MODEL
        self.timeout = timeout if timeout is not None else config.LLM_TIMEOUT_SECONDS
        self._client = client

    def _get_client(self) -> OpenAI:
        """Lazy initialization of OpenAI client."""
        if self._client is None:
            if not config.has_openai_key():
                raise GenerationServiceError("OpenAI is not configured", kind="auth")
            self._client = OpenAI(
                api_key=config.OPENAI_API_KEY,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def generate(self, prompt: str, max_output_tokens: int, temperature: float) -> GenerationResult:
        client = self._get_client()
        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                max_tokens=max_output_tokens,
            )
        except Exception as e:
            error = classify_openai_error(e)
            logger.warning(
                "generation_failed",
                kind=error.kind,
                status=error.status,
                error=str(e),
            )
            raise error from e

        if not response or not response.choices:
            raise GenerationServiceError("Invalid response from generation service", kind="server")

        text = (response.choices[0].message.content or "").strip()
        logger.debug("generation_completed", model=self.model, chars=len(text))
        return GenerationResult(text=text)
