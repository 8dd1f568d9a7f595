import pytest

from leadbot.errors import GenerationServiceError
from leadbot.llm_client import GenerationResult
from leadbot.models import BusinessProfile


@pytest.fixture(autouse=True)
def _safe_test_config(monkeypatch):
    """Force deterministic, offline-safe config for tests.

    The repo loads .env on import; these overrides prevent real network calls
    (OpenAI) and stop tests from writing lead files into the working tree.
    """
    from leadbot.config import config, Config

    overrides = {
        # Dummy key so readiness checks pass; generation itself is always faked.
        "OPENAI_API_KEY": "test",
        "CONVERSATION_MODE": "natural",
        "BUSINESS_PROFILE_PATH": "does-not-exist.json",
        "LEAD_SINK": "none",
        "MAX_TRANSCRIPT_TURNS": 16,
        "COVERAGE_THRESHOLD": 3,
        "CLOSING_MARKERS": ("thank", "contact", "wrap up"),
        "MAX_REPLY_CHARS": 300,
        "MIN_REPLY_BOUNDARY": 200,
        "MAX_MESSAGE_CHARS": 1000,
        # Avoid transcript spam in test output.
        "LOG_CONVERSATION_TRANSCRIPT": False,
    }
    for name, value in overrides.items():
        monkeypatch.setattr(Config, name, value, raising=False)
        # Keep the instance in sync for any code that reads instance attributes directly.
        monkeypatch.setattr(config, name, value, raising=False)

    return config


class FakeGenerationService:
    """Offline stand-in for OpenAIGenerationService.

    Replies are consumed in order; the last one repeats once the list runs out.
    ``classification`` is returned for any classification prompt.
    """

    def __init__(self, replies=None, classification=None, error=None, classification_error=None):
        self.replies = list(replies or ["What area are you looking at?"])
        self.classification = classification or (
            '{"status": "warm", "confidence": 0.7, "reasoning": "Shared a location and budget.", '
            '"metadata": {"location": "Mumbai", "budget": "50 lakhs"}}'
        )
        self.error = error
        self.classification_error = classification_error
        self.prompts = []
        self.calls = 0

    def generate(self, prompt, max_output_tokens, temperature):
        self.prompts.append(prompt)
        self.calls += 1
        if prompt.startswith("Analyze the conversation transcript"):
            if self.classification_error:
                raise self.classification_error
            return GenerationResult(text=self.classification)
        if self.error:
            raise self.error
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        return GenerationResult(text=reply)

    @property
    def conversation_prompts(self):
        return [p for p in self.prompts if not p.startswith("Analyze the conversation transcript")]


@pytest.fixture
def fake_service():
    return FakeGenerationService()


@pytest.fixture
def failing_service():
    return FakeGenerationService(error=GenerationServiceError("boom", kind="server", status=503))


@pytest.fixture
def real_estate_profile():
    return BusinessProfile.model_validate({
        "companyName": "GrowEasy Real Estate",
        "industry": "Real Estate",
        "targetAudience": "Home buyers",
        "qualificationCriteria": {
            "budget": "Must have budget information",
            "timeline": "Must have timeline for purchase/sale",
            "location": "Must specify preferred location",
            "propertyType": "Must indicate property type interest",
        },
        "classification": {
            "hot": {"message": "Our consultant will call you within the hour."},
            "warm": {"message": "We'll send you matching listings soon."},
            "cold": {"message": "We'll keep you posted."},
            "invalid": {"message": "Feel free to reach out anytime."},
        },
    })


@pytest.fixture
def scripted_profile(real_estate_profile):
    return real_estate_profile.model_copy(update={
        "questions": BusinessProfile.model_validate({
            "questions": [
                {"id": "city", "text": "city?"},
                {"id": "budget", "text": "budget?"},
            ]
        }).questions,
    })
