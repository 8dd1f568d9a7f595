"""Configuration management for leadbot."""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _csv_env(name: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(item.strip().lower() for item in raw.split(",") if item.strip())


class Config:
    """Application configuration."""

    # OpenAI Configuration
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    # Generation calls must never block a turn indefinitely.
    LLM_TIMEOUT_SECONDS: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))

    # Conversation behaviour
    # "natural": generated open-ended questions steered by coverage.
    # "scripted": the business profile's question list, asked verbatim.
    CONVERSATION_MODE: str = os.getenv("CONVERSATION_MODE", "natural").lower()
    BUSINESS_PROFILE_PATH: str = os.getenv("BUSINESS_PROFILE_PATH", "business_profile.json")

    # Natural mode termination
    MAX_TRANSCRIPT_TURNS: int = int(os.getenv("MAX_TRANSCRIPT_TURNS", "16"))
    COVERAGE_THRESHOLD: int = int(os.getenv("COVERAGE_THRESHOLD", "3"))
    CLOSING_MARKERS: tuple[str, ...] = _csv_env("CLOSING_MARKERS", "thank,contact,wrap up")

    # Reply sanitization
    MAX_REPLY_CHARS: int = int(os.getenv("MAX_REPLY_CHARS", "300"))
    MIN_REPLY_BOUNDARY: int = int(os.getenv("MIN_REPLY_BOUNDARY", "200"))

    # Inbound message limits
    MAX_MESSAGE_CHARS: int = int(os.getenv("MAX_MESSAGE_CHARS", "1000"))

    # Generation parameters
    CONVERSATION_MAX_TOKENS: int = int(os.getenv("CONVERSATION_MAX_TOKENS", "300"))
    CONVERSATION_TEMPERATURE: float = float(os.getenv("CONVERSATION_TEMPERATURE", "0.7"))
    CLASSIFICATION_MAX_TOKENS: int = int(os.getenv("CLASSIFICATION_MAX_TOKENS", "500"))
    CLASSIFICATION_TEMPERATURE: float = float(os.getenv("CLASSIFICATION_TEMPERATURE", "0.1"))

    # Lead persistence: "csv", "database" or "none"
    LEAD_SINK: str = os.getenv("LEAD_SINK", "csv").lower()
    LEADS_CSV_PATH: str = os.getenv("LEADS_CSV_PATH", "leads.csv")
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./leads.db")

    # Application Settings
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Optional: log user/agent transcript lines.
    # Defaults to enabled in development (DEBUG=True) and disabled in production.
    # May include sensitive content.
    LOG_CONVERSATION_TRANSCRIPT: bool = os.getenv(
        "LOG_CONVERSATION_TRANSCRIPT",
        "True" if DEBUG else "False",
    ).lower() == "true"
    LOG_TRANSCRIPT_MAX_CHARS: int = int(os.getenv("LOG_TRANSCRIPT_MAX_CHARS", "500"))

    @classmethod
    def has_openai_key(cls) -> bool:
        """Check if OpenAI API key is configured."""
        return bool(cls.OPENAI_API_KEY)

    @classmethod
    def is_scripted(cls) -> bool:
        return cls.CONVERSATION_MODE == "scripted"


# Create a global config instance
config = Config()
