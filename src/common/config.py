"""
Configuration loader for the school contact assistant.

Loads all settings from environment variables (.env file).
Validates required settings and provides type-safe access.
"""

import os
import re
from pathlib import Path
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

ORG_WORD_PATTERN = re.compile(r"[A-Za-z]+")


def _split_csv(value: str) -> List[str]:
    """Split a comma-separated env value into trimmed, non-empty items."""
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    """
    Centralized configuration for the assistant.

    All values loaded from environment variables - NO SECRETS IN CODE.
    """

    # ===== Organization =====
    ORGANIZATION_NAME: str = os.getenv("ORGANIZATION_NAME", "Faith Christian Academy")
    # Staff addresses are synthesized as first.last@EMAIL_DOMAIN
    EMAIL_DOMAIN: str = os.getenv("EMAIL_DOMAIN", "faithchristianacademy.net")

    # ===== Knowledge Sources =====
    KNOWLEDGE_BASE_PATH: str = os.getenv("KNOWLEDGE_BASE_PATH", "./knowledge")
    CALENDAR_FEED_URLS: List[str] = _split_csv(os.getenv("CALENDAR_FEED_URLS", ""))
    # Events that started more than this many days ago are dropped
    CALENDAR_LOOKBACK_DAYS: int = int(os.getenv("CALENDAR_LOOKBACK_DAYS", "1"))

    # ===== Live Website Search =====
    SITE_URL: str = os.getenv("SITE_URL", "https://www.faithchristianacademy.net")
    FIRECRAWL_API_KEY: str = os.getenv("FIRECRAWL_API_KEY", "")
    MAX_CRAWL_PAGES: int = int(os.getenv("MAX_CRAWL_PAGES", "15"))

    # ===== LLM APIs =====
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    DEFAULT_MODEL: str = os.getenv("DEFAULT_MODEL", "gpt-4o-mini")
    CHEAP_MODEL: str = os.getenv("CHEAP_MODEL", "gpt-4o-mini")
    ANALYTICAL_TEMPERATURE: float = float(os.getenv("ANALYTICAL_TEMPERATURE", "0.2"))
    # Corpus text is truncated to this many characters when sent to a model
    MAX_CONTEXT_CHARS: int = int(os.getenv("MAX_CONTEXT_CHARS", "60000"))

    # ===== Timeouts (seconds) =====
    COMPLETION_TIMEOUT_SECONDS: float = float(os.getenv("COMPLETION_TIMEOUT_SECONDS", "20"))
    SEARCH_TIMEOUT_SECONDS: float = float(os.getenv("SEARCH_TIMEOUT_SECONDS", "30"))
    CRAWL_PAGE_TIMEOUT_SECONDS: float = float(os.getenv("CRAWL_PAGE_TIMEOUT_SECONDS", "10"))

    # ===== Feature Flags =====
    # Normalize staff documents into "Name – Title" lines at startup (costs one LLM call per roster)
    ENABLE_ROSTER_SUMMARY: bool = os.getenv("ENABLE_ROSTER_SUMMARY", "false").lower() == "true"
    # Use the model-assisted name resolver ahead of the heuristic one
    ENABLE_LLM_NAME_RESOLVER: bool = os.getenv("ENABLE_LLM_NAME_RESOLVER", "false").lower() == "true"

    # ===== Logging =====
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "simple")

    @classmethod
    def validate(cls) -> None:
        """
        Validate that all required configuration is present.
        Raises ValueError if critical settings are missing.
        """
        required_settings = {
            "OPENAI_API_KEY": cls.OPENAI_API_KEY,
            "EMAIL_DOMAIN": cls.EMAIL_DOMAIN,
        }

        missing = [name for name, value in required_settings.items() if not value]

        if missing:
            raise ValueError(
                f"Missing required configuration: {', '.join(missing)}. "
                f"Please check your .env file."
            )

        if "@" in cls.EMAIL_DOMAIN:
            raise ValueError(
                f"EMAIL_DOMAIN must be a bare domain (got {cls.EMAIL_DOMAIN!r})"
            )

        if not Path(cls.KNOWLEDGE_BASE_PATH).exists():
            raise FileNotFoundError(
                f"Knowledge base directory not found: {cls.KNOWLEDGE_BASE_PATH}"
            )

    @classmethod
    def organization_tokens(cls) -> List[str]:
        """Lowercased words of the organization name, plus its initials."""
        words = [w.lower() for w in ORG_WORD_PATTERN.findall(cls.ORGANIZATION_NAME)]
        if len(words) > 1:
            words.append("".join(w[0] for w in words))
        return words

    @classmethod
    def get_search_backend(cls) -> str:
        """
        Get the live search backend.

        Returns:
            "firecrawl" when an API key is configured, otherwise "crawler"
        """
        return "firecrawl" if cls.FIRECRAWL_API_KEY else "crawler"

    @classmethod
    def get_llm_base_url(cls) -> Optional[str]:
        """LLM base URL (None to use OpenAI directly)."""
        return os.getenv("OPENAI_BASE_URL") or None

    @classmethod
    def summary(cls) -> str:
        """Return a summary of the current configuration (safe for logging)."""
        return f"""
Configuration Summary:
  Organization: {cls.ORGANIZATION_NAME} (@{cls.EMAIL_DOMAIN})
  Knowledge base: {cls.KNOWLEDGE_BASE_PATH}
  Calendar feeds: {len(cls.CALENDAR_FEED_URLS)} configured
  LLM: OpenAI {cls.DEFAULT_MODEL} {'✓' if cls.OPENAI_API_KEY else '✗ Missing'}
  Live search: {cls.get_search_backend()} ({cls.SITE_URL})
  Roster summary: {'Enabled' if cls.ENABLE_ROSTER_SUMMARY else 'Disabled'}
  LLM name resolver: {'Enabled' if cls.ENABLE_LLM_NAME_RESOLVER else 'Disabled'}
"""

