"""
Global fixtures for all unit tests.

This conftest provides autouse fixtures that prevent real external service calls:
- Environment variable isolation (prevents credential leakage)
- FireCrawl disabled unless a test injects a client

These fixtures apply automatically to ALL tests in tests/unit/.
"""

import os
import pytest

# Set test environment BEFORE any imports so Config and the stopword set
# are built from known values
os.environ["ORGANIZATION_NAME"] = "Faith Christian Academy"
os.environ["EMAIL_DOMAIN"] = "school.example.org"
os.environ["SITE_URL"] = "https://school.example.org"
os.environ["FIRECRAWL_API_KEY"] = ""
os.environ["ENABLE_LLM_NAME_RESOLVER"] = "false"
os.environ["ENABLE_ROSTER_SUMMARY"] = "false"

from src.common.config import Config  # noqa: E402
from src.knowledge.store import KnowledgeStore  # noqa: E402


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """
    Isolate test environment from real credentials and configurations.

    This prevents:
    - Real API keys being used if tests accidentally call LLMs
    - Live FireCrawl searches
    - Calendar feeds configured on the developer machine
    """
    monkeypatch.setattr(Config, "OPENAI_API_KEY", "sk-test-mock-key")
    monkeypatch.setattr(Config, "FIRECRAWL_API_KEY", "")
    monkeypatch.setattr(Config, "EMAIL_DOMAIN", "school.example.org")
    monkeypatch.setattr(Config, "ORGANIZATION_NAME", "Faith Christian Academy")
    monkeypatch.setattr(Config, "SITE_URL", "https://school.example.org")
    monkeypatch.setattr(Config, "CALENDAR_FEED_URLS", [])
    yield


@pytest.fixture
def staff_text():
    """A small staff page in the layouts real school sites use."""
    return (
        "Faith Christian Academy Staff\n"
        "Jane Doe – Principal\n"
        "Robert Klein – Business Manager\n"
        "Theresa Monro – Guidance Counselor\n"
        "Mrs. Hobbs teaches third grade.\n"
    )


@pytest.fixture
def staff_store(staff_text):
    return KnowledgeStore.from_texts(staff_text)


@pytest.fixture
def empty_store():
    return KnowledgeStore()
