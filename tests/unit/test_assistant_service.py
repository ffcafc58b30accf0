"""
Unit tests for the assistant service (inbound surface).

Real resolver and escalation chain over an in-memory store; the completion
and search collaborators are mocked.
"""

import asyncio
import pytest
from unittest.mock import MagicMock

from src.common.config import Config
from src.common.error_handling import CollaboratorError
from src.resolution.name_resolver import HeuristicNameResolver
from src.routing.escalation import REFUSAL_TEMPLATE, SENTINEL, EscalationChain
from src.services.assistant_service import (
    EMPTY_HISTORY_MESSAGE,
    SERVICE_FAILURE_MESSAGE,
    AssistantService,
    build_knowledge_store,
)


@pytest.fixture
def completion():
    mock = MagicMock()
    mock.complete.return_value = "School starts at 8:00 AM."
    return mock


@pytest.fixture
def searcher():
    mock = MagicMock()
    mock.search.return_value = None
    return mock


@pytest.fixture
def service(staff_store, completion, searcher):
    chain = EscalationChain(staff_store, completion, searcher)
    return AssistantService(staff_store, HeuristicNameResolver(staff_store), chain)


def _user(content):
    return {"role": "user", "content": content}


class TestContactLookup:
    """Tests for the contact-lookup route."""

    def test_role_lookup(self, service, completion):
        result = service.process([_user("What is the principal's email?")])

        assert result.success
        assert result.route == "contact-lookup"
        assert result.strategy == "role_anchored"
        assert "jane.doe@school.example.org" in result.reply
        completion.complete.assert_not_called()

    def test_partial_match_returned_once_without_escalation(self, service, completion, searcher):
        result = service.process([_user("What is Mrs. Hobbs's email?")])

        assert "FirstName.hobbs@school.example.org" in result.reply
        assert result.stage is None
        completion.complete.assert_not_called()
        searcher.search.assert_not_called()

    def test_backref_uses_history(self, service):
        history = [
            _user("Who is the counselor?"),
            {"role": "assistant", "content": "Theresa Monro is our guidance counselor."},
            _user("What is her email?"),
        ]
        result = service.process(history)

        assert "theresa.monro@school.example.org" in result.reply
        assert result.strategy == "contextual_backref"

    def test_unresolved_asks_for_name(self, service):
        result = service.process([_user("What is the email address?")])

        assert result.success
        assert "first and last name" in result.reply


class TestGeneralQuestion:
    """Tests for the escalation route."""

    def test_grounded_answer(self, service):
        result = service.process([_user("What time does school start?")])

        assert result.route == "general"
        assert result.stage == "S0_grounded"
        assert result.reply == "School starts at 8:00 AM."

    def test_refusal(self, service, completion):
        completion.complete.return_value = SENTINEL
        result = service.process([_user("Is there a swim team?")])

        assert result.stage == "S2_refusal"
        assert result.reply == REFUSAL_TEMPLATE

    def test_completion_failure_is_polite(self, service, completion):
        completion.complete.side_effect = CollaboratorError("completion", "timed out")
        result = service.process([_user("What time does school start?")])

        assert not result.success
        assert result.reply == SERVICE_FAILURE_MESSAGE
        assert "timed out" in result.error

    def test_unexpected_error_is_polite(self, service, completion):
        completion.complete.side_effect = KeyError("boom")
        result = service.process([_user("What time does school start?")])

        assert not result.success
        assert result.reply == SERVICE_FAILURE_MESSAGE
        assert result.error.startswith("KeyError")


class TestHistoryValidation:
    @pytest.mark.parametrize("history", [
        [],
        None,
        [{"role": "assistant", "content": "Hello!"}],
        [_user("   ")],
    ])
    def test_nothing_to_answer(self, service, history):
        result = service.process(history)

        assert result.success
        assert result.reply == EMPTY_HISTORY_MESSAGE

    def test_unknown_role(self, service):
        result = service.process([{"role": "robot", "content": "hi"}])

        assert not result.success
        assert result.reply == EMPTY_HISTORY_MESSAGE


class TestHandleQuery:
    def test_returns_assistant_message(self, service):
        message = service.handle_query([_user("What time does school start?")])
        assert message == {"role": "assistant", "content": "School starts at 8:00 AM."}

    def test_async_variant(self, service):
        message = asyncio.run(service.handle_query_async([_user("What time does school start?")]))
        assert message["content"] == "School starts at 8:00 AM."

    def test_result_to_dict(self, service):
        data = service.process([_user("What time does school start?")]).to_dict()
        assert data["route"] == "general"
        assert data["stage"] == "S0_grounded"
        assert len(data["request_id"]) == 8


class TestFromConfig:
    def test_build_knowledge_store(self, tmp_path, monkeypatch):
        (tmp_path / "staff.txt").write_text("Jane Doe – Principal", encoding="utf-8")
        monkeypatch.setattr(Config, "KNOWLEDGE_BASE_PATH", str(tmp_path))

        store = build_knowledge_store(roster_summary=False)

        assert store.contains_phrase("Jane Doe")

    def test_llm_resolver_enabled(self, staff_store, monkeypatch):
        from src.resolution.llm_resolver import LLMNameResolver

        monkeypatch.setattr(Config, "ENABLE_LLM_NAME_RESOLVER", True)
        service = AssistantService.from_config(store=staff_store)

        assert isinstance(service.resolver, LLMNameResolver)
        assert isinstance(service.resolver.fallback, HeuristicNameResolver)

    def test_heuristic_resolver_by_default(self, staff_store, monkeypatch):
        monkeypatch.setattr(Config, "ENABLE_LLM_NAME_RESOLVER", False)
        service = AssistantService.from_config(store=staff_store)

        assert isinstance(service.resolver, HeuristicNameResolver)
