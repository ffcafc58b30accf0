"""
Unit tests for the general-question escalation chain.

Completion and search collaborators are mocked; no network calls.
"""

import pytest
from unittest.mock import MagicMock

from src.common.error_handling import CollaboratorError
from src.common.types import ConversationMessage, EntryKind, KnowledgeEntry
from src.knowledge.store import KnowledgeCorpus, KnowledgeStore
from src.routing.escalation import (
    REFUSAL_TEMPLATE,
    SENTINEL,
    EscalationChain,
    Stage,
)


@pytest.fixture
def history():
    return [ConversationMessage(role="user", content="When is the spring concert?")]


@pytest.fixture
def store():
    return KnowledgeStore(KnowledgeCorpus([
        KnowledgeEntry("handbook.txt", "School starts at 8:00 AM.", EntryKind.DOCUMENT),
        KnowledgeEntry("calendar:feed", "2025-03-14 18:30 – Spring Concert (Main Gym)", EntryKind.CALENDAR_EVENT),
    ]))


class TestEscalationChain:
    """Tests for S0 -> S1 -> S2 ordering and failure handling."""

    def test_grounded_answer_ends_chain(self, store, history):
        completion = MagicMock()
        completion.complete.return_value = "The spring concert is on March 14 at 6:30 PM."
        searcher = MagicMock()

        result = EscalationChain(store, completion, searcher).run(history)

        assert result.stage == Stage.GROUNDED
        assert result.content == "The spring concert is on March 14 at 6:30 PM."
        searcher.search.assert_not_called()

    def test_sentinel_escalates_to_search(self, store, history):
        completion = MagicMock()
        completion.complete.return_value = SENTINEL
        searcher = MagicMock()
        searcher.search.return_value = "The concert starts at 6:30 PM.\n\n(Source: https://school.example.org/events)"

        result = EscalationChain(store, completion, searcher).run(history)

        assert result.stage == Stage.SEARCH
        assert "The concert starts at 6:30 PM." in result.content
        assert "Faith Christian Academy website" in result.content
        searcher.search.assert_called_once_with("When is the spring concert?")

    def test_sentinel_embedded_in_text_still_escalates(self, store, history):
        completion = MagicMock()
        completion.complete.return_value = f"I'm not sure. {SENTINEL}"
        searcher = MagicMock()
        searcher.search.return_value = None

        result = EscalationChain(store, completion, searcher).run(history)

        assert result.stage == Stage.REFUSAL
        assert SENTINEL not in result.content

    def test_search_failure_becomes_refusal(self, store, history):
        completion = MagicMock()
        completion.complete.return_value = SENTINEL
        searcher = MagicMock()
        searcher.search.side_effect = CollaboratorError("site_search", "timed out")

        result = EscalationChain(store, completion, searcher).run(history)

        assert result.stage == Stage.REFUSAL
        assert result.content == REFUSAL_TEMPLATE

    def test_unexpected_search_error_becomes_refusal(self, store, history):
        completion = MagicMock()
        completion.complete.return_value = SENTINEL
        searcher = MagicMock()
        searcher.search.side_effect = RuntimeError("boom")

        result = EscalationChain(store, completion, searcher).run(history)

        assert result.stage == Stage.REFUSAL
        assert result.content == REFUSAL_TEMPLATE

    def test_blank_snippet_becomes_refusal(self, store, history):
        completion = MagicMock()
        completion.complete.return_value = SENTINEL
        searcher = MagicMock()
        searcher.search.return_value = "   "

        result = EscalationChain(store, completion, searcher).run(history)

        assert result.stage == Stage.REFUSAL

    def test_no_searcher_refuses(self, store, history):
        completion = MagicMock()
        completion.complete.return_value = SENTINEL

        result = EscalationChain(store, completion, searcher=None).run(history)

        assert result.stage == Stage.REFUSAL

    def test_completion_failure_propagates(self, store, history):
        completion = MagicMock()
        completion.complete.side_effect = CollaboratorError("completion", "timed out")
        searcher = MagicMock()

        with pytest.raises(CollaboratorError):
            EscalationChain(store, completion, searcher).run(history)
        searcher.search.assert_not_called()

    def test_history_passed_to_completion(self, store):
        completion = MagicMock()
        completion.complete.return_value = "Yes."
        messages = [
            ConversationMessage(role="user", content="Is there school Friday?"),
            ConversationMessage(role="assistant", content="Yes."),
            ConversationMessage(role="user", content="What time?"),
        ]

        EscalationChain(store, completion).run(messages)

        _, passed_history = completion.complete.call_args[0]
        assert list(passed_history) == messages


class TestBuildContext:
    """Tests for the grounded-answer system prompt."""

    def test_contains_documents_calendar_and_sentinel(self, store):
        context = EscalationChain(store, MagicMock()).build_context()

        assert "School starts at 8:00 AM." in context
        assert "Spring Concert (Main Gym)" in context
        assert SENTINEL in context
        assert context.index("School starts") < context.index("Spring Concert")

    def test_empty_corpus(self):
        context = EscalationChain(KnowledgeStore(), MagicMock()).build_context()

        assert "(no documents loaded)" in context
        assert "(no upcoming events)" in context

    def test_context_budget(self):
        store = KnowledgeStore(KnowledgeCorpus([
            KnowledgeEntry("big.txt", "d" * 5000, EntryKind.DOCUMENT),
            KnowledgeEntry("calendar:feed", "c" * 5000, EntryKind.CALENDAR_EVENT),
        ]))
        context = EscalationChain(store, MagicMock(), max_context_chars=1000).build_context()

        assert "d" * 750 in context
        assert "d" * 751 not in context
        assert "c" * 250 in context
        assert "c" * 251 not in context
