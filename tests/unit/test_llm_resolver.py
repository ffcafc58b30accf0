"""
Unit tests for the model-assisted name resolver.

The completion client is mocked; tenacity waits are disabled so retry
tests run instantly.
"""

import json
import pytest
from unittest.mock import MagicMock
from tenacity import wait_none

from src.common.error_handling import CollaboratorError
from src.common.types import ConversationMessage, Resolution, ResolutionKind
from src.resolution.llm_resolver import MAX_ATTEMPTS, ExtractedName, LLMNameResolver


@pytest.fixture(autouse=True)
def no_retry_wait(monkeypatch):
    monkeypatch.setattr(LLMNameResolver._extract_with_retries.retry, "wait", wait_none())


@pytest.fixture
def fallback():
    mock = MagicMock()
    mock.resolve.return_value = Resolution.unresolved()
    return mock


def _client(*replies):
    client = MagicMock()
    client.complete.side_effect = list(replies)
    return client


def _json(first, last, role=None):
    return json.dumps({"first_name": first, "last_name": last, "matched_role": role})


class TestExtractedName:
    def test_null_strings_become_none(self):
        extracted = ExtractedName.model_validate({"first_name": "null", "last_name": " ", "matched_role": "N/A"})
        assert extracted.is_empty
        assert extracted.matched_role is None


class TestLLMNameResolver:
    """Tests for validation, retries and fallback."""

    def test_valid_extraction(self, staff_store, fallback):
        client = _client(_json("Jane", "Doe", "Principal"))
        resolver = LLMNameResolver(staff_store, fallback, client=client)

        result = resolver.resolve("What is the principal's email?")

        assert result.kind == ResolutionKind.MATCHED
        assert result.person.display_name == "Jane Doe"
        assert result.person.matched_role == "principal"
        assert result.strategy == "llm_extraction"
        fallback.resolve.assert_not_called()

    def test_fenced_json_accepted(self, staff_store, fallback):
        client = _client("```json\n" + _json("Robert", "Klein") + "\n```")
        result = LLMNameResolver(staff_store, fallback, client=client).resolve("business manager email")

        assert result.person.display_name == "Robert Klein"

    def test_name_from_conversation_is_grounded(self, empty_store, fallback):
        client = _client(_json("Theresa", "Monro"))
        history = [ConversationMessage(role="assistant", content="Theresa Monro is the counselor.")]

        result = LLMNameResolver(empty_store, fallback, client=client).resolve("what is her email", history)

        assert result.person.display_name == "Theresa Monro"

    def test_hallucinated_name_retried_then_fallback(self, staff_store, fallback):
        client = _client(*[_json("Zed", "Zulu")] * MAX_ATTEMPTS)
        resolver = LLMNameResolver(staff_store, fallback, client=client)

        result = resolver.resolve("What is the principal's email?")

        assert client.complete.call_count == MAX_ATTEMPTS
        fallback.resolve.assert_called_once_with("What is the principal's email?", ())
        assert result.kind == ResolutionKind.UNRESOLVED

    def test_stopword_name_rejected(self, staff_store, fallback):
        client = _client(*[_json("The", "Principal")] * MAX_ATTEMPTS)
        LLMNameResolver(staff_store, fallback, client=client).resolve("principal email")

        assert client.complete.call_count == MAX_ATTEMPTS
        fallback.resolve.assert_called_once()

    def test_recovers_after_collaborator_error(self, staff_store, fallback):
        client = _client(CollaboratorError("completion", "timeout"), _json("Jane", "Doe"))
        result = LLMNameResolver(staff_store, fallback, client=client).resolve("principal email")

        assert client.complete.call_count == 2
        assert result.person.display_name == "Jane Doe"

    def test_unparseable_output_retried(self, staff_store, fallback):
        client = _client("I think it's Jane.", "no idea", _json("Jane", "Doe"))
        result = LLMNameResolver(staff_store, fallback, client=client).resolve("principal email")

        assert client.complete.call_count == 3
        assert result.kind == ResolutionKind.MATCHED

    def test_no_name_goes_straight_to_fallback(self, staff_store, fallback):
        client = _client(_json(None, None))
        LLMNameResolver(staff_store, fallback, client=client).resolve("email for the office")

        assert client.complete.call_count == 1
        fallback.resolve.assert_called_once()


class TestValidate:
    def test_missing_last_name(self, staff_store, fallback):
        resolver = LLMNameResolver(staff_store, fallback, client=MagicMock())
        with pytest.raises(ValueError, match="last_name"):
            resolver.validate(ExtractedName(first_name="Jane"), staff_store.corpus_text(), [])

    def test_grounding_is_whole_word(self, fallback):
        from src.knowledge.store import KnowledgeStore

        store = KnowledgeStore.from_texts("Janet Doering – Nurse")
        resolver = LLMNameResolver(store, fallback, client=MagicMock())
        with pytest.raises(ValueError, match="does not appear"):
            resolver.validate(ExtractedName(first_name="Jane", last_name="Doe"), store.corpus_text(), [])
