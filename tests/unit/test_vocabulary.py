"""
Unit tests for stopwords and the role vocabulary.
"""

import pytest

from src.knowledge.store import KnowledgeStore
from src.resolution.vocabulary import (
    ROLE_VOCABULARY,
    STOPWORDS,
    RoleDescriptor,
    _validate_substitutions,
    build_stopwords,
    is_stopword,
    is_title_prefix,
    is_valid_name_token,
    match_role,
    resolve_substitute,
    tokenize,
)


class TestStopwords:
    """Tests for stopword membership and name-token validity."""

    def test_case_insensitive(self):
        assert is_stopword("The")
        assert is_stopword("EMAIL")
        assert is_stopword("principal")

    def test_organization_tokens_included(self):
        assert "faith" in STOPWORDS
        assert "academy" in STOPWORDS
        # Initials of the organization name
        assert "fca" in STOPWORDS

    def test_build_stopwords_adds_extras(self):
        words = build_stopwords(["Eagles"])
        assert "eagles" in words
        assert "eagles" not in STOPWORDS

    @pytest.mark.parametrize("token,valid", [
        ("Jane", True),
        ("O", False),
        ("", False),
        (None, False),
        ("the", False),
        ("O'Neil", False),
        ("Zoë", False),
        ("McDonald", True),
    ])
    def test_is_valid_name_token(self, token, valid):
        assert is_valid_name_token(token) is valid

    def test_title_prefix(self):
        assert is_title_prefix("Mrs.")
        assert is_title_prefix("DR")
        assert not is_title_prefix("Jane")

    def test_tokenize_drops_punctuation(self):
        assert tokenize("John Smith's e-mail?") == ["John", "Smith", "s", "e", "mail"]


class TestRoleVocabulary:
    """Tests for role ordering, matching and substitution."""

    def test_most_specific_first(self):
        phrases = [r.phrase for r in ROLE_VOCABULARY]
        assert phrases.index("director of athletics") < phrases.index("athletic director")
        assert phrases.index("assistant principal") < phrases.index("principal")
        assert phrases.index("athletic director") < phrases.index("director")

    def test_match_prefers_longer_phrase(self):
        role = match_role("who is the director of athletics?")
        assert role.phrase == "director of athletics"

    def test_match_plural_and_possessive(self):
        assert match_role("the counselors").phrase == "counselor"
        assert match_role("the principal's email").phrase == "principal"

    def test_no_role(self):
        assert match_role("when is spring break") is None

    def test_substitute_used_when_phrase_missing(self):
        store = KnowledgeStore.from_texts("Robert Klein – Business Manager")
        role = match_role("business administrator")
        assert resolve_substitute(role, store).phrase == "business manager"

    def test_literal_phrase_preferred(self):
        store = KnowledgeStore.from_texts(
            "Ann Bell – Business Administrator\nRobert Klein – Business Manager"
        )
        role = match_role("business administrator")
        assert resolve_substitute(role, store).phrase == "business administrator"

    def test_substitute_missing_too(self):
        store = KnowledgeStore.from_texts("Jane Doe – Principal")
        role = match_role("business administrator")
        assert resolve_substitute(role, store) is role

    def test_cycle_rejected(self):
        with pytest.raises(ValueError, match="cycle"):
            _validate_substitutions([RoleDescriptor("alpha", "beta"), RoleDescriptor("beta", "alpha")])

    def test_unknown_substitute_rejected(self):
        with pytest.raises(ValueError, match="unknown"):
            _validate_substitutions([RoleDescriptor("alpha", "gamma")])

    def test_shipped_vocabulary_is_acyclic(self):
        _validate_substitutions(ROLE_VOCABULARY)
