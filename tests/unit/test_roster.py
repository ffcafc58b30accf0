"""
Unit tests for roster summarization.
"""

import pytest
from unittest.mock import MagicMock
from tenacity import wait_none

from src.common.error_handling import CollaboratorError
from src.knowledge.roster import RosterSummarizer, clean_roster_lines, looks_like_roster


@pytest.fixture(autouse=True)
def no_retry_wait(monkeypatch):
    monkeypatch.setattr(RosterSummarizer._summarize.retry, "wait", wait_none())


class TestLooksLikeRoster:
    def test_filename_hint(self):
        assert looks_like_roster("Staff-Directory-2025.pdf", "anything")

    def test_role_density(self):
        text = "Our principal, our school nurse and the guidance counselor welcome you."
        assert looks_like_roster("welcome.txt", text)

    def test_ordinary_document(self):
        assert not looks_like_roster("lunch_menu.txt", "Monday: pizza. Tuesday: tacos.")


class TestCleanRosterLines:
    def test_keeps_well_formed_lines(self):
        raw = (
            "Staff Directory\n"
            "Jane Doe – Principal\n"
            "* Mark Lee — Athletic Director\n"
            "Robert Klein - Business Manager\n"
            "The Office – Main Line\n"
            "Hobbs – Third Grade\n"
        )
        assert clean_roster_lines(raw) == [
            "Jane Doe – Principal",
            "Mark Lee – Athletic Director",
            "Robert Klein – Business Manager",
        ]


class TestRosterSummarizer:
    """Tests for normalize() with a mocked completion client."""

    def test_non_roster_skips_model(self):
        client = MagicMock()
        result = RosterSummarizer(client=client).normalize("lunch_menu.txt", "Monday: pizza.")

        assert result is None
        client.complete.assert_not_called()

    def test_summary_lines(self):
        client = MagicMock()
        client.complete.return_value = "Jane Doe – Principal\nMark Lee – Coach"

        result = RosterSummarizer(client=client).normalize("staff.pdf", "PRINCIPAL Jane Doe COACH Mark Lee")

        assert result == "Jane Doe – Principal\nMark Lee – Coach"

    def test_unusable_output_returns_none_after_retries(self):
        client = MagicMock()
        client.complete.return_value = "Sorry, I can't help with that."

        result = RosterSummarizer(client=client).normalize("staff.pdf", "PRINCIPAL Jane Doe")

        assert result is None
        assert client.complete.call_count == 3

    def test_collaborator_error_retried(self):
        client = MagicMock()
        client.complete.side_effect = [CollaboratorError("completion", "timeout"), "Jane Doe – Principal"]

        result = RosterSummarizer(client=client).normalize("staff.pdf", "PRINCIPAL Jane Doe")

        assert result == "Jane Doe – Principal"
