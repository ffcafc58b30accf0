"""
Unit tests for src/common/json_utils.py

Tests parsing of model responses that should contain a single JSON object.
"""

import pytest

from src.common.json_utils import parse_llm_json


class TestParseLlmJson:
    """Tests for parse_llm_json."""

    def test_plain_object(self):
        assert parse_llm_json('{"first_name": "Jane", "last_name": "Doe"}') == {
            "first_name": "Jane",
            "last_name": "Doe",
        }

    def test_markdown_fence(self):
        text = '```json\n{"first_name": "Jane"}\n```'
        assert parse_llm_json(text) == {"first_name": "Jane"}

    def test_surrounding_prose(self):
        text = 'Here is the answer: {"last_name": "Doe"} Hope that helps!'
        assert parse_llm_json(text) == {"last_name": "Doe"}

    def test_trailing_comma_repaired(self):
        assert parse_llm_json('{"first_name": "Jane",}') == {"first_name": "Jane"}

    def test_single_quotes_repaired(self):
        assert parse_llm_json("{'first_name': 'Jane'}") == {"first_name": "Jane"}

    def test_null_values_kept(self):
        assert parse_llm_json('{"first_name": null}') == {"first_name": None}

    def test_empty_raises(self):
        with pytest.raises(ValueError, match="Empty input"):
            parse_llm_json("   ")

    def test_no_object_raises(self):
        with pytest.raises(ValueError, match="No JSON object"):
            parse_llm_json("I don't know who that is.")

    def test_array_raises(self):
        with pytest.raises(ValueError):
            parse_llm_json("[1, 2, 3]")
