"""
JSON utilities for model response parsing.

Model replies that are supposed to be JSON often arrive wrapped in
markdown fences, embedded in prose, or slightly malformed (single quotes,
trailing commas). Uses json-repair as a fallback when json.loads() fails.
"""

import json
import re
from typing import Any, Dict

from json_repair import repair_json


def parse_llm_json(text: str) -> Dict[str, Any]:
    """
    Parse a JSON object from a model response.

    Args:
        text: Raw model response that should contain one JSON object

    Returns:
        Parsed dictionary

    Raises:
        ValueError: If no JSON object can be extracted or repaired

    Example:
        >>> parse_llm_json('```json\\n{"first_name": "Jane"}\\n```')
        {'first_name': 'Jane'}
    """
    if not text or not text.strip():
        raise ValueError("Empty input: no JSON content to parse")

    json_str = _extract_json_object(_strip_markdown_blocks(text.strip()))

    try:
        parsed = json.loads(json_str)
    except json.JSONDecodeError:
        parsed = repair_json(json_str, return_objects=True)

    # Single object wrapped in brackets: [{...}]
    if isinstance(parsed, list) and len(parsed) == 1:
        parsed = parsed[0]

    if not isinstance(parsed, dict):
        raise ValueError(
            f"Expected a JSON object, got {type(parsed).__name__}. "
            f"Original text (first 200 chars): {text[:200]}"
        )
    return parsed


def _strip_markdown_blocks(text: str) -> str:
    """Remove ```json / ``` fences around a response."""
    fenced = re.search(r"```(?:json)?\s*(.*?)```", text, re.DOTALL)
    if fenced:
        return fenced.group(1).strip()
    return text


def _extract_json_object(text: str) -> str:
    """
    Extract the outermost {...} span from text with surrounding prose.

    Raises:
        ValueError: If no JSON object pattern is found
    """
    text = text.strip()
    if text.startswith("{"):
        return text

    json_match = re.search(r"\{.*\}", text, re.DOTALL)
    if json_match:
        return json_match.group(0)

    raise ValueError(f"No JSON object found in text: {text[:200]}")
