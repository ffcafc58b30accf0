"""
Query Router

Decides per message whether it is a staff contact lookup or a general
question. Each message is classified on its own, so a conversation can
switch between routes from one turn to the next.
"""

import re

from src.common.types import QueryKind

# Keyword/intent cues for a contact lookup
CONTACT_INTENT_PATTERNS = (
    re.compile(r"\be-?mail", re.IGNORECASE),
    re.compile(r"\bcontact\s+(?:info|information|details)\b", re.IGNORECASE),
    re.compile(r"\bhow\s+(?:do|can|could|should)\s+i\s+(?:reach|contact|get\s+(?:a\s+)?hold\s+of)\b", re.IGNORECASE),
)


def classify(message: str) -> QueryKind:
    """
    Classify a single message.

    Args:
        message: The user's message text

    Returns:
        QueryKind.CONTACT_LOOKUP or QueryKind.GENERAL
    """
    text = message or ""
    if any(pattern.search(text) for pattern in CONTACT_INTENT_PATTERNS):
        return QueryKind.CONTACT_LOOKUP
    return QueryKind.GENERAL
