"""
Roster summarization.

Staff directories arrive in every layout imaginable (tables flattened to
text, multi-column PDFs, "Title: Name" blocks). When enabled, documents
that look like staff lists get an extra corpus entry rewritten by the
completion model as one "First Last – Title" line per person, which the
role-anchored name lookup reads far more reliably than the raw layout.

The summary is additive: the raw document always stays in the corpus.
"""

import logging
import re
from typing import List, Optional

from tenacity import RetryError, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.common.completion import CompletionClient
from src.common.error_handling import CollaboratorError
from src.common.types import ConversationMessage
from src.resolution.vocabulary import ROLE_VOCABULARY, STOPWORDS, is_valid_name_token

logger = logging.getLogger(__name__)

ROSTER_FILENAME_HINTS = ("staff", "faculty", "directory", "roster", "contacts", "personnel", "administration")
MIN_ROLE_MENTIONS = 3
MAX_ROSTER_CHARS = 20000

ROSTER_PROMPT = """Rewrite the staff information below as a plain list.

Output one line per person, in exactly this form:
First Last – Title

Rules:
- Use only names and titles that appear in the text
- Skip anyone whose first AND last name are not both given
- No headings, bullets, numbering or commentary

=== TEXT ===
{text}
"""

# "First Last – Title" (en dash, em dash or hyphen separator)
ROSTER_LINE = re.compile(r"^\s*([A-Za-z][A-Za-z'.]*)\s+([A-Za-z][A-Za-z'\-]*)\s+[–—-]\s+(\S.*?)\s*$")


def looks_like_roster(source_id: str, text: str) -> bool:
    """Filename hint, or enough distinct role phrases in the text."""
    lowered_id = source_id.lower()
    if any(hint in lowered_id for hint in ROSTER_FILENAME_HINTS):
        return True
    lowered = text.lower()
    mentions = sum(1 for role in ROLE_VOCABULARY if role.pattern.search(lowered))
    return mentions >= MIN_ROLE_MENTIONS


def clean_roster_lines(raw: str) -> List[str]:
    """Keep only well-formed "First Last – Title" lines with valid name tokens."""
    lines = []
    for line in raw.splitlines():
        match = ROSTER_LINE.match(line.strip().lstrip("*•").strip())
        if not match:
            continue
        first, last, title = match.groups()
        if not (is_valid_name_token(first, STOPWORDS) and is_valid_name_token(last, STOPWORDS)):
            continue
        lines.append(f"{first} {last} – {title}")
    return lines


class RosterSummarizer:
    """RosterNormalizer backed by the completion model."""

    def __init__(self, client: Optional[CompletionClient] = None):
        self.client = client or CompletionClient(component="roster_summary", cheap=True)

    def normalize(self, source_id: str, raw_text: str) -> Optional[str]:
        """
        Returns:
            "Name – Title" lines joined by newlines, or None when the document
            is not a staff list or the model produced nothing usable
        """
        if not looks_like_roster(source_id, raw_text):
            return None

        try:
            lines = self._summarize(raw_text[:MAX_ROSTER_CHARS])
        except RetryError as e:
            logger.warning(f"Roster summary for {source_id} failed: {e.last_attempt.exception()}")
            return None

        logger.info(f"Roster summary for {source_id}: {len(lines)} staff lines")
        return "\n".join(lines)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception_type((CollaboratorError, ValueError)),
    )
    def _summarize(self, text: str) -> List[str]:
        raw = self.client.complete(
            "You convert staff directories into clean lists.",
            [ConversationMessage(role="user", content=ROSTER_PROMPT.format(text=text))],
        )
        lines = clean_roster_lines(raw)
        if not lines:
            raise ValueError("no well-formed roster lines in model output")
        return lines
