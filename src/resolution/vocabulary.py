"""
Stopwords and role vocabulary for name resolution.

STOPWORDS are tokens that can never be part of a resolved name: question
words, connectives, pronouns, contact words, courtesy titles, job-title
words and organization-name tokens. Membership is case-insensitive.

ROLE_VOCABULARY lists canonical job-title phrases, most specific first, so
"director of athletics" is tried before "director". A role may name one
substitute phrase to try when its own phrase never occurs in the corpus
("business administrator" -> "business manager"). Substitution is a
single hop and the map is checked for cycles at import time.
"""

import re
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Tuple

from src.common.config import Config

# ===== STOPWORDS =====

QUESTION_WORDS = {
    "what", "whats", "who", "whos", "whom", "whose", "where", "when", "which",
    "how", "why", "is", "are", "was", "were", "be", "does", "do", "did",
    "can", "could", "would", "will", "should", "may", "might", "has", "have",
    "had", "know", "tell", "give", "get", "find", "need", "want", "send",
    "look", "looking", "up", "please", "thanks", "thank", "hi", "hello", "hey",
}

CONNECTIVES = {
    "the", "a", "an", "and", "or", "of", "for", "to", "in", "on", "at", "by",
    "with", "from", "about", "as", "into", "than", "then", "that", "this",
    "these", "those", "there", "here", "it", "its", "s", "not", "no", "yes",
    "just", "also", "again", "still", "now", "new", "current", "our", "your",
    "you", "me", "my", "i", "we", "us", "someone", "somebody", "anyone",
    "person", "people", "name", "names", "likely", "probably", "based",
    "document", "documents", "record", "records", "website", "site", "page", "list",
}

PRONOUNS = {"he", "she", "they", "him", "her", "hers", "his", "them", "their", "theirs"}

CONTACT_WORDS = {
    "email", "emails", "mail", "address", "addresses", "contact", "contacts",
    "info", "information", "reach", "phone", "number", "call", "write",
    "message", "dear", "office", "staff", "faculty", "directory", "department",
    "school", "team",
}

TITLE_PREFIXES = ("mr", "mrs", "ms", "miss", "dr", "rev", "pastor", "coach", "sr", "fr")

TITLE_WORDS = {
    "teacher", "principal", "coach", "pastor", "chaplain", "director",
    "manager", "administrator", "admin", "assistant", "vice", "head",
    "counselor", "counsellor", "guidance", "nurse", "secretary", "registrar",
    "receptionist", "librarian", "superintendent", "president", "dean",
    "coordinator", "business", "athletic", "athletics", "admissions",
    "technology", "chief", "officer", "board", "chair", "member", "members",
    "elementary", "middle", "high", "grade", "kindergarten", "preschool",
}

DEFAULT_STOPWORDS: FrozenSet[str] = frozenset(
    QUESTION_WORDS | CONNECTIVES | PRONOUNS | CONTACT_WORDS | set(TITLE_PREFIXES) | TITLE_WORDS
)


def build_stopwords(extra: Iterable[str] = ()) -> FrozenSet[str]:
    """Default stopwords plus organization tokens and any extras, case-folded."""
    tokens = set(DEFAULT_STOPWORDS)
    tokens.update(t.casefold() for t in Config.organization_tokens())
    tokens.update(t.casefold() for t in extra)
    return frozenset(tokens)


STOPWORDS: FrozenSet[str] = build_stopwords()

TOKEN_PATTERN = re.compile(r"[A-Za-z]+")


def tokenize(text: str) -> List[str]:
    """Split text into alphabetic runs."""
    return TOKEN_PATTERN.findall(text or "")


def is_stopword(token: str, stopwords: FrozenSet[str] = STOPWORDS) -> bool:
    return token.casefold() in stopwords


def is_valid_name_token(token: Optional[str], stopwords: FrozenSet[str] = STOPWORDS) -> bool:
    """Non-empty, alphabetic, at least two letters, and not a stopword."""
    return bool(token) and token.isalpha() and token.isascii() and len(token) >= 2 \
        and not is_stopword(token, stopwords)


def is_title_prefix(token: Optional[str]) -> bool:
    return bool(token) and token.lower().rstrip(".") in TITLE_PREFIXES


# ===== ROLE VOCABULARY =====

@dataclass(frozen=True)
class RoleDescriptor:
    """A canonical role phrase and the one phrase it may fall back to."""
    phrase: str
    substitute_for: Optional[str] = None

    @property
    def pattern(self) -> "re.Pattern[str]":
        # Allow a plural ("counselors") or possessive ("principal's") ending
        return re.compile(rf"\b{re.escape(self.phrase)}(?:s|'s)?\b")


_ROLE_TABLE: Tuple[Tuple[str, Optional[str]], ...] = (
    ("director of athletics", "athletic director"),
    ("athletic director", None),
    ("director of admissions", "admissions director"),
    ("admissions director", None),
    ("director of technology", "technology director"),
    ("technology director", None),
    ("business administrator", "business manager"),
    ("business manager", None),
    ("assistant principal", None),
    ("vice principal", "assistant principal"),
    ("guidance counselor", "counselor"),
    ("head of school", "superintendent"),
    ("school nurse", "nurse"),
    ("office manager", None),
    ("principal", None),
    ("superintendent", None),
    ("counselor", None),
    ("nurse", None),
    ("registrar", None),
    ("secretary", None),
    ("receptionist", None),
    ("librarian", None),
    ("chaplain", None),
    ("pastor", None),
    ("director", None),
    ("coach", None),
)


def _order_by_specificity(table: Iterable[Tuple[str, Optional[str]]]) -> List[RoleDescriptor]:
    """Longest phrases (by word count, then length) first; stable otherwise."""
    roles = [RoleDescriptor(phrase.lower(), sub.lower() if sub else None) for phrase, sub in table]
    return sorted(roles, key=lambda r: (-len(r.phrase.split()), -len(r.phrase)))


def _validate_substitutions(roles: List[RoleDescriptor]) -> None:
    by_phrase = {r.phrase: r for r in roles}
    for role in roles:
        if role.substitute_for is None:
            continue
        target = by_phrase.get(role.substitute_for)
        if target is None:
            raise ValueError(f"Role {role.phrase!r} substitutes unknown phrase {role.substitute_for!r}")
        seen = {role.phrase}
        while target is not None:
            if target.phrase in seen:
                raise ValueError(f"Role substitution cycle at {role.phrase!r}")
            seen.add(target.phrase)
            target = by_phrase.get(target.substitute_for) if target.substitute_for else None


ROLE_VOCABULARY: List[RoleDescriptor] = _order_by_specificity(_ROLE_TABLE)
_validate_substitutions(ROLE_VOCABULARY)
_ROLES_BY_PHRASE = {r.phrase: r for r in ROLE_VOCABULARY}


def match_role(query: str, vocabulary: List[RoleDescriptor] = ROLE_VOCABULARY) -> Optional[RoleDescriptor]:
    """Return the most specific role whose phrase occurs in the query."""
    lowered = (query or "").lower()
    for role in vocabulary:
        if role.pattern.search(lowered):
            return role
    return None


def resolve_substitute(role: RoleDescriptor, store) -> RoleDescriptor:
    """
    Follow `substitute_for` at most one hop.

    The substitute is used only when the literal phrase never occurs in the
    corpus and the substitute phrase does. Otherwise the role is returned
    unchanged.
    """
    if store.contains_phrase(role.phrase) or role.substitute_for is None:
        return role
    substitute = _ROLES_BY_PHRASE.get(role.substitute_for, RoleDescriptor(role.substitute_for))
    if store.contains_phrase(substitute.phrase):
        return substitute
    return role
