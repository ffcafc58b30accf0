"""
Canonical types shared across the assistant.

Knowledge entries are frozen once loaded; resolution outcomes are built
fresh for every request and never cached.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class EntryKind(str, Enum):
    """Where a knowledge entry came from."""
    DOCUMENT = "document"
    ROSTER_SUMMARY = "roster-summary"
    CALENDAR_EVENT = "calendar-event"


@dataclass(frozen=True)
class KnowledgeEntry:
    """One ingested unit of knowledge text."""
    source_id: str
    text: str
    kind: EntryKind = EntryKind.DOCUMENT


class ConversationMessage(BaseModel):
    """A single chat message as supplied by the caller."""
    role: str = Field(..., description="system, user or assistant")
    content: str = ""

    @field_validator("role")
    @classmethod
    def role_is_known(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in {"system", "user", "assistant"}:
            raise ValueError(f"Unknown message role: {v!r}")
        return v


def to_messages(history: List[Any]) -> List[ConversationMessage]:
    """Coerce dicts (or already-built models) into ConversationMessage objects."""
    messages = []
    for item in history:
        if isinstance(item, ConversationMessage):
            messages.append(item)
        else:
            messages.append(ConversationMessage.model_validate(item))
    return messages


def display_token(token: str) -> str:
    """Capitalize tokens typed in a single case; keep mixed case (McDonald) as is."""
    if token.islower() or token.isupper():
        return token.capitalize()
    return token


class QueryKind(str, Enum):
    """Route chosen for an incoming message."""
    CONTACT_LOOKUP = "contact-lookup"
    GENERAL = "general"


@dataclass(frozen=True)
class ResolvedPerson:
    """A (first, last) pair produced by a name resolver."""
    first_name: str
    last_name: str
    title_prefix: Optional[str] = None
    matched_role: Optional[str] = None

    @property
    def display_name(self) -> str:
        return f"{display_token(self.first_name)} {display_token(self.last_name)}"


class ResolutionKind(str, Enum):
    MATCHED = "matched"
    PARTIAL = "partial"
    NOT_APPLICABLE = "not_applicable"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class Resolution:
    """
    Tagged outcome of one resolution strategy or of the whole resolver.

    Strategies return MATCHED, PARTIAL or NOT_APPLICABLE; the dispatcher
    turns "nothing applied" into UNRESOLVED.
    """
    kind: ResolutionKind
    person: Optional[ResolvedPerson] = None
    last_name: Optional[str] = None
    title_prefix: Optional[str] = None
    strategy: Optional[str] = None

    @classmethod
    def matched(cls, person: ResolvedPerson, strategy: Optional[str] = None) -> "Resolution":
        return cls(ResolutionKind.MATCHED, person=person, strategy=strategy)

    @classmethod
    def partial(
        cls,
        last_name: str,
        title_prefix: Optional[str] = None,
        strategy: Optional[str] = None,
    ) -> "Resolution":
        return cls(
            ResolutionKind.PARTIAL,
            last_name=last_name,
            title_prefix=title_prefix,
            strategy=strategy,
        )

    @classmethod
    def not_applicable(cls, strategy: Optional[str] = None) -> "Resolution":
        return cls(ResolutionKind.NOT_APPLICABLE, strategy=strategy)

    @classmethod
    def unresolved(cls) -> "Resolution":
        return cls(ResolutionKind.UNRESOLVED)

    @property
    def is_terminal(self) -> bool:
        """True when a dispatcher should stop trying further strategies."""
        return self.kind in (ResolutionKind.MATCHED, ResolutionKind.PARTIAL)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "first_name": self.person.first_name if self.person else None,
            "last_name": self.person.last_name if self.person else self.last_name,
            "matched_role": self.person.matched_role if self.person else None,
            "strategy": self.strategy,
        }
