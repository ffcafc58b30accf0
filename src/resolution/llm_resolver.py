"""
Model-assisted name resolver.

Asks a chat model to extract the (first, last) name a contact question is
about, using the corpus and conversation as context. The model's answer
is never trusted as-is: it must parse as JSON, pass pydantic validation,
satisfy the same name invariants as the heuristic resolver, and appear in
the corpus or the conversation. Up to three attempts are made; after that
(or when the model says it doesn't know) the heuristic resolver decides.
"""

import logging
import re
from typing import FrozenSet, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError, field_validator
from tenacity import RetryError, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.common.completion import CompletionClient
from src.common.config import Config
from src.common.error_handling import CollaboratorError
from src.common.json_utils import parse_llm_json
from src.common.types import ConversationMessage, Resolution, ResolvedPerson
from src.knowledge.store import KnowledgeStore
from src.resolution.name_resolver import NameResolver
from src.resolution.vocabulary import STOPWORDS, is_valid_name_token

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3

EXTRACTION_PROMPT = """You identify which staff member a question is about.

Use ONLY the reference material and the conversation below. The question may
name the person directly, describe their job (e.g. "the principal"), or refer
back to someone mentioned earlier ("her", "his").

Return ONLY a JSON object:
{{"first_name": "<first name or null>", "last_name": "<last name or null>", "matched_role": "<job title or null>"}}

Use null for anything you cannot find in the material. Never invent a name.

=== REFERENCE MATERIAL ===
{corpus}
"""


class ExtractedName(BaseModel):
    """Structured model output for one extraction attempt."""
    first_name: Optional[str] = Field(default=None)
    last_name: Optional[str] = Field(default=None)
    matched_role: Optional[str] = Field(default=None)

    @field_validator("first_name", "last_name", "matched_role", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            if not v or v.lower() in {"null", "none", "unknown", "n/a"}:
                return None
        return v

    @property
    def is_empty(self) -> bool:
        return self.first_name is None and self.last_name is None


class LLMNameResolver(NameResolver):
    """Name resolver backed by a completion model, with a deterministic fallback."""

    def __init__(
        self,
        store: KnowledgeStore,
        fallback: NameResolver,
        client: Optional[CompletionClient] = None,
        stopwords: FrozenSet[str] = STOPWORDS,
        max_context_chars: Optional[int] = None,
    ):
        self.store = store
        self.fallback = fallback
        self.client = client or CompletionClient(component="llm_resolver", cheap=True)
        self.stopwords = stopwords
        self.max_context_chars = max_context_chars or Config.MAX_CONTEXT_CHARS

    def resolve(
        self,
        query: str,
        history: Sequence[ConversationMessage] = (),
    ) -> Resolution:
        corpus_text = self.store.corpus_text()
        messages = list(history) + [ConversationMessage(role="user", content=query)]

        try:
            extracted = self._extract_with_retries(corpus_text, messages)
        except RetryError as e:
            logger.warning(
                f"LLM name extraction failed after {MAX_ATTEMPTS} attempts "
                f"({e.last_attempt.exception()}); using heuristic resolver"
            )
            return self.fallback.resolve(query, history)

        if extracted is None:
            logger.info("LLM found no name; using heuristic resolver")
            return self.fallback.resolve(query, history)

        return Resolution.matched(extracted, strategy="llm_extraction")

    @retry(
        stop=stop_after_attempt(MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception_type((CollaboratorError, ValueError)),
    )
    def _extract_with_retries(
        self,
        corpus_text: str,
        messages: Sequence[ConversationMessage],
    ) -> Optional[ResolvedPerson]:
        """
        One extraction attempt.

        Returns:
            ResolvedPerson, or None when the model reports no name

        Raises:
            CollaboratorError: completion failed (triggers retry)
            ValueError: output unparseable or fails validation (triggers retry)
        """
        context = EXTRACTION_PROMPT.format(corpus=corpus_text[: self.max_context_chars])
        raw = self.client.complete(context, messages)

        try:
            extracted = ExtractedName.model_validate(parse_llm_json(raw))
        except ValidationError as e:
            raise ValueError(f"Extraction output failed schema validation: {e}") from e

        if extracted.is_empty:
            return None

        return self.validate(extracted, corpus_text, messages)

    def validate(
        self,
        extracted: ExtractedName,
        corpus_text: str,
        messages: Sequence[ConversationMessage],
    ) -> ResolvedPerson:
        """
        Apply the name invariants plus a grounding check.

        Raises:
            ValueError: describing the first violated rule
        """
        first, last = extracted.first_name, extracted.last_name
        for label, token in (("first_name", first), ("last_name", last)):
            if not is_valid_name_token(token, self.stopwords):
                raise ValueError(f"Invalid {label}: {token!r}")

        grounding = "\n".join([corpus_text] + [m.content for m in messages])
        for token in (first, last):
            if not re.search(rf"\b{re.escape(token)}\b", grounding, re.IGNORECASE):
                raise ValueError(f"Name {token!r} does not appear in corpus or conversation")

        return ResolvedPerson(
            first_name=first,
            last_name=last,
            matched_role=extracted.matched_role.lower() if extracted.matched_role else None,
        )
