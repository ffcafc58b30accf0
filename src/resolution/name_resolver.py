"""
Name Resolver

Turns a contact-lookup question (plus the prior conversation) into a
best-guess (first, last) pair, a partial match (last name only), or an
unresolved outcome.

Strategies are tried in a fixed order and the first one that matches wins:

1. Role-anchored lookup   "who is the principal?"      -> name next to "Principal" in the corpus
2. Contextual back-ref    "what is her email?"         -> first name in the newest prior message that has one
3. Direct extraction      "John Smith's email"         -> first two non-stopword tokens of the question
4. Single-token check     "email for Mrs. Hobbs"       -> "Hobbs" corroborated in the corpus, first name looked up

Every accepted name token is alphabetic, at least two letters long and
not a stopword, whichever strategy produced it.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, FrozenSet, List, Optional, Sequence, Tuple

from src.common.types import (
    ConversationMessage,
    Resolution,
    ResolvedPerson,
    display_token,
)
from src.knowledge.store import KnowledgeCorpus, KnowledgeStore
from src.resolution.vocabulary import (
    ROLE_VOCABULARY,
    STOPWORDS,
    RoleDescriptor,
    is_title_prefix,
    is_valid_name_token,
    match_role,
    resolve_substitute,
    tokenize,
)

logger = logging.getLogger(__name__)

# "who is", "who's", "whose", possessive pronouns, or a possessive 's
ROLE_CUE_PATTERN = re.compile(r"\bwho(?:se|s|['’]s)?\b|\b(?:his|her|hers|their)\b|[a-z]['’]s\b", re.IGNORECASE)
PRONOUN_CUE_PATTERN = re.compile(r"\b(?:he|she|they|him|her|hers|his|them|their|theirs)\b", re.IGNORECASE)

NAME_TOKEN_PATTERN = re.compile(r"[A-Za-z]+")

# Characters scanned before a role phrase when its own line has no name
ROLE_WINDOW_CHARS = 240


class Strategy(str, Enum):
    ROLE_ANCHORED = "role_anchored"
    CONTEXTUAL_BACKREF = "contextual_backref"
    DIRECT_EXTRACTION = "direct_extraction"
    SINGLE_TOKEN = "single_token_corroboration"


@dataclass(frozen=True)
class NameRun:
    """Two adjacent name-like tokens found in a piece of text."""
    first: str
    last: str
    start: int
    end: int
    title_prefix: Optional[str] = None


def find_name_runs(
    text: str,
    stopwords: FrozenSet[str] = STOPWORDS,
    require_capitalized: bool = True,
) -> List[NameRun]:
    """
    Find every two-token run in `text` that could be a (first, last) name.

    Tokens must be separated by spaces or tabs only (no punctuation, no
    line break). Runs may overlap: "Mary Ann Smith" yields (Mary, Ann) and
    (Ann, Smith).
    """
    tokens = list(NAME_TOKEN_PATTERN.finditer(text or ""))
    runs: List[NameRun] = []

    for i in range(len(tokens) - 1):
        first, last = tokens[i], tokens[i + 1]
        gap = text[first.end():last.start()]
        if not gap or gap.strip(" \t"):
            continue
        if not (is_valid_name_token(first.group(), stopwords) and is_valid_name_token(last.group(), stopwords)):
            continue
        if require_capitalized and not (first.group()[0].isupper() and last.group()[0].isupper()):
            continue

        title = None
        if i > 0 and is_title_prefix(tokens[i - 1].group()):
            between = text[tokens[i - 1].end():first.start()]
            if not between.strip(" \t."):
                title = tokens[i - 1].group()

        runs.append(NameRun(first.group(), last.group(), first.start(), last.end(), title))

    return runs


@dataclass
class ResolutionContext:
    """Inputs shared by all strategies for one request."""
    query: str
    history: Sequence[ConversationMessage]
    corpus: KnowledgeCorpus
    query_tokens: List[str] = field(default_factory=list)
    name_tokens: List[str] = field(default_factory=list)


class NameResolver(ABC):
    """Interface shared by every name resolution backend."""

    @abstractmethod
    def resolve(
        self,
        query: str,
        history: Sequence[ConversationMessage] = (),
    ) -> Resolution:
        """
        Resolve the subject of a contact-lookup question.

        Args:
            query: The current user message
            history: Prior messages, oldest first (current message excluded)

        Returns:
            Resolution with kind MATCHED, PARTIAL or UNRESOLVED
        """


class HeuristicNameResolver(NameResolver):
    """
    Deterministic resolver backed by the knowledge store.

    For a fixed corpus and input the result is always the same.
    """

    def __init__(
        self,
        store: KnowledgeStore,
        stopwords: FrozenSet[str] = STOPWORDS,
        vocabulary: List[RoleDescriptor] = ROLE_VOCABULARY,
        window_chars: int = ROLE_WINDOW_CHARS,
    ):
        self.store = store
        self.stopwords = stopwords
        self.vocabulary = vocabulary
        self.window_chars = window_chars

    @property
    def strategies(self) -> List[Tuple[Strategy, Callable[[ResolutionContext], Resolution]]]:
        """Strategies in precedence order."""
        return [
            (Strategy.ROLE_ANCHORED, self._role_anchored),
            (Strategy.CONTEXTUAL_BACKREF, self._contextual_backref),
            (Strategy.DIRECT_EXTRACTION, self._direct_extraction),
            (Strategy.SINGLE_TOKEN, self._single_token),
        ]

    def resolve(
        self,
        query: str,
        history: Sequence[ConversationMessage] = (),
    ) -> Resolution:
        # One snapshot per request so a concurrent refresh can't change the view mid-resolution
        corpus = self.store.snapshot()
        query_tokens = tokenize(query)
        ctx = ResolutionContext(
            query=query or "",
            history=history,
            corpus=corpus,
            query_tokens=query_tokens,
            name_tokens=[t for t in query_tokens if is_valid_name_token(t, self.stopwords)],
        )

        for strategy, attempt in self.strategies:
            outcome = attempt(ctx)
            if not outcome.is_terminal:
                continue
            if outcome.person is not None and not self._is_acceptable(outcome.person):
                logger.warning(f"[{strategy.value}] rejected invalid name {outcome.person}")
                continue
            logger.info(f"Name resolved via {strategy.value}: {outcome.kind.value}")
            return Resolution(
                kind=outcome.kind,
                person=outcome.person,
                last_name=outcome.last_name,
                title_prefix=outcome.title_prefix,
                strategy=strategy.value,
            )

        logger.info("Name unresolved")
        return Resolution.unresolved()

    def _is_acceptable(self, person: ResolvedPerson) -> bool:
        return is_valid_name_token(person.first_name, self.stopwords) and \
            is_valid_name_token(person.last_name, self.stopwords)

    # ===== STRATEGY 1: ROLE-ANCHORED =====

    def _role_anchored(self, ctx: ResolutionContext) -> Resolution:
        if not ROLE_CUE_PATTERN.search(ctx.query):
            return Resolution.not_applicable()

        role = match_role(ctx.query, self.vocabulary)
        if role is None:
            return Resolution.not_applicable()

        effective = resolve_substitute(role, ctx.corpus)
        if effective.phrase != role.phrase:
            logger.info(f"Role '{role.phrase}' not in corpus, substituting '{effective.phrase}'")

        best: Optional[Tuple[int, NameRun]] = None
        for line_index, start, end in ctx.corpus.find_phrase(effective.phrase):
            candidate = self._nearest_run(ctx.corpus.lines, line_index, start, end)
            # Strictly closer wins; ties keep the earlier occurrence
            if candidate is not None and (best is None or candidate[0] < best[0]):
                best = candidate

        if best is None:
            return Resolution.not_applicable()

        run = best[1]
        return Resolution.matched(ResolvedPerson(
            first_name=run.first,
            last_name=run.last,
            title_prefix=run.title_prefix,
            matched_role=effective.phrase,
        ))

    def _nearest_run(
        self,
        lines: Sequence[str],
        line_index: int,
        start: int,
        end: int,
    ) -> Optional[Tuple[int, NameRun]]:
        """
        Closest name run to a role phrase occurrence, with its distance in characters.

        Looks at the same line before the phrase, then the same line after
        it, then a bounded window of preceding lines.
        """
        line = lines[line_index]

        before = find_name_runs(line[:start], self.stopwords)
        if before:
            run = before[-1]
            return start - run.end, run

        after = find_name_runs(line[end:], self.stopwords)
        if after:
            run = after[0]
            return run.start, run

        window_lines: List[str] = []
        size = 0
        for previous in reversed(lines[max(0, line_index - 20):line_index]):
            if size >= self.window_chars:
                break
            window_lines.insert(0, previous)
            size += len(previous) + 1
        window = "\n".join(window_lines)[-self.window_chars:]

        preceding = find_name_runs(window, self.stopwords)
        if preceding:
            run = preceding[-1]
            return (len(window) - run.end) + 1 + start, run

        return None

    # ===== STRATEGY 2: CONTEXTUAL BACK-REFERENCE =====

    def _contextual_backref(self, ctx: ResolutionContext) -> Resolution:
        if not PRONOUN_CUE_PATTERN.search(ctx.query):
            return Resolution.not_applicable()

        for message in reversed(ctx.history):
            if message.role == "system":
                continue
            runs = find_name_runs(message.content, self.stopwords)
            if runs:
                run = runs[0]
                return Resolution.matched(ResolvedPerson(
                    first_name=run.first,
                    last_name=run.last,
                    title_prefix=run.title_prefix,
                ))

        return Resolution.not_applicable()

    # ===== STRATEGY 3: DIRECT EXTRACTION =====

    def _query_title_before(self, ctx: ResolutionContext, token: str) -> Optional[str]:
        index = ctx.query_tokens.index(token)
        if index > 0 and is_title_prefix(ctx.query_tokens[index - 1]):
            return ctx.query_tokens[index - 1]
        return None

    def _direct_extraction(self, ctx: ResolutionContext) -> Resolution:
        if len(ctx.name_tokens) < 2:
            return Resolution.not_applicable()

        first, last = ctx.name_tokens[:2]
        return Resolution.matched(ResolvedPerson(
            first_name=first,
            last_name=last,
            title_prefix=self._query_title_before(ctx, first),
        ))

    # ===== STRATEGY 4: SINGLE-TOKEN CORROBORATION =====

    def _single_token(self, ctx: ResolutionContext) -> Resolution:
        if len(ctx.name_tokens) != 1:
            return Resolution.not_applicable()

        presumed_last = ctx.name_tokens[0]
        title = self._query_title_before(ctx, presumed_last)

        if not ctx.corpus.contains_word(presumed_last):
            return Resolution.not_applicable()

        target = presumed_last.casefold()
        word = re.compile(rf"\b{re.escape(presumed_last)}\b", re.IGNORECASE)
        for line in ctx.corpus.lines:
            if not word.search(line):
                continue
            for run in find_name_runs(line, self.stopwords):
                if run.last.casefold() == target:
                    return Resolution.matched(ResolvedPerson(
                        first_name=run.first,
                        last_name=run.last,
                        title_prefix=title or run.title_prefix,
                    ))

        return Resolution.partial(display_token(presumed_last), title_prefix=title)

