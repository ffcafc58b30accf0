"""
Escalation Chain for general questions.

Three stages, tried in order; the first one that produces an answer ends
the chain:

    S0  grounded answer   completion model, given the corpus as context
    S1  live search       only if S0 replied with the sentinel
    S2  refusal           fixed apology

A completion failure at S0 propagates (there is nothing else to ground an
answer on). A search failure at S1 is logged and treated as "no result".
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, Sequence

from src.common.config import Config
from src.common.error_handling import CollaboratorError, log_on_exception
from src.common.types import ConversationMessage, EntryKind
from src.knowledge.store import KnowledgeStore

logger = logging.getLogger(__name__)

SENTINEL = "[NEEDS_WEBSITE_SEARCH]"

GROUNDED_SYSTEM_PROMPT = """You are {assistant_name}, an assistant that answers questions about {organization} using the following information:

📚 {organization} Documents:
{documents}

📅 Calendar Events:
{calendar}

If the question cannot be answered using these materials, respond ONLY with this text: {sentinel}"""

SEARCH_RESULT_TEMPLATE = (
    "I couldn't find that in our documents, but here's what I found on the {organization} website:\n\n"
    "{snippet}"
)
REFUSAL_TEMPLATE = (
    "I'm sorry, I couldn't find an answer to that in our documents or on the website. "
    "Please contact the school office for help."
)


class Stage(str, Enum):
    GROUNDED = "S0_grounded"
    SEARCH = "S1_search"
    REFUSAL = "S2_refusal"


class Completion(Protocol):
    def complete(self, context: str, history: Sequence[ConversationMessage]) -> str:
        ...


class SiteSearcher(Protocol):
    def search(self, query: str) -> Optional[str]:
        ...


@dataclass(frozen=True)
class EscalationResult:
    """Terminal stage and the reply it produced."""
    stage: Stage
    content: str


class EscalationChain:
    """Runs S0 -> S1 -> S2 for one general question."""

    def __init__(
        self,
        store: KnowledgeStore,
        completion: Completion,
        searcher: Optional[SiteSearcher] = None,
        organization: Optional[str] = None,
        max_context_chars: Optional[int] = None,
    ):
        self.store = store
        self.completion = completion
        self.searcher = searcher
        self.organization = organization or Config.ORGANIZATION_NAME
        self.max_context_chars = max_context_chars or Config.MAX_CONTEXT_CHARS

    def build_context(self) -> str:
        """System prompt carrying the corpus (documents, then calendar)."""
        corpus = self.store.snapshot()
        documents = corpus.text_for(EntryKind.ROSTER_SUMMARY, EntryKind.DOCUMENT)
        calendar = corpus.text_for(EntryKind.CALENDAR_EVENT)

        budget = self.max_context_chars
        calendar = calendar[: budget // 4]
        documents = documents[: budget - len(calendar)]

        return GROUNDED_SYSTEM_PROMPT.format(
            assistant_name=f"{self.organization} Assistant",
            organization=self.organization,
            documents=documents or "(no documents loaded)",
            calendar=calendar or "(no upcoming events)",
            sentinel=SENTINEL,
        )

    def run(self, history: Sequence[ConversationMessage]) -> EscalationResult:
        """
        Answer the last message of `history`.

        Raises:
            CollaboratorError: if the S0 completion call fails
        """
        query = history[-1].content if history else ""

        # S0: grounded answer
        with log_on_exception(logger, "S0 grounded completion", level=logging.ERROR):
            reply = self.completion.complete(self.build_context(), history)

        if SENTINEL not in reply:
            logger.info("Escalation ended at S0 (grounded answer)")
            return EscalationResult(Stage.GROUNDED, reply)

        # S1: live search
        logger.info("S0 returned sentinel; escalating to live search")
        snippet = self._search(query)
        if snippet:
            logger.info("Escalation ended at S1 (live search)")
            return EscalationResult(
                Stage.SEARCH,
                SEARCH_RESULT_TEMPLATE.format(organization=self.organization, snippet=snippet),
            )

        # S2: refusal
        logger.info("Escalation ended at S2 (refusal)")
        return EscalationResult(Stage.REFUSAL, REFUSAL_TEMPLATE)

    def _search(self, query: str) -> Optional[str]:
        if self.searcher is None or not query.strip():
            return None
        try:
            snippet = self.searcher.search(query)
        except CollaboratorError as e:
            logger.warning(f"[S1 live search] Failed: {e}; treating as no result")
            return None
        except Exception as e:
            logger.warning(f"[S1 live search] Unexpected {type(e).__name__}: {e}; treating as no result")
            return None
        return snippet.strip() if snippet and snippet.strip() else None
