"""
Assistant Service

Inbound surface of the assistant: takes a conversation (the caller owns
it; nothing is persisted here), answers its last user message, and returns
one assistant message.

Flow per request:
1. Validate the history
2. Classify the last message (contact lookup vs general question)
3. Contact lookup: resolve a name, synthesize a guessed address, reply.
   A partial match is returned once, as is; it never escalates.
4. General question: run the escalation chain (S0 -> S1 -> S2)

Collaborator failures never reach the caller as exceptions; they become a
polite failure reply and are logged with the request id.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from src.common.completion import CompletionClient
from src.common.config import Config
from src.common.error_handling import CollaboratorError
from src.common.logger import get_logger
from src.common.types import QueryKind, to_messages
from src.knowledge.calendar import calendar_sources_from_config
from src.knowledge.ingestion import DirectoryDocumentSource, build_corpus
from src.knowledge.roster import RosterSummarizer
from src.knowledge.store import KnowledgeStore
from src.resolution.email_synthesizer import format_contact_reply
from src.resolution.llm_resolver import LLMNameResolver
from src.resolution.name_resolver import HeuristicNameResolver, NameResolver
from src.routing.escalation import EscalationChain
from src.routing.query_router import classify
from src.services.site_search import SiteSearch

EMPTY_HISTORY_MESSAGE = "Hi! Ask me about our school, or ask for a staff member's email address."
SERVICE_FAILURE_MESSAGE = (
    "Sorry, I'm having trouble answering right now. Please try again in a moment, "
    "or contact the school office directly."
)


@dataclass
class QueryResult:
    """Outcome of one handled request."""

    success: bool
    reply: str
    request_id: str
    route: Optional[str] = None
    stage: Optional[str] = None
    strategy: Optional[str] = None
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def to_message(self) -> Dict[str, str]:
        return {"role": "assistant", "content": self.reply}

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "reply": self.reply,
            "request_id": self.request_id,
            "route": self.route,
            "stage": self.stage,
            "strategy": self.strategy,
            "error": self.error,
            "timestamp": self.timestamp.isoformat(),
        }


def build_knowledge_store(roster_summary: Optional[bool] = None) -> KnowledgeStore:
    """Build the corpus from the configured sources (documents, then calendars)."""
    roster_summary = Config.ENABLE_ROSTER_SUMMARY if roster_summary is None else roster_summary
    corpus = build_corpus(
        document_sources=[DirectoryDocumentSource(Config.KNOWLEDGE_BASE_PATH)],
        calendar_sources=calendar_sources_from_config(),
        roster=RosterSummarizer() if roster_summary else None,
    )
    return KnowledgeStore(corpus)


class AssistantService:
    """Routes each question to contact lookup or the escalation chain."""

    def __init__(
        self,
        store: KnowledgeStore,
        resolver: NameResolver,
        chain: EscalationChain,
        domain: Optional[str] = None,
    ):
        self.store = store
        self.resolver = resolver
        self.chain = chain
        self.domain = domain or Config.EMAIL_DOMAIN

    @classmethod
    def from_config(cls, store: Optional[KnowledgeStore] = None) -> "AssistantService":
        """Wire up the service from Config (builds the corpus if no store is given)."""
        store = store if store is not None else build_knowledge_store()

        resolver: NameResolver = HeuristicNameResolver(store)
        if Config.ENABLE_LLM_NAME_RESOLVER:
            resolver = LLMNameResolver(store, fallback=resolver)

        chain = EscalationChain(
            store=store,
            completion=CompletionClient(component="grounded_answer"),
            searcher=SiteSearch(),
        )
        return cls(store=store, resolver=resolver, chain=chain)

    def process(self, history: List[Any]) -> QueryResult:
        """
        Answer the last user message of `history`.

        Args:
            history: Conversation as dicts ({"role", "content"}) or ConversationMessage

        Returns:
            QueryResult (never raises)
        """
        request_id = uuid.uuid4().hex[:8]
        log = get_logger(__name__, request_id=request_id)

        try:
            messages = to_messages(history or [])
        except ValueError as e:
            log.warning(f"Invalid history: {e}")
            return QueryResult(success=False, reply=EMPTY_HISTORY_MESSAGE, request_id=request_id, error=str(e))

        if not messages or messages[-1].role != "user" or not messages[-1].content.strip():
            log.info("No user question to answer")
            return QueryResult(success=True, reply=EMPTY_HISTORY_MESSAGE, request_id=request_id)

        query = messages[-1].content
        route = classify(query)
        log.bind("router").info(f"Route: {route.value}")

        try:
            if route == QueryKind.CONTACT_LOOKUP:
                resolution = self.resolver.resolve(query, messages[:-1])
                log.bind("resolver").info(f"Resolution: {resolution.kind.value} via {resolution.strategy}")
                return QueryResult(
                    success=True,
                    reply=format_contact_reply(resolution, self.domain),
                    request_id=request_id,
                    route=route.value,
                    strategy=resolution.strategy,
                )

            outcome = self.chain.run(messages)
            log.bind("escalation").info(f"Terminal stage: {outcome.stage.value}")
            return QueryResult(
                success=True,
                reply=outcome.content,
                request_id=request_id,
                route=route.value,
                stage=outcome.stage.value,
            )

        except CollaboratorError as e:
            log.error(f"Collaborator failure: {e}")
            return QueryResult(
                success=False,
                reply=SERVICE_FAILURE_MESSAGE,
                request_id=request_id,
                route=route.value,
                error=str(e),
            )
        except Exception as e:
            log.exception(f"Unexpected error: {type(e).__name__}: {e}")
            return QueryResult(
                success=False,
                reply=SERVICE_FAILURE_MESSAGE,
                request_id=request_id,
                route=route.value,
                error=f"{type(e).__name__}: {e}",
            )

    def handle_query(self, history: List[Any]) -> Dict[str, str]:
        """Answer a conversation; returns {"role": "assistant", "content": ...}."""
        return self.process(history).to_message()

    async def handle_query_async(self, history: List[Any]) -> Dict[str, str]:
        """Async variant; runs the blocking pipeline in the default executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.handle_query, history)
