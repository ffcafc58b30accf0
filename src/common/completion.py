"""
Completion collaborator.

Sends a system context plus the caller's conversation to a chat model and
returns the reply text. Every failure mode (network, timeout, empty or
malformed response) surfaces as CollaboratorError so callers can decide
whether it is fatal.
"""

import logging
from typing import List, Optional, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from src.common.error_handling import CollaboratorError
from src.common.llm_factory import create_cheap_llm, create_llm
from src.common.types import ConversationMessage

logger = logging.getLogger(__name__)


def to_langchain_messages(
    context: str,
    history: Sequence[ConversationMessage],
) -> List[BaseMessage]:
    """
    Build the message list for a chat model.

    The caller's own system messages are dropped; `context` becomes the
    single system message.
    """
    messages: List[BaseMessage] = [SystemMessage(content=context)]
    for message in history:
        if message.role == "user":
            messages.append(HumanMessage(content=message.content))
        elif message.role == "assistant":
            messages.append(AIMessage(content=message.content))
    return messages


class CompletionClient:
    """Chat-model backed completion collaborator."""

    name = "completion"

    def __init__(self, llm=None, component: str = "completion", cheap: bool = False):
        self._llm = llm
        self.component = component
        self.cheap = cheap

    @property
    def llm(self):
        """Lazy-initialize the chat model."""
        if self._llm is None:
            factory = create_cheap_llm if self.cheap else create_llm
            self._llm = factory(component=self.component)
        return self._llm

    def complete(
        self,
        context: str,
        history: Sequence[ConversationMessage],
        prompt: Optional[str] = None,
    ) -> str:
        """
        Run one completion.

        Args:
            context: System prompt / grounding text
            history: Conversation so far (last element is the current question)
            prompt: Optional extra user message appended after the history

        Returns:
            Stripped reply text

        Raises:
            CollaboratorError: on any failure or an empty reply
        """
        messages = to_langchain_messages(context, history)
        if prompt:
            messages.append(HumanMessage(content=prompt))

        try:
            response = self.llm.invoke(messages)
        except Exception as e:
            raise CollaboratorError(self.name, f"{type(e).__name__}: {e}") from e

        content = getattr(response, "content", None)
        if not isinstance(content, str) or not content.strip():
            raise CollaboratorError(self.name, "empty or non-text response")

        logger.debug(f"[{self.component}] completion returned {len(content)} chars")
        return content.strip()
