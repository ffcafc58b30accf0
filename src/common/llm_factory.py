"""
LLM Factory Module.

Provides factory functions for creating chat model instances. Every
component that talks to a model (grounded answers, roster summaries,
model-assisted name resolution) goes through these factories instead of
instantiating ChatOpenAI directly, so model, temperature and timeout are
configured in one place.

Usage:
    from src.common.llm_factory import create_llm, create_cheap_llm

    llm = create_llm(component="escalation")
    response = llm.invoke([SystemMessage(content="..."), HumanMessage(content="...")])
"""

import logging
from typing import Any, List, Optional

from langchain_core.callbacks import BaseCallbackHandler
from langchain_openai import ChatOpenAI

from src.common.config import Config

logger = logging.getLogger(__name__)


def create_llm(
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    timeout: Optional[float] = None,
    component: Optional[str] = None,
    callbacks: Optional[List[BaseCallbackHandler]] = None,
    **kwargs: Any,
) -> ChatOpenAI:
    """
    Create a ChatOpenAI instance.

    Args:
        model: Model name (defaults to Config.DEFAULT_MODEL)
        temperature: Temperature (defaults to Config.ANALYTICAL_TEMPERATURE)
        timeout: Request timeout in seconds (defaults to Config.COMPLETION_TIMEOUT_SECONDS)
        component: Component name, for log attribution only
        callbacks: Optional LangChain callbacks
        **kwargs: Additional ChatOpenAI parameters

    Returns:
        ChatOpenAI instance
    """
    effective_model = model or Config.DEFAULT_MODEL
    effective_temperature = temperature if temperature is not None else Config.ANALYTICAL_TEMPERATURE
    effective_timeout = timeout if timeout is not None else Config.COMPLETION_TIMEOUT_SECONDS

    # Retries are owned by callers (tenacity); the client fails fast
    kwargs.setdefault("max_retries", 0)

    llm = ChatOpenAI(
        model=effective_model,
        temperature=effective_temperature,
        timeout=effective_timeout,
        api_key=Config.OPENAI_API_KEY or None,
        base_url=Config.get_llm_base_url(),
        callbacks=callbacks,
        **kwargs,
    )

    logger.debug(
        f"Created OpenAI LLM: model={effective_model}, "
        f"timeout={effective_timeout}s, component={component}"
    )

    return llm


def create_cheap_llm(component: Optional[str] = None, **kwargs: Any) -> ChatOpenAI:
    """
    Create a ChatOpenAI instance using the cheap model.

    Use this for extraction tasks (roster normalization, name resolution)
    that don't need the default model.
    """
    return create_llm(
        model=Config.CHEAP_MODEL,
        temperature=0.0,
        component=component,
        **kwargs,
    )
