"""
Per-message routing (contact lookup vs general question) and the
escalation chain for general questions.
"""

from .query_router import classify
from .escalation import EscalationChain, EscalationResult, Stage

__all__ = ["classify", "EscalationChain", "EscalationResult", "Stage"]
