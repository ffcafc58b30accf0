"""
Staff contact resolution: turn a question into a (first, last) name and a
guessed first.last@domain address.
"""

from .name_resolver import HeuristicNameResolver, NameResolver
from .email_synthesizer import format_contact_reply, synthesize_email

__all__ = ["HeuristicNameResolver", "NameResolver", "format_contact_reply", "synthesize_email"]
