"""
Email synthesis and contact replies.

Staff addresses follow one convention: first.last@<EMAIL_DOMAIN>. The
address is a guess built from a resolved name, never a verified fact, and
every reply says so.
"""

from typing import Optional

from src.common.config import Config
from src.common.types import Resolution, ResolutionKind, display_token

MATCHED_TEMPLATE = "The email address for {name} is likely **{email}**."
ROLE_MATCHED_TEMPLATE = (
    "Based on our documents, the {role} is likely **{name}**. "
    "Their email address is probably **{email}**."
)
PARTIAL_TEMPLATE = (
    "I found a reference to **{name}** in our documents but couldn't confirm the first name. "
    "The email format for them is **FirstName.{last}@{domain}**. "
    "You will need to replace 'FirstName' with their actual first name."
)
UNRESOLVED_TEMPLATE = (
    "If you can tell me the first and last name, I can give you their email address "
    "(format: FirstName.LastName@{domain})."
)
GUESS_DISCLAIMER = "This follows our usual address format, so please double-check before sending anything important."


def synthesize_email(first: str, last: str, domain: Optional[str] = None) -> str:
    """
    Build first.last@domain, lowercased.

    Args:
        first: First name (already validated)
        last: Last name (already validated)
        domain: Bare email domain; defaults to Config.EMAIL_DOMAIN

    Returns:
        Synthesized address
    """
    domain = domain or Config.EMAIL_DOMAIN
    return f"{first.lower()}.{last.lower()}@{domain}"


def _with_title(name: str, title_prefix: Optional[str]) -> str:
    if not title_prefix:
        return name
    title = display_token(title_prefix.rstrip("."))
    if title.lower() in {"mr", "mrs", "ms", "dr", "sr", "fr", "rev"}:
        title += "."
    return f"{title} {name}"


def format_contact_reply(resolution: Resolution, domain: Optional[str] = None) -> str:
    """Render the reply for a contact-lookup outcome."""
    domain = domain or Config.EMAIL_DOMAIN

    if resolution.kind == ResolutionKind.MATCHED and resolution.person is not None:
        person = resolution.person
        email = synthesize_email(person.first_name, person.last_name, domain)
        name = _with_title(person.display_name, person.title_prefix)
        if person.matched_role:
            reply = ROLE_MATCHED_TEMPLATE.format(role=person.matched_role, name=name, email=email)
        else:
            reply = MATCHED_TEMPLATE.format(name=name, email=email)
        return f"{reply} {GUESS_DISCLAIMER}"

    if resolution.kind == ResolutionKind.PARTIAL and resolution.last_name:
        return PARTIAL_TEMPLATE.format(
            name=_with_title(resolution.last_name, resolution.title_prefix),
            last=resolution.last_name.lower(),
            domain=domain,
        )

    return UNRESOLVED_TEMPLATE.format(domain=domain)
