"""
Services module: the assistant's inbound surface and its live website
search collaborator.
"""

from src.services.assistant_service import AssistantService, QueryResult
from src.services.site_search import SiteCrawler, SiteSearch

__all__ = [
    "AssistantService",
    "QueryResult",
    "SiteCrawler",
    "SiteSearch",
]
