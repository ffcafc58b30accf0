"""
Live Website Search Service

Looks for an answer on the organization's public website when the
knowledge corpus could not answer a question.

Two backends, tried in order:
1. FireCrawl search restricted to the site (`site:<host> <question>`), when
   FIRECRAWL_API_KEY is configured
2. A direct crawl of SITE_URL: breadth-first, same host only, bounded by a
   visited set, a page ceiling and an overall deadline

Either way the result is a short snippet (the best-matching sentences plus
the source URL) or None. Failures surface as CollaboratorError.
"""

import logging
import math
import re
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Iterator, List, Optional, Set, Tuple
from urllib.parse import urldefrag, urljoin, urlparse

import requests
from bs4 import BeautifulSoup

from src.common.config import Config
from src.common.error_handling import CollaboratorError
from src.resolution.vocabulary import CONNECTIVES, PRONOUNS, QUESTION_WORDS, tokenize

logger = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; SchoolContactAssistant/1.0)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

SKIPPED_EXTENSIONS = (
    ".pdf", ".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp", ".zip", ".doc",
    ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".mp3", ".mp4", ".mov", ".ics",
)

QUERY_NOISE = QUESTION_WORDS | CONNECTIVES | PRONOUNS

SNIPPET_MAX_CHARS = 600
SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")


# ===== TEXT MATCHING =====

def query_keywords(query: str) -> List[str]:
    """Lowercased content words of a question, in order, without duplicates."""
    seen: List[str] = []
    for token in tokenize(query):
        word = token.lower()
        if len(word) >= 3 and word not in QUERY_NOISE and word not in seen:
            seen.append(word)
    return seen


def page_matches(text: str, keywords: List[str], threshold: float = 0.6) -> bool:
    """True when enough of the keywords occur in the page text."""
    if not keywords or not text:
        return False
    lowered = text.lower()
    hits = sum(1 for k in keywords if k in lowered)
    return hits >= max(1, math.ceil(len(keywords) * threshold))


def best_snippet(text: str, keywords: List[str], max_chars: int = SNIPPET_MAX_CHARS) -> Optional[str]:
    """
    Pick the sentence with the most keyword hits, plus the one after it.

    Returns None when no sentence mentions any keyword.
    """
    sentences = [s.strip() for s in SENTENCE_SPLIT.split(text or "") if s.strip()]
    best_index, best_score = -1, 0
    for index, sentence in enumerate(sentences):
        lowered = sentence.lower()
        score = sum(1 for k in keywords if k in lowered)
        if score > best_score:
            best_index, best_score = index, score
    if best_index < 0:
        return None

    snippet = " ".join(sentences[best_index:best_index + 2])
    if len(snippet) > max_chars:
        snippet = snippet[:max_chars].rsplit(" ", 1)[0] + "…"
    return snippet


def _extract_search_results(search_response: Any) -> List[Any]:
    """
    Normalize FireCrawl search responses across SDK versions into a list.

    Supports response.web (newer SDK), response.data (older SDK), dicts with
    "web"/"data"/"results", and bare lists.
    """
    if not search_response:
        return []

    results = getattr(search_response, "web", None)
    if results is None and hasattr(search_response, "data"):
        results = getattr(search_response, "data", None)

    if results is None and isinstance(search_response, dict):
        results = (
            search_response.get("web")
            or search_response.get("data")
            or search_response.get("results")
        )

    if results is None and isinstance(search_response, list):
        results = search_response

    return results or []


def _result_field(result: Any, name: str) -> Optional[str]:
    value = getattr(result, name, None)
    if value is None and isinstance(result, dict):
        value = result.get(name)
    return value if isinstance(value, str) else None


# ===== DIRECT CRAWL =====

class SiteCrawler:
    """
    Breadth-first crawl of one host as a lazy sequence of (url, page_text).

    Iterating starts a fresh crawl every time, so the sequence is
    restartable. It is finite: each URL is fetched at most once and at most
    `max_pages` pages are fetched. Exceeding `deadline_seconds` raises
    CollaboratorError.
    """

    def __init__(
        self,
        start_url: str,
        max_pages: Optional[int] = None,
        page_timeout: Optional[float] = None,
        deadline_seconds: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.start_url = start_url
        self.host = urlparse(start_url).netloc.lower()
        self.max_pages = max_pages if max_pages is not None else Config.MAX_CRAWL_PAGES
        self.page_timeout = page_timeout if page_timeout is not None else Config.CRAWL_PAGE_TIMEOUT_SECONDS
        self.deadline_seconds = deadline_seconds if deadline_seconds is not None else Config.SEARCH_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return self._crawl()

    def _normalize(self, base: str, href: str) -> Optional[str]:
        try:
            url, _fragment = urldefrag(urljoin(base, href.strip()))
            parsed = urlparse(url)
        except ValueError:
            # Malformed href (e.g. an unclosed IPv6 bracket)
            return None
        if parsed.scheme not in ("http", "https") or parsed.netloc.lower() != self.host:
            return None
        if parsed.path.lower().endswith(SKIPPED_EXTENSIONS):
            return None
        return url.rstrip("/") or url

    def _fetch(self, url: str) -> Optional[str]:
        try:
            response = self.session.get(url, headers=HEADERS, timeout=self.page_timeout)
        except requests.exceptions.RequestException as e:
            logger.debug(f"Crawl fetch failed for {url}: {e}")
            return None
        if response.status_code != 200:
            return None
        if "html" not in response.headers.get("Content-Type", "text/html"):
            return None
        return response.text

    def _crawl(self) -> Iterator[Tuple[str, str]]:
        start = self._normalize(self.start_url, self.start_url)
        if start is None:
            return
        queue = deque([start])
        visited: Set[str] = set()
        deadline = time.monotonic() + self.deadline_seconds

        while queue and len(visited) < self.max_pages:
            if time.monotonic() > deadline:
                raise CollaboratorError("site_search", f"crawl exceeded {self.deadline_seconds}s")

            url = queue.popleft()
            if url in visited:
                continue
            visited.add(url)

            html = self._fetch(url)
            if html is None:
                continue

            soup = BeautifulSoup(html, "html.parser")
            for tag in soup(["script", "style", "noscript", "nav", "footer", "header"]):
                tag.decompose()

            yield url, soup.get_text(" ", strip=True)

            for link in soup.find_all("a", href=True):
                next_url = self._normalize(url, link["href"])
                if next_url and next_url not in visited:
                    queue.append(next_url)


# ===== SEARCH COLLABORATOR =====

class SiteSearch:
    """Live search collaborator: search(query) -> snippet | None."""

    name = "site_search"

    def __init__(
        self,
        site_url: Optional[str] = None,
        firecrawl=None,
        crawler: Optional[SiteCrawler] = None,
        timeout: Optional[float] = None,
    ):
        self.site_url = site_url or Config.SITE_URL
        self.timeout = timeout if timeout is not None else Config.SEARCH_TIMEOUT_SECONDS
        self._firecrawl = firecrawl
        self._crawler = crawler

    @property
    def firecrawl(self):
        """Lazy-initialize the FireCrawl client (None when not configured)."""
        if self._firecrawl is None and Config.FIRECRAWL_API_KEY:
            from firecrawl import FirecrawlApp

            self._firecrawl = FirecrawlApp(api_key=Config.FIRECRAWL_API_KEY)
        return self._firecrawl

    @property
    def crawler(self) -> SiteCrawler:
        if self._crawler is None:
            self._crawler = SiteCrawler(self.site_url, deadline_seconds=self.timeout)
        return self._crawler

    def search(self, query: str) -> Optional[str]:
        """
        Find a snippet on the website that answers `query`.

        Raises:
            CollaboratorError: when every backend failed
        """
        keywords = query_keywords(query)
        if not keywords:
            return None

        firecrawl_error: Optional[CollaboratorError] = None
        if self.firecrawl is not None:
            try:
                snippet = self._search_firecrawl(query, keywords)
                if snippet:
                    return snippet
            except CollaboratorError as e:
                logger.warning(f"[FireCrawl] {e}; falling back to direct crawl")
                firecrawl_error = e

        try:
            return self._search_crawl(keywords)
        except CollaboratorError:
            if firecrawl_error is not None:
                logger.warning(f"[FireCrawl] earlier failure: {firecrawl_error}")
            raise

    def _search_firecrawl(self, query: str, keywords: List[str]) -> Optional[str]:
        host = urlparse(self.site_url).netloc
        search_query = f"site:{host} {query}"
        logger.info(f"[FireCrawl] search query: {search_query}")

        with ThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(self.firecrawl.search, search_query, limit=3)
            try:
                response = future.result(timeout=self.timeout)
            except FutureTimeoutError:
                raise CollaboratorError(self.name, f"FireCrawl search timed out after {self.timeout}s")
            except Exception as e:
                raise CollaboratorError(self.name, f"FireCrawl search failed: {e}") from e

        for result in _extract_search_results(response):
            url = _result_field(result, "url")
            text = _result_field(result, "markdown") or _result_field(result, "description") or ""
            snippet = best_snippet(text, keywords)
            if snippet:
                return f"{snippet}\n\n(Source: {url})" if url else snippet
        return None

    def _search_crawl(self, keywords: List[str]) -> Optional[str]:
        pages = 0
        for url, text in self.crawler:
            pages += 1
            if not page_matches(text, keywords):
                continue
            snippet = best_snippet(text, keywords)
            if snippet:
                logger.info(f"Crawl matched {url} after {pages} pages")
                return f"{snippet}\n\n(Source: {url})"
        logger.info(f"Crawl exhausted after {pages} pages with no match")
        return None
