"""
Corpus ingestion.

Builds the knowledge corpus once at startup from document sources and
calendar sources, in a fixed order. Any single source that fails is
logged and skipped; startup never aborts because of one bad file or feed.

Text extraction is format-agnostic from the corpus' point of view: a
DocumentSource only has to hand back (source_id, raw_text) pairs.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Protocol

from src.common.error_handling import IngestionError, safe_execute
from src.common.types import EntryKind, KnowledgeEntry
from src.knowledge.store import CorpusBuilder, KnowledgeCorpus

logger = logging.getLogger(__name__)

TextExtractor = Callable[[Path], str]


class DocumentSource(Protocol):
    """Supplies raw document text, one source at a time."""

    def list_sources(self) -> List[str]:
        ...

    def read(self, source_id: str) -> str:
        """Return raw text; raise IngestionError when the source is unreadable."""
        ...


class CalendarSource(Protocol):
    """Supplies normalized, forward-looking event text."""

    source_id: str

    def fetch_event_text(self) -> str:
        ...


class RosterNormalizer(Protocol):
    """Optional: rewrites a staff document as "Name – Title" lines."""

    def normalize(self, source_id: str, raw_text: str) -> Optional[str]:
        ...


# ===== TEXT EXTRACTORS =====

def _read_plain_text(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


def _read_pdf(path: Path) -> str:
    from PyPDF2 import PdfReader

    reader = PdfReader(str(path))
    return "\n".join((page.extract_text() or "") for page in reader.pages)


def _read_docx(path: Path) -> str:
    from docx import Document

    document = Document(str(path))
    return "\n".join(paragraph.text for paragraph in document.paragraphs)


DEFAULT_EXTRACTORS: Dict[str, TextExtractor] = {
    ".txt": _read_plain_text,
    ".md": _read_plain_text,
    ".pdf": _read_pdf,
    ".docx": _read_docx,
}


class DirectoryDocumentSource:
    """
    Reads every supported file under a directory, sorted by relative path.

    Files with an unknown suffix are ignored. Extractors can be replaced
    or extended per suffix.
    """

    def __init__(
        self,
        root: str,
        extractors: Optional[Dict[str, TextExtractor]] = None,
    ):
        self.root = Path(root)
        self.extractors = dict(DEFAULT_EXTRACTORS)
        if extractors:
            self.extractors.update(extractors)

    def list_sources(self) -> List[str]:
        if not self.root.is_dir():
            logger.warning(f"Knowledge directory not found: {self.root}")
            return []
        return sorted(
            str(p.relative_to(self.root))
            for p in self.root.rglob("*")
            if p.is_file() and p.suffix.lower() in self.extractors
        )

    def read(self, source_id: str) -> str:
        path = self.root / source_id
        extractor = self.extractors.get(path.suffix.lower())
        if extractor is None:
            raise IngestionError(source_id, f"no extractor for {path.suffix!r}")
        try:
            text = extractor(path)
        except Exception as e:
            raise IngestionError(source_id, f"extraction failed: {e}") from e
        if not text or not text.strip():
            raise IngestionError(source_id, "no extractable text")
        return text


# ===== CORPUS BUILD =====

def _ingest_document(
    source: DocumentSource,
    source_id: str,
    roster: Optional[RosterNormalizer],
) -> List[KnowledgeEntry]:
    raw_text = source.read(source_id)
    entries = [KnowledgeEntry(source_id=source_id, text=raw_text, kind=EntryKind.DOCUMENT)]

    if roster is not None:
        summary = safe_execute(
            roster.normalize,
            source_id,
            raw_text,
            operation_name=f"roster summary {source_id}",
            logger=logger,
            fallback=None,
        )
        if summary:
            entries.insert(0, KnowledgeEntry(
                source_id=f"{source_id}#roster",
                text=summary,
                kind=EntryKind.ROSTER_SUMMARY,
            ))
    return entries


def build_corpus(
    document_sources: Iterable[DocumentSource] = (),
    calendar_sources: Iterable[CalendarSource] = (),
    roster: Optional[RosterNormalizer] = None,
) -> KnowledgeCorpus:
    """
    Build a frozen corpus from all sources, in order.

    Documents come first (each optionally preceded by its roster summary),
    then calendar events. Failing sources are logged and skipped.

    Args:
        document_sources: Document collaborators, read in the given order
        calendar_sources: Calendar collaborators, read after documents
        roster: Optional roster normalizer applied to every document

    Returns:
        KnowledgeCorpus (possibly partial, possibly empty)
    """
    builder = CorpusBuilder()
    skipped = 0

    for source in document_sources:
        source_ids = safe_execute(
            source.list_sources,
            operation_name=f"list {type(source).__name__}",
            logger=logger,
            fallback=[],
        )
        for source_id in source_ids:
            entries = safe_execute(
                _ingest_document,
                source,
                source_id,
                roster,
                operation_name=f"ingest {source_id}",
                logger=logger,
                fallback=None,
            )
            if entries is None:
                skipped += 1
                continue
            builder.extend(entries)
            logger.debug(f"Loaded document {source_id} ({len(entries[-1].text)} chars)")

    for calendar in calendar_sources:
        source_id = getattr(calendar, "source_id", type(calendar).__name__)
        event_text = safe_execute(
            calendar.fetch_event_text,
            operation_name=f"calendar {source_id}",
            logger=logger,
            fallback=None,
        )
        if event_text is None:
            skipped += 1
            continue
        if event_text.strip():
            builder.add(KnowledgeEntry(
                source_id=source_id,
                text=event_text,
                kind=EntryKind.CALENDAR_EVENT,
            ))

    corpus = builder.build()
    logger.info(f"Corpus built: {len(corpus)} entries, {len(corpus.text)} chars, {skipped} sources skipped")
    return corpus
