"""
Knowledge Store

Holds the in-memory corpus every request reads from. The corpus is built
once (append-only while loading), frozen, and published as a single
snapshot. A refresh builds a complete new snapshot and swaps it in, so
readers never see a half-built corpus and never need a lock.
"""

import logging
import re
import threading
from functools import lru_cache
from typing import Iterable, Iterator, List, Optional, Tuple

from src.common.types import EntryKind, KnowledgeEntry

logger = logging.getLogger(__name__)


@lru_cache(maxsize=512)
def _word_pattern(word: str) -> "re.Pattern[str]":
    return re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE)


class KnowledgeCorpus:
    """
    Immutable, ordered collection of knowledge entries.

    The concatenated text is computed once at construction.
    """

    SEPARATOR = "\n\n"

    def __init__(self, entries: Iterable[KnowledgeEntry] = ()):
        self._entries: Tuple[KnowledgeEntry, ...] = tuple(entries)
        self._text = self.SEPARATOR.join(e.text for e in self._entries if e.text)
        self._lines: Tuple[str, ...] = tuple(self._text.splitlines())

    @property
    def entries(self) -> Tuple[KnowledgeEntry, ...]:
        return self._entries

    @property
    def text(self) -> str:
        return self._text

    @property
    def lines(self) -> Tuple[str, ...]:
        return self._lines

    def text_for(self, *kinds: EntryKind) -> str:
        """Concatenated text of the entries of the given kinds only."""
        return self.SEPARATOR.join(
            e.text for e in self._entries if e.kind in kinds and e.text
        )

    def contains_word(self, word: str) -> bool:
        """Case-insensitive whole-word test."""
        if not word or not word.strip():
            return False
        return _word_pattern(word.strip()).search(self._text) is not None

    def contains_phrase(self, phrase: str) -> bool:
        """Case-insensitive whole-word test for a multi-word phrase."""
        return self.contains_word(phrase)

    def find_phrase(self, phrase: str) -> Iterator[Tuple[int, int, int]]:
        """
        Yield (line_index, start, end) for each occurrence of a phrase.

        Offsets are within the line. Occurrences are yielded in corpus order.
        """
        pattern = _word_pattern(phrase.strip())
        for index, line in enumerate(self._lines):
            for match in pattern.finditer(line):
                yield index, match.start(), match.end()

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"KnowledgeCorpus(entries={len(self._entries)}, chars={len(self._text)})"


class CorpusBuilder:
    """Append-only accumulator used while loading; produces a frozen corpus."""

    def __init__(self):
        self._entries: List[KnowledgeEntry] = []
        self._built = False

    def add(self, entry: KnowledgeEntry) -> None:
        if self._built:
            raise RuntimeError("CorpusBuilder already built; corpus is frozen")
        self._entries.append(entry)

    def extend(self, entries: Iterable[KnowledgeEntry]) -> None:
        for entry in entries:
            self.add(entry)

    def build(self) -> KnowledgeCorpus:
        self._built = True
        return KnowledgeCorpus(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class KnowledgeStore:
    """
    Read-only view over the current corpus snapshot.

    Readers call the query methods freely from any number of threads.
    Only swap() takes a lock, to serialize concurrent refreshes.
    """

    def __init__(self, corpus: Optional[KnowledgeCorpus] = None):
        self._corpus = corpus if corpus is not None else KnowledgeCorpus()
        self._swap_lock = threading.Lock()

    @classmethod
    def from_texts(cls, *texts: str) -> "KnowledgeStore":
        """Build a store from raw document texts (handy for tests and scripts)."""
        return cls(KnowledgeCorpus(
            KnowledgeEntry(source_id=f"text-{i}", text=t) for i, t in enumerate(texts)
        ))

    def snapshot(self) -> KnowledgeCorpus:
        """Return the current corpus; hold on to it for a consistent view."""
        return self._corpus

    def swap(self, corpus: KnowledgeCorpus) -> KnowledgeCorpus:
        """Publish a new snapshot and return the previous one."""
        with self._swap_lock:
            previous = self._corpus
            self._corpus = corpus
        logger.info(f"Knowledge store swapped: {previous!r} -> {corpus!r}")
        return previous

    def corpus_text(self) -> str:
        return self._corpus.text

    def contains_word(self, word: str) -> bool:
        return self._corpus.contains_word(word)

    def contains_phrase(self, phrase: str) -> bool:
        return self._corpus.contains_phrase(phrase)

    @property
    def is_empty(self) -> bool:
        return len(self._corpus) == 0
