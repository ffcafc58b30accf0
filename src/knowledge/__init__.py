"""
Knowledge corpus: ingestion of documents and calendar feeds into a frozen,
read-only snapshot shared by every request.
"""

from .store import CorpusBuilder, KnowledgeCorpus, KnowledgeStore
from .ingestion import DirectoryDocumentSource, build_corpus

__all__ = [
    "CorpusBuilder",
    "KnowledgeCorpus",
    "KnowledgeStore",
    "DirectoryDocumentSource",
    "build_corpus",
]
