"""Document records handed from the chunker to the vector store."""
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, List, Mapping

import structlog

logger = structlog.get_logger()

FILE_PATH_KEY = "file_path"


@dataclass(frozen=True)
class Document:
    """A chunk of text plus the metadata of the file it came from.

    The metadata is copied into a read-only mapping, so a Document cannot be
    changed after it is built.
    """

    content: str
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @classmethod
    def from_text(cls, text: str, metadata: Mapping[str, Any] = None) -> "Document":
        return cls(content=text, metadata=metadata or {})

    @property
    def file_path(self) -> str:
        return self.metadata.get(FILE_PATH_KEY, "")

    def to_dict(self) -> dict:
        return {"content": self.content, "metadata": dict(self.metadata)}


def to_documents(chunks: Iterable[str], metadata: Mapping[str, Any]) -> List[Document]:
    """Wrap each chunk in a Document sharing the same source metadata.

    Args:
        chunks: Chunk strings, in document order
        metadata: Source metadata (e.g. {"file_path": ...})

    Returns:
        One Document per chunk, order preserved; empty input gives []
    """
    documents = [Document.from_text(text, metadata) for text in chunks]
    logger.debug("documents_built", count=len(documents))
    return documents


@dataclass
class RetrievalResult:
    """A retrieved document and its L2 distance to the query."""

    document: Document
    distance: float
    vector_id: int = -1

    @property
    def content(self) -> str:
        return self.document.content

    @property
    def source(self) -> str:
        """Get a formatted source string for display."""
        return self.document.file_path or "unknown"

    @property
    def relevance_score(self) -> float:
        """Map L2 distance to a 0-1 score (lower distance, higher score)."""
        return math.exp(-self.distance / 2.0)
