"""Text chunking with overlap for the indexing pipeline.

Character-based, so chunk sizes do not depend on any tokenizer.
"""
import re
from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum
from typing import List

import structlog

from pdfqa import config
from pdfqa.errors import InvalidParameters

logger = structlog.get_logger()

# Sentence terminator followed by whitespace, or a blank line.
SENTENCE_BOUNDARY_PATTERN = re.compile(r"[.!?]+[\"')\]]*(?=\s)|\n[ \t]*\n")


class SplitPolicy(str, Enum):
    SENTENCE = "sentence"
    CHARACTER = "character"


@dataclass(frozen=True)
class ChunkOptions:
    """Size window and overlap for a chunking run."""

    min_length: int
    max_length: int
    overlap: int
    split_policy: SplitPolicy = SplitPolicy.SENTENCE

    def __post_init__(self):
        try:
            policy = SplitPolicy(self.split_policy)
        except ValueError:
            raise InvalidParameters(
                f"Unknown split policy {self.split_policy!r} "
                f"(expected one of: {', '.join(p.value for p in SplitPolicy)})"
            ) from None
        object.__setattr__(self, "split_policy", policy)

        if self.overlap < 0:
            raise InvalidParameters(f"Overlap ({self.overlap}) must not be negative")
        if self.overlap >= self.min_length:
            raise InvalidParameters(
                f"Overlap ({self.overlap}) must be less than "
                f"minimum length ({self.min_length})"
            )
        if self.min_length > self.max_length:
            raise InvalidParameters(
                f"Minimum length ({self.min_length}) must not exceed "
                f"maximum length ({self.max_length})"
            )

    @classmethod
    def from_config(cls, cfg: config.PipelineConfig) -> "ChunkOptions":
        return cls(
            min_length=cfg.chunk_min_length,
            max_length=cfg.chunk_max_length,
            overlap=cfg.chunk_overlap,
            split_policy=cfg.chunk_split_policy,
        )


DEFAULT_OPTIONS = ChunkOptions(
    min_length=1000,
    max_length=2000,
    overlap=100,
    split_policy=SplitPolicy.SENTENCE,
)


@dataclass
class TextChunk:
    """Represents a chunk of text with position information."""

    content: str
    char_start: int
    char_end: int
    chunk_index: int


class TextChunker:
    """Character-based text chunker with overlap support."""

    def __init__(self, options: ChunkOptions = None):
        """Initialize the text chunker.

        Args:
            options: Size window, overlap and split policy (default: 1000-2000
                characters, 100 overlap, sentence boundaries)
        """
        self.options = options or DEFAULT_OPTIONS

        logger.info(
            "chunker_initialized",
            min_length=self.options.min_length,
            max_length=self.options.max_length,
            overlap=self.options.overlap,
            split_policy=self.options.split_policy.value,
        )

    def chunk_text(self, text: str) -> List[TextChunk]:
        """Split text into overlapping chunks.

        Every chunk except the last is between min_length and max_length
        characters long. Each chunk starts ``overlap`` characters before the
        end of the previous one. The trailing remainder is always kept.

        Args:
            text: Text to chunk

        Returns:
            List of TextChunk objects (empty for blank text)
        """
        if not text or not text.strip():
            logger.debug("empty_text_not_chunked")
            return []

        opts = self.options
        text_length = len(text)
        boundaries = self._sentence_boundaries(text)

        chunks = []
        start = 0

        while text_length - start > opts.max_length:
            end = self._find_chunk_end(start, boundaries)
            chunks.append(
                TextChunk(
                    content=text[start:end],
                    char_start=start,
                    char_end=end,
                    chunk_index=len(chunks),
                )
            )
            start = end - opts.overlap

        chunks.append(
            TextChunk(
                content=text[start:],
                char_start=start,
                char_end=text_length,
                chunk_index=len(chunks),
            )
        )

        logger.info(
            "text_chunked",
            text_length=text_length,
            chunk_count=len(chunks),
            avg_chunk_size=sum(len(c.content) for c in chunks) // len(chunks),
        )

        return chunks

    def _sentence_boundaries(self, text: str) -> List[int]:
        """Offsets just past each sentence end, in ascending order."""
        if self.options.split_policy is not SplitPolicy.SENTENCE:
            return []
        return [m.end() for m in SENTENCE_BOUNDARY_PATTERN.finditer(text)]

    def _find_chunk_end(self, start: int, boundaries: List[int]) -> int:
        """Pick the end offset of a chunk beginning at ``start``.

        Prefers the last sentence boundary inside [start + min_length,
        start + max_length]; falls back to a hard cut at max_length.
        """
        lower = start + self.options.min_length
        upper = start + self.options.max_length

        idx = bisect_right(boundaries, upper) - 1
        if idx >= 0 and boundaries[idx] >= lower:
            return boundaries[idx]
        return upper

    def get_chunk_stats(self, chunks: List[TextChunk]) -> dict:
        """Get statistics about a set of chunks.

        Args:
            chunks: List of TextChunk objects

        Returns:
            Dictionary with chunk statistics
        """
        if not chunks:
            return {
                "chunk_count": 0,
                "total_chars": 0,
                "avg_chunk_size": 0,
                "min_chunk_size": 0,
                "max_chunk_size": 0,
                "overlap": self.options.overlap,
            }

        chunk_sizes = [len(c.content) for c in chunks]

        return {
            "chunk_count": len(chunks),
            "total_chars": sum(chunk_sizes),
            "avg_chunk_size": sum(chunk_sizes) // len(chunks),
            "min_chunk_size": min(chunk_sizes),
            "max_chunk_size": max(chunk_sizes),
            "overlap": self.options.overlap,
        }


def chunk(text: str, options: ChunkOptions = None) -> List[str]:
    """Chunk text and return only the chunk strings.

    Args:
        text: Text to chunk
        options: Chunking options (default: DEFAULT_OPTIONS)

    Returns:
        Ordered list of chunk strings
    """
    return [c.content for c in TextChunker(options).chunk_text(text)]
