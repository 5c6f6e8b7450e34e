"""Indexing pipeline for a single PDF.

Orchestrates:
- Path resolution and file read
- PDF text extraction
- Text chunking
- Document building
- Batch write to the vector store
"""
import asyncio
from pathlib import Path
from typing import Union

import structlog

from pdfqa import config
from pdfqa.errors import ExtractionError, FileNotFound, IndexingError
from pdfqa.rag.chunker import ChunkOptions, TextChunker
from pdfqa.rag.documents import FILE_PATH_KEY, to_documents
from pdfqa.rag.pdf_extractor import TextExtractor

logger = structlog.get_logger()


class IndexingPipeline:
    """Extract, chunk and store one document per call."""

    def __init__(
        self,
        cfg: config.PipelineConfig,
        extractor: TextExtractor,
        vector_store,
        chunk_options: ChunkOptions = None,
    ):
        """Initialize the indexing pipeline.

        Args:
            cfg: Pipeline configuration (index name, chunking defaults)
            extractor: Object exposing ``extract_text(data) -> str``
            vector_store: Store exposing ``write(index_name, documents)``
            chunk_options: Overrides the chunking options from cfg
        """
        self.config = cfg
        self.index_name = cfg.index_name
        self.extractor = extractor
        self.vector_store = vector_store
        self.chunker = TextChunker(chunk_options or ChunkOptions.from_config(cfg))

        logger.info(
            "indexing_pipeline_initialized",
            index_name=self.index_name,
            min_length=self.chunker.options.min_length,
            max_length=self.chunker.options.max_length,
            overlap=self.chunker.options.overlap,
        )

    def _read_file(self, file_path: Union[str, Path]) -> tuple:
        path = Path(file_path).expanduser().resolve()

        if not path.is_file():
            logger.error("file_not_found", path=str(path))
            raise FileNotFound(f"File not found: {path}")

        try:
            return path, path.read_bytes()
        except OSError as e:
            logger.error("file_read_failed", path=str(path), error=str(e))
            raise FileNotFound(f"Cannot read file {path}: {e}") from e

    async def index_document(self, file_path: Union[str, Path]) -> None:
        """Index one document into the configured index.

        Every call appends; indexing the same file twice stores its chunks
        twice.

        Raises:
            FileNotFound: If the file is missing or unreadable
            ExtractionError: If the file cannot be parsed
            IndexingError: If the vector store write fails
        """
        path, data = self._read_file(file_path)

        logger.info("indexing_file", path=str(path), size_bytes=len(data))

        try:
            raw_text = await asyncio.to_thread(self.extractor.extract_text, data)
        except ExtractionError:
            raise
        except Exception as e:
            logger.error("text_extraction_failed", path=str(path), error=str(e))
            raise ExtractionError(f"Failed to extract text from {path}: {e}") from e

        chunks = self.chunker.chunk_text(raw_text)
        if not chunks:
            logger.warning("no_chunks_created", path=str(path))

        documents = to_documents(
            [c.content for c in chunks], {FILE_PATH_KEY: str(path)}
        )

        try:
            await self.vector_store.write(self.index_name, documents)
        except Exception as e:
            logger.error(
                "index_write_failed",
                path=str(path),
                index_name=self.index_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise IndexingError(f"Failed to write {path} to index '{self.index_name}': {e}") from e

        logger.info(
            "document_indexed",
            path=str(path),
            index_name=self.index_name,
            **self.chunker.get_chunk_stats(chunks),
        )

    async def clear_index(self) -> None:
        """Drop every entry of the pipeline's index."""
        await self.vector_store.clear(self.index_name)
        logger.info("index_cleared_by_pipeline", index_name=self.index_name)
