"""Retriever for semantic search over the indexed document.

Handles:
- Top-k search against the vector store
- Error wrapping for the query pipeline
- Context formatting for LLM prompts
"""
from typing import List, Optional

import structlog

from pdfqa import config
from pdfqa.errors import RetrievalError
from pdfqa.rag.documents import RetrievalResult

logger = structlog.get_logger()


class Retriever:
    """Semantic retriever for the query pipeline."""

    def __init__(
        self,
        vector_store,
        index_name: str = None,
        top_k: int = None,
    ):
        """Initialize the retriever.

        Args:
            vector_store: Store exposing ``search(index_name, query, k)``
            index_name: Index to search (default from config)
            top_k: Number of results to retrieve (default from config)
        """
        self.vector_store = vector_store
        self.index_name = index_name or config.INDEX_NAME
        self.top_k = top_k or config.RETRIEVAL_TOP_K

        logger.info(
            "retriever_initialized",
            index_name=self.index_name,
            top_k=self.top_k,
        )

    async def retrieve(
        self,
        query: str,
        top_k: Optional[int] = None,
    ) -> List[RetrievalResult]:
        """Retrieve the chunks nearest to a query.

        Args:
            query: User query text
            top_k: Number of results to return (overrides default)

        Returns:
            List of RetrievalResult objects, best first; empty when the index
            is empty

        Raises:
            RetrievalError: If the vector store search fails
        """
        top_k = top_k or self.top_k

        logger.info("retrieval_started", query_length=len(query), top_k=top_k)

        try:
            results = await self.vector_store.search(self.index_name, query, top_k)
        except Exception as e:
            logger.error(
                "retrieval_failed",
                error=str(e),
                error_type=type(e).__name__,
                query_preview=query[:100],
            )
            raise RetrievalError(f"Retrieval failed: {e}") from e

        logger.info(
            "retrieval_completed",
            query_length=len(query),
            results_returned=len(results),
            top_distance=results[0].distance if results else None,
        )

        return results


def format_context(results: List[RetrievalResult], max_chars: int = 8000) -> str:
    """Format retrieved chunks as a context block for an LLM prompt.

    Args:
        results: Retrieved chunks, best first
        max_chars: Maximum total characters of context to return

    Returns:
        Formatted context string ("" when there are no results)
    """
    context_parts = []
    total_chars = 0

    for i, result in enumerate(results, 1):
        chunk_text = (
            f"[Source {i}: {result.source}]\n"
            f"{result.content.strip()}\n"
        )

        if total_chars + len(chunk_text) > max_chars:
            # Fit a truncated version if there is meaningful space left
            remaining = max_chars - total_chars
            if remaining > 200:
                context_parts.append(chunk_text[:remaining] + "...\n")
            break

        context_parts.append(chunk_text)
        total_chars += len(chunk_text)

    context = "\n".join(context_parts)

    logger.debug(
        "context_formatted",
        num_chunks=len(context_parts),
        total_chars=len(context),
    )

    return context
