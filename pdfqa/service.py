"""Wiring for the two externally triggered operations.

``indexer_documents`` indexes a PDF, ``document_qa`` answers a question.
Both the HTTP app and the scripts go through a ``DocumentQAService``.
"""
from typing import Any, Dict, Optional

import structlog

from pdfqa import config
from pdfqa.llm_client import OllamaClient
from pdfqa.rag.generator import AnswerGenerator
from pdfqa.rag.ingest import IndexingPipeline
from pdfqa.rag.pdf_extractor import PdfTextExtractor
from pdfqa.rag.qa import QueryPipeline
from pdfqa.rag.retriever import Retriever
from pdfqa.rag.store_faiss import LocalVectorStore

logger = structlog.get_logger()


class DocumentQAService:
    """Indexing and query pipelines sharing one vector store."""

    def __init__(
        self,
        cfg: config.PipelineConfig,
        client,
        vector_store,
        indexing: IndexingPipeline,
        query: QueryPipeline,
    ):
        self.config = cfg
        self.client = client
        self.vector_store = vector_store
        self.indexing = indexing
        self.query = query

    async def indexer_documents(self, file_path: str) -> None:
        await self.indexing.index_document(file_path)

    async def document_qa(self, question: str) -> str:
        return await self.query.answer_question(question)

    async def clear(self) -> None:
        await self.indexing.clear_index()

    def stats(self) -> Dict[str, Any]:
        return self.vector_store.get_stats(self.config.index_name)


def create_service(
    cfg: Optional[config.PipelineConfig] = None,
    client=None,
    extractor=None,
) -> DocumentQAService:
    """Build a service from configuration.

    Args:
        cfg: Pipeline configuration (default: read from the environment)
        client: Embedding/chat client (default: OllamaClient from cfg)
        extractor: Text extractor (default: PdfTextExtractor)
    """
    cfg = cfg or config.PipelineConfig.from_env()
    client = client or OllamaClient.from_config(cfg)

    vector_store = LocalVectorStore(cfg, client)
    indexing = IndexingPipeline(cfg, extractor or PdfTextExtractor(), vector_store)
    query = QueryPipeline(
        cfg,
        Retriever(vector_store, index_name=cfg.index_name, top_k=cfg.retrieval_top_k),
        AnswerGenerator(
            client,
            model=cfg.chat_model,
            max_context_chars=cfg.max_context_chars,
        ),
    )

    logger.info(
        "service_created",
        index_name=cfg.index_name,
        chat_model=cfg.chat_model,
        embedding_model=cfg.embedding_model,
    )

    return DocumentQAService(cfg, client, vector_store, indexing, query)
