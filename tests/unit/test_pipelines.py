from unittest.mock import AsyncMock, MagicMock

import pytest

from pdfqa.errors import (
    ExtractionError,
    FileNotFound,
    GenerationError,
    IndexingError,
    InvalidQuery,
    RetrievalError,
)
from pdfqa.rag.chunker import ChunkOptions
from pdfqa.rag.documents import Document, RetrievalResult
from pdfqa.rag.generator import NO_CONTEXT_MARKER, AnswerGenerator
from pdfqa.rag.ingest import IndexingPipeline
from pdfqa.rag.qa import QueryPipeline, build_prompt
from pdfqa.rag.retriever import Retriever, format_context
from tests.conftest import FakeModelClient


def _extractor(text="", error=None):
    extractor = MagicMock()
    if error is not None:
        extractor.extract_text.side_effect = error
    else:
        extractor.extract_text.return_value = text
    return extractor


def _store():
    store = MagicMock()
    store.write = AsyncMock(return_value=[])
    store.search = AsyncMock(return_value=[])
    store.clear = AsyncMock()
    return store


def _result(content, path="/tmp/doc.pdf", distance=0.5):
    return RetrievalResult(
        document=Document.from_text(content, {"file_path": path}), distance=distance
    )


@pytest.fixture
def pdf_file(tmp_path):
    path = tmp_path / "doc.pdf"
    path.write_bytes(b"%PDF-1.4 placeholder")
    return path


# Indexing pipeline


@pytest.mark.asyncio
async def test_missing_file_raises_file_not_found(pipeline_config, tmp_path):
    store = _store()
    extractor = _extractor("text")
    pipeline = IndexingPipeline(pipeline_config, extractor, store)

    with pytest.raises(FileNotFound):
        await pipeline.index_document(tmp_path / "missing.pdf")

    extractor.extract_text.assert_not_called()
    store.write.assert_not_awaited()


@pytest.mark.asyncio
async def test_directory_path_raises_file_not_found(pipeline_config, tmp_path):
    pipeline = IndexingPipeline(pipeline_config, _extractor("text"), _store())

    with pytest.raises(FileNotFound):
        await pipeline.index_document(tmp_path)


@pytest.mark.asyncio
async def test_extraction_failure_writes_nothing(pipeline_config, pdf_file):
    store = _store()
    pipeline = IndexingPipeline(
        pipeline_config, _extractor(error=ExtractionError("bad pdf")), store
    )

    with pytest.raises(ExtractionError, match="bad pdf"):
        await pipeline.index_document(pdf_file)

    store.write.assert_not_awaited()


@pytest.mark.asyncio
async def test_unexpected_extractor_error_becomes_extraction_error(pipeline_config, pdf_file):
    pipeline = IndexingPipeline(
        pipeline_config, _extractor(error=KeyError("xref")), _store()
    )

    with pytest.raises(ExtractionError):
        await pipeline.index_document(pdf_file)


@pytest.mark.asyncio
async def test_documents_carry_absolute_file_path(pipeline_config, pdf_file, monkeypatch):
    monkeypatch.chdir(pdf_file.parent)
    store = _store()
    text = " ".join(f"Sentence {i} talks about soil." for i in range(200))
    options = ChunkOptions(min_length=200, max_length=400, overlap=20)
    pipeline = IndexingPipeline(pipeline_config, _extractor(text), store, chunk_options=options)

    await pipeline.index_document("doc.pdf")

    index_name, documents = store.write.await_args.args
    assert index_name == "test-index"
    assert len(documents) > 1
    assert {d.file_path for d in documents} == {str(pdf_file.resolve())}
    rebuilt = documents[0].content + "".join(d.content[20:] for d in documents[1:])
    assert rebuilt == text


@pytest.mark.asyncio
async def test_empty_text_writes_empty_batch(pipeline_config, pdf_file):
    store = _store()
    pipeline = IndexingPipeline(pipeline_config, _extractor("   \n "), store)

    await pipeline.index_document(pdf_file)

    store.write.assert_awaited_once_with("test-index", [])


@pytest.mark.asyncio
async def test_store_failure_raises_indexing_error(pipeline_config, pdf_file):
    store = _store()
    store.write.side_effect = RuntimeError("disk full")
    pipeline = IndexingPipeline(pipeline_config, _extractor("Some text."), store)

    with pytest.raises(IndexingError, match="disk full"):
        await pipeline.index_document(pdf_file)


@pytest.mark.asyncio
async def test_clear_index_clears_configured_index(pipeline_config):
    store = _store()
    pipeline = IndexingPipeline(pipeline_config, _extractor(), store)

    await pipeline.clear_index()

    store.clear.assert_awaited_once_with("test-index")


# Query pipeline


def _query_pipeline(cfg, store, client):
    return QueryPipeline(
        cfg,
        Retriever(store, index_name=cfg.index_name, top_k=cfg.retrieval_top_k),
        AnswerGenerator(client, model=cfg.chat_model),
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("query", ["", "   ", "\n\t", None])
async def test_empty_query_is_rejected_before_any_call(pipeline_config, query):
    store = _store()
    client = FakeModelClient()

    with pytest.raises(InvalidQuery):
        await _query_pipeline(pipeline_config, store, client).answer_question(query)

    store.search.assert_not_awaited()
    assert client.chat_calls == []


@pytest.mark.asyncio
async def test_retrieves_three_results_and_answers_verbatim(pipeline_config):
    store = _store()
    store.search.return_value = [_result("Paris is the capital.")]
    client = FakeModelClient()
    client.chat_reply = "  The capital is Paris.  "

    answer = await _query_pipeline(pipeline_config, store, client).answer_question(
        "What is the capital of France?"
    )

    assert answer == "  The capital is Paris.  "
    store.search.assert_awaited_once_with("test-index", "What is the capital of France?", 3)
    system, user = client.chat_calls[0]
    assert "Paris is the capital." in system["content"]
    assert "What is the capital of France?" in user["content"]
    assert user["content"] == build_prompt("What is the capital of France?")


@pytest.mark.asyncio
async def test_empty_retrieval_still_generates(pipeline_config):
    client = FakeModelClient()

    answer = await _query_pipeline(pipeline_config, _store(), client).answer_question(
        "Anything in there?"
    )

    assert "do not have" in answer
    assert NO_CONTEXT_MARKER in client.chat_calls[0][0]["content"]


@pytest.mark.asyncio
async def test_store_failure_raises_retrieval_error(pipeline_config):
    store = _store()
    store.search.side_effect = ValueError("Embedding model mismatch")
    client = FakeModelClient()

    with pytest.raises(RetrievalError, match="Embedding model mismatch"):
        await _query_pipeline(pipeline_config, store, client).answer_question("Question?")

    assert client.chat_calls == []


@pytest.mark.asyncio
async def test_chat_failure_raises_generation_error(pipeline_config):
    client = FakeModelClient()
    client.chat_error = ConnectionError("refused")

    with pytest.raises(GenerationError, match="refused"):
        await _query_pipeline(pipeline_config, _store(), client).answer_question("Question?")


@pytest.mark.asyncio
async def test_empty_chat_reply_is_returned_as_is(pipeline_config):
    client = FakeModelClient()
    client.chat_reply = ""

    answer = await _query_pipeline(pipeline_config, _store(), client).answer_question("Question?")

    assert answer == ""


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [{}, {"message": None}, None, {"error": "model not found"}])
async def test_response_without_message_raises_generation_error(pipeline_config, response):
    client = FakeModelClient()
    client.chat = AsyncMock(return_value=response)

    with pytest.raises(GenerationError, match="no message"):
        await _query_pipeline(pipeline_config, _store(), client).answer_question("Question?")


def test_prompt_contains_query_and_grounding_instructions():
    prompt = build_prompt("Who wrote it?")

    assert "Question: Who wrote it?" in prompt
    assert "only the context" in prompt
    assert "Do not make up" in prompt


def test_format_context_labels_sources_and_truncates():
    results = [_result("a" * 300, path="/tmp/one.pdf"), _result("b" * 600, path="/tmp/two.pdf")]

    context = format_context(results, max_chars=700)

    assert context.startswith("[Source 1: /tmp/one.pdf]\n")
    assert "[Source 2: /tmp/two.pdf]" in context
    assert context.endswith("...\n")
    assert format_context([]) == ""
