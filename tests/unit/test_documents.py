import dataclasses

import pytest

from pdfqa.rag.documents import Document, RetrievalResult, to_documents


def test_to_documents_preserves_order_count_and_metadata():
    chunks = ["first chunk", "second chunk", "third chunk"]
    metadata = {"file_path": "/tmp/report.pdf"}

    documents = to_documents(chunks, metadata)

    assert len(documents) == len(chunks)
    assert [d.content for d in documents] == chunks
    assert all(d.metadata == metadata for d in documents)
    assert all(d.file_path == "/tmp/report.pdf" for d in documents)


def test_to_documents_with_no_chunks_returns_empty_list():
    assert to_documents([], {"file_path": "/tmp/empty.pdf"}) == []


def test_documents_do_not_share_the_callers_metadata():
    metadata = {"file_path": "/tmp/a.pdf"}
    documents = to_documents(["one", "two"], metadata)

    metadata["file_path"] = "/tmp/changed.pdf"

    assert documents[0].file_path == "/tmp/a.pdf"
    assert documents[1].file_path == "/tmp/a.pdf"


def test_document_is_immutable():
    doc = Document.from_text("text", {"file_path": "/tmp/a.pdf"})

    with pytest.raises(dataclasses.FrozenInstanceError):
        doc.content = "other"
    with pytest.raises(TypeError):
        doc.metadata["file_path"] = "/tmp/b.pdf"


def test_document_to_dict():
    doc = Document.from_text("text", {"file_path": "/tmp/a.pdf"})

    assert doc.to_dict() == {"content": "text", "metadata": {"file_path": "/tmp/a.pdf"}}


def test_retrieval_result_relevance_decreases_with_distance():
    doc = Document.from_text("text", {"file_path": "/tmp/a.pdf"})
    near = RetrievalResult(document=doc, distance=0.0)
    far = RetrievalResult(document=doc, distance=1.5)

    assert near.relevance_score == pytest.approx(1.0)
    assert far.relevance_score < near.relevance_score
    assert near.source == "/tmp/a.pdf"
    assert RetrievalResult(document=Document.from_text("x"), distance=0.1).source == "unknown"
