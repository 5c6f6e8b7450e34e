"""Shared fixtures: fake model service, pipeline config and a PDF builder."""
import math
import re
import zlib
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Sequence

import pytest

from pdfqa.config import PipelineConfig
from pdfqa.rag.generator import NO_CONTEXT_MARKER
from pdfqa.service import create_service

NO_ANSWER_TEXT = "I do not have that information in the provided document."

# Words with a dedicated embedding dimension; everything else is hashed
# into the buckets after them.
VOCAB = [
    "what", "capital", "france", "paris", "gardening", "tools", "seasonal",
    "planting", "schedules", "section", "line", "discusses", "compost",
    "soil", "watering", "roses", "tulips", "greenhouse", "pruning", "shears",
]
HASH_BUCKETS = 256
EMBEDDING_DIM = len(VOCAB) + HASH_BUCKETS + 1

WORD_PATTERN = re.compile(r"[a-z0-9]+")


def fake_embedding(text: str) -> List[float]:
    """Normalized bag-of-words vector over words longer than three letters."""
    vector = [0.0] * EMBEDDING_DIM
    for word in WORD_PATTERN.findall(text.lower()):
        if len(word) <= 3:
            continue
        if word in VOCAB:
            vector[VOCAB.index(word)] += 1.0
        else:
            vector[len(VOCAB) + zlib.crc32(word.encode()) % HASH_BUCKETS] += 1.0

    norm = math.sqrt(sum(v * v for v in vector))
    if norm == 0:
        vector[-1] = 1.0
        return vector
    return [v / norm for v in vector]


class FakeModelClient:
    """Stands in for OllamaClient.

    Embeddings come from ``fake_embedding``. Chat replies with the whole
    context block it was given, or a refusal when there was no context.
    """

    def __init__(self, models: Sequence[str] = ()):
        self.models = list(models)
        self.embedding_calls: List[str] = []
        self.chat_calls: List[List[Dict[str, str]]] = []
        self.chat_error: Exception = None
        self.chat_reply: str = None

    async def embeddings(self, prompt: str, model: str = None) -> Dict:
        self.embedding_calls.append(prompt)
        return {"embedding": fake_embedding(prompt)}

    async def chat(self, messages, model: str = None, temperature=None) -> Dict:
        self.chat_calls.append(messages)
        if self.chat_error is not None:
            raise self.chat_error
        if self.chat_reply is not None:
            return {"message": {"content": self.chat_reply}}

        system = messages[0]["content"]
        if NO_CONTEXT_MARKER in system:
            return {"message": {"content": NO_ANSWER_TEXT}}
        return {"message": {"content": system}}

    async def list_models(self) -> List[str]:
        return self.models


def _pdf_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def make_pdf(pages: Sequence[Sequence[str]]) -> bytes:
    """Build a minimal PDF with one Helvetica text line per list entry."""
    page_count = len(pages)
    page_ids = [4 + 2 * i for i in range(page_count)]

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        (
            "<< /Type /Pages /Kids [%s] /Count %d >>"
            % (" ".join(f"{pid} 0 R" for pid in page_ids), page_count)
        ).encode(),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    for page_id, lines in zip(page_ids, pages):
        objects.append(
            (
                "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
                "/Resources << /Font << /F1 3 0 R >> >> /Contents %d 0 R >>"
                % (page_id + 1)
            ).encode()
        )
        ops = ["BT", "/F1 10 Tf", "14 TL", "40 760 Td"]
        for line in lines:
            ops.append(f"({_pdf_escape(line)}) Tj T*")
        ops.append("ET")
        stream = "\n".join(ops).encode("latin-1")
        objects.append(
            b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream"
        )

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\n" % (len(objects) + 1)
    out += b"startxref\n%d\n%%%%EOF\n" % xref_offset
    return bytes(out)


FILLER_WORDS = [
    "gardening tools", "seasonal planting schedules", "compost and soil",
    "watering roses", "tulips in the greenhouse", "pruning shears",
]


def filler_pages(page_count: int = 5, lines_per_page: int = 10) -> List[List[str]]:
    pages = []
    for p in range(page_count):
        lines = []
        for j in range(lines_per_page):
            topic = FILLER_WORDS[(p + j) % len(FILLER_WORDS)]
            lines.append(f"Section {p + 1} line {j + 1} discusses {topic} at some length.")
        pages.append(lines)
    return pages


@pytest.fixture
def pipeline_config(tmp_path: Path) -> PipelineConfig:
    return replace(
        PipelineConfig(),
        data_dir=tmp_path / "data",
        chat_model="test-chat",
        embedding_model="test-embed",
        index_name="test-index",
    )


@pytest.fixture
def fake_client() -> FakeModelClient:
    return FakeModelClient(models=["test-chat", "test-embed"])


@pytest.fixture
def service(pipeline_config, fake_client):
    return create_service(pipeline_config, client=fake_client)


@pytest.fixture
def france_pdf(tmp_path: Path) -> Path:
    """A five-page PDF with the France sentence on page three."""
    pages = filler_pages()
    pages[2].insert(4, "The capital of France is Paris.")
    path = tmp_path / "france.pdf"
    path.write_bytes(make_pdf(pages))
    return path
