"""Application configuration with sensible defaults."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Paths
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("PDFQA_DATA_DIR", str(BASE_DIR / "data")))

# Ollama configuration
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
OLLAMA_API_KEY = os.getenv("OLLAMA_API_KEY") or None  # only for hosted endpoints
CHAT_MODEL = os.getenv("CHAT_MODEL", "gemma3:12b")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "mxbai-embed-large:latest")
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "60.0"))

# Index
INDEX_NAME = os.getenv("INDEX_NAME", "pdf-index")

# Chunking (character-based)
CHUNK_MIN_LENGTH = int(os.getenv("CHUNK_MIN_LENGTH", "1000"))
CHUNK_MAX_LENGTH = int(os.getenv("CHUNK_MAX_LENGTH", "2000"))
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "100"))
CHUNK_SPLIT_POLICY = os.getenv("CHUNK_SPLIT_POLICY", "sentence")

# Retrieval
RETRIEVAL_TOP_K = int(os.getenv("RETRIEVAL_TOP_K", "3"))
MAX_CONTEXT_CHARS = int(os.getenv("MAX_CONTEXT_CHARS", "8000"))
MAX_QUESTION_CHARS = int(os.getenv("MAX_QUESTION_CHARS", "2000"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


@dataclass(frozen=True)
class PipelineConfig:
    """Settings shared by the indexing and query pipelines.

    Built once at startup and handed to every constructor that needs it.
    """

    data_dir: Path = DATA_DIR
    ollama_base_url: str = OLLAMA_BASE_URL
    ollama_api_key: Optional[str] = OLLAMA_API_KEY
    chat_model: str = CHAT_MODEL
    embedding_model: str = EMBEDDING_MODEL
    request_timeout: float = REQUEST_TIMEOUT
    index_name: str = INDEX_NAME
    chunk_min_length: int = CHUNK_MIN_LENGTH
    chunk_max_length: int = CHUNK_MAX_LENGTH
    chunk_overlap: int = CHUNK_OVERLAP
    chunk_split_policy: str = CHUNK_SPLIT_POLICY
    retrieval_top_k: int = RETRIEVAL_TOP_K
    max_context_chars: int = MAX_CONTEXT_CHARS
    max_question_chars: int = MAX_QUESTION_CHARS

    @property
    def db_path(self) -> Path:
        return self.data_dir / "documents.sqlite"

    @property
    def index_root(self) -> Path:
        return self.data_dir / "indexes"

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Read the current environment (not the values captured at import)."""
        return cls(
            data_dir=Path(os.getenv("PDFQA_DATA_DIR", str(BASE_DIR / "data"))),
            ollama_base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434"),
            ollama_api_key=os.getenv("OLLAMA_API_KEY") or None,
            chat_model=os.getenv("CHAT_MODEL", "gemma3:12b"),
            embedding_model=os.getenv("EMBEDDING_MODEL", "mxbai-embed-large:latest"),
            request_timeout=float(os.getenv("REQUEST_TIMEOUT", "60.0")),
            index_name=os.getenv("INDEX_NAME", "pdf-index"),
            chunk_min_length=int(os.getenv("CHUNK_MIN_LENGTH", "1000")),
            chunk_max_length=int(os.getenv("CHUNK_MAX_LENGTH", "2000")),
            chunk_overlap=int(os.getenv("CHUNK_OVERLAP", "100")),
            chunk_split_policy=os.getenv("CHUNK_SPLIT_POLICY", "sentence"),
            retrieval_top_k=int(os.getenv("RETRIEVAL_TOP_K", "3")),
            max_context_chars=int(os.getenv("MAX_CONTEXT_CHARS", "8000")),
            max_question_chars=int(os.getenv("MAX_QUESTION_CHARS", "2000")),
        )
