"""FAISS vector store for semantic search.

Handles:
- Named FAISS indexes on disk, one directory per index
- Embedding dimension taken from the first batch written
- Vector addition and search
- Document text and metadata kept in SQLite alongside the vectors
"""
import asyncio
import json
import re
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import faiss
import numpy as np
import structlog

from pdfqa import config, db
from pdfqa.rag.documents import Document, RetrievalResult

logger = structlog.get_logger()

INDEX_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class FAISSIndex:
    """One named FAISS index plus its metadata file."""

    def __init__(self, index_name: str, index_dir: Path, embedding_model: str):
        """Initialize the index handle (nothing is read or created yet).

        Args:
            index_name: Name of the index
            index_dir: Directory holding vectors.index and metadata.json
            embedding_model: Embedding model the vectors come from
        """
        self.index_name = index_name
        self.index_dir = Path(index_dir)
        self.embedding_model = embedding_model

        self.index_path = self.index_dir / "vectors.index"
        self.metadata_path = self.index_dir / "metadata.json"

        self.index: Optional[faiss.Index] = None
        self.dimension: Optional[int] = None
        self.metadata: Dict[str, Any] = {}

        # Disk state of vectors.index as of the last load or save
        self.synced_signature: Optional[Tuple[int, int]] = None

    def exists(self) -> bool:
        return self.index_path.exists() and self.metadata_path.exists()

    def disk_signature(self) -> Optional[Tuple[int, int]]:
        """(mtime_ns, size) of vectors.index, or None when it is not on disk."""
        try:
            stat = self.index_path.stat()
        except FileNotFoundError:
            return None
        return stat.st_mtime_ns, stat.st_size

    def is_stale(self) -> bool:
        """True when another writer changed or removed the index on disk."""
        return self.disk_signature() != self.synced_signature

    @property
    def ntotal(self) -> int:
        return self.index.ntotal if self.index is not None else 0

    def init_new_index(self, dimension: int) -> None:
        """Initialize a new, empty FAISS index.

        Args:
            dimension: Embedding dimension
        """
        if dimension <= 0:
            raise ValueError(f"Embedding dimension must be positive, got {dimension}")

        self.dimension = dimension

        # Exact search; fine for a single document's worth of chunks
        self.index = faiss.IndexFlatL2(self.dimension)

        self.metadata = {
            "index_name": self.index_name,
            "embedding_model": self.embedding_model,
            "embedding_dimension": self.dimension,
            "index_type": "IndexFlatL2",
            "vector_count": 0,
        }

        logger.info(
            "faiss_index_initialized",
            index_name=self.index_name,
            dimension=self.dimension,
            index_type="IndexFlatL2",
        )

    def load_index(self) -> None:
        """Load the index from disk.

        Raises:
            FileNotFoundError: If index files don't exist
            ValueError: If the index was built with another embedding model
            RuntimeError: If loading fails
        """
        if not self.index_path.exists():
            raise FileNotFoundError(f"Index not found: {self.index_path}")

        if not self.metadata_path.exists():
            raise FileNotFoundError(f"Metadata not found: {self.metadata_path}")

        try:
            with open(self.metadata_path, "r") as f:
                self.metadata = json.load(f)
        except Exception as e:
            raise RuntimeError(f"Failed to load metadata: {e}") from e

        stored_model = self.metadata.get("embedding_model")
        if stored_model != self.embedding_model:
            raise ValueError(
                f"Embedding model mismatch: index '{self.index_name}' was built with "
                f"{stored_model}, but the current model is {self.embedding_model}. "
                f"Please rebuild the index."
            )

        signature = self.disk_signature()
        try:
            self.index = faiss.read_index(str(self.index_path))
            self.dimension = self.metadata.get("embedding_dimension", self.index.d)
            self.synced_signature = signature
        except Exception as e:
            raise RuntimeError(f"Failed to load FAISS index: {e}") from e

        logger.info(
            "faiss_index_loaded",
            index_name=self.index_name,
            dimension=self.dimension,
            vector_count=self.index.ntotal,
            model=stored_model,
        )

    def save_index(self) -> None:
        """Save the index and metadata to disk.

        Raises:
            RuntimeError: If save fails
        """
        if self.index is None:
            raise RuntimeError("No index to save. Initialize or load an index first.")

        self.index_dir.mkdir(parents=True, exist_ok=True)

        self.metadata["vector_count"] = self.index.ntotal

        try:
            faiss.write_index(self.index, str(self.index_path))
            self.synced_signature = self.disk_signature()
        except Exception as e:
            raise RuntimeError(f"Failed to save FAISS index: {e}") from e

        try:
            with open(self.metadata_path, "w") as f:
                json.dump(self.metadata, f, indent=2)
        except Exception as e:
            raise RuntimeError(f"Failed to save metadata: {e}") from e

        logger.info(
            "faiss_index_saved",
            index_name=self.index_name,
            index_path=str(self.index_path),
            vector_count=self.index.ntotal,
        )

    def add_vectors(self, embeddings: List[List[float]]) -> List[int]:
        """Append vectors to the index.

        Args:
            embeddings: List of embedding vectors

        Returns:
            Vector IDs (0-indexed positions in the index)

        Raises:
            RuntimeError: If no index initialized
            ValueError: On dimension mismatch
        """
        if self.index is None:
            raise RuntimeError("No index initialized. Call init_new_index() first.")

        if not embeddings:
            return []

        vectors = np.array(embeddings, dtype=np.float32)

        if vectors.ndim != 2 or vectors.shape[1] != self.dimension:
            raise ValueError(
                f"Embedding dimension mismatch: expected {self.dimension}, "
                f"got {vectors.shape[-1] if vectors.ndim else 0}"
            )

        start_id = self.index.ntotal
        self.index.add(vectors)

        logger.info(
            "vectors_added",
            index_name=self.index_name,
            count=len(embeddings),
            total_vectors=self.index.ntotal,
        )

        return list(range(start_id, start_id + len(embeddings)))

    def init_or_load(self, dimension: int) -> None:
        """Load the index from disk if it exists, otherwise start an empty one.

        Raises:
            ValueError: If the stored index was built with another model
        """
        if self.exists():
            logger.info("existing_index_detected", path=str(self.index_path))
            self.load_index()
        else:
            logger.info("no_index_found_initializing_new", index_name=self.index_name)
            self.init_new_index(dimension)

    def search(
        self, query_embedding: List[float], top_k: int
    ) -> Tuple[List[int], List[float]]:
        """Search for the nearest vectors.

        Args:
            query_embedding: Query vector
            top_k: Number of results to return

        Returns:
            Tuple of (vector_ids, distances), nearest first
        """
        if self.index is None:
            raise RuntimeError("No index initialized. Call load_index() first.")

        query_vector = np.array([query_embedding], dtype=np.float32)

        if query_vector.shape[1] != self.dimension:
            raise ValueError(
                f"Query dimension mismatch: expected {self.dimension}, "
                f"got {query_vector.shape[1]}"
            )

        # Never ask for more results than we have
        top_k = min(top_k, self.index.ntotal)

        if top_k <= 0:
            return [], []

        distances, indices = self.index.search(query_vector, top_k)

        vector_ids = [int(i) for i in indices[0] if i != -1]
        distance_scores = [float(d) for i, d in zip(indices[0], distances[0]) if i != -1]

        logger.debug(
            "vector_search_completed",
            index_name=self.index_name,
            top_k=top_k,
            results_found=len(vector_ids),
        )

        return vector_ids, distance_scores

    def get_stats(self) -> Dict[str, Any]:
        if self.index is None:
            return {
                "initialized": False,
                "vector_count": 0,
                "dimension": None,
                "index_exists_on_disk": self.exists(),
            }

        return {
            "initialized": True,
            "vector_count": self.index.ntotal,
            "dimension": self.dimension,
            "embedding_model": self.embedding_model,
            "index_exists_on_disk": self.exists(),
        }

    def delete(self) -> None:
        """Remove the index files and forget the in-memory index."""
        logger.warning("deleting_index", index_name=self.index_name, index_dir=str(self.index_dir))

        if self.index_dir.exists():
            shutil.rmtree(self.index_dir)

        self.index = None
        self.dimension = None
        self.metadata = {}
        self.synced_signature = None


class LocalVectorStore:
    """Vector store over named FAISS indexes and a SQLite document table.

    ``write`` embeds and appends documents; ``search`` embeds a query and
    returns the nearest stored documents. Writes are serialised; searches
    are read-only and may run concurrently.
    """

    def __init__(self, cfg: config.PipelineConfig, client):
        """Initialize the store.

        Args:
            cfg: Pipeline configuration (data directory, embedding model)
            client: Object with an async ``embeddings(prompt, model)`` method
                returning ``{"embedding": [...]}``
        """
        self.config = cfg
        self.client = client
        self.embedding_model = cfg.embedding_model
        self.index_root = cfg.index_root
        self.db_path = cfg.db_path

        self._indexes: Dict[str, FAISSIndex] = {}
        self._write_lock = asyncio.Lock()
        self._db_ready = False

        logger.info(
            "vector_store_initialized",
            data_dir=str(cfg.data_dir),
            embedding_model=self.embedding_model,
        )

    def _ensure_db(self) -> None:
        if not self._db_ready:
            db.init_database(self.db_path)
            self._db_ready = True

    def _check_index_name(self, index_name: str) -> None:
        if not INDEX_NAME_PATTERN.match(index_name or ""):
            raise ValueError(f"Invalid index name: {index_name!r}")

    def _get_index(self, index_name: str) -> FAISSIndex:
        """Return the handle for an index, loading it from disk if present.

        A cached handle is reloaded when the files on disk changed since it
        was last loaded or saved, e.g. by the indexing script running in
        another process.
        """
        self._check_index_name(index_name)

        handle = self._indexes.get(index_name)
        if handle is not None and handle.is_stale():
            logger.info("stale_index_reloaded", index_name=index_name)
            handle = None
        if handle is None:
            handle = FAISSIndex(
                index_name=index_name,
                index_dir=self.index_root / index_name,
                embedding_model=self.embedding_model,
            )
            if handle.exists():
                handle.load_index()
            self._indexes[index_name] = handle
        return handle

    async def embed(self, text: str) -> List[float]:
        """Embed one text with the configured model.

        Raises:
            RuntimeError: If the embedding service returns no vector
        """
        response = await self.client.embeddings(prompt=text, model=self.embedding_model)
        embedding = response.get("embedding", [])

        if not embedding:
            raise RuntimeError("Empty embedding returned for text")

        return embedding

    async def embed_documents(self, documents: Sequence[Document]) -> List[List[float]]:
        """Embed documents one after another, in order."""
        embeddings = []
        for doc in documents:
            try:
                embeddings.append(await self.embed(doc.content))
            except Exception as e:
                logger.error(
                    "embedding_generation_failed",
                    text_preview=doc.content[:100],
                    error=str(e),
                )
                raise RuntimeError(f"Failed to generate embedding: {e}") from e
        return embeddings

    async def write(self, index_name: str, documents: Sequence[Document]) -> List[int]:
        """Embed documents and append them to an index.

        Entries are always appended; writing the same documents twice
        stores them twice. An empty batch writes nothing.

        Returns:
            Vector IDs assigned to the documents, in input order
        """
        self._check_index_name(index_name)

        if not documents:
            logger.info("empty_batch_written", index_name=index_name)
            return []

        async with self._write_lock:
            embeddings = await self.embed_documents(documents)
            # Look the handle up after embedding so IDs follow the latest disk state
            handle = self._get_index(index_name)

            if handle.index is None:
                handle.init_or_load(dimension=len(embeddings[0]))

            try:
                vector_ids = handle.add_vectors(embeddings)
                handle.save_index()
            except Exception:
                # Drop the in-memory copy; the next access reloads what is on disk
                self._indexes.pop(index_name, None)
                raise

            self._ensure_db()
            db.insert_documents(
                self.db_path,
                index_name,
                [
                    (vector_id, doc.content, dict(doc.metadata))
                    for vector_id, doc in zip(vector_ids, documents)
                ],
            )

        logger.info(
            "documents_written",
            index_name=index_name,
            count=len(documents),
            total_vectors=handle.ntotal,
        )

        return vector_ids

    async def search(self, index_name: str, query: str, k: int) -> List[RetrievalResult]:
        """Return up to k stored documents nearest to the query.

        Results are ordered by ascending distance. A missing or empty index
        gives an empty list.
        """
        handle = self._get_index(index_name)

        if handle.ntotal == 0:
            logger.warning("empty_index_no_results", index_name=index_name)
            return []

        query_embedding = await self.embed(query)
        vector_ids, distances = handle.search(query_embedding, top_k=k)

        if not vector_ids:
            return []

        self._ensure_db()
        rows = db.get_documents_by_vector_ids(self.db_path, index_name, vector_ids)
        rows_by_id = {row["vector_id"]: row for row in rows}

        results = []
        for vector_id, distance in zip(vector_ids, distances):
            row = rows_by_id.get(vector_id)
            if row is None:
                logger.warning(
                    "vector_id_without_document",
                    index_name=index_name,
                    vector_id=vector_id,
                )
                continue
            results.append(
                RetrievalResult(
                    document=Document(content=row["content"], metadata=row["metadata"]),
                    distance=distance,
                    vector_id=vector_id,
                )
            )

        logger.info(
            "vector_store_search_completed",
            index_name=index_name,
            k=k,
            results_returned=len(results),
            top_distance=results[0].distance if results else None,
        )

        return results

    async def clear(self, index_name: str) -> None:
        """Delete every entry of an index (vectors and documents)."""
        self._check_index_name(index_name)

        async with self._write_lock:
            handle = self._indexes.pop(index_name, None) or FAISSIndex(
                index_name=index_name,
                index_dir=self.index_root / index_name,
                embedding_model=self.embedding_model,
            )
            handle.delete()
            self._ensure_db()
            db.clear_index(self.db_path, index_name)

        logger.info("index_cleared", index_name=index_name)

    def get_stats(self, index_name: str) -> Dict[str, Any]:
        handle = self._get_index(index_name)
        self._ensure_db()
        stats = handle.get_stats()
        stats["index_name"] = index_name
        stats["document_count"] = db.count_documents(self.db_path, index_name)
        return stats
