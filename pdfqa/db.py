"""SQLite storage for indexed document records.

Each row holds the text and metadata of one document, keyed by the name of
the vector index it belongs to and its FAISS vector ID within that index.
"""
import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

import structlog

logger = structlog.get_logger()


def get_connection(db_path: Path) -> sqlite3.Connection:
    """Get a connection to the SQLite database.

    Returns:
        sqlite3.Connection with row_factory set to sqlite3.Row
    """
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_database(db_path: Path) -> None:
    """Create the documents table if it does not exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = get_connection(db_path)
    cursor = conn.cursor()

    try:
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                index_name TEXT NOT NULL,
                vector_id INTEGER NOT NULL,
                content TEXT NOT NULL,
                metadata_json TEXT,
                created_at TEXT NOT NULL,
                UNIQUE(index_name, vector_id)
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_documents_index_vector
            ON documents(index_name, vector_id)
        """)

        conn.commit()
        logger.debug("database_initialized", db_path=str(db_path))

    except Exception as e:
        conn.rollback()
        logger.error("database_init_failed", error=str(e))
        raise
    finally:
        conn.close()


def insert_documents(
    db_path: Path,
    index_name: str,
    rows: Sequence[Tuple[int, str, Dict[str, Any]]],
) -> int:
    """Insert document rows in a single transaction.

    Args:
        db_path: Database file
        index_name: Vector index the rows belong to
        rows: (vector_id, content, metadata) tuples

    Returns:
        Number of rows inserted
    """
    if not rows:
        return 0

    created_at = datetime.now(timezone.utc).isoformat()
    conn = get_connection(db_path)

    try:
        conn.executemany(
            """
            INSERT INTO documents (
                index_name, vector_id, content, metadata_json, created_at
            ) VALUES (?, ?, ?, ?, ?)
            """,
            [
                (
                    index_name,
                    vector_id,
                    content,
                    json.dumps(metadata) if metadata else None,
                    created_at,
                )
                for vector_id, content, metadata in rows
            ],
        )
        conn.commit()
        logger.info("documents_inserted", index_name=index_name, count=len(rows))
        return len(rows)

    except Exception as e:
        conn.rollback()
        logger.error("documents_insert_failed", index_name=index_name, error=str(e))
        raise
    finally:
        conn.close()


def get_documents_by_vector_ids(
    db_path: Path, index_name: str, vector_ids: Sequence[int]
) -> List[Dict[str, Any]]:
    """Fetch document rows for a set of FAISS vector IDs.

    Rows come back in no particular order; callers re-rank them.
    """
    if not vector_ids:
        return []

    conn = get_connection(db_path)

    try:
        placeholders = ",".join("?" * len(vector_ids))
        cursor = conn.execute(
            f"""
            SELECT id, vector_id, content, metadata_json, created_at
            FROM documents
            WHERE index_name = ? AND vector_id IN ({placeholders})
            """,
            (index_name, *vector_ids),
        )

        results = []
        for row in cursor.fetchall():
            doc = dict(row)
            metadata_json = doc.pop("metadata_json")
            doc["metadata"] = json.loads(metadata_json) if metadata_json else {}
            results.append(doc)

        return results

    finally:
        conn.close()


def count_documents(db_path: Path, index_name: str) -> int:
    conn = get_connection(db_path)
    try:
        row = conn.execute(
            "SELECT COUNT(*) FROM documents WHERE index_name = ?", (index_name,)
        ).fetchone()
        return row[0]
    finally:
        conn.close()


def clear_index(db_path: Path, index_name: str) -> int:
    """Delete every document row of an index.

    Returns:
        Number of rows deleted
    """
    conn = get_connection(db_path)

    try:
        cursor = conn.execute(
            "DELETE FROM documents WHERE index_name = ?", (index_name,)
        )
        conn.commit()
        logger.info("index_documents_cleared", index_name=index_name, count=cursor.rowcount)
        return cursor.rowcount

    except Exception as e:
        conn.rollback()
        logger.error("index_clear_failed", index_name=index_name, error=str(e))
        raise
    finally:
        conn.close()
