"""
SQLite-backed document store

Each document is a JSON body addressed by (collection, doc_key), with an
owner_id column for per-user listing. The (collection, doc_key) pair is
unique, which is what the find-or-create paths rely on.
"""
import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from restock_agent.errors import DuplicateDocumentError, PersistenceError

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


class DocumentStore:
    """Find, insert and atomically update JSON documents"""

    def __init__(self, db_path: str, timeout: float = 30.0):
        """
        Initialize the store and create the schema if needed

        Args:
            db_path: Path to SQLite database file
            timeout: Seconds a writer waits for the database lock
        """
        self.db_path = db_path
        self.timeout = timeout
        self._ensure_db_exists()

    def _ensure_db_exists(self):
        """Ensure database and schema exist"""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        with self._session() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    doc_key TEXT NOT NULL,
                    owner_id TEXT NOT NULL,
                    body TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE (collection, doc_key)
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_documents_owner
                ON documents(collection, owner_id)
            """)

    @contextmanager
    def _session(self):
        """One connection per operation; sqlite errors become PersistenceError"""
        conn = None
        try:
            # Autocommit mode: transactions are opened explicitly
            conn = sqlite3.connect(
                self.db_path,
                timeout=self.timeout,
                isolation_level=None,
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            logger.exception("Document store failure on %s", self.db_path)
            raise PersistenceError("Document store unavailable") from e
        finally:
            if conn is not None:
                conn.close()

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    def find(self, collection: str, key: str) -> Optional[Document]:
        """Get a document body by key, or None"""
        with self._session() as conn:
            row = conn.execute(
                "SELECT body FROM documents WHERE collection = ? AND doc_key = ?",
                (collection, key),
            ).fetchone()
        if row is None:
            return None
        return json.loads(row["body"])

    def find_by_owner(self, collection: str, owner_id: str) -> List[Document]:
        """All documents of a collection owned by owner_id, oldest first"""
        with self._session() as conn:
            rows = conn.execute(
                "SELECT body FROM documents WHERE collection = ? AND owner_id = ? ORDER BY rowid",
                (collection, owner_id),
            ).fetchall()
        return [json.loads(row["body"]) for row in rows]

    def insert(self, collection: str, key: str, owner_id: str, body: Document) -> Document:
        """
        Create a new document

        Raises:
            DuplicateDocumentError: a document with this key already exists
        """
        now = self._now()
        with self._session() as conn:
            try:
                conn.execute(
                    "INSERT INTO documents (collection, doc_key, owner_id, body, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (collection, key, owner_id, json.dumps(body), now, now),
                )
            except sqlite3.IntegrityError as e:
                raise DuplicateDocumentError(f"{collection}/{key} already exists") from e
        return body

    def update(
        self,
        collection: str,
        key: str,
        mutate: Callable[[Document], Document],
    ) -> Optional[Document]:
        """
        Read, mutate and write one document under the database write lock

        The whole read-check-write runs in a single IMMEDIATE transaction, so
        concurrent updates of the same document are serialized. Exceptions
        raised by ``mutate`` roll the transaction back and propagate.

        Returns:
            The new body, or None if the document does not exist
        """
        with self._session() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                row = conn.execute(
                    "SELECT body FROM documents WHERE collection = ? AND doc_key = ?",
                    (collection, key),
                ).fetchone()
                if row is None:
                    return None

                body = mutate(json.loads(row["body"]))
                conn.execute(
                    "UPDATE documents SET body = ?, updated_at = ? WHERE collection = ? AND doc_key = ?",
                    (json.dumps(body), self._now(), collection, key),
                )
                conn.execute("COMMIT")
                return body
            finally:
                if conn.in_transaction:
                    conn.rollback()

    def create_or_update(
        self,
        collection: str,
        key: str,
        owner_id: str,
        create: Callable[[], Document],
        mutate: Callable[[Document], Document],
    ) -> Tuple[Document, bool]:
        """
        Find-or-create, then append

        If the document is absent it is created from ``create()``. Losing the
        creation race to a concurrent writer is not an error: the call falls
        back to ``mutate`` on the document the other writer created.

        Returns:
            (body, created)
        """
        if self.find(collection, key) is None:
            try:
                return self.insert(collection, key, owner_id, create()), True
            except DuplicateDocumentError:
                logger.info("%s/%s created concurrently, retrying as append", collection, key)

        body = self.update(collection, key, mutate)
        if body is None:
            raise PersistenceError(f"{collection}/{key} vanished during update")
        return body, False
