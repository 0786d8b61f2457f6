"""Document store for the catalog, backed by PostgreSQL JSONB tables."""
import psycopg2
from psycopg2 import pool
from psycopg2.extras import Json, execute_values
from typing import Optional, List, Dict, Any
import logging

from mybook_sync.errors import UnknownCollection

logger = logging.getLogger(__name__)

# Collection name -> table name. Books are declared for lookups by id but
# only ever stored embedded in author documents.
COLLECTIONS = {
    "genres": "genres",
    "tags": "tags",
    "books": "books",
    "authors": "authors"
}


class Database:
    """PostgreSQL document store with connection pooling."""

    def __init__(self, connection_string: str, min_conn: int = 1, max_conn: int = 10):
        """
        Initialize database connection pool.

        The pool is thread-safe so that concurrent upserts can each borrow
        their own connection.

        Args:
            connection_string: PostgreSQL connection string
            min_conn: Minimum connections in pool
            max_conn: Maximum connections in pool
        """
        self.max_conn = max_conn
        self.connection_pool = psycopg2.pool.ThreadedConnectionPool(
            min_conn,
            max_conn,
            connection_string
        )

        if self.connection_pool:
            logger.info("Database connection pool created successfully")
        else:
            raise Exception("Failed to create connection pool")

    @staticmethod
    def _table(collection: str) -> str:
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise UnknownCollection(f"Unknown collection: {collection}")

    def init_schema(self):
        """Create one table per collection if they don't exist."""
        conn = self.connection_pool.getconn()
        try:
            with conn.cursor() as cur:
                for table in COLLECTIONS.values():
                    cur.execute(f"""
                        CREATE TABLE IF NOT EXISTS {table} (
                            id BIGINT PRIMARY KEY,
                            document JSONB NOT NULL,
                            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                        )
                    """)

                conn.commit()
                logger.info("Database schema initialized successfully")

        finally:
            self.connection_pool.putconn(conn)

    def insert_many(self, collection: str, documents: List[Dict[str, Any]]) -> int:
        """
        Insert documents, silently skipping ids that are already stored.

        Duplicates inside the batch are skipped the same way, so the first
        document for an id wins.

        Args:
            collection: Target collection
            documents: Documents, each carrying an integer "id"

        Returns:
            Number of documents actually inserted

        Raises:
            psycopg2.Error: Any failure other than a duplicate id
        """
        table = self._table(collection)
        if not documents:
            return 0

        conn = self.connection_pool.getconn()
        try:
            with conn.cursor() as cur:
                inserted = execute_values(
                    cur,
                    f"""
                    INSERT INTO {table} (id, document)
                    VALUES %s
                    ON CONFLICT (id) DO NOTHING
                    RETURNING id
                    """,
                    [(doc["id"], Json(doc)) for doc in documents],
                    fetch=True
                )
                conn.commit()
                return len(inserted)
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to insert into {table}: {e}")
            raise
        finally:
            self.connection_pool.putconn(conn)

    def upsert(self, collection: str, document: Dict[str, Any]):
        """
        Insert a document or replace the stored one with the same id.

        Args:
            collection: Target collection
            document: Full document, carrying an integer "id"
        """
        table = self._table(collection)
        conn = self.connection_pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute(f"""
                    INSERT INTO {table} (id, document, updated_at)
                    VALUES (%s, %s, CURRENT_TIMESTAMP)
                    ON CONFLICT (id) DO UPDATE SET
                        document = EXCLUDED.document,
                        updated_at = CURRENT_TIMESTAMP
                """, (document["id"], Json(document)))
                conn.commit()
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to upsert {collection} id={document.get('id')}: {e}")
            raise
        finally:
            self.connection_pool.putconn(conn)

    def get_document(self, collection: str, doc_id: int) -> Optional[Dict[str, Any]]:
        """Get a document by its natural id."""
        table = self._table(collection)
        conn = self.connection_pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute(f"SELECT document FROM {table} WHERE id = %s", (doc_id,))

                row = cur.fetchone()
                if row:
                    return row[0]  # JSONB is automatically deserialized
                return None
        finally:
            self.connection_pool.putconn(conn)

    def count(self, collection: str) -> int:
        """Count documents in a collection."""
        table = self._table(collection)
        conn = self.connection_pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute(f"SELECT COUNT(*) FROM {table}")
                return cur.fetchone()[0]
        finally:
            self.connection_pool.putconn(conn)

    def close(self):
        """Close all connections in the pool."""
        if self.connection_pool:
            self.connection_pool.closeall()
            logger.info("Database connection pool closed")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
