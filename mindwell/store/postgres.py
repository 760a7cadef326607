"""
PostgreSQL document store

One JSONB document per user in `user_documents`. DocumentUpdates run in a
single transaction holding a row lock (SELECT ... FOR UPDATE), so guarded
unlocks see the latest committed document.

Schema:
    CREATE TABLE IF NOT EXISTS user_documents (
        user_id TEXT PRIMARY KEY,
        data JSONB NOT NULL DEFAULT '{}'::jsonb,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    );
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool

from mindwell.config import DATABASE_URL
from mindwell.exceptions import wrap_external_exception
from mindwell.store.base import Document, DocumentStore, DocumentUpdate, apply_update_to_document

logger = logging.getLogger(__name__)


CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS user_documents (
        user_id TEXT PRIMARY KEY,
        data JSONB NOT NULL DEFAULT '{}'::jsonb,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
"""


class Database:
    """Database connection pool manager"""

    def __init__(self, connection_string: str = DATABASE_URL):
        self.connection_string = connection_string
        self._pool: Optional[AsyncConnectionPool] = None

    async def init_pool(self) -> None:
        """Initialize connection pool"""
        logger.info("Initializing database connection pool")
        self._pool = AsyncConnectionPool(
            self.connection_string,
            min_size=1,
            max_size=10,
            open=False
        )
        await self._pool.open()

    async def close_pool(self) -> None:
        """Close connection pool"""
        if self._pool:
            logger.info("Closing database connection pool")
            await self._pool.close()
            self._pool = None

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Get database connection from pool"""
        if not self._pool:
            raise RuntimeError("Database pool not initialized")

        async with self._pool.connection() as conn:
            conn.row_factory = dict_row
            yield conn


class PostgresDocumentStore(DocumentStore):
    """Document store backed by a JSONB column"""

    def __init__(self, database: Database):
        super().__init__()
        self.database = database

    async def create_schema(self) -> None:
        """Create the documents table if needed"""
        try:
            async with self.database.connection() as conn:
                await conn.execute(CREATE_TABLE_SQL)
                await conn.commit()
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="create_schema")

    async def get(self, user_id: str) -> Optional[Document]:
        try:
            async with self.database.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        "SELECT data FROM user_documents WHERE user_id = %s",
                        (user_id,)
                    )
                    row = await cur.fetchone()
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="get_document", user_id=user_id)

        return dict(row["data"]) if row else None

    async def set(self, user_id: str, document: Document) -> None:
        try:
            async with self.database.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        """
                        INSERT INTO user_documents (user_id, data)
                        VALUES (%s, %s)
                        ON CONFLICT (user_id)
                        DO UPDATE SET data = EXCLUDED.data, updated_at = CURRENT_TIMESTAMP
                        """,
                        (user_id, Jsonb(document))
                    )
                await conn.commit()
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="set_document", user_id=user_id)

        await self._notify(user_id, document)

    async def update(self, user_id: str, fields: Document) -> None:
        await self.apply_update(user_id, DocumentUpdate(set_fields=fields))

    async def increment_field(self, user_id: str, field: str, delta: float) -> None:
        try:
            async with self.database.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(
                        """
                        INSERT INTO user_documents (user_id, data)
                        VALUES (%s, jsonb_build_object(%s::text, %s::numeric))
                        ON CONFLICT (user_id)
                        DO UPDATE SET
                            data = jsonb_set(
                                user_documents.data,
                                ARRAY[%s::text],
                                to_jsonb(COALESCE((user_documents.data->>%s)::numeric, 0) + %s::numeric)
                            ),
                            updated_at = CURRENT_TIMESTAMP
                        RETURNING data
                        """,
                        (user_id, field, delta, field, field, delta)
                    )
                    row = await cur.fetchone()
                await conn.commit()
        except psycopg.Error as e:
            raise wrap_external_exception(
                e, operation="increment_field", user_id=user_id, context={"field": field}
            )

        await self._notify(user_id, dict(row["data"]))

    async def apply_update(self, user_id: str, update: DocumentUpdate) -> Document:
        try:
            async with self.database.connection() as conn:
                async with conn.transaction():
                    async with conn.cursor() as cur:
                        await cur.execute(
                            """
                            INSERT INTO user_documents (user_id) VALUES (%s)
                            ON CONFLICT (user_id) DO NOTHING
                            """,
                            (user_id,)
                        )
                        await cur.execute(
                            "SELECT data FROM user_documents WHERE user_id = %s FOR UPDATE",
                            (user_id,)
                        )
                        row = await cur.fetchone()
                        document = apply_update_to_document(dict(row["data"]), update)
                        await cur.execute(
                            """
                            UPDATE user_documents
                            SET data = %s, updated_at = CURRENT_TIMESTAMP
                            WHERE user_id = %s
                            """,
                            (Jsonb(document), user_id)
                        )
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="apply_update", user_id=user_id)

        logger.info(f"Persisted progression update for user {user_id}")
        await self._notify(user_id, document)
        return document
