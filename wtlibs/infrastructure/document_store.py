"""Database Document Store — `db://<id>` off-chain documents persisted through SQLAlchemy async.

Invariants:
    - Every session auto-rolls-back on exception (no partial commits leak)
    - All SQLAlchemy exceptions mapped to DatabaseError (core/errors.py)
    - download() of an unknown id returns None; update() of an unknown id creates it

Design Decisions:
    - DocumentStoreManager owns the engine; adapters built per pointer only borrow it
    - expire_on_commit=False: prevents lazy-load issues in async context
    - create_schema() instead of migrations: a single table, created on demand
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.exc import (
    IntegrityError, OperationalError, DBAPIError, SQLAlchemyError,
)
from sqlalchemy import text

from wtlibs.core.domain_types import strip_scheme
from wtlibs.core.errors import DatabaseError, ErrorContext, OffChainStorageError
from wtlibs.db.base import Base
from wtlibs.models.stored_document import StoredDocument

logger = logging.getLogger(__name__)

SCHEME = "db"


class DocumentStoreManager:
    """Manages async database sessions with rollback and health checks."""

    def __init__(self, database_url: str, **engine_options):
        self.engine = create_async_engine(database_url, **engine_options)
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide session with auto-rollback on exception."""
        session = self._session_factory()
        try:
            yield session
        except IntegrityError as e:
            await session.rollback()
            logger.error(f"DB integrity error: {e}")
            raise DatabaseError("Integrity constraint violated", "commit") from e
        except OperationalError as e:
            await session.rollback()
            logger.error(f"DB operational error: {e}")
            raise DatabaseError("Connection or operational error", "execute") from e
        except DBAPIError as e:
            await session.rollback()
            logger.error(f"DB driver error: {e}")
            raise DatabaseError("Database driver error", "query") from e
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"SQLAlchemy error: {e}")
            raise DatabaseError("Database operation failed", "unknown") from e
        finally:
            await session.close()

    async def create_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"DB health check failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


class DocumentStoreAdapter:
    """OffChainDataAdapter over a DocumentStoreManager."""

    def __init__(self, manager: DocumentStoreManager):
        self.manager = manager

    @classmethod
    def create(cls, options: dict) -> "DocumentStoreAdapter":
        return cls(options["manager"])

    def _document_id(self, uri: str, operation: str) -> str:
        document_id = strip_scheme(uri)
        if not document_id:
            raise OffChainStorageError(
                f"no schema detected in {uri}", operation, ErrorContext(ref=uri),
            )
        return document_id

    async def download(self, uri: str) -> dict | None:
        document_id = self._document_id(uri, "download")
        async with self.manager.session() as db:
            document = await db.get(StoredDocument, document_id)
            return dict(document.payload) if document else None

    async def upload(self, data: dict) -> str:
        async with self.manager.session() as db:
            document = StoredDocument(payload=dict(data))
            db.add(document)
            await db.commit()
            logger.debug(
                f"Stored document {document.id}",
                extra={"ref": f"{SCHEME}://{document.id}", "operation": "upload"},
            )
            return f"{SCHEME}://{document.id}"

    async def update(self, uri: str, data: dict) -> str:
        document_id = self._document_id(uri, "update")
        async with self.manager.session() as db:
            document = await db.get(StoredDocument, document_id)
            if document is None:
                db.add(StoredDocument(id=document_id, payload=dict(data)))
            else:
                document.payload = dict(data)
            await db.commit()
        return uri
