"""
SQLAlchemy-based key-value store backend.

Each store entry is one row of the ``kv_entries`` table. Any database the
SQLAlchemy URL points at works; SQLite is the default for single-node runs.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Generator, List, Optional

from sqlalchemy import DateTime, String, Text, create_engine, func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from cast_mirror.exceptions import StoreFailure
from cast_mirror.storage.kv_store import KVStore

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class KVEntryORM(Base):
    """
    SQLAlchemy ORM model for one key-value entry.
    Schema:
      key         VARCHAR(255) PRIMARY KEY,
      value       TEXT NOT NULL,
      updated_at  TIMESTAMPTZ NOT NULL DEFAULT now()
    """
    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True, comment="Store key (cast hash or reserved key)")
    value: Mapped[str] = mapped_column(Text, nullable=False, comment="JSON-encoded value")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now(),
        comment="Timestamp of the last write to this row",
    )

    def __repr__(self) -> str:
        return f"<KVEntryORM(key='{self.key}', bytes={len(self.value or '')})>"


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


class SQLAlchemyKVStore(KVStore):
    """Key-value store persisted in a relational table through SQLAlchemy."""

    def __init__(self, url: str, create_schema: bool = True):
        """
        Initialize the store and verify the database connection.

        Args:
            url: SQLAlchemy database URL
            create_schema: Create the ``kv_entries`` table if it does not exist

        Raises:
            StoreFailure: If the database cannot be reached
        """
        self.url = url
        engine_kwargs = {"pool_pre_ping": True}
        if url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if _is_memory_sqlite(url):
                # One shared connection, otherwise every session sees a fresh empty database.
                engine_kwargs["poolclass"] = StaticPool

        try:
            self.engine = create_engine(url, **engine_kwargs)
            self._session_factory = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
            if create_schema:
                Base.metadata.create_all(self.engine)
            with self.session() as db:
                db.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize SQLAlchemy store at {self._safe_url()}: {str(e)}")
            raise StoreFailure(f"Database connection failed: {str(e)}") from e

        logger.info(f"SQLAlchemy store ready at {self._safe_url()}")

    def _safe_url(self) -> str:
        return self.engine.url.render_as_string(hide_password=True) if hasattr(self, "engine") else "<uninitialized>"

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Get a database session.

        Yields:
            SQLAlchemy session, closed when the block exits
        """
        db = self._session_factory()
        try:
            yield db
        finally:
            db.close()

    def get(self, key: str) -> Optional[str]:
        try:
            with self.session() as db:
                entry = db.get(KVEntryORM, key)
                return entry.value if entry is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Failed to read key {key}: {str(e)}")
            raise StoreFailure(f"Failed to read key {key}: {str(e)}") from e

    def put(self, key: str, value: str) -> None:
        try:
            with self.session() as db:
                db.merge(KVEntryORM(key=key, value=value))
                db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to write key {key}: {str(e)}")
            raise StoreFailure(f"Failed to write key {key}: {str(e)}") from e

    def list_keys(self) -> List[str]:
        try:
            with self.session() as db:
                return list(db.scalars(select(KVEntryORM.key).order_by(KVEntryORM.key)))
        except SQLAlchemyError as e:
            logger.error(f"Failed to list keys: {str(e)}")
            raise StoreFailure(f"Failed to list keys: {str(e)}") from e

    def close(self) -> None:
        """Dispose of the connection pool."""
        self.engine.dispose()
