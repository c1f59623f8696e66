"""SQLite SQLAlchemy store wrapper."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, RowMapping
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from memory.schemas import Base

IN_MEMORY = ":memory:"

# External-content FTS5 index over memories.content, kept in sync by triggers.
FTS_SCHEMA = (
    """
    CREATE VIRTUAL TABLE IF NOT EXISTS memories_fts USING fts5(
      content,
      content=memories,
      content_rowid=id
    )
    """,
    """
    CREATE TRIGGER IF NOT EXISTS memories_fts_insert AFTER INSERT ON memories BEGIN
      INSERT INTO memories_fts(rowid, content) VALUES (new.id, new.content);
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS memories_fts_delete AFTER DELETE ON memories BEGIN
      INSERT INTO memories_fts(memories_fts, rowid, content) VALUES ('delete', old.id, old.content);
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS memories_fts_update AFTER UPDATE ON memories BEGIN
      INSERT INTO memories_fts(memories_fts, rowid, content) VALUES ('delete', old.id, old.content);
      INSERT INTO memories_fts(rowid, content) VALUES (new.id, new.content);
    END
    """,
)


def _apply_pragmas(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA busy_timeout=5000")
    finally:
        cursor.close()


class SQLStore:
    """Provides SQLAlchemy session management for SQLite persistence."""

    def __init__(self, db_path: Path | str) -> None:
        if str(db_path) == IN_MEMORY:
            self.db_path: Path | None = None
            self.engine: Engine = create_engine(
                "sqlite+pysqlite:///:memory:",
                future=True,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.db_path = Path(db_path)
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.engine = create_engine(f"sqlite+pysqlite:///{self.db_path}", future=True)
        event.listen(self.engine, "connect", _apply_pragmas)
        self._session_factory = sessionmaker(bind=self.engine, future=True, expire_on_commit=False)

    def create_all(self) -> None:
        """Create all schema tables and the full-text shadow index if missing."""
        Base.metadata.create_all(self.engine)
        with self.engine.begin() as conn:
            for statement in FTS_SCHEMA:
                conn.execute(text(statement))

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Context manager that commits on success and rolls back on error."""
        sess = self._session_factory()
        try:
            yield sess
            sess.commit()
        except Exception:
            sess.rollback()
            raise
        finally:
            sess.close()

    def execute(self, sql: str, params: Mapping[str, Any] | None = None) -> list[RowMapping]:
        """Run one raw parameterised statement in its own transaction."""
        with self.engine.begin() as conn:
            result = conn.execute(text(sql), dict(params or {}))
            if not result.returns_rows:
                return []
            return list(result.mappings().all())

    def dispose(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()
