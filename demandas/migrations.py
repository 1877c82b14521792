"""Schema changes applied once at startup, before the app takes requests.

Every entry is checked against the live schema first, so running the list
against an up-to-date database is a no-op. The last applied version is kept
in ``PRAGMA user_version``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from .db import Base
from .models import Task

logger = logging.getLogger(__name__)

TABLE = Task.__tablename__


@dataclass(frozen=True)
class Migration:
    version: int
    description: str
    column: str | None = None  # ALTER TABLE ... ADD COLUMN
    index: str | None = None   # CREATE INDEX
    ddl: str = ""

    def is_applied(self, conn: Connection) -> bool:
        if self.column is not None:
            return self.column in table_columns(conn)
        if self.index is not None:
            return self.index in table_indexes(conn)
        return False

    def apply(self, conn: Connection) -> None:
        if self.column is not None:
            conn.execute(text(f"ALTER TABLE {TABLE} ADD COLUMN {self.column} {self.ddl}"))
        elif self.index is not None:
            conn.execute(text(f"CREATE INDEX IF NOT EXISTS {self.index} ON {TABLE}({self.ddl})"))


MIGRATIONS: list[Migration] = [
    Migration(1, "add assignees column", column="atribuidos", ddl="TEXT"),
    Migration(2, "index status for filtering and stats", index=f"idx_{TABLE}_status", ddl="status"),
]


def table_columns(conn: Connection) -> set[str]:
    return {row[1] for row in conn.execute(text(f"PRAGMA table_info({TABLE})"))}


def table_indexes(conn: Connection) -> set[str]:
    return {row[1] for row in conn.execute(text(f"PRAGMA index_list({TABLE})"))}


def schema_version(conn: Connection) -> int:
    return int(conn.execute(text("PRAGMA user_version")).scalar() or 0)


def run_migrations(engine: Engine, migrations: list[Migration] | None = None) -> int:
    """Create the table if needed and apply pending migrations in order.

    Returns the schema version after the run.
    """
    pending = sorted(MIGRATIONS if migrations is None else migrations, key=lambda m: m.version)

    Base.metadata.create_all(bind=engine)

    with engine.begin() as conn:
        current = schema_version(conn)
        for m in pending:
            if m.is_applied(conn):
                logger.debug("Migration %s already present: %s", m.version, m.description)
            else:
                m.apply(conn)
                logger.info("Migration %s applied: %s", m.version, m.description)
            current = max(current, m.version)
        conn.execute(text(f"PRAGMA user_version = {int(current)}"))
    return current
