"""SQLite dialect."""

import logging
import urllib.parse
from typing import Any, ClassVar, Optional

from ..statements import StatementKind, Statements
from .base import Dialect

logger = logging.getLogger(__name__)


class SqliteDialect(Dialect):
    """Dialect for SQLite (scheme sqlite)."""

    SUPPORTED_SCHEMA: ClassVar[tuple[str, ...]] = ("sqlite",)

    INSERT_KEYWORDS: ClassVar[dict[StatementKind, str]] = {
        StatementKind.INSERT: "INSERT",
        StatementKind.INSERT_IGNORE: "INSERT OR IGNORE",
        StatementKind.REPLACE: "REPLACE",
    }

    def connect(self, url: str):
        import sqlite3
        parsed = urllib.parse.urlparse(url)
        path = (parsed.path or "")[1:] or parsed.hostname
        logger.info("Connecting to SQLite database %s", path)
        # isolation_level=None: autocommit, transactions are explicit BEGIN/COMMIT
        conn = sqlite3.connect(path, isolation_level=None)
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _limit_offset_sql(self, limit: Optional[int], offset: Optional[int]) -> str:
        if limit is None and offset is not None:
            return f"LIMIT -1 OFFSET {int(offset)}"
        return super()._limit_offset_sql(limit, offset)

    def _insert_suffix(self, statements: Statements, kind: StatementKind, bindings: list[Any]) -> str:
        if not statements.on_duplicate:
            return ""
        return self._on_conflict_update_sql(statements, bindings)
