"""PostgreSQL dialect."""

import logging
import urllib.parse
from typing import Any, ClassVar, Optional

from ..exceptions import ConfigurationError
from ..statements import StatementKind, Statements
from .base import CompiledStatement, Dialect

logger = logging.getLogger(__name__)


class PostgresDialect(Dialect):
    """Dialect for PostgreSQL (scheme postgresql), through psycopg2."""

    SUPPORTED_SCHEMA: ClassVar[tuple[str, ...]] = ("postgresql", "postgres")
    PLACEHOLDER: ClassVar[str] = "%s"

    INSERT_KEYWORDS: ClassVar[dict[StatementKind, str]] = {
        StatementKind.INSERT: "INSERT",
        StatementKind.INSERT_IGNORE: "INSERT",
    }

    insert_returning: Optional[str] = "id"
    """Column returned by inserts, read back as the last insert id; None disables RETURNING."""

    def connect(self, url: str):
        import psycopg2
        parsed = urllib.parse.urlparse(url)
        logger.info("Connecting to PostgreSQL database %s on %s", parsed.path[1:], parsed.hostname)
        conn = psycopg2.connect(
            host=parsed.hostname,
            user=parsed.username,
            password=parsed.password,
            database=(parsed.path or "")[1:] or None,
            port=parsed.port,
        )
        conn.autocommit = True
        return conn

    def replace(self, statements: Statements, data: Any) -> CompiledStatement:
        raise ConfigurationError("PostgreSQL has no REPLACE; use on_duplicate_key_update() with insert()")

    def _insert_suffix(self, statements: Statements, kind: StatementKind, bindings: list[Any]) -> str:
        pieces = []
        if kind == StatementKind.INSERT_IGNORE:
            pieces.append("ON CONFLICT DO NOTHING")
        elif statements.on_duplicate:
            if not statements.conflict_target:
                raise ConfigurationError("PostgreSQL upserts need a conflict_target")
            pieces.append(self._on_conflict_update_sql(statements, bindings))
        if self.insert_returning:
            pieces.append("RETURNING " + self.wrap_sanitizer(self.insert_returning))
        return " ".join(pieces)

    def last_insert_id(self, cursor: Any) -> Any:
        if not self.insert_returning or cursor.description is None:
            return None
        row = cursor.fetchone()
        return row[0] if row else None
