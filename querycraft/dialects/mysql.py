"""MySQL dialect."""

import logging
import urllib.parse
from typing import Any, ClassVar, Optional

from ..statements import StatementKind, Statements
from .base import Dialect

logger = logging.getLogger(__name__)

# CR_SERVER_GONE_ERROR, CR_SERVER_LOST, CR_SERVER_LOST_EXTENDED
LOST_CONNECTION_CODES = frozenset({2006, 2013, 2055})


class MysqlDialect(Dialect):
    """Dialect for MySQL (scheme mysql), through pymysql."""

    SUPPORTED_SCHEMA: ClassVar[tuple[str, ...]] = ("mysql", "mariadb")
    SANITIZER: ClassVar[str] = "`"
    PLACEHOLDER: ClassVar[str] = "%s"

    def connect(self, url: str):
        import pymysql  # pylint: disable=import-outside-toplevel,import-error
        parsed = urllib.parse.urlparse(url)
        logger.info("Connecting to MySQL database %s on %s", parsed.path[1:], parsed.hostname)
        return pymysql.connect(
            host=parsed.hostname,
            user=parsed.username,
            password=parsed.password,
            database=(parsed.path or "")[1:] or None,
            port=parsed.port or 3306,
            autocommit=True,
        )

    def _limit_offset_sql(self, limit: Optional[int], offset: Optional[int]) -> str:
        if limit is None and offset is not None:
            return f"LIMIT 18446744073709551615 OFFSET {int(offset)}"
        return super()._limit_offset_sql(limit, offset)

    def _insert_suffix(self, statements: Statements, kind: StatementKind, bindings: list[Any]) -> str:
        if not statements.on_duplicate:
            return ""
        set_sql, set_bindings = self._assignments(statements.on_duplicate)
        bindings.extend(set_bindings)
        return "ON DUPLICATE KEY UPDATE " + set_sql

    def is_transient_error(self, error: BaseException) -> bool:
        args = getattr(error, "args", ())
        if args and isinstance(args[0], int) and args[0] in LOST_CONNECTION_CODES:
            return True
        return super().is_transient_error(error)

    def quote(self, value: Any) -> str:
        if isinstance(value, str):
            return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"
        return super().quote(value)
