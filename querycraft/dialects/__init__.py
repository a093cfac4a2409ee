"""SQL compilers, one per engine.

A dialect turns builder statements into ``?``-placeholder SQL plus bindings,
interpolates bindings for ``get_raw_sql()`` and recognizes its driver's
lost-connection errors. Connections pick theirs from the URL scheme.
"""

from .base import LOST_CONNECTION_SIGNATURES, CompiledStatement, Dialect, interpolate
from .sqlite import SqliteDialect
from .mysql import MysqlDialect
from .postgres import PostgresDialect

DIALECTS_BY_SCHEME: dict[str, type[Dialect]] = {
    scheme: dialect_cls
    for dialect_cls in (SqliteDialect, MysqlDialect, PostgresDialect)
    for scheme in dialect_cls.SUPPORTED_SCHEMA
}


def get_dialect_for_scheme(scheme: str) -> Dialect:
    """Dialect for a URL scheme; a ``+driver`` suffix is ignored (``postgresql+psycopg2``)."""
    dialect_cls = DIALECTS_BY_SCHEME.get((scheme or "").split("+")[0].lower())
    if dialect_cls is None:
        raise ValueError(f"Unsupported database scheme: {scheme}")
    return dialect_cls()


__all__ = [
    "CompiledStatement",
    "Dialect",
    "DIALECTS_BY_SCHEME",
    "LOST_CONNECTION_SIGNATURES",
    "MysqlDialect",
    "PostgresDialect",
    "SqliteDialect",
    "get_dialect_for_scheme",
    "interpolate",
]
