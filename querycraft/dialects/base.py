"""Base Dialect type: compiles a statement model into SQL for one database engine.

Subclasses set the engine-specific class variables, implement ``connect()``
and override the few clauses whose syntax differs between engines.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, Iterable, Optional

from pydantic import BaseModel, Field

from ..criteria import CriteriaBuilder
from ..exceptions import ConfigurationError, TransientConnectionError
from ..raw import Raw
from ..statements import UNARY_OPERATORS, Criterion, Joiner, StatementKind, Statements

# Lower-cased fragments of driver messages meaning the connection is gone.
LOST_CONNECTION_SIGNATURES: tuple[str, ...] = (
    "server has gone away",
    "no connection to the server",
    "lost connection",
    "is dead or not enabled",
    "error while sending",
    "decryption failed or bad record mac",
    "server closed the connection unexpectedly",
    "ssl connection has been closed unexpectedly",
    "error writing data to the connection",
    "resource deadlock avoided",
    "transaction() on null",
    "connection already closed",
    "connection reset by peer",
    "broken pipe",
    "connection timed out",
    "cannot operate on a closed database",
)


class CompiledStatement(BaseModel):
    """SQL text with ``?`` placeholders and the bindings, in placeholder order."""

    sql: str
    bindings: list[Any] = Field(default_factory=list)


class Dialect(BaseModel, ABC):
    """Base for database dialects; subclasses implement connect() for a given URL."""

    model_config = {"arbitrary_types_allowed": True}

    SUPPORTED_SCHEMA: ClassVar[tuple[str, ...]] = ()
    """URL schemes this dialect handles (e.g. ('sqlite',), ('postgresql', 'postgres'))."""

    SANITIZER: ClassVar[str] = '"'
    """Identifier quote character."""

    PLACEHOLDER: ClassVar[str] = "?"
    """Driver paramstyle placeholder; compiled SQL always uses ``?``."""

    INSERT_KEYWORDS: ClassVar[dict[StatementKind, str]] = {
        StatementKind.INSERT: "INSERT",
        StatementKind.INSERT_IGNORE: "INSERT IGNORE",
        StatementKind.REPLACE: "REPLACE",
    }

    @abstractmethod
    def connect(self, url: str) -> Any:
        """Return a new raw driver connection for the given URL, in autocommit mode.

        The return value is engine-specific (e.g. sqlite3.Connection, pymysql.Connection).
        """
        ...  # pylint: disable=unnecessary-ellipsis

    # --- compilation entry point ---

    def compile(
        self,
        kind: StatementKind | str,
        statements: Statements,
        data: Optional[Any] = None,
    ) -> CompiledStatement:
        """Compile ``statements`` (and ``data`` for writes) as the given statement kind.

        Raises:
            ConfigurationError: If ``kind`` is not a known statement kind.
        """
        try:
            kind = StatementKind(kind.lower() if isinstance(kind, str) else kind)
        except ValueError as error:
            raise ConfigurationError(f"{kind} is not a known type.") from error
        compilers: dict[StatementKind, Callable[[], CompiledStatement]] = {
            StatementKind.SELECT: lambda: self.select(statements),
            StatementKind.INSERT: lambda: self.insert(statements, data),
            StatementKind.INSERT_IGNORE: lambda: self.insert_ignore(statements, data),
            StatementKind.REPLACE: lambda: self.replace(statements, data),
            StatementKind.DELETE: lambda: self.delete(statements),
            StatementKind.UPDATE: lambda: self.update(statements, data),
            StatementKind.CRITERIA_ONLY: lambda: self.criteria_only(statements),
        }
        return compilers[kind]()

    # --- statement kinds ---

    def select(self, statements: Statements) -> CompiledStatement:
        if not statements.tables:
            raise ConfigurationError("No table specified.")
        bindings: list[Any] = []

        selects = statements.selects or ["*"]
        select_sql = self._list_sql(selects, bindings)
        from_sql = self._list_sql(statements.tables, bindings)
        join_sql = self._build_joins(statements, bindings)

        where_sql, where_bindings = self._build_criteria(statements.wheres)
        bindings.extend(where_bindings)

        group_by_sql = ""
        if statements.group_bys:
            group_by_sql = "GROUP BY " + self._list_sql(statements.group_bys, bindings)

        having_sql, having_bindings = self._build_criteria(statements.havings)
        bindings.extend(having_bindings)

        order_by_sql, order_bindings = self.build_order_by(statements)
        bindings.extend(order_bindings)

        sql = self._concatenate(
            "SELECT" + (" DISTINCT" if statements.distinct else ""),
            select_sql,
            "FROM",
            from_sql,
            join_sql,
            "WHERE " + where_sql if where_sql else "",
            group_by_sql,
            "HAVING " + having_sql if having_sql else "",
            order_by_sql,
            self._limit_offset_sql(statements.limit, statements.offset),
        )
        return CompiledStatement(sql=sql, bindings=bindings)

    def insert(self, statements: Statements, data: Any) -> CompiledStatement:
        return self._do_insert(statements, data, StatementKind.INSERT)

    def insert_ignore(self, statements: Statements, data: Any) -> CompiledStatement:
        return self._do_insert(statements, data, StatementKind.INSERT_IGNORE)

    def replace(self, statements: Statements, data: Any) -> CompiledStatement:
        return self._do_insert(statements, data, StatementKind.REPLACE)

    def update(self, statements: Statements, data: Any) -> CompiledStatement:
        table = self._single_table(statements)
        if not data:
            raise ConfigurationError("No data given to update.")
        set_sql, bindings = self._assignments(data)
        where_sql, where_bindings = self._build_criteria(statements.wheres)
        bindings.extend(where_bindings)
        sql = self._concatenate(
            "UPDATE",
            self.wrap_sanitizer(table),
            "SET " + set_sql,
            "WHERE " + where_sql if where_sql else "",
        )
        return CompiledStatement(sql=sql, bindings=bindings)

    def delete(self, statements: Statements) -> CompiledStatement:
        table = self._single_table(statements)
        where_sql, bindings = self._build_criteria(statements.wheres)
        sql = self._concatenate(
            "DELETE FROM",
            self.wrap_sanitizer(table),
            "WHERE " + where_sql if where_sql else "",
        )
        return CompiledStatement(sql=sql, bindings=bindings)

    def criteria_only(self, statements: Statements, bind_values: bool = True) -> CompiledStatement:
        """Only the WHERE fragment, without the ``WHERE`` keyword."""
        sql, bindings = self._build_criteria(statements.wheres, bind_values)
        return CompiledStatement(sql=sql, bindings=bindings)

    # --- engine-specific hooks ---

    def _limit_offset_sql(self, limit: Optional[int], offset: Optional[int]) -> str:
        pieces = []
        if limit is not None:
            pieces.append(f"LIMIT {int(limit)}")
        if offset is not None:
            pieces.append(f"OFFSET {int(offset)}")
        return " ".join(pieces)

    def _insert_suffix(
        self, statements: Statements, kind: StatementKind, bindings: list[Any]
    ) -> str:
        """Trailing clause of an insert (upsert clause, RETURNING...)."""
        if statements.on_duplicate:
            raise ConfigurationError(
                f"{type(self).__name__} does not support on_duplicate_key_update()"
            )
        return ""

    def _on_conflict_update_sql(self, statements: Statements, bindings: list[Any]) -> str:
        """``ON CONFLICT [(target)] DO UPDATE SET ...`` shared by SQLite and PostgreSQL."""
        target = ""
        if statements.conflict_target:
            target = "(" + ", ".join(self.wrap_sanitizer(c) for c in statements.conflict_target) + ") "
        set_sql, set_bindings = self._assignments(statements.on_duplicate)
        bindings.extend(set_bindings)
        return f"ON CONFLICT {target}DO UPDATE SET {set_sql}"

    def is_transient_error(self, error: BaseException) -> bool:
        """Whether ``error`` means the connection was lost and a reconnect may help.

        Matching driver messages is a fallback for drivers that expose no
        structured error codes; dialects override this where they do.
        """
        if isinstance(error, TransientConnectionError):
            return True
        message = str(error).lower()
        return any(signature in message for signature in LOST_CONNECTION_SIGNATURES)

    def last_insert_id(self, cursor: Any) -> Any:
        return cursor.lastrowid

    def bind_value(self, value: Any) -> Any:
        """Integers and booleans are bound as integers, everything else as strings."""
        if value is None or isinstance(value, bytes):
            return value
        if isinstance(value, (bool, int)):
            return int(value)
        return str(value)

    def format_sql(self, sql: str) -> str:
        """Translate ``?`` placeholders to the driver paramstyle."""
        if self.PLACEHOLDER == "?":
            return sql
        return sql.replace("%", "%%").replace("?", self.PLACEHOLDER)

    def quote(self, value: Any) -> str:
        """Render ``value`` as a SQL literal, for debug output only."""
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return str(int(value))
        if isinstance(value, (int, float)):
            return str(value)
        return "'" + str(value).replace("'", "''") + "'"

    # --- helpers ---

    def wrap_sanitizer(self, value: Any) -> str:
        """Quote an identifier, segment by segment (``users.id`` -> ``"users"."id"``)."""
        if isinstance(value, Raw):
            return value.sql
        if value == "*":
            return value
        s = self.SANITIZER
        return ".".join(
            part if part == "*" else s + part.replace(s, s + s) + s
            for part in str(value).split(".")
        )

    def _list_sql(self, pieces: Iterable[Any], bindings: list[Any]) -> str:
        """Comma-join identifiers; dicts render as ``key AS alias``."""
        parts = []
        for piece in pieces:
            if isinstance(piece, dict):
                for key, alias in piece.items():
                    parts.append(f"{self._identifier(key, bindings)} AS {self.wrap_sanitizer(alias)}")
            else:
                parts.append(self._identifier(piece, bindings))
        return ", ".join(parts)

    def _identifier(self, value: Any, bindings: list[Any]) -> str:
        if isinstance(value, Raw):
            bindings.extend(value.bindings)
            return value.sql
        return self.wrap_sanitizer(value)

    @staticmethod
    def _concatenate(*pieces: str) -> str:
        return " ".join(piece.strip() for piece in pieces if piece and piece.strip())

    def _single_table(self, statements: Statements) -> Any:
        if not statements.tables:
            raise ConfigurationError("No table specified.")
        table = statements.tables[0]
        if isinstance(table, dict):
            table = next(iter(table))
        return table

    def _assignments(self, data: dict[str, Any]) -> tuple[str, list[Any]]:
        parts = []
        bindings: list[Any] = []
        for key, value in data.items():
            if isinstance(value, Raw):
                parts.append(f"{self.wrap_sanitizer(key)} = {value.sql}")
                bindings.extend(value.bindings)
            else:
                parts.append(f"{self.wrap_sanitizer(key)} = ?")
                bindings.append(value)
        return ", ".join(parts), bindings

    def _do_insert(self, statements: Statements, data: Any, kind: StatementKind) -> CompiledStatement:
        table = self._single_table(statements)
        if not data:
            raise ConfigurationError("No data given to insert.")
        keys = []
        values = []
        bindings: list[Any] = []
        for key, value in data.items():
            keys.append(self.wrap_sanitizer(key))
            if isinstance(value, Raw):
                values.append(value.sql)
                bindings.extend(value.bindings)
            else:
                values.append("?")
                bindings.append(value)
        sql = self._concatenate(
            self.INSERT_KEYWORDS[kind],
            "INTO",
            self.wrap_sanitizer(table),
            "(" + ", ".join(keys) + ")",
            "VALUES (" + ", ".join(values) + ")",
            self._insert_suffix(statements, kind, bindings),
        )
        return CompiledStatement(sql=sql, bindings=bindings)

    def build_order_by(self, statements: Statements) -> tuple[str, list[Any]]:
        """``ORDER BY ...`` clause (empty without order entries) and its bindings."""
        if not statements.order_bys:
            return "", []
        bindings: list[Any] = []
        parts = [
            f"{self._identifier(order.field, bindings)} {order.direction}"
            for order in statements.order_bys
        ]
        return "ORDER BY " + ", ".join(parts), bindings

    def _build_joins(self, statements: Statements, bindings: list[Any]) -> str:
        parts = []
        for join in statements.joins:
            table_sql = self._list_sql([join.table], bindings)
            on_sql, on_bindings = self._build_criteria(join.builder.statements.wheres, bind_values=False)
            bindings.extend(on_bindings)
            parts.append(f"{join.type.value.upper()} JOIN {table_sql} ON {on_sql}")
        return " ".join(parts)

    def _build_criteria(
        self, criteria: list[Criterion], bind_values: bool = True
    ) -> tuple[str, list[Any]]:
        """Compile a predicate list into SQL and bindings.

        Empty IN lists compile to the unsatisfiable ``1 = 2``; empty NOT IN
        lists are dropped. With ``bind_values`` false (join ON-conditions),
        plain values are quoted as identifiers instead of bound.
        """
        fragments: list[tuple[Joiner, str]] = []
        bindings: list[Any] = []
        for criterion in criteria:
            fragment = self._build_criterion(criterion, bind_values, bindings)
            if fragment:
                fragments.append((criterion.joiner, fragment))
        sql = ""
        for index, (joiner, fragment) in enumerate(fragments):
            if index == 0:
                prefix = "NOT " if joiner in (Joiner.AND_NOT, Joiner.OR_NOT) else ""
                sql = prefix + fragment
            else:
                sql += f" {joiner.value} {fragment}"
        return sql, bindings

    def _build_criterion(self, criterion: Criterion, bind_values: bool, bindings: list[Any]) -> str:
        key, operator, value = criterion.key, criterion.operator, criterion.value

        if isinstance(key, CriteriaBuilder):
            nested_sql, nested_bindings = self._build_criteria(key.statements.wheres, bind_values)
            if not nested_sql:
                return ""
            bindings.extend(nested_bindings)
            return f"({nested_sql})"

        key_sql = self._identifier(key, bindings)
        if operator is None:
            return key_sql
        operator = operator.upper()
        if operator in UNARY_OPERATORS:
            return f"{key_sql} {operator}"

        if isinstance(value, (list, tuple)):
            if operator == "BETWEEN":
                low, high = value
                return f"{key_sql} BETWEEN {self._value_sql(low, True, bindings)} AND {self._value_sql(high, True, bindings)}"
            if not value:
                if operator == "IN":
                    return "1 = 2"
                if operator == "NOT IN":
                    return ""
            placeholders = ", ".join(self._value_sql(v, True, bindings) for v in value)
            return f"{key_sql} {operator} ({placeholders})"

        if isinstance(value, Raw) and operator in ("IN", "NOT IN"):
            bindings.extend(value.bindings)
            sql = value.sql
            if not (sql.startswith("(") and sql.endswith(")")):
                sql = f"({sql})"
            return f"{key_sql} {operator} {sql}"

        return f"{key_sql} {operator} {self._value_sql(value, bind_values, bindings)}"

    def _value_sql(self, value: Any, bind_values: bool, bindings: list[Any]) -> str:
        if isinstance(value, Raw):
            bindings.extend(value.bindings)
            return value.sql
        if not bind_values:
            return self.wrap_sanitizer(value)
        bindings.append(value)
        return "?"


_PLACEHOLDER_PATTERN = re.compile(r"\?")


def interpolate(sql: str, bindings: Iterable[Any], quote: Callable[[Any], str]) -> str:
    """Replace each ``?`` with the quoted binding, in order."""
    values = iter(bindings)

    def _substitute(match: re.Match) -> str:
        try:
            return quote(next(values))
        except StopIteration:
            return match.group(0)

    return _PLACEHOLDER_PATTERN.sub(_substitute, sql)
