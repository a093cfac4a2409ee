"""Fluent query builder: statement mutators, compilation, execution and result post-processing.

A :class:`QueryBuilderHandler` accumulates clause entries in its statement
model, asks the connection's dialect to compile them, executes the result
(reconnecting when the connection was lost) and passes fetched rows through
eager loading, map functions and the optional result cache::

    users = connection.table("users").where("active", 1).order_by("name").get()
"""

from __future__ import annotations

import hashlib
import logging
import re
import time
from collections.abc import Mapping
from typing import Any, Callable, Optional

from pydantic import BaseModel

from .cache import MISS, is_cache_handler
from .criteria import CriteriaBuilder, JoinBuilder
from .eager import EagerLoader, Relation, RelationType
from .events import ANY_TABLE
from .exceptions import ConfigurationError, QueryDumped, TransactionHalt
from .query_object import QueryObject
from .raw import Raw
from .statements import Criterion, Joiner, JoinClause, JoinType, OrderClause, StatementKind

logger = logging.getLogger("querycraft")

_SELECT_FROM = re.compile(r"^SELECT (?P<columns>.+?) FROM (?P<table>\S+)(?P<rest>.*)$", re.DOTALL)
_AGGREGATE_FUNCTION = re.compile(r"^[A-Za-z_]+$")


class Page(BaseModel):
    """One page of results, as returned by :meth:`QueryBuilderHandler.paginate`."""

    current_page: int
    per_page: int
    total: int
    items: list[Any]


def _flatten(values: tuple[Any, ...]) -> list[Any]:
    """Accept both ``f("a", "b")`` and ``f(["a", "b"])``."""
    if len(values) == 1 and isinstance(values[0], (list, tuple)):
        return list(values[0])
    return list(values)


def _column_name(field: Any) -> str:
    """Key of ``field`` in fetched rows."""
    if isinstance(field, dict) and len(field) == 1:
        return str(next(iter(field.values())))
    if isinstance(field, str):
        return field.split(".")[-1]
    raise ConfigurationError(f"Cannot tell the column name of {field!r}; alias it with {{field: alias}}")


def _record(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump()
    return data


class QueryBuilderHandler(CriteriaBuilder):
    """Builds, runs and post-processes queries on one connection.

    Not thread-safe: a handler is meant to live for one query, or one
    request. Derived handlers (``table()``, ``new_query()``) share the
    connection and get a copy of the table prefix and cache handler.
    """

    def __init__(self, connection):
        super().__init__(table_prefix=connection.prefix)
        self.connection = connection
        self.dialect = connection.dialect
        self._pending_cursor: Any = None
        self._cache_handler: Any = None
        self._cache_ttl = 0
        self._cache_key: Optional[str] = None
        self._dump = False
        self._map_functions: list[Callable[[Any], Any]] = []
        self._relations: dict[str, Relation] = {}
        self._reconnect_attempts = 0
        self._retry = True

    # --- derivation ---

    def _derive(self, connection=None) -> QueryBuilderHandler:
        instance = type(self)(connection or self.connection)
        instance.table_prefix = self.table_prefix
        instance._cache_handler = self._cache_handler
        instance._retry = self._retry
        return instance

    def _eager_query(self) -> QueryBuilderHandler:
        """Handler for relation queries: a lost connection there is never retried."""
        instance = self._derive()
        instance._retry = False
        return instance

    def new_query(self, connection=None) -> QueryBuilderHandler:
        """Return an empty handler on the same (or the given) connection."""
        return self._derive(connection)

    def table(self, *tables: Any) -> QueryBuilderHandler:
        """Start a new query on ``tables``; this handler is left untouched."""
        instance = self._derive()
        instance.statements.tables.extend(self.add_table_prefix(_flatten(tables), False))
        return instance

    def get_statements(self):
        return self.statements

    # --- fluent mutators ---

    def from_(self, *tables: Any) -> QueryBuilderHandler:
        self.statements.tables.extend(self.add_table_prefix(_flatten(tables), False))
        return self

    def select(self, *fields: Any) -> QueryBuilderHandler:
        """Add columns to the projection.

        Fields are names (``"name"``, ``"users.*"``), Raw expressions, or
        ``{field: alias}`` dicts.
        """
        self.statements.selects.extend(self.add_table_prefix(_flatten(fields)))
        return self

    def select_distinct(self, *fields: Any) -> QueryBuilderHandler:
        self.select(*fields)
        self.statements.distinct = True
        return self

    def group_by(self, *fields: Any) -> QueryBuilderHandler:
        self.statements.group_bys.extend(self.add_table_prefix(_flatten(fields)))
        return self

    def order_by(self, fields: Any, direction: str = "ASC") -> QueryBuilderHandler:
        """Order by one field, a list of fields, or a ``{field: direction}`` dict."""
        if isinstance(fields, dict):
            pairs = list(fields.items())
        elif isinstance(fields, (list, tuple)):
            pairs = [(field, direction) for field in fields]
        else:
            pairs = [(fields, direction)]
        for field, field_direction in pairs:
            field_direction = str(field_direction).upper()
            if field_direction not in ("ASC", "DESC"):
                raise ConfigurationError(f"Invalid order direction: {field_direction!r}")
            self.statements.order_bys.append(
                OrderClause(field=self.add_table_prefix(field), direction=field_direction)
            )
        return self

    def limit(self, limit: Optional[int]) -> QueryBuilderHandler:
        self.statements.limit = limit
        return self

    def offset(self, offset: Optional[int]) -> QueryBuilderHandler:
        self.statements.offset = offset
        return self

    def having(self, key: Any, operator: str, value: Any, joiner: Joiner = Joiner.AND) -> QueryBuilderHandler:
        self.statements.havings.append(
            Criterion(key=self.add_table_prefix(key), operator=operator, value=value, joiner=Joiner(joiner))
        )
        return self

    def or_having(self, key: Any, operator: str, value: Any) -> QueryBuilderHandler:
        return self.having(key, operator, value, Joiner.OR)

    def join(
        self,
        table: Any,
        key: Any,
        operator: Optional[str] = None,
        value: Any = None,
        type: str = "inner",  # pylint: disable=redefined-builtin
    ) -> QueryBuilderHandler:
        """Join ``table`` on ``key operator value``.

        ``key`` may instead be a callable receiving a :class:`JoinBuilder`,
        for ON-conditions with several predicates::

            qb.join("posts", lambda j: j.on("posts.user_id", "=", "users.id").or_on(...))
        """
        builder = JoinBuilder(table_prefix=self.table_prefix)
        if callable(key) and not isinstance(key, Raw):
            key(builder)
        else:
            builder.on(key, operator, value)
        self.statements.joins.append(
            JoinClause(type=JoinType(type), table=self.add_table_prefix(table, False), builder=builder)
        )
        return self

    def inner_join(self, table: Any, key: Any, operator: Optional[str] = None, value: Any = None):
        return self.join(table, key, operator, value, "inner")

    def left_join(self, table: Any, key: Any, operator: Optional[str] = None, value: Any = None):
        return self.join(table, key, operator, value, "left")

    def right_join(self, table: Any, key: Any, operator: Optional[str] = None, value: Any = None):
        return self.join(table, key, operator, value, "right")

    def on_duplicate_key_update(
        self, data: dict[str, Any], conflict_target: Optional[list[str]] = None
    ) -> QueryBuilderHandler:
        """Turn the next insert into an upsert updating ``data`` on conflict.

        ``conflict_target`` lists the unique columns; PostgreSQL requires it.
        """
        self.statements.on_duplicate = dict(data)
        self.statements.conflict_target = list(conflict_target or [])
        return self

    # --- relations, mapping, caching, debugging ---

    def with_one(
        self,
        external_table: str,
        external_table_id: str = "id",
        original_table_id: str = "id",
        name: Optional[str] = None,
        refine: Optional[Callable[[Any], Any]] = None,
    ) -> QueryBuilderHandler:
        """Attach the single row of ``external_table`` whose ``external_table_id``
        equals each row's ``original_table_id`` (None when there is none)."""
        return self._add_relation(Relation(
            type=RelationType.ONE,
            name=name or external_table,
            external_table=external_table,
            external_table_id=external_table_id,
            original_table_id=original_table_id,
            refine=refine,
        ))

    def with_many(
        self,
        external_table: str,
        external_table_id: str,
        original_table_id: str = "id",
        name: Optional[str] = None,
        refine: Optional[Callable[[Any], Any]] = None,
    ) -> QueryBuilderHandler:
        """Attach the list of ``external_table`` rows whose ``external_table_id``
        equals each row's ``original_table_id``."""
        return self._add_relation(Relation(
            type=RelationType.MANY,
            name=name or external_table,
            external_table=external_table,
            external_table_id=external_table_id,
            original_table_id=original_table_id,
            refine=refine,
        ))

    def with_many_via(
        self,
        external_table: str,
        via_table: str,
        via_table_original_id: str,
        via_table_external_id: str,
        external_table_id: str = "id",
        original_table_id: str = "id",
        name: Optional[str] = None,
        join: bool = False,
        refine: Optional[Callable[[Any], Any]] = None,
    ) -> QueryBuilderHandler:
        """Attach ``external_table`` rows linked through the junction table ``via_table``.

        By default the junction rows and the external rows are fetched with two
        queries; ``join=True`` fetches both with a single join.
        """
        return self._add_relation(Relation(
            type=RelationType.MANY_VIA,
            name=name or external_table,
            external_table=external_table,
            external_table_id=external_table_id,
            original_table_id=original_table_id,
            via_table=via_table,
            via_table_original_id=via_table_original_id,
            via_table_external_id=via_table_external_id,
            join=join,
            refine=refine,
        ))

    def _add_relation(self, relation: Relation) -> QueryBuilderHandler:
        self._relations[relation.name] = relation
        return self

    def map(self, function: Callable[[Any], Any]) -> QueryBuilderHandler:
        """Apply ``function`` to every fetched row; map functions run in registration order."""
        self._map_functions.append(function)
        return self

    def as_model(self, model: type[BaseModel]) -> QueryBuilderHandler:
        """Validate each fetched row into an instance of the pydantic ``model``."""
        return self.map(model.model_validate)

    def set_cache_handler(self, cache_handler: Any) -> QueryBuilderHandler:
        if not is_cache_handler(cache_handler):
            raise ConfigurationError("Cache handler should have get() and set() methods")
        self._cache_handler = cache_handler
        return self

    def cache(self, ttl: int = 3600, key: Optional[str] = None) -> QueryBuilderHandler:
        """Cache ``get()`` results for ``ttl`` seconds (0 disables caching).

        Without ``key``, the SHA-1 of the inlined SQL is used.
        """
        if not isinstance(ttl, int) or isinstance(ttl, bool) or ttl < 0:
            raise ConfigurationError("Cache ttl should be positive integer or 0")
        self._cache_ttl = ttl
        self._cache_key = key
        return self

    def dump(self, enabled: bool = True) -> QueryBuilderHandler:
        """Make ``get()`` print the inlined SQL and raise QueryDumped instead of executing."""
        self._dump = enabled
        return self

    # --- compilation ---

    def get_query(self, kind: StatementKind | str = StatementKind.SELECT, data: Any = None) -> QueryObject:
        compiled = self.dialect.compile(kind, self.statements, data)
        return QueryObject(sql=compiled.sql, bindings=compiled.bindings, connection=self.connection)

    def get_raw_sql(self) -> str:
        return self.get_query().raw_sql

    def sub_query(self, query_builder: QueryBuilderHandler, alias: Optional[str] = None) -> Raw:
        """Wrap another builder's SELECT as a Raw expression, keeping its bindings."""
        query_object = query_builder.get_query()
        sql = f"({query_object.sql})"
        if alias:
            sql += " AS " + self.dialect.wrap_sanitizer(alias)
        return Raw(sql, query_object.bindings)

    # --- execution ---

    def statement(self, sql: str, bindings: Any = ()) -> tuple[Any, float]:
        """Execute ``sql`` and return the cursor and the elapsed time in seconds.

        When the connection reports a lost connection, reconnect and reissue
        the same statement with the same bindings, at most
        ``max_reconnect_attempts`` times per call. Statements inside a
        transaction are never retried: reconnecting would drop the transaction.
        Relation queries of the eager-load phase are never retried either.
        Reissuing a write is only safe if the caller accepts it may run twice.
        """
        self._reconnect_attempts = 0
        bindings = list(bindings)
        start = time.perf_counter()
        while True:
            try:
                cursor = self.connection.execute(sql, bindings)
                break
            except Exception as error:  # driver exception types vary
                if (
                    not self._retry
                    or self.connection.in_transaction
                    or not self.connection.is_transient_error(error)
                    or self._reconnect_attempts >= self.connection.max_reconnect_attempts
                ):
                    raise
                self._reconnect_attempts += 1
                logger.warning(
                    "Connection lost (%s), reconnecting (attempt %d/%d)",
                    error, self._reconnect_attempts, self.connection.max_reconnect_attempts,
                )
                self.connection.reconnect()
        return cursor, time.perf_counter() - start

    def query(self, sql: str, bindings: Any = ()) -> QueryBuilderHandler:
        """Run raw SQL now; the next ``get()`` returns its rows."""
        self._pending_cursor, _ = self.statement(sql, bindings)
        return self

    @staticmethod
    def _fetch_all(cursor: Any) -> list[dict[str, Any]]:
        if cursor.description is None:
            return []
        names = [column[0] for column in cursor.description]
        return [dict(zip(names, row)) for row in cursor.fetchall()]

    # --- reads ---

    def get(self) -> list[Any]:
        """Return all rows, after eager loading and map functions."""
        if self._dump:
            raw_sql = self.get_raw_sql()
            print(raw_sql)
            raise QueryDumped(raw_sql)

        if self._cache_ttl > 0 and self._cache_handler is not None:
            key = self._cache_key or hashlib.sha1(self.get_raw_sql().encode("utf-8")).hexdigest()
            result = self._cache_handler.get(key)
            if result is MISS:
                result = self._process(self._get_result())
                self._cache_handler.set(key, result, self._cache_ttl)
            else:
                logger.debug("Cache hit for %s", key)
                self._discard_pending_cursor()
            return result

        return self._process(self._get_result())

    def _discard_pending_cursor(self) -> None:
        if self._pending_cursor is not None:
            cursor, self._pending_cursor = self._pending_cursor, None
            cursor.close()

    def _get_result(self) -> list[dict[str, Any]]:
        event_result = self.fire_events("before-select")
        if event_result is not None:
            self._pending_cursor = None
            return event_result

        elapsed = 0.0
        if self._pending_cursor is None:
            query_object = self.get_query(StatementKind.SELECT)
            self._pending_cursor, elapsed = self.statement(query_object.sql, query_object.bindings)

        start = time.perf_counter()
        try:
            rows = self._fetch_all(self._pending_cursor)
        finally:
            self._pending_cursor = None
        elapsed += time.perf_counter() - start
        self.fire_events("after-select", rows, elapsed)
        return rows

    def _process(self, rows: list[Any]) -> list[Any]:
        if self._relations:
            rows = EagerLoader(self._eager_query).resolve(rows, self._relations.values())
        for function in self._map_functions:
            rows = [function(row) for row in rows]
        return rows

    def first(self) -> Optional[Any]:
        """Return the first row, or None when there is none."""
        previous_limit = self.statements.limit
        self.limit(1)
        try:
            rows = self.get()
        finally:
            self.statements.limit = previous_limit
        return rows[0] if rows else None

    def find(self, value: Any, field_name: str = "id") -> Optional[Any]:
        return self.where(field_name, "=", value).first()

    def find_all(self, field_name: str, value: Any) -> list[Any]:
        return self.where(field_name, "=", value).get()

    def get_column(self, select: Any = None) -> list[Any]:
        """Values of the first selected column.

        Reads the fetched rows directly: relations, map functions and caching
        do not apply.
        """
        if select is not None:
            self.select(select)
        return [next(iter(row.values())) for row in self._get_result()]

    def get_scalar(self, select: Any = None) -> Any:
        """First column of the first row, or None. Like get_column(), map
        functions do not apply."""
        if select is not None:
            self.select(select)
        previous_limit = self.statements.limit
        self.limit(1)
        try:
            rows = self._get_result()
        finally:
            self.statements.limit = previous_limit
        return next(iter(rows[0].values())) if rows else None

    def pluck(self, index_field: Any, value_field: Any) -> dict[Any, Any]:
        """``{index: value}`` from two columns, e.g. for dropdowns.

        Fields are column names or ``{expression: alias}`` dicts; a bare Raw
        expression has no usable column name and is rejected. Map functions
        do not apply.
        """
        index_key = _column_name(index_field)
        value_key = _column_name(value_field)
        rows = self.select(index_field, value_field)._get_result()
        return {row[index_key]: row[value_key] for row in rows}

    def _aggregate_copy(self) -> QueryBuilderHandler:
        """A handler over a copy of the statements, without ordering, limit,
        offset, relations, map functions or caching."""
        instance = self._derive()
        instance.statements = self.statements.copy_statements(order_bys=[], limit=None, offset=None)
        return instance

    def count(self) -> int:
        """Number of rows the query matches, ignoring limit and offset.

        Grouped, filtered-by-having or distinct queries are counted as a
        subquery, since a direct ``COUNT(*)`` would count per group.
        """
        counter = self._aggregate_copy()
        statements = counter.statements
        if statements.group_bys or statements.havings or statements.distinct:
            query_object = counter.get_query()
            rows = counter.query(
                f"SELECT COUNT(*) AS field FROM ({query_object.sql}) AS t",
                query_object.bindings,
            ).get()
            return int(rows[0].get("field") or 0) if rows else 0
        return int(counter.aggregate("count") or 0)

    def aggregate(self, function: str, column: Any = "*") -> Any:
        """Run ``function(column)`` (count, sum, avg, min, max...) and return the scalar.

        Works on a copy of the statements, so this handler can still be
        chained and executed afterwards.
        """
        if not _AGGREGATE_FUNCTION.match(function):
            raise ConfigurationError(f"Invalid aggregate function: {function!r}")
        aggregator = self._aggregate_copy()
        if isinstance(column, Raw):
            column_sql = column.sql
            bindings = column.bindings
        else:
            column_sql = self.dialect.wrap_sanitizer(self.add_table_prefix(column))
            bindings = ()
        aggregator.statements.selects = [Raw(f"{function.upper()}({column_sql}) AS field", bindings)]
        rows = aggregator.get()
        if not rows:
            return 0 if function.lower() == "count" else None
        value = rows[0].get("field")
        if function.lower() == "count":
            return int(value or 0)
        return value

    def sum(self, column: Any) -> Any:
        return self.aggregate("sum", column)

    def avg(self, column: Any) -> Any:
        return self.aggregate("avg", column)

    def min(self, column: Any) -> Any:
        return self.aggregate("min", column)

    def max(self, column: Any) -> Any:
        return self.aggregate("max", column)

    # --- pagination ---

    def paginate(
        self,
        page: int,
        per_page: int = 20,
        late_lookup: bool = False,
        total: Optional[int] = None,
        primary_key: str = "id",
    ) -> Page:
        """Fetch one page of rows and the total row count.

        Args:
            page: 1-based page number; values below 1 mean 1.
            per_page: Page size; values below 1 mean 1.
            late_lookup: Select only primary keys under LIMIT/OFFSET, then
                join the full rows back on them. Only for queries on a single
                main table.
            total: Known total row count; skips the count query.
            primary_key: Column used by the late lookup.
        """
        page = max(int(page), 1)
        per_page = max(int(per_page), 1)
        self.limit(per_page).offset((page - 1) * per_page)

        if late_lookup:
            sql, bindings = self._late_lookup_sql(primary_key)
            self.query(sql, bindings)
        items = self.get()
        if total is None:
            total = self.count()
        return Page(current_page=page, per_page=per_page, total=total, items=items)

    def _late_lookup_sql(self, primary_key: str) -> tuple[str, list[Any]]:
        tables = self.statements.tables
        if len(tables) != 1 or not isinstance(tables[0], str):
            raise ConfigurationError("Late lookup needs exactly one main table")
        query_object = self.get_query()
        match = _SELECT_FROM.match(query_object.sql)
        if match is None:
            raise ConfigurationError("Late lookup could not extract SELECT ... FROM from the query")
        columns, table, rest = match.group("columns", "table", "rest")
        if columns == "*":
            columns = f"{table}.*"
        wrap = self.dialect.wrap_sanitizer
        pk, alias, lookup_id = wrap(primary_key), wrap("late_lookup"), wrap("late_lookup_id")
        sql = (
            f"SELECT {columns} FROM {table} "
            f"INNER JOIN (SELECT {table}.{pk} AS {lookup_id} FROM {table}{rest}) AS {alias} "
            f"ON {table}.{pk} = {alias}.{lookup_id}"
        )
        order_sql, order_bindings = self.dialect.build_order_by(self.statements)
        if order_sql:
            sql += " " + order_sql
        return sql, list(query_object.bindings) + order_bindings

    def chunk(self, size: int, callback: Callable[[list[Any], int], Any]) -> None:
        """Call ``callback(rows, index)`` on successive windows of ``size`` rows.

        Stops on the first empty window, or when the callback returns False.
        The previous limit and offset are restored afterwards.
        """
        size = max(int(size), 1)
        previous = (self.statements.limit, self.statements.offset)
        index = 0
        try:
            while True:
                self.limit(size).offset(index * size)
                rows = self.get()
                if not rows or callback(rows, index) is False:
                    break
                index += 1
        finally:
            self.statements.limit, self.statements.offset = previous

    # --- writes ---

    def _inserted_id(self, cursor: Any) -> Any:
        return self.connection.last_insert_id(cursor) if cursor.rowcount == 1 else None

    def _do_insert(self, data: Any, kind: StatementKind) -> Any:
        event_result = self.fire_events("before-insert")
        if event_result is not None:
            return event_result

        data = _record(data)
        if isinstance(data, Mapping):
            query_object = self.get_query(kind, dict(data))
            cursor, elapsed = self.statement(query_object.sql, query_object.bindings)
            result = self._inserted_id(cursor)
        else:
            # a batch: one statement per record
            result = []
            elapsed = 0.0
            for record in data:
                query_object = self.get_query(kind, dict(_record(record)))
                cursor, record_elapsed = self.statement(query_object.sql, query_object.bindings)
                elapsed += record_elapsed
                result.append(self._inserted_id(cursor))

        self.fire_events("after-insert", result, elapsed)
        return result

    def insert(self, data: Any) -> Any:
        """Insert one record (returns its id) or a sequence of records (returns their ids)."""
        return self._do_insert(data, StatementKind.INSERT)

    def insert_ignore(self, data: Any) -> Any:
        return self._do_insert(data, StatementKind.INSERT_IGNORE)

    def replace(self, data: Any) -> Any:
        return self._do_insert(data, StatementKind.REPLACE)

    def update(self, data: Any) -> Any:
        """Update the matched rows with ``data``; returns the driver cursor."""
        event_result = self.fire_events("before-update")
        if event_result is not None:
            return event_result
        query_object = self.get_query(StatementKind.UPDATE, dict(_record(data)))
        cursor, elapsed = self.statement(query_object.sql, query_object.bindings)
        self.fire_events("after-update", query_object, elapsed)
        return cursor

    def update_or_insert(self, data: Any) -> Any:
        """Update the matched rows if there is one, otherwise insert ``data``.

        Not atomic: a row inserted concurrently between the lookup and the
        write is not detected. Use on_duplicate_key_update() with a unique key
        where that matters.
        """
        if self.first() is not None:
            return self.update(data)
        return self.insert(data)

    def delete(self) -> Any:
        event_result = self.fire_events("before-delete")
        if event_result is not None:
            return event_result
        query_object = self.get_query(StatementKind.DELETE)
        cursor, elapsed = self.statement(query_object.sql, query_object.bindings)
        self.fire_events("after-delete", query_object, elapsed)
        return cursor

    # --- transactions ---

    def transaction(self, callback: Callable[[Any], Any]) -> Any:
        """Run ``callback(transaction)`` inside a transaction.

        Commits when the callback returns and rolls back (then re-raises) when
        it raises. ``transaction.commit()`` and ``transaction.rollback()``
        resolve the transaction early and leave the callback. Nested calls use
        savepoints. Returns the callback's return value, or None after an
        early commit or rollback.
        """
        from .transaction import Transaction

        self.connection.begin()
        transaction = Transaction(self.connection, self.connection.transaction_level)
        transaction.table_prefix = self.table_prefix
        transaction._cache_handler = self._cache_handler
        try:
            result = callback(transaction)
        except TransactionHalt:
            return None
        except Exception:
            self.connection.rollback()
            raise
        self.connection.commit()
        return result

    # --- events ---

    def get_event(self, event: str, table: str = ANY_TABLE):
        return self.connection.event_handler.get_event(event, self._event_table(table))

    def register_event(self, event: str, table: Optional[str], action: Callable[..., Any]) -> None:
        self.connection.event_handler.register_event(event, self._event_table(table), action)

    def remove_event(self, event: str, table: str = ANY_TABLE) -> None:
        self.connection.event_handler.remove_event(event, self._event_table(table))

    def fire_events(self, event: str, *args: Any) -> Any:
        return self.connection.event_handler.fire_events(self, event, *args)

    def _event_table(self, table: Optional[str]) -> str:
        if not table or table == ANY_TABLE:
            return ANY_TABLE
        return self.add_table_prefix(table, False)
