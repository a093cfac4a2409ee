"""Eager loading of related rows.

Relations declared on a query builder (``with_one``, ``with_many``,
``with_many_via``) are resolved after the root rows are fetched, with one
query per declaration (two for a many-to-many relation without join), never
one query per row. Related rows are matched back to their parents through a
placeholder column carrying the correlation key.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, Callable, Iterable, Optional

from pydantic import BaseModel

logger = logging.getLogger("querycraft")

PLACEHOLDER = "___placeholder"
EXTERNAL_PLACEHOLDER = "___external"


class RelationType(str, enum.Enum):
    ONE = "one"
    MANY = "many"
    MANY_VIA = "many_via"


class Relation(BaseModel):
    """A relation declaration.

    ``original_table_id`` is the column of the root rows holding the
    correlation value; ``external_table_id`` the matching column of
    ``external_table`` (or, through a junction, ``via_table_original_id`` and
    ``via_table_external_id`` on ``via_table``).
    """

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    type: RelationType
    name: str
    external_table: str
    external_table_id: str = "id"
    original_table_id: str = "id"
    via_table: Optional[str] = None
    via_table_original_id: Optional[str] = None
    via_table_external_id: Optional[str] = None
    join: bool = False
    refine: Optional[Callable[[Any], Any]] = None

    @property
    def empty_value(self) -> Any:
        return None if self.type == RelationType.ONE else []


def correlation_values(rows: Iterable[dict], column: str) -> list[Any]:
    """Distinct non-empty values of ``column``, in first-seen order."""
    seen = set()
    values = []
    for row in rows:
        value = row.get(column)
        if value is None or value == "" or value in seen:
            continue
        seen.add(value)
        values.append(value)
    return values


def _strip(row: dict, *columns: str) -> dict:
    return {key: value for key, value in row.items() if key not in columns}


class EagerLoader:
    """Resolves relation declarations against a fetched result set.

    Args:
        new_query: Callable returning a fresh query builder on the same
            connection; relation queries are built from it.
    """

    def __init__(self, new_query: Callable[[], Any]):
        self._new_query = new_query

    def resolve(self, rows: list[dict], relations: Iterable[Relation]) -> list[dict]:
        """Return new row dicts with every relation field set.

        All relation queries run before any row is built, so a failing query
        leaves no partially loaded rows behind.
        """
        relations = list(relations)
        if not rows or not relations:
            return rows
        resolved = [(relation, self._fetch(rows, relation)) for relation in relations]
        result = []
        for row in rows:
            row = dict(row)
            for relation, related in resolved:
                key = row.get(relation.original_table_id)
                matches = related.get(key, []) if key is not None else []
                if not matches:
                    row[relation.name] = relation.empty_value
                elif relation.type == RelationType.ONE:
                    # several matches: the last one wins
                    row[relation.name] = dict(matches[-1])
                else:
                    row[relation.name] = [dict(match) for match in matches]
            result.append(row)
        return result

    def _fetch(self, rows: list[dict], relation: Relation) -> dict[Any, list[dict]]:
        """Query related rows and group them by correlation value."""
        ids = correlation_values(rows, relation.original_table_id)
        if not ids:
            logger.debug("No correlation values for relation %s, skipping", relation.name)
            return {}
        if relation.type == RelationType.MANY_VIA and not relation.join:
            return self._fetch_via_junction(ids, relation)

        if relation.type == RelationType.MANY_VIA:
            builder = self._via_join_query(ids, relation)
        else:
            builder = self._direct_query(ids, relation)
        builder = self._refine(builder, relation)
        return self._group(builder.get())

    def _direct_query(self, ids: list[Any], relation: Relation):
        external = relation.external_table
        key = f"{external}.{relation.external_table_id}"
        return (
            self._new_query()
            .table(external)
            .select(f"{external}.*", {key: PLACEHOLDER})
            .where_in(key, ids)
        )

    def _via_join_query(self, ids: list[Any], relation: Relation):
        external, via = relation.external_table, relation.via_table
        via_original = f"{via}.{relation.via_table_original_id}"
        return (
            self._new_query()
            .table(external)
            .select(f"{external}.*", {via_original: PLACEHOLDER})
            .inner_join(
                via,
                f"{via}.{relation.via_table_external_id}",
                "=",
                f"{external}.{relation.external_table_id}",
            )
            .where_in(via_original, ids)
        )

    def _fetch_via_junction(self, ids: list[Any], relation: Relation) -> dict[Any, list[dict]]:
        via = relation.via_table
        via_original = f"{via}.{relation.via_table_original_id}"
        junction_rows = (
            self._new_query()
            .table(via)
            .select({
                f"{via}.{relation.via_table_external_id}": EXTERNAL_PLACEHOLDER,
                via_original: PLACEHOLDER,
            })
            .where_in(via_original, ids)
            .get()
        )
        external_ids = correlation_values(junction_rows, EXTERNAL_PLACEHOLDER)
        if not external_ids:
            return {}
        builder = self._refine(self._direct_query(external_ids, relation), relation)
        externals = {
            external_id: matches[-1]
            for external_id, matches in self._group(builder.get()).items()
        }
        grouped: dict[Any, list[dict]] = {}
        for junction in junction_rows:
            external = externals.get(junction[EXTERNAL_PLACEHOLDER])
            if external is not None:
                grouped.setdefault(junction[PLACEHOLDER], []).append(external)
        return grouped

    @staticmethod
    def _refine(builder: Any, relation: Relation) -> Any:
        if relation.refine is None:
            return builder
        refined = relation.refine(builder)
        return builder if refined is None else refined

    @staticmethod
    def _group(related_rows: list[dict]) -> dict[Any, list[dict]]:
        grouped: dict[Any, list[dict]] = {}
        for related in related_rows:
            grouped.setdefault(related[PLACEHOLDER], []).append(_strip(related, PLACEHOLDER))
        return grouped
