"""Predicate mutators shared by query builders, join builders and nested groups."""

from __future__ import annotations

from typing import Any, Callable, Optional

from .raw import Raw
from .statements import Criterion, Joiner, Statements

# Distinguishes "argument omitted" from an explicit None value.
_UNSET: Any = object()


class CriteriaBuilder:
    """Owns a statement model and the WHERE-family mutators.

    Every mutator returns ``self`` so calls can be chained.
    """

    def __init__(self, table_prefix: Optional[str] = None):
        self.table_prefix = table_prefix
        self.statements = Statements()

    def add_table_prefix(self, values: Any, table_field_mix: bool = True) -> Any:
        """Apply the table prefix, if any, to a name or a collection of names.

        With ``table_field_mix`` (field names), only qualified names such as
        ``users.id`` get prefixed; otherwise (table names) every name does.
        Raw expressions and nested builders pass through untouched. In dicts
        the key is the name and the value an alias, so only keys are prefixed.
        """
        if not self.table_prefix:
            return values
        if isinstance(values, dict):
            return {self._prefix_one(key, table_field_mix): alias for key, alias in values.items()}
        if isinstance(values, (list, tuple)):
            return [self.add_table_prefix(value, table_field_mix) for value in values]
        return self._prefix_one(values, table_field_mix)

    def _prefix_one(self, value: Any, table_field_mix: bool) -> Any:
        if not isinstance(value, str):
            return value
        if not table_field_mix or "." in value:
            return self.table_prefix + value
        return value

    def raw(self, sql: str, bindings: Any = ()) -> Raw:
        return Raw(sql, bindings)

    def _nested(self) -> NestedCriteria:
        return NestedCriteria(table_prefix=self.table_prefix)

    def _where_handler(
        self, key: Any, operator: Optional[str], value: Any, joiner: Joiner = Joiner.AND
    ) -> CriteriaBuilder:
        if callable(key) and not isinstance(key, (Raw, CriteriaBuilder)):
            nested = self._nested()
            key(nested)
            key = nested
        key = self.add_table_prefix(key)
        if isinstance(value, (set, frozenset)):
            value = list(value)
        self.statements.wheres.append(
            Criterion(key=key, operator=operator, value=value, joiner=Joiner(joiner))
        )
        return self

    def _where(self, joiner: Joiner, key: Any, operator: Any, value: Any) -> CriteriaBuilder:
        if value is _UNSET:
            if operator is _UNSET:
                # where(Raw(...)) or where(lambda q: ...)
                return self._where_handler(key, None, None, joiner)
            operator, value = "=", operator
        return self._where_handler(key, operator, value, joiner)

    def where(self, key: Any, operator: Any = _UNSET, value: Any = _UNSET, *, when: bool = True):
        """Add an AND predicate.

        ``where("age", 18)`` compares for equality, ``where("age", ">", 18)``
        uses the given operator, ``where(raw)`` injects a raw fragment and
        ``where(callable)`` builds a parenthesised group. When ``when`` is
        false the call does nothing, which lets callers apply optional filters
        without branching.
        """
        if not when:
            return self
        return self._where(Joiner.AND, key, operator, value)

    def or_where(self, key: Any, operator: Any = _UNSET, value: Any = _UNSET, *, when: bool = True):
        if not when:
            return self
        return self._where(Joiner.OR, key, operator, value)

    def where_not(self, key: Any, operator: Any = _UNSET, value: Any = _UNSET, *, when: bool = True):
        if not when:
            return self
        return self._where(Joiner.AND_NOT, key, operator, value)

    def or_where_not(self, key: Any, operator: Any = _UNSET, value: Any = _UNSET, *, when: bool = True):
        if not when:
            return self
        return self._where(Joiner.OR_NOT, key, operator, value)

    def where_in(self, key: Any, values: Any, *, when: bool = True):
        """Match any of ``values``; an empty sequence matches nothing."""
        if not when:
            return self
        return self._where_handler(key, "IN", values, Joiner.AND)

    def where_not_in(self, key: Any, values: Any, *, when: bool = True):
        """Exclude ``values``; an empty sequence excludes nothing."""
        if not when:
            return self
        return self._where_handler(key, "NOT IN", values, Joiner.AND)

    def or_where_in(self, key: Any, values: Any, *, when: bool = True):
        if not when:
            return self
        return self._where_handler(key, "IN", values, Joiner.OR)

    def or_where_not_in(self, key: Any, values: Any, *, when: bool = True):
        if not when:
            return self
        return self._where_handler(key, "NOT IN", values, Joiner.OR)

    def where_between(self, key: Any, value_from: Any, value_to: Any, *, when: bool = True):
        if not when:
            return self
        return self._where_handler(key, "BETWEEN", [value_from, value_to], Joiner.AND)

    def or_where_between(self, key: Any, value_from: Any, value_to: Any, *, when: bool = True):
        if not when:
            return self
        return self._where_handler(key, "BETWEEN", [value_from, value_to], Joiner.OR)

    def where_null(self, key: Any, *, when: bool = True):
        if not when:
            return self
        return self._where_handler(key, "IS NULL", None, Joiner.AND)

    def where_not_null(self, key: Any, *, when: bool = True):
        if not when:
            return self
        return self._where_handler(key, "IS NOT NULL", None, Joiner.AND)

    def or_where_null(self, key: Any, *, when: bool = True):
        if not when:
            return self
        return self._where_handler(key, "IS NULL", None, Joiner.OR)

    def or_where_not_null(self, key: Any, *, when: bool = True):
        if not when:
            return self
        return self._where_handler(key, "IS NOT NULL", None, Joiner.OR)


class NestedCriteria(CriteriaBuilder):
    """Builder handed to ``where(callable)``; compiles to a parenthesised group."""


class JoinBuilder(CriteriaBuilder):
    """ON-conditions of a single join.

    Values are column references here: ``on("users.id", "=", "posts.user_id")``
    compares two columns. Use a Raw expression to compare with a literal.
    """

    def on(self, key: Any, operator: Any, value: Any) -> JoinBuilder:
        return self._where_handler(key, operator, self.add_table_prefix(value), Joiner.AND)

    def or_on(self, key: Any, operator: Any, value: Any) -> JoinBuilder:
        return self._where_handler(key, operator, self.add_table_prefix(value), Joiner.OR)


JoinCallback = Callable[[JoinBuilder], Any]
