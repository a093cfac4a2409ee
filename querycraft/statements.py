"""Statement model: the clause entries a query builder accumulates before compilation.

The model is pure data. Fluent mutators live in :mod:`querycraft.criteria` and
:mod:`querycraft.query_builder`; compilation lives in :mod:`querycraft.dialects`.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class StatementKind(str, enum.Enum):
    """Closed set of statement kinds a dialect knows how to compile."""

    SELECT = "select"
    INSERT = "insert"
    INSERT_IGNORE = "insertignore"
    REPLACE = "replace"
    DELETE = "delete"
    UPDATE = "update"
    CRITERIA_ONLY = "criteriaonly"


class Joiner(str, enum.Enum):
    """How a predicate is chained to the ones before it."""

    AND = "AND"
    OR = "OR"
    AND_NOT = "AND NOT"
    OR_NOT = "OR NOT"


class JoinType(str, enum.Enum):
    INNER = "inner"
    LEFT = "left"
    RIGHT = "right"


# Operators that take no right-hand value.
UNARY_OPERATORS = frozenset({"IS NULL", "IS NOT NULL"})


class Criterion(BaseModel):
    """One predicate of a WHERE, HAVING or join ON list.

    ``operator`` is None when ``key`` is a Raw expression or a nested criteria
    builder standing on its own.
    """

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    key: Any
    operator: Optional[str] = None
    value: Any = None
    joiner: Joiner = Joiner.AND


class JoinClause(BaseModel):
    """A JOIN entry; ``builder`` holds the ON-conditions."""

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    type: JoinType
    table: Any
    builder: Any


class OrderClause(BaseModel):
    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    field: Any
    direction: str = "ASC"


class Statements(BaseModel):
    """Kind-keyed clause entries.

    List kinds keep insertion order; ``limit``, ``offset`` and ``distinct`` are
    scalars where the last write wins.
    """

    model_config = {"arbitrary_types_allowed": True, "validate_assignment": True}

    tables: list[Any] = Field(default_factory=list)
    selects: list[Any] = Field(default_factory=list)
    wheres: list[Criterion] = Field(default_factory=list)
    joins: list[JoinClause] = Field(default_factory=list)
    group_bys: list[Any] = Field(default_factory=list)
    order_bys: list[OrderClause] = Field(default_factory=list)
    havings: list[Criterion] = Field(default_factory=list)
    limit: Optional[int] = None
    offset: Optional[int] = None
    distinct: bool = False
    on_duplicate: Optional[dict[str, Any]] = None
    conflict_target: list[str] = Field(default_factory=list)

    def copy_statements(self, **changes: Any) -> Statements:
        """Return a copy whose lists can be mutated without touching this model.

        Entries themselves are shared; they are immutable once added.
        """
        data = {
            name: list(value) if isinstance(value, list) else value
            for name, value in self.__dict__.items()
        }
        if data["on_duplicate"] is not None:
            data["on_duplicate"] = dict(data["on_duplicate"])
        data.update(changes)
        return type(self).model_construct(**data)
