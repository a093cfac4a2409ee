"""Compiled statements, ready for execution or debug rendering."""

from typing import Any

from pydantic import BaseModel, Field

from .dialects.base import interpolate


class QueryObject(BaseModel):
    """Immutable compiled SQL, its bindings and the connection it targets."""

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    sql: str
    bindings: list[Any] = Field(default_factory=list)
    connection: Any = Field(default=None, exclude=True, repr=False)

    @property
    def raw_sql(self) -> str:
        """SQL with bindings inlined as literals.

        Only meant for reading: execution always goes through ``sql`` and
        ``bindings``.
        """
        return interpolate(self.sql, self.bindings, self.connection.dialect.quote)

    def __str__(self) -> str:
        return self.raw_sql
