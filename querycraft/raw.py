"""Raw SQL fragments, injected verbatim into any clause position."""

from typing import Any

from pydantic import BaseModel, Field


class Raw(BaseModel):
    """An unescaped SQL fragment with its own bindings.

    Raw values are never prefixed, quoted or sanitized. Use ``?`` for
    placeholders whatever the dialect.
    """

    model_config = {"frozen": True}

    sql: str
    bindings: tuple[Any, ...] = Field(default_factory=tuple)

    def __init__(self, sql: str, bindings: Any = (), **kwargs: Any):
        if not isinstance(bindings, (list, tuple)):
            bindings = (bindings,)
        super().__init__(sql=sql, bindings=tuple(bindings), **kwargs)

    def __str__(self) -> str:
        return self.sql
