"""Event hooks fired around query builder operations.

Event names are ``before-select``, ``after-select``, ``before-insert``,
``after-insert``, ``before-update``, ``after-update``, ``before-delete`` and
``after-delete``. Hooks are registered per table, or for every table with
``":any"``, and are called as ``action(query_builder, *args)``. A ``before-*``
hook returning something other than None short-circuits the operation, and
that value becomes its result.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .raw import Raw

logger = logging.getLogger("querycraft")

ANY_TABLE = ":any"

EVENTS: frozenset[str] = frozenset({
    "before-select", "after-select",
    "before-insert", "after-insert",
    "before-update", "after-update",
    "before-delete", "after-delete",
})

EventAction = Callable[..., Any]


class EventHandler:
    """Registry of hooks keyed by ``(event, table)``; one per connection."""

    def __init__(self) -> None:
        self._events: dict[str, dict[str, EventAction]] = {}
        self._fired: list[str] = []

    def get_events(self) -> dict[str, dict[str, EventAction]]:
        return {table: dict(events) for table, events in self._events.items()}

    def get_event(self, event: str, table: Any = ANY_TABLE) -> Optional[EventAction]:
        if isinstance(table, Raw):
            table = table.sql
        return self._events.get(table, {}).get(event)

    def register_event(self, event: str, table: Optional[str], action: EventAction) -> None:
        if event not in EVENTS:
            raise ValueError(
                f"Unknown event: '{event}'. Valid events: {', '.join(sorted(EVENTS))}"
            )
        self._events.setdefault(table or ANY_TABLE, {})[event] = action

    def remove_event(self, event: str, table: Optional[str] = ANY_TABLE) -> None:
        self._events.get(table or ANY_TABLE, {}).pop(event, None)

    def fire_events(self, query_builder: Any, event: str, *args: Any) -> Any:
        """Run the hooks for ``event`` on ``:any`` then on each table of the query.

        Returns the first non-None hook result, or None. A hook is not
        re-entered while it runs, so hooks may use query builders themselves.
        """
        tables = [ANY_TABLE]
        for table in query_builder.statements.tables:
            if isinstance(table, dict):
                tables.extend(table)
            elif isinstance(table, str):
                tables.append(table)

        for table in tables:
            action = self.get_event(event, table)
            event_id = event + table
            if action is None or event_id in self._fired:
                continue
            logger.debug("Firing %s hook for %s", event, table)
            self._fired.append(event_id)
            try:
                result = action(query_builder, *args)
            finally:
                self._fired.pop()
            if result is not None:
                return result
        return None
