"""querycraft: a fluent SQL query builder for SQLite, MySQL and PostgreSQL."""

from .cache import MISS, MemoryCache
from .connection import Connection, ConnectionConfig, connect, get_connection
from .exceptions import (
    ConfigurationError,
    QueryBuilderError,
    QueryDumped,
    TransactionError,
    TransactionHalt,
    TransientConnectionError,
)
from .query_builder import Page, QueryBuilderHandler
from .query_object import QueryObject
from .raw import Raw
from .transaction import Transaction

__all__ = [
    "MISS",
    "MemoryCache",
    "Connection",
    "ConnectionConfig",
    "connect",
    "get_connection",
    "ConfigurationError",
    "QueryBuilderError",
    "QueryDumped",
    "TransactionError",
    "TransactionHalt",
    "TransientConnectionError",
    "Page",
    "QueryBuilderHandler",
    "QueryObject",
    "Raw",
    "Transaction",
]
