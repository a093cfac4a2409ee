"""Exception types raised by querycraft.

Driver errors (``sqlite3.OperationalError``, ``pymysql.err.OperationalError``...)
are never wrapped: they reach the caller unchanged.
"""


class QueryBuilderError(Exception):
    """Base class for querycraft errors."""


class ConfigurationError(QueryBuilderError, ValueError):
    """Raised synchronously by the call that introduced a misconfiguration."""


class TransientConnectionError(QueryBuilderError):
    """A connection-loss error that may succeed after reconnecting.

    Custom drivers and connection wrappers can raise this to get typed retry
    classification instead of message matching.
    """


class TransactionError(QueryBuilderError):
    """Custom exception for transaction-related errors"""


class TransactionHalt(QueryBuilderError):
    """Raised inside a transaction callback once it was committed or rolled back by hand."""


class QueryDumped(QueryBuilderError):
    """Raised by ``get()`` in dump mode, carrying the inlined SQL."""

    def __init__(self, sql: str):
        super().__init__(sql)
        self.sql = sql
