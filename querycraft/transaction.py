"""Query builder bound to an open transaction."""

from .exceptions import TransactionError, TransactionHalt
from .query_builder import QueryBuilderHandler


class Transaction(QueryBuilderHandler):
    """Handler passed to :meth:`QueryBuilderHandler.transaction` callbacks.

    Builds and runs queries like any handler; ``commit()`` and ``rollback()``
    resolve the transaction (or savepoint, when nested) immediately and leave
    the callback. A handle only resolves the level it was opened for: an
    outer handle cannot commit or roll back from inside a nested callback.
    """

    def __init__(self, connection, level: int = 0):
        super().__init__(connection)
        self.level = level

    def _derive(self, connection=None) -> QueryBuilderHandler:
        instance = super()._derive(connection)
        instance.level = self.level
        return instance

    def _check_level(self, action: str) -> None:
        current_level = self.connection.transaction_level
        if current_level != self.level:
            raise TransactionError(
                f"Cannot {action} transaction level {self.level} from level {current_level}. "
                "Higher-level transactions cannot be resolved from nested transactions."
            )

    def commit(self) -> None:
        self._check_level("commit")
        self.connection.commit()
        raise TransactionHalt()

    def rollback(self) -> None:
        self._check_level("rollback")
        self.connection.rollback()
        raise TransactionHalt()
