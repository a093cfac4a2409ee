"""Shared test helpers."""


def fetch_rows(connection, sql, bindings=()):
    """Fetch ``sql`` directly through the driver, as tuples."""
    return connection.execute(sql, bindings).fetchall()


class FlakyDriverFactory:
    """Driver factory whose connections fail the first ``failures`` statements
    with a lost-connection error, counted across reconnects."""

    def __init__(self, path, failures):
        self.path = path
        self.failures = failures
        self.opened = 0

    def __call__(self):
        import sqlite3
        self.opened += 1
        return _FlakyConnection(sqlite3.connect(self.path, isolation_level=None), self)


class _FlakyConnection:

    def __init__(self, connection, factory):
        self._connection = connection
        self._factory = factory

    def cursor(self):
        return _FlakyCursor(self._connection.cursor(), self._factory)

    def close(self):
        self._connection.close()


class _FlakyCursor:

    def __init__(self, cursor, factory):
        self._cursor = cursor
        self._factory = factory

    def execute(self, sql, parameters=()):
        if self._factory.failures > 0:
            self._factory.failures -= 1
            raise ConnectionError("MySQL server has gone away")
        return self._cursor.execute(sql, parameters)

    def __getattr__(self, name):
        return getattr(self._cursor, name)
