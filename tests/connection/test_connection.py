"""Tests for querycraft.connection: configuration, registry, transactions and reconnects."""

import sqlite3

import pytest
from pydantic import ValidationError

from querycraft.connection import Connection, ConnectionConfig, connect, get_connection
from querycraft.dialects import MysqlDialect, SqliteDialect
from querycraft.exceptions import TransactionError
from tests.helpers import FlakyDriverFactory, fetch_rows


class TestConnectionConfig:

    def test_options_from_url_query(self):
        config = ConnectionConfig.from_url("sqlite:///app.db?prefix=app_&max_reconnect_attempts=5")
        assert config.database_url == "sqlite:///app.db"
        assert config.prefix == "app_"
        assert config.max_reconnect_attempts == 5
        assert config.scheme == "sqlite"

    def test_explicit_options_win(self):
        config = ConnectionConfig.from_url("sqlite:///app.db?prefix=app_", prefix="other_")
        assert config.prefix == "other_"

    def test_defaults(self):
        config = ConnectionConfig.from_url("sqlite:///:memory:")
        assert config.prefix is None
        assert config.max_reconnect_attempts == 3

    def test_negative_attempts_are_rejected(self):
        with pytest.raises(ValidationError):
            ConnectionConfig.from_url("sqlite:///:memory:", max_reconnect_attempts=-1)


class TestConnection:

    def test_dialect_from_scheme(self):
        assert isinstance(Connection("sqlite:///:memory:").dialect, SqliteDialect)

    def test_explicit_dialect(self):
        connection = Connection("sqlite:///:memory:", dialect=MysqlDialect(), driver_factory=lambda: None)
        assert isinstance(connection.dialect, MysqlDialect)

    def test_callable_url(self):
        connection = Connection(lambda: "sqlite:///:memory:")
        assert connection.config.database_url == "sqlite:///:memory:"

    def test_driver_connection_is_lazy(self):
        opened = []

        def factory():
            opened.append(1)
            return sqlite3.connect(":memory:", isolation_level=None)

        connection = Connection("sqlite:///:memory:", driver_factory=factory)
        assert opened == []
        connection.execute("SELECT 1")
        connection.execute("SELECT 2")
        assert opened == [1]

    def test_execute_binds_values(self, connection):
        cursor = connection.execute("SELECT name FROM users WHERE age > ? ORDER BY name", [True])
        assert [row[0] for row in cursor.fetchall()] == ["alice", "bob", "carol"]

    def test_driver_errors_propagate(self, connection):
        with pytest.raises(sqlite3.OperationalError):
            connection.execute("SELECT * FROM nowhere")


class TestRegistry:

    def test_connect_rejects_non_string_non_callable(self):
        with pytest.raises(ValueError, match="database_url.*str.*or a method"):
            connect(123, name="bad")
        with pytest.raises(ValueError, match="database_url.*str.*or a method"):
            connect([], name="bad")

    def test_connect_and_get_connection(self):
        connection = connect("sqlite:///:memory:", name="registry_test")
        assert get_connection("registry_test") is connection

    def test_unknown_name_raises(self):
        with pytest.raises(ValueError, match="No connection configured"):
            get_connection("nonexistent")


class TestTransactions:

    def test_commit(self, connection):
        connection.begin()
        assert connection.in_transaction
        connection.execute("INSERT INTO tags (label) VALUES ('x')")
        connection.commit()
        assert not connection.in_transaction
        assert fetch_rows(connection, "SELECT label FROM tags") == [("x",)]

    def test_rollback(self, connection):
        connection.begin()
        connection.execute("INSERT INTO tags (label) VALUES ('x')")
        connection.rollback()
        assert fetch_rows(connection, "SELECT label FROM tags") == []

    def test_nested_levels_use_savepoints(self, connection):
        connection.begin()
        connection.execute("INSERT INTO tags (label) VALUES ('outer')")
        connection.begin()
        assert connection.transaction_level == 2
        connection.execute("INSERT INTO tags (label) VALUES ('inner')")
        connection.rollback()
        assert connection.transaction_level == 1
        connection.commit()
        assert fetch_rows(connection, "SELECT label FROM tags") == [("outer",)]

    def test_commit_without_transaction_raises(self, connection):
        with pytest.raises(TransactionError):
            connection.commit()
        with pytest.raises(TransactionError):
            connection.rollback()


class TestReconnect:

    def _connection(self, tmp_path, failures, **options):
        path = str(tmp_path / "flaky.sqlite3")
        setup = sqlite3.connect(path)
        setup.execute("CREATE TABLE users (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT)")
        setup.execute("INSERT INTO users (name) VALUES ('alice')")
        setup.commit()
        setup.close()
        factory = FlakyDriverFactory(path, failures)
        return Connection(f"sqlite:///{path}", driver_factory=factory, **options), factory

    def test_reconnects_and_reissues_statement(self, tmp_path):
        connection, factory = self._connection(tmp_path, failures=1)
        qb = connection.table("users")
        assert qb.get() == [{"id": 1, "name": "alice"}]
        assert factory.opened == 2
        assert qb._reconnect_attempts == 1

    def test_gives_up_after_max_attempts(self, tmp_path):
        connection, factory = self._connection(tmp_path, failures=10)
        with pytest.raises(ConnectionError, match="gone away"):
            connection.table("users").get()
        # the first attempt plus three reconnects
        assert factory.opened == 4

    def test_attempt_budget_is_configurable(self, tmp_path):
        connection, factory = self._connection(tmp_path, failures=10, max_reconnect_attempts=0)
        with pytest.raises(ConnectionError):
            connection.table("users").get()
        assert factory.opened == 1

    def test_budget_resets_per_call(self, tmp_path):
        connection, factory = self._connection(tmp_path, failures=3)
        qb = connection.table("users")
        assert qb.get() == [{"id": 1, "name": "alice"}]
        factory.failures = 3
        assert qb.get() == [{"id": 1, "name": "alice"}]

    def test_no_retry_inside_a_transaction(self, tmp_path):
        connection, factory = self._connection(tmp_path, failures=0)
        connection.begin()
        factory.failures = 1
        with pytest.raises(ConnectionError):
            connection.table("users").get()
        assert factory.opened == 1

    def test_non_transient_errors_are_not_retried(self, tmp_path):
        connection, factory = self._connection(tmp_path, failures=0)
        with pytest.raises(sqlite3.OperationalError):
            connection.table("nowhere").get()
        assert factory.opened == 1
