"""Tests for querycraft.raw and querycraft.query_object."""

import pytest
from pydantic import ValidationError

from querycraft.connection import Connection
from querycraft.dialects import MysqlDialect
from querycraft.query_object import QueryObject
from querycraft.raw import Raw


class TestRaw:

    def test_scalar_binding_is_wrapped(self):
        assert Raw("age > ?", 18).bindings == (18,)
        assert Raw("a = ? AND b = ?", [1, 2]).bindings == (1, 2)
        assert Raw("NOW()").bindings == ()

    def test_str_is_the_sql(self):
        assert str(Raw("COUNT(*)")) == "COUNT(*)"

    def test_is_immutable(self):
        raw = Raw("x")
        with pytest.raises(ValidationError):
            raw.sql = "y"

    def test_builder_shortcut(self, qb):
        assert qb.raw("? + ?", [1, 2]) == Raw("? + ?", (1, 2))


class TestQueryObject:

    def test_raw_sql_uses_dialect_quoting(self):
        connection = Connection("mysql://user@localhost/db", driver_factory=lambda: None)
        assert isinstance(connection.dialect, MysqlDialect)
        query_object = QueryObject(sql="SELECT * FROM `users` WHERE `name` = ?", bindings=["o'hara"], connection=connection)
        assert query_object.raw_sql == "SELECT * FROM `users` WHERE `name` = 'o\\'hara'"

    def test_connection_is_not_dumped(self, connection):
        query_object = QueryObject(sql="SELECT 1", connection=connection)
        assert query_object.model_dump() == {"sql": "SELECT 1", "bindings": []}
