"""Tests for querycraft.dialects.base: statement compilation shared by every dialect."""

import pytest

from querycraft.criteria import CriteriaBuilder, JoinBuilder
from querycraft.dialects import SqliteDialect
from querycraft.dialects.base import interpolate
from querycraft.exceptions import ConfigurationError
from querycraft.raw import Raw
from querycraft.statements import JoinClause, JoinType, OrderClause, Statements


@pytest.fixture
def dialect():
    return SqliteDialect()


def _statements(**values):
    return Statements(tables=["users"], **values)


class TestSelect:

    def test_defaults_to_star(self, dialect):
        compiled = dialect.compile("select", _statements())
        assert compiled.sql == 'SELECT * FROM "users"'
        assert compiled.bindings == []

    def test_kind_is_case_insensitive(self, dialect):
        assert dialect.compile("SELECT", _statements()).sql == 'SELECT * FROM "users"'

    def test_unknown_kind_raises(self, dialect):
        with pytest.raises(ConfigurationError, match="not a known type"):
            dialect.compile("truncate", _statements())

    def test_no_table_raises(self, dialect):
        with pytest.raises(ConfigurationError, match="No table specified"):
            dialect.compile("select", Statements())

    def test_clause_order(self, dialect):
        join_builder = JoinBuilder().on("posts.user_id", "=", "users.id")
        wheres = CriteriaBuilder().where("users.age", ">", 18).statements.wheres
        havings = CriteriaBuilder().where("total", ">", 1).statements.wheres
        statements = _statements(
            selects=["users.name", {"users.age": "years"}, Raw("COUNT(?) AS total", 1)],
            joins=[JoinClause(type=JoinType.LEFT, table="posts", builder=join_builder)],
            wheres=wheres,
            group_bys=["users.name"],
            havings=havings,
            order_bys=[OrderClause(field="users.name", direction="DESC")],
            limit=10,
            offset=20,
            distinct=True,
        )
        compiled = dialect.select(statements)
        assert compiled.sql == (
            'SELECT DISTINCT "users"."name", "users"."age" AS "years", COUNT(?) AS total '
            'FROM "users" LEFT JOIN "posts" ON "posts"."user_id" = "users"."id" '
            'WHERE "users"."age" > ? GROUP BY "users"."name" HAVING "total" > ? '
            'ORDER BY "users"."name" DESC LIMIT 10 OFFSET 20'
        )
        assert compiled.bindings == [1, 18, 1]

    def test_table_alias(self, dialect):
        compiled = dialect.select(Statements(tables=[{"users": "u"}], selects=["u.name"]))
        assert compiled.sql == 'SELECT "u"."name" FROM "users" AS "u"'

    def test_raw_order_bindings(self, dialect):
        statements = _statements(order_bys=[OrderClause(field=Raw("age = ?", 30), direction="DESC")])
        assert dialect.build_order_by(statements) == ("ORDER BY age = ? DESC", [30])

    def test_in_with_raw_subquery(self, dialect):
        wheres = CriteriaBuilder().where_in("id", Raw("SELECT user_id FROM posts WHERE id > ?", 5)).statements.wheres
        compiled = dialect.select(_statements(wheres=wheres))
        assert compiled.sql == 'SELECT * FROM "users" WHERE "id" IN (SELECT user_id FROM posts WHERE id > ?)'
        assert compiled.bindings == [5]

    def test_identifier_quotes_are_doubled(self, dialect):
        assert dialect.wrap_sanitizer('we"ird') == '"we""ird"'
        assert dialect.wrap_sanitizer("users.*") == '"users".*'


class TestWrites:

    def test_insert(self, dialect):
        compiled = dialect.compile("insert", _statements(), {"name": "dan", "age": 40})
        assert compiled.sql == 'INSERT INTO "users" ("name", "age") VALUES (?, ?)'
        assert compiled.bindings == ["dan", 40]

    def test_insert_with_raw_value(self, dialect):
        compiled = dialect.insert(_statements(), {"name": Raw("UPPER(?)", "dan")})
        assert compiled.sql == 'INSERT INTO "users" ("name") VALUES (UPPER(?))'
        assert compiled.bindings == ["dan"]

    def test_insert_without_data_raises(self, dialect):
        with pytest.raises(ConfigurationError):
            dialect.insert(_statements(), {})

    def test_update(self, dialect):
        wheres = CriteriaBuilder().where("id", 3).statements.wheres
        compiled = dialect.compile("update", _statements(wheres=wheres), {"age": 41})
        assert compiled.sql == 'UPDATE "users" SET "age" = ? WHERE "id" = ?'
        assert compiled.bindings == [41, 3]

    def test_delete(self, dialect):
        wheres = CriteriaBuilder().where("age", "<", 18).statements.wheres
        compiled = dialect.compile("delete", _statements(wheres=wheres))
        assert compiled.sql == 'DELETE FROM "users" WHERE "age" < ?'
        assert compiled.bindings == [18]

    def test_criteria_only(self, dialect):
        wheres = CriteriaBuilder().where("age", 18).statements.wheres
        compiled = dialect.compile("criteriaonly", _statements(wheres=wheres))
        assert (compiled.sql, compiled.bindings) == ('"age" = ?', [18])


class TestBindingAndRendering:

    def test_bind_value(self, dialect):
        assert dialect.bind_value(True) == 1
        assert dialect.bind_value(7) == 7
        assert dialect.bind_value(1.5) == "1.5"
        assert dialect.bind_value(None) is None
        assert dialect.bind_value(b"\x00") == b"\x00"

    def test_quote(self, dialect):
        assert dialect.quote(None) == "NULL"
        assert dialect.quote(False) == "0"
        assert dialect.quote(3) == "3"
        assert dialect.quote("it's") == "'it''s'"

    def test_interpolate(self, dialect):
        sql = interpolate('SELECT * FROM "users" WHERE "name" = ? AND "age" > ?', ["bob", 20], dialect.quote)
        assert sql == "SELECT * FROM \"users\" WHERE \"name\" = 'bob' AND \"age\" > 20"

    def test_interpolate_leaves_extra_placeholders(self, dialect):
        assert interpolate("? ?", [1], dialect.quote) == "1 ?"
