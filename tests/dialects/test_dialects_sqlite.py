"""Tests for querycraft.dialects.sqlite: insert keywords, upserts, limits, connect."""

from querycraft.dialects import SqliteDialect
from querycraft.statements import Statements


def test_sqlite_insert_ignore_and_replace():
    d = SqliteDialect()
    statements = Statements(tables=["users"])
    assert d.insert_ignore(statements, {"name": "a"}).sql == 'INSERT OR IGNORE INTO "users" ("name") VALUES (?)'
    assert d.replace(statements, {"name": "a"}).sql == 'REPLACE INTO "users" ("name") VALUES (?)'


def test_sqlite_upsert():
    d = SqliteDialect()
    statements = Statements(tables=["users"], on_duplicate={"age": 5}, conflict_target=["name"])
    compiled = d.insert(statements, {"name": "a", "age": 4})
    assert compiled.sql == (
        'INSERT INTO "users" ("name", "age") VALUES (?, ?) '
        'ON CONFLICT ("name") DO UPDATE SET "age" = ?'
    )
    assert compiled.bindings == ["a", 4, 5]


def test_sqlite_offset_without_limit():
    d = SqliteDialect()
    assert d.select(Statements(tables=["users"], offset=5)).sql == 'SELECT * FROM "users" LIMIT -1 OFFSET 5'


def test_sqlite_placeholders_unchanged():
    assert SqliteDialect().format_sql("a = ? AND b LIKE '%x'") == "a = ? AND b LIKE '%x'"


def test_sqlite_connect_creates_connection(tmp_path):
    d = SqliteDialect()
    conn = d.connect(f"sqlite:///{tmp_path / 'test.db'}")
    assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1
    conn.close()
