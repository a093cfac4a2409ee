import pytest

from querycraft.connection import Connection

SCHEMA = (
    "CREATE TABLE users (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT UNIQUE, age INTEGER, city TEXT)",
    "CREATE TABLE profiles (id INTEGER PRIMARY KEY AUTOINCREMENT, user_id INTEGER, bio TEXT)",
    "CREATE TABLE posts (id INTEGER PRIMARY KEY AUTOINCREMENT, user_id INTEGER, title TEXT)",
    "CREATE TABLE tags (id INTEGER PRIMARY KEY AUTOINCREMENT, label TEXT)",
    "CREATE TABLE post_tags (post_id INTEGER, tag_id INTEGER)",
)

USERS = (
    ("alice", 30, "Paris"),
    ("bob", 25, "Lyon"),
    ("carol", 35, "Paris"),
)


@pytest.fixture(scope="function")
def connection():
    """Seeded in-memory SQLite database, one per test."""
    connection = Connection("sqlite:///:memory:")
    for statement in SCHEMA:
        connection.execute(statement)
    for name, age, city in USERS:
        connection.execute("INSERT INTO users (name, age, city) VALUES (?, ?, ?)", [name, age, city])
    yield connection
    connection.close()


@pytest.fixture(scope="function")
def qb(connection):
    return connection.query_builder()

