import os
import pytest
from schemorm.catalog import reset_catalogs
from schemorm.connection import connect


SCHEMA = """
CREATE TABLE user (
    Id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    age INTEGER,
    score REAL,
    active BOOLEAN,
    birthday TEXT
);
CREATE TABLE post (
    Id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    user_id INTEGER REFERENCES user(Id)
);
CREATE TABLE role (
    Id INTEGER PRIMARY KEY AUTOINCREMENT,
    label TEXT NOT NULL
);
CREATE TABLE user_role (
    user_id INTEGER NOT NULL REFERENCES user(Id),
    role_id INTEGER NOT NULL REFERENCES role(Id)
);
CREATE TABLE person (
    Id INTEGER PRIMARY KEY AUTOINCREMENT,
    first_name TEXT NOT NULL,
    nickname TEXT
);
CREATE TABLE employee (
    Id INTEGER PRIMARY KEY REFERENCES person(Id),
    salary REAL NOT NULL
);
"""


@pytest.fixture(scope="function")
def setup_db(request):
    """Setup a temporary file SQLite database, with the test schema, for each test."""
    os.makedirs("/tmp/schemorm-tests", exist_ok=True)
    path = f"/tmp/schemorm-tests/test-{request.function.__module__}-{request.function.__name__}.sqlite3"
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    connection = connect(f"sqlite:///{path}")
    connection.raw().executescript(SCHEMA)
    reset_catalogs()
    yield connection
    connection.close()
