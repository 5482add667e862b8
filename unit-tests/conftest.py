import os
from pathlib import Path

import psycopg2
import pytest

from libscraper.sql_client import SqlClient, build_url

DEFINITION = Path(__file__).resolve().parent.parent / "config" / "database-definition.sql"

TEST_USER = os.getenv("TEST_POSTGRES_USER", "kenkoooo")
TEST_PASSWORD = os.getenv("TEST_POSTGRES_PASSWORD", "pass")
TEST_HOST = os.getenv("TEST_POSTGRES_HOST", "localhost")
TEST_DATABASE = os.getenv("TEST_POSTGRES_DATABASE", "test")
DATABASE_URL = build_url(TEST_USER, TEST_PASSWORD, TEST_HOST, TEST_DATABASE)


@pytest.fixture(scope="session")
def _database_available():
    try:
        psycopg2.connect(DATABASE_URL, connect_timeout=3).close()
    except psycopg2.OperationalError as e:
        pytest.skip(f"test database not reachable: {e}")


@pytest.fixture()
def raw_connection(_database_available):
    """Connection to the freshly recreated test database, for checks behind the client's back"""
    connection = psycopg2.connect(DATABASE_URL)
    with connection:
        with connection.cursor() as cursor:
            cursor.execute(DEFINITION.read_text())
    yield connection
    connection.close()


@pytest.fixture()
def database(raw_connection):
    return SqlClient(TEST_USER, TEST_PASSWORD, TEST_HOST, TEST_DATABASE)


@pytest.fixture()
def make_client(raw_connection):
    """Creates clients for the test database, with settings overridden by keyword"""

    def _make(**kwargs):
        settings = dict(
            user=TEST_USER, password=TEST_PASSWORD, host=TEST_HOST, database=TEST_DATABASE
        )
        settings.update(kwargs)
        return SqlClient(**settings)

    return _make


@pytest.fixture()
def pooled_database(make_client):
    with make_client(pool_size=2) as db:
        yield db
