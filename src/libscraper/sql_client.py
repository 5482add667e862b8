import contextlib
import threading
from enum import Enum
from typing import Iterator, Optional, Sequence, Type
from urllib.parse import quote

import psycopg2
import psycopg2.pool
from psycopg2.extras import execute_values

from libscraper.models import Contest, Problem, Submission
from libscraper.utils import ScraperError, setup_logging

logger = setup_logging(__name__)


class ErrorKind(Enum):
    # session could not be established
    CONNECTION = "connection"
    # statement failed at the store
    EXECUTION = "execution"
    # record could not be turned into SQL
    ENCODING = "encoding"


class SqlClientError(ScraperError):
    """
    Raised by every `SqlClient` operation that fails.
    `kind` tells where the operation failed, `message` carries the
    underlying driver message.
    """

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(f"{kind.value} error: {message}")
        self.kind = kind
        self.message = message


def build_url(user: str, password: str, host: str, database: str) -> str:
    """Assemble a libpq connection URI. Credentials are percent-encoded, the host is not."""
    return "postgresql://{}:{}@{}/{}".format(
        quote(user, safe=""),
        quote(password, safe=""),
        host,
        quote(database, safe=""),
    )


def _insert_sql(table: str, model: Type, on_conflict: str) -> str:
    columns = ", ".join(model.columns())
    return f"INSERT INTO {table} ({columns}) VALUES %s ON CONFLICT (id) {on_conflict}"


INSERT_SUBMISSIONS = _insert_sql(
    "submissions", Submission, "DO UPDATE SET user_id = EXCLUDED.user_id"
)
INSERT_CONTESTS = _insert_sql("contests", Contest, "DO NOTHING")
INSERT_PROBLEMS = _insert_sql("problems", Problem, "DO NOTHING")

SELECT_CONTESTS = f"SELECT {', '.join(Contest.columns())} FROM contests"
SELECT_PROBLEMS = f"SELECT {', '.join(Problem.columns())} FROM problems"
SELECT_SUBMISSIONS_BY_USER = (
    f"SELECT {', '.join(Submission.columns())} FROM submissions WHERE user_id = %s"
)


def _duplicate_id(values: Sequence) -> Optional[object]:
    seen = set()
    for value in values:
        if value.id in seen:
            return value.id
        seen.add(value.id)
    return None


class SqlClient:
    """
    Persistence for scraped contests, problems and submissions.

    Every operation runs on its own connection and commits before returning,
    or rolls back and raises `SqlClientError`. The client itself only holds
    configuration, so one instance can be shared between threads.

    Args:
        user, password, host, database: Connection settings.
        sslmode: Forwarded to libpq, e.g. "disable" or "require". Server
            defaults apply when omitted.
        pool_size: Keep up to this many connections open between calls.
            Callers beyond that wait for a connection to come back.
            With the default of 0 a new connection is opened per call.
        page_size: Split batches into INSERT statements of at most this many
            rows, all inside one transaction. By default every batch is sent
            as a single statement.
    """

    def __init__(
        self,
        user: str,
        password: str,
        host: str,
        database: str,
        *,
        sslmode: Optional[str] = None,
        pool_size: int = 0,
        page_size: Optional[int] = None,
    ):
        self.user = user
        self.password = password
        self.host = host
        self.database = database
        self._connect_kwargs = {"sslmode": sslmode} if sslmode else {}
        if page_size is not None and page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.page_size = page_size

        self._pool: Optional[psycopg2.pool.ThreadedConnectionPool] = None
        self._slots: Optional[threading.BoundedSemaphore] = None
        if pool_size > 0:
            # minconn=0: nothing is opened until the first call
            self._pool = psycopg2.pool.ThreadedConnectionPool(
                0, pool_size, self.url, **self._connect_kwargs
            )
            # getconn raises once all connections are out, so callers queue here
            self._slots = threading.BoundedSemaphore(pool_size)

    @property
    def url(self) -> str:
        return build_url(self.user, self.password, self.host, self.database)

    def close(self):
        """Close all pooled connections"""
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _acquire(self) -> psycopg2.extensions.connection:
        pool = self._pool
        if pool is not None:
            self._slots.acquire()
        try:
            if pool is not None:
                return pool.getconn()
            return psycopg2.connect(self.url, **self._connect_kwargs)
        except psycopg2.Error as e:
            if pool is not None:
                self._slots.release()
            logger.exception("Error connecting to PostgreSQL at %s", self.host, exc_info=e)
            raise SqlClientError(ErrorKind.CONNECTION, str(e).strip()) from e

    def _release(self, connection: psycopg2.extensions.connection):
        if self._pool is None:
            connection.close()
            return

        try:
            if connection.closed:
                self._pool.putconn(connection, close=True)
                return

            # rollback + RESET ALL, so the next caller gets a clean session
            try:
                connection.reset()
            except psycopg2.Error:
                logger.warning(
                    "Discarding pooled connection that could not be reset", exc_info=True
                )
                self._pool.putconn(connection, close=True)
            else:
                self._pool.putconn(connection)
        finally:
            self._slots.release()

    @contextlib.contextmanager
    def _connect(self) -> Iterator[psycopg2.extensions.cursor]:
        connection = self._acquire()
        try:
            # commits on success, rolls back on any exception
            with connection:
                with connection.cursor() as cursor:
                    yield cursor
        except psycopg2.Error as e:
            logger.exception("Error executing statement on %s", self.host, exc_info=e)
            raise SqlClientError(ErrorKind.EXECUTION, str(e).strip()) from e
        finally:
            self._release(connection)

    def _rows(self, model: Type, values: list) -> list[tuple]:
        rows = []
        for value in values:
            if not isinstance(value, model):
                logger.error("Refusing to encode %r as %s", value, model.__name__)
                raise SqlClientError(
                    ErrorKind.ENCODING,
                    f"expected {model.__name__}, got {type(value).__name__}",
                )
            rows.append(value.to_row())
        return rows

    def _pages(self, rows: list) -> list[list]:
        if self.page_size is None:
            return [rows]
        return [rows[i : i + self.page_size] for i in range(0, len(rows), self.page_size)]

    def _upsert(self, sql: str, model: Type, values: Sequence, updates: bool = False) -> int:
        values = list(values)
        if not values:
            return 0

        rows = self._rows(model, values)
        pages = self._pages(rows)
        if updates and len(pages) > 1:
            # a single statement would be rejected by the store, so splitting must be too
            duplicate = _duplicate_id(values)
            if duplicate is not None:
                logger.error("Batch of %s repeats id %r", model.__name__, duplicate)
                raise SqlClientError(
                    ErrorKind.EXECUTION,
                    "ON CONFLICT DO UPDATE command cannot affect row a second time "
                    f"(id {duplicate!r})",
                )

        affected = 0
        with self._connect() as cursor:
            for page in pages:
                try:
                    execute_values(cursor, sql, page, page_size=len(page))
                except (psycopg2.ProgrammingError, TypeError, ValueError) as e:
                    # adaptation failures are raised client side, without a SQLSTATE
                    if isinstance(e, psycopg2.Error) and e.pgcode is not None:
                        raise
                    logger.exception("Could not encode %s batch", model.__name__, exc_info=e)
                    raise SqlClientError(ErrorKind.ENCODING, str(e).strip()) from e
                affected += cursor.rowcount

        logger.debug(
            "Upserted %d %s records, %d rows affected", len(values), model.__name__, affected
        )
        return affected

    def _select(self, model: Type, query: str, args: tuple = ()) -> list:
        with self._connect() as cursor:
            cursor.execute(query, args)
            return [model.from_row(row) for row in cursor.fetchall()]

    def insert_submissions(self, values: Sequence[Submission]) -> int:
        """
        Insert submissions. A submission that already exists only gets its
        `user_id` updated, all other columns keep their stored values.
        Returns the number of inserted plus updated rows.
        """
        return self._upsert(INSERT_SUBMISSIONS, Submission, values, updates=True)

    def insert_contests(self, values: Sequence[Contest]) -> int:
        """Insert contests that are not stored yet. Returns the number of new rows."""
        return self._upsert(INSERT_CONTESTS, Contest, values)

    def insert_problems(self, values: Sequence[Problem]) -> int:
        """Insert problems that are not stored yet. Returns the number of new rows."""
        return self._upsert(INSERT_PROBLEMS, Problem, values)

    def get_problems(self) -> list[Problem]:
        return self._select(Problem, SELECT_PROBLEMS)

    def get_contests(self) -> list[Contest]:
        return self._select(Contest, SELECT_CONTESTS)

    def get_submissions(self, user_id: str) -> list[Submission]:
        return self._select(Submission, SELECT_SUBMISSIONS_BY_USER, (user_id,))
