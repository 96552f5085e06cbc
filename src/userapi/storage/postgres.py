"""
=============================================================================
POSTGRESQL USER STORAGE
=============================================================================

UserStorage on top of a psycopg2 ThreadedConnectionPool. The pool is
created once at startup by connect_pool() and handed to the storage's
constructor; there is no module-level connection.

=============================================================================
ONE CALL, ONE STATEMENT
=============================================================================

    worker thread                        pool                 PostgreSQL
    ─────────────                        ────                 ──────────
    get_user_by_id(7)
        │
        ├──► wait for a free slot        (at most maxconn callers)
        ├──► getconn() ───────────────► conn
        │
        ├──► with conn:                  BEGIN
        │       cursor.execute(          SELECT ... WHERE id = %s  (7,)
        │       fetchone()
        │                                COMMIT (or ROLLBACK on error)
        │
        └──► putconn(conn) ───────────► back in the pool

Every operation is a single parameterized statement. Values are always
passed separately from the SQL text (%s placeholders), never formatted
into it. "Not found" on UPDATE / DELETE comes from cursor.rowcount == 0.

Any psycopg2.Error is re-raised as StorageError("<operation>: <detail>")
with the original chained as __cause__.

=============================================================================
"""

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, List

import psycopg2
from psycopg2.pool import ThreadedConnectionPool
from tenacity import (
    RetryError,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from ..config import DatabaseConfig
from ..errors import NotFoundError, StorageError
from ..models import User
from .base import UserStorage


logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS users (
    id    BIGSERIAL PRIMARY KEY,
    name  TEXT NOT NULL,
    email TEXT NOT NULL
)
"""

INSERT_USER_SQL = "INSERT INTO users (name, email) VALUES (%s, %s) RETURNING id"
SELECT_USER_SQL = "SELECT id, name, email FROM users WHERE id = %s"
SELECT_ALL_USERS_SQL = "SELECT id, name, email FROM users ORDER BY id ASC"
UPDATE_USER_SQL = "UPDATE users SET name = %s, email = %s WHERE id = %s"
DELETE_USER_SQL = "DELETE FROM users WHERE id = %s"
PING_SQL = "SELECT 1"


class PostgresUserStorage(UserStorage):
    """
    Users in the `users` table.

        pool = connect_pool(DatabaseConfig.from_env())
        storage = PostgresUserStorage(pool)
        storage.ensure_schema()
    """

    def __init__(self, pool: ThreadedConnectionPool, acquire_timeout: float = 30.0):
        self._pool = pool
        self.acquire_timeout = acquire_timeout
        # getconn() raises PoolError instead of waiting once maxconn
        # connections are out, so callers queue on this first.
        self._slots = threading.BoundedSemaphore(pool.maxconn)

    @contextmanager
    def _cursor(self, operation: str) -> Iterator["psycopg2.extensions.cursor"]:
        """
        Borrow a connection, run the body in one transaction, give it back.

        `with conn` commits when the block exits normally and rolls back
        when it raises.
        """
        if not self._slots.acquire(timeout=self.acquire_timeout):
            raise StorageError(
                f"{operation}: no database connection free after {self.acquire_timeout}s"
            )

        try:
            try:
                conn = self._pool.getconn()
            except psycopg2.Error as e:
                raise StorageError(f"{operation}: {e}") from e

            try:
                with conn:
                    with conn.cursor() as cursor:
                        yield cursor
            except psycopg2.Error as e:
                raise StorageError(f"{operation}: {e}") from e
            finally:
                self._pool.putconn(conn)
        finally:
            self._slots.release()

    def ensure_schema(self) -> None:
        """Create the users table if it does not exist yet."""
        with self._cursor("ensure schema") as cursor:
            cursor.execute(SCHEMA_SQL)
        logger.info("Schema ready: users table exists")

    def create_user(self, user: User) -> int:
        with self._cursor("create user") as cursor:
            cursor.execute(INSERT_USER_SQL, (user.name, user.email))
            row = cursor.fetchone()

        if row is None:
            raise StorageError("create user: INSERT returned no id")
        return row[0]

    def get_user_by_id(self, user_id: int) -> User:
        with self._cursor("get user by id") as cursor:
            cursor.execute(SELECT_USER_SQL, (user_id,))
            row = cursor.fetchone()

        if row is None:
            raise NotFoundError(f"user {user_id} not found")
        return User(id=row[0], name=row[1], email=row[2])

    def get_all_users(self) -> List[User]:
        with self._cursor("get all users") as cursor:
            cursor.execute(SELECT_ALL_USERS_SQL)
            rows = cursor.fetchall()

        return [User(id=row[0], name=row[1], email=row[2]) for row in rows]

    def update_user(self, user: User) -> None:
        with self._cursor("update user") as cursor:
            cursor.execute(UPDATE_USER_SQL, (user.name, user.email, user.id))
            affected = cursor.rowcount

        if affected == 0:
            raise NotFoundError(f"user {user.id} not found")

    def delete_user(self, user_id: int) -> None:
        with self._cursor("delete user") as cursor:
            cursor.execute(DELETE_USER_SQL, (user_id,))
            affected = cursor.rowcount

        if affected == 0:
            raise NotFoundError(f"user {user_id} not found")

    def ping(self) -> None:
        with self._cursor("ping") as cursor:
            cursor.execute(PING_SQL)
            cursor.fetchone()

    def close(self) -> None:
        if not self._pool.closed:
            self._pool.closeall()
            logger.info("Database connection pool closed")


# =============================================================================
# STARTUP CONNECT WITH RETRY
# =============================================================================
#
# In docker-compose style deployments the app often starts before the
# database accepts connections. Startup therefore retries a fixed number
# of times with a fixed delay:
#
#     attempt 1 ──✗── wait 5s ── attempt 2 ──✗── wait 5s ── ... ── attempt 15 ──✗──► StorageError
#                                                  └──✓──► pool returned
#
# =============================================================================

def _open_pool(config: DatabaseConfig) -> ThreadedConnectionPool:
    """Open a pool and prove it works with SELECT 1."""
    pool = ThreadedConnectionPool(config.pool_min, config.pool_max, dsn=config.dsn)
    try:
        conn = pool.getconn()
        try:
            with conn:
                with conn.cursor() as cursor:
                    cursor.execute(PING_SQL)
                    cursor.fetchone()
        finally:
            pool.putconn(conn)
    except psycopg2.Error:
        pool.closeall()
        raise
    return pool


def connect_pool(config: DatabaseConfig) -> ThreadedConnectionPool:
    """
    Connect to PostgreSQL, retrying while it is unreachable.

    Retries `config.connect_retries` times in total, `config.connect_delay`
    seconds apart, logging every failed attempt.

    Raises:
        StorageError: Every attempt failed.
    """
    retrying = Retrying(
        retry=retry_if_exception_type(psycopg2.Error),
        stop=stop_after_attempt(config.connect_retries),
        wait=wait_fixed(config.connect_delay),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )

    logger.info(
        f"Connecting to PostgreSQL at {config.host}:{config.port}/{config.name} "
        f"(up to {config.connect_retries} attempts)"
    )

    try:
        pool = retrying(_open_pool, config)
    except RetryError as e:
        cause = e.last_attempt.exception()
        raise StorageError(
            f"could not connect to database after {config.connect_retries} attempts: {cause}"
        ) from cause

    logger.info("Connected to PostgreSQL")
    return pool
