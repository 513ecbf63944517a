import sqlite3
from pathlib import Path
from typing import Iterable, Optional

import packages.config as config


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS oauth_tokens (
    provider TEXT PRIMARY KEY,
    access_token TEXT NOT NULL,
    refresh_token TEXT NOT NULL,
    expires_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS ingestion_state (
    provider TEXT PRIMARY KEY,
    last_successful_date TEXT,
    last_run_at TEXT
);
"""


class DBConnection:
    """sqlite3 connection that commits on clean exit and always closes."""

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    def cursor(self):
        return self._conn.cursor()

    def execute(self, sql: str, params: Optional[Iterable] = None):
        if params is None:
            return self._conn.execute(sql)
        return self._conn.execute(sql, tuple(params))

    def executescript(self, sql: str) -> None:
        self._conn.executescript(sql)

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type:
            try:
                self.rollback()
            finally:
                self.close()
        else:
            try:
                self.commit()
            finally:
                self.close()


def db_exists(path: Optional[Path] = None) -> bool:
    return Path(path or config.DB_PATH).exists()


def connect(path: Optional[Path | str] = None) -> DBConnection:
    target = str(path or config.DB_PATH)
    if target != ":memory:":
        Path(target).parent.mkdir(parents=True, exist_ok=True)
    # The API opens a connection per request and may use it from a worker thread.
    return DBConnection(sqlite3.connect(target, check_same_thread=False))


def configure_connection(conn: DBConnection) -> None:
    try:
        conn.execute("PRAGMA foreign_keys=ON")
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=5000")
    except sqlite3.OperationalError:
        return


def init_schema(conn: DBConnection) -> None:
    conn.executescript(SCHEMA_SQL)
    conn.commit()
