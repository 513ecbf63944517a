"""Durable per-provider state: OAuth tokens and ingestion progress.

Both tables are keyed by provider and written with upsert-by-key, so the
first write for a provider creates its row and later writes replace it.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from packages import db


@dataclass
class IngestionState:
    provider: str
    last_successful_date: Optional[str]
    last_run_at: Optional[str]


@dataclass
class OAuthToken:
    provider: str
    access_token: str
    refresh_token: str
    expires_at: int


class StateStore:
    def __init__(self, conn: db.DBConnection):
        self.conn = conn

    def init(self) -> None:
        db.init_schema(self.conn)

    def get_state(self, provider: str) -> Optional[IngestionState]:
        row = self.conn.execute(
            """
            SELECT provider, last_successful_date, last_run_at
            FROM ingestion_state
            WHERE provider=?
            LIMIT 1
            """,
            (provider,),
        ).fetchone()
        if not row:
            return None
        return IngestionState(
            str(row[0]),
            str(row[1]) if row[1] is not None else None,
            str(row[2]) if row[2] is not None else None,
        )

    def list_states(self) -> list[IngestionState]:
        rows = self.conn.execute(
            "SELECT provider, last_successful_date, last_run_at FROM ingestion_state ORDER BY provider"
        ).fetchall()
        return [IngestionState(r[0], r[1], r[2]) for r in rows]

    def upsert_state(self, provider: str, last_successful_date: Optional[str], last_run_at: Optional[str]) -> None:
        self.conn.execute(
            """
            INSERT INTO ingestion_state(provider, last_successful_date, last_run_at)
            VALUES(?, ?, ?)
            ON CONFLICT(provider) DO UPDATE SET
                last_successful_date=excluded.last_successful_date,
                last_run_at=excluded.last_run_at
            """,
            (provider, last_successful_date, last_run_at),
        )
        self.conn.commit()

    def get_oauth_token(self, provider: str) -> Optional[OAuthToken]:
        row = self.conn.execute(
            """
            SELECT provider, access_token, refresh_token, expires_at
            FROM oauth_tokens
            WHERE provider=?
            LIMIT 1
            """,
            (provider,),
        ).fetchone()
        if not row:
            return None
        return OAuthToken(str(row[0]), str(row[1] or ""), str(row[2] or ""), int(row[3] or 0))

    def list_oauth_tokens(self) -> list[OAuthToken]:
        rows = self.conn.execute(
            "SELECT provider, access_token, refresh_token, expires_at FROM oauth_tokens ORDER BY provider"
        ).fetchall()
        return [OAuthToken(r[0], r[1], r[2], int(r[3])) for r in rows]

    def save_oauth_token(self, provider: str, access_token: str, refresh_token: str, expires_at: int) -> None:
        self.conn.execute(
            """
            INSERT INTO oauth_tokens(provider, access_token, refresh_token, expires_at)
            VALUES(?, ?, ?, ?)
            ON CONFLICT(provider) DO UPDATE SET
                access_token=excluded.access_token,
                refresh_token=excluded.refresh_token,
                expires_at=excluded.expires_at
            """,
            (provider, access_token, refresh_token, int(expires_at)),
        )
        self.conn.commit()
