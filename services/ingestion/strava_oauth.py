from __future__ import annotations

import logging
import time
from typing import Callable, Optional
from urllib import parse

from packages import config
from packages.errors import MissingCredential, SourceFetchFailed
from packages.http_client import HttpClient, HttpError
from packages.state_store import OAuthToken, StateStore

AUTH_URL = "https://www.strava.com/oauth/authorize"
TOKEN_URL = "https://www.strava.com/oauth/token"
PROVIDER = "strava"
SCOPE = "read,activity:read_all"
REFRESH_MARGIN_SEC = 60

logger = logging.getLogger("ingest.strava.oauth")


class StravaOAuth:
    def __init__(
        self,
        store: StateStore,
        http: Optional[HttpClient] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.http = http or HttpClient()
        self.client_id = (config.STRAVA_CLIENT_ID if client_id is None else client_id).strip()
        self.client_secret = (config.STRAVA_CLIENT_SECRET if client_secret is None else client_secret).strip()
        self.redirect_uri = (config.STRAVA_REDIRECT_URI if redirect_uri is None else redirect_uri).strip()
        self.clock = clock

    def build_authorize_url(self, state: str) -> str:
        if not self.client_id or not self.redirect_uri:
            raise MissingCredential("Missing STRAVA_CLIENT_ID or STRAVA_REDIRECT_URI.")
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "approval_prompt": "auto",
            "scope": SCOPE,
            "state": state,
        }
        return f"{AUTH_URL}?{parse.urlencode(params)}"

    def exchange_code_for_token(self, code: str) -> dict:
        self._require_client()
        payload = self._token_request(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "grant_type": "authorization_code",
            },
            "Strava code exchange",
        )
        self.store.save_oauth_token(
            PROVIDER, str(payload["access_token"]), str(payload["refresh_token"]), payload["expires_at"]
        )
        athlete = payload.get("athlete") if isinstance(payload.get("athlete"), dict) else {}
        logger.info(
            "Strava token saved",
            extra={
                "context": {
                    "provider": PROVIDER,
                    "expires_at": payload.get("expires_at"),
                    "scope": payload.get("scope"),
                    "athlete_id": athlete.get("id"),
                }
            },
        )
        return payload

    def get_valid_access_token(self) -> str:
        row = self.store.get_oauth_token(PROVIDER)
        if row is None:
            raise MissingCredential("No Strava token found in DB (oauth_tokens). Connect Strava first.")
        if not row.access_token or not row.refresh_token or row.expires_at <= 0:
            raise MissingCredential("Invalid Strava token row in DB.")
        if row.expires_at <= int(self.clock()) + REFRESH_MARGIN_SEC:
            logger.info("Refreshing Strava token", extra={"context": {"expires_at": row.expires_at}})
            return self.refresh_token(row.refresh_token).access_token
        return row.access_token

    def refresh_token(self, refresh_token: str) -> OAuthToken:
        self._require_client()
        payload = self._token_request(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
            "Strava refresh",
        )
        # Strava may rotate the refresh token; always keep the newest pair.
        token = OAuthToken(
            PROVIDER, str(payload["access_token"]), str(payload["refresh_token"]), payload["expires_at"]
        )
        self.store.save_oauth_token(PROVIDER, token.access_token, token.refresh_token, token.expires_at)
        logger.info("Strava token refreshed", extra={"context": {"provider": PROVIDER, "expires_at": token.expires_at}})
        return token

    def _require_client(self) -> None:
        if not self.client_id or not self.client_secret:
            raise MissingCredential("Missing STRAVA_CLIENT_ID or STRAVA_CLIENT_SECRET in .env")

    def _token_request(self, form: dict, label: str) -> dict:
        try:
            payload = self.http.post_form(TOKEN_URL, form)
        except HttpError as exc:
            raise SourceFetchFailed(f"{label} request failed: {exc}") from exc
        if not isinstance(payload, dict):
            raise SourceFetchFailed(f"{label} response is not a JSON object.")
        missing = [k for k in ("access_token", "refresh_token", "expires_at") if k not in payload]
        if missing:
            raise SourceFetchFailed(f"{label} response missing required fields: {', '.join(missing)}.")
        try:
            expires_at = int(payload["expires_at"])
        except (TypeError, ValueError) as exc:
            raise SourceFetchFailed(f"{label} response has invalid expires_at.") from exc
        return {**payload, "expires_at": expires_at}
