import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse, RedirectResponse

from packages.state_store import StateStore
from ..deps import get_oauth, get_store
from ..schemas import ConnectResponse, ErrorResponse


router = APIRouter()
logger = logging.getLogger("ingest.api.auth")


@router.get("/", response_class=PlainTextResponse)
def index():
    return "OK\nTry: /auth/strava\n"


@router.get("/auth/strava", status_code=302, responses={503: {"model": ErrorResponse}})
def connect_strava(store: StateStore = Depends(get_store)):
    # MissingCredential surfaces through the app's IngestError handler.
    url = get_oauth(store).build_authorize_url(secrets.token_hex(16))
    return RedirectResponse(url, status_code=302)


@router.get(
    "/auth/strava/callback",
    response_model=ConnectResponse,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
def strava_callback(code: str | None = None, error: str | None = None, store: StateStore = Depends(get_store)):
    if error:
        raise HTTPException(status_code=400, detail=f"OAuth error: {error}")
    if not code:
        raise HTTPException(status_code=400, detail="Missing ?code")
    get_oauth(store).exchange_code_for_token(code)
    logger.info("Strava connected")
    return {"status": "connected", "provider": "strava", "next": "python scripts/run_ingest.py"}
