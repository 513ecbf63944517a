from fastapi import APIRouter, Depends

from packages.state_store import StateStore
from ..deps import get_store
from ..schemas import HealthResponse


router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health(store: StateStore = Depends(get_store)):
    token = store.get_oauth_token("strava")
    strava = {
        "provider": "strava",
        "connected": token is not None,
        "expires_at": token.expires_at if token else None,
    }
    providers = [vars(s) for s in store.list_states()]
    return {"status": "ok", "db": "ok", "strava": strava, "providers": providers}
