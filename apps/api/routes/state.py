from fastapi import APIRouter, Depends, HTTPException

from packages.state_store import StateStore
from ..deps import get_store
from ..schemas import ErrorResponse, IngestionStateEntry, StateResponse


router = APIRouter()


@router.get("/state", response_model=StateResponse)
def state(store: StateStore = Depends(get_store)):
    return {"providers": [vars(s) for s in store.list_states()]}


@router.get("/state/{provider}", response_model=IngestionStateEntry, responses={404: {"model": ErrorResponse}})
def provider_state(provider: str, store: StateStore = Depends(get_store)):
    row = store.get_state(provider)
    if row is None:
        raise HTTPException(status_code=404, detail=f"No ingestion state for '{provider}'")
    return vars(row)
