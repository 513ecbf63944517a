from __future__ import annotations

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    code: str
    message: str
    request_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    error: ErrorDetail


class IngestionStateEntry(BaseModel):
    provider: str
    last_successful_date: Optional[str] = None
    last_run_at: Optional[str] = None


class StateResponse(BaseModel):
    providers: List[IngestionStateEntry] = Field(default_factory=list)


class TokenStatus(BaseModel):
    provider: str
    connected: bool
    expires_at: Optional[int] = None


class HealthResponse(BaseModel):
    status: str
    db: str
    strava: Optional[TokenStatus] = None
    providers: List[IngestionStateEntry] = Field(default_factory=list)


class ConnectResponse(BaseModel):
    status: str
    provider: str
    next: str
