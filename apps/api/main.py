import logging
import time
import uuid

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from packages.error_reporting import init_error_reporting
from packages.errors import EmptyDatasetId, IngestError, InvalidDateFormat, MissingCredential
from packages.logging_utils import setup_logging
from packages.metrics import inc, observe
from packages.request_context import request_id_var
from .schemas import ErrorDetail, ErrorResponse
from .routes import auth as auth_routes
from .routes import health as health_routes
from .routes import metrics as metrics_routes
from .routes import state as state_routes


setup_logging()
init_error_reporting("api", enable_fastapi=True)
logger = logging.getLogger("ingest.api")

app = FastAPI(title="Daily Ingestion API")

# Pipeline errors that reach a handler map to these statuses; anything else is an upstream failure.
INGEST_ERROR_STATUS = {
    MissingCredential: 503,
    InvalidDateFormat: 400,
    EmptyDatasetId: 400,
}


def format_error(code: str, message: str, request_id: str | None = None, details: dict | None = None) -> dict:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, request_id=request_id, details=details or None))
    return body.model_dump(exclude={"error": {"details"}} if not details else None)


def _error_code(exc: Exception) -> str:
    name = type(exc).__name__
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in name).lstrip("_")


@app.middleware("http")
async def request_logging(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    token = request_id_var.set(request_id)
    start = time.perf_counter()
    response = None
    try:
        response = await call_next(request)
        return response
    finally:
        elapsed = time.perf_counter() - start
        status_code = getattr(response, "status_code", "ERR")
        inc("http_requests_total", path=request.url.path, status=status_code)
        observe("http_request_duration_seconds", elapsed, path=request.url.path)
        # Path only: the OAuth callback carries the code in its query string.
        logger.info("%s %s -> %s %.1fms", request.method, request.url.path, status_code, elapsed * 1000)
        request_id_var.reset(token)
        if response is not None:
            response.headers["x-request-id"] = request_id


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    details = exc.detail if isinstance(exc.detail, dict) else None
    content = format_error(f"http_{exc.status_code}", message, request_id_var.get() or "-", details)
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(IngestError)
async def ingest_error_handler(request: Request, exc: IngestError):
    status = next((code for cls, code in INGEST_ERROR_STATUS.items() if isinstance(exc, cls)), 502)
    logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content=format_error(_error_code(exc), str(exc), request_id_var.get() or "-"))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_exception %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=format_error("internal_error", "Internal server error", request_id_var.get() or "-"),
    )


app.include_router(auth_routes.router)
app.include_router(health_routes.router)
app.include_router(state_routes.router)
app.include_router(metrics_routes.router)
