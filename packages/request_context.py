from contextvars import ContextVar
from contextlib import contextmanager


request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
run_id_var: ContextVar[str | None] = ContextVar("run_id", default=None)
provider_var: ContextVar[str | None] = ContextVar("provider", default=None)


@contextmanager
def run_context(run_id: str | None):
    token = run_id_var.set(run_id)
    try:
        yield
    finally:
        run_id_var.reset(token)


@contextmanager
def provider_context(provider: str | None):
    token = provider_var.set(provider)
    try:
        yield
    finally:
        provider_var.reset(token)
