import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from . import config
from .redaction import redact, redact_text
from .request_context import provider_var, request_id_var, run_id_var


class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        record.run_id = run_id_var.get() or "-"
        record.provider = provider_var.get() or "-"
        return True


class RedactingFilter(logging.Filter):
    """Masks secrets in the message, its args and the structured context."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact_text(record.msg)
        if isinstance(record.args, dict):
            record.args = redact(record.args)
        elif isinstance(record.args, tuple):
            record.args = redact(record.args)
        context = getattr(record, "context", None)
        if isinstance(context, dict):
            record.context = redact(context)
        return True


class JsonLinesFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "run_id": getattr(record, "run_id", "-"),
            "provider": getattr(record, "provider", "-"),
            "context": getattr(record, "context", None) or {},
        }
        if record.exc_info:
            payload["exception"] = redact_text(self.formatException(record.exc_info))
        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = getattr(record, "context", None)
        if context:
            line = f"{line} {json.dumps(context, default=str, sort_keys=True)}"
        return line


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s run_id=%(run_id)s provider=%(provider)s %(message)s"


def setup_logging(log_dir: Path | None = None, level: str | None = None) -> None:
    level = (level or config.LOG_LEVEL).upper()
    log_dir = Path(log_dir or config.LOG_DIR)
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)

    console = logging.StreamHandler()
    console.setFormatter(ConsoleFormatter(LOG_FORMAT))

    log_dir.mkdir(parents=True, exist_ok=True)
    jsonl = logging.FileHandler(log_dir / "app.jsonl", encoding="utf-8")
    jsonl.setFormatter(JsonLinesFormatter())

    # Filters live on handlers so records from every logger pass through them.
    for handler in (console, jsonl):
        handler.addFilter(ContextFilter())
        handler.addFilter(RedactingFilter())
        root.addHandler(handler)
