import threading
from collections import defaultdict


_lock = threading.Lock()
_counters = defaultdict(int)
_durations = defaultdict(float)


def _key(name: str, labels: dict | None) -> str:
    if not labels:
        return name
    inner = ",".join(f"{k}=\"{v}\"" for k, v in sorted(labels.items()))
    return f"{name}{{{inner}}}"


def inc(name: str, value: int = 1, **labels) -> None:
    with _lock:
        _counters[_key(name, labels)] += value


def observe(name: str, value: float, **labels) -> None:
    with _lock:
        _durations[_key(name, labels)] += value


def snapshot() -> tuple[dict, dict]:
    with _lock:
        return dict(_counters), dict(_durations)


def reset() -> None:
    with _lock:
        _counters.clear()
        _durations.clear()


def render_text() -> str:
    counters, durations = snapshot()
    lines = [f"{name} {value}" for name, value in sorted(counters.items())]
    lines.extend(f"{name}_sum {value}" for name, value in sorted(durations.items()))
    return "\n".join(lines) + "\n"
