"""Print stored tokens (masked) and ingestion state for a quick sanity check."""
from datetime import datetime, timezone
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from packages import db
from packages.state_store import StateStore


def mask(value: str) -> str:
    return f"{value[:4]}..." if value else "-"


def main() -> int:
    if not db.db_exists():
        print("DB missing. Run scripts/init_db.py")
        return 1
    with db.connect() as conn:
        store = StateStore(conn)
        tokens = store.list_oauth_tokens()
        if not tokens:
            print("No rows in oauth_tokens")
        for t in tokens:
            expires = datetime.fromtimestamp(t.expires_at, timezone.utc).isoformat()
            print(f"{t.provider}  access={mask(t.access_token)}  refresh={mask(t.refresh_token)}  expires_at={expires}")
        for s in store.list_states():
            print(f"{s.provider}  last_successful_date={s.last_successful_date or '-'}  last_run_at={s.last_run_at or '-'}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
