import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from packages import config, db


def main() -> None:
    with db.connect() as conn:
        db.configure_connection(conn)
        db.init_schema(conn)
    print(f"Initialized {config.DB_PATH}")


if __name__ == "__main__":
    main()
