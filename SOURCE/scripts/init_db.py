"""
Initialize the SQLite database for the guestbook application.

Usage:
    python scripts/init_db.py
"""

from pathlib import Path

from guestbook_service.database import engine, init_db


def main() -> None:
    init_db()
    db_path = Path(engine.url.database or "guestbook.db")
    print(f"Database initialized at {db_path.resolve()}")


if __name__ == "__main__":
    main()
