#!/usr/bin/env python3
"""Create the user / task / progress tables in the configured database."""

from sqlalchemy import inspect

from app import create_app
from models import db

EXPECTED_TABLES = ("user", "task", "progress")


def main() -> int:
    app = create_app()
    with app.app_context():
        print("Creating tables...")
        db.create_all()

        tables = set(inspect(db.engine).get_table_names())
        missing = [name for name in EXPECTED_TABLES if name not in tables]
        for name in EXPECTED_TABLES:
            print(f"  {'ok' if name in tables else 'MISSING'}  {name}")
    return 1 if missing else 0


if __name__ == "__main__":
    raise SystemExit(main())
