#!/usr/bin/env python3
"""
User store maintenance script

Opens the configured durable store (see .env / Settings) and runs one command.

Usage:
    python manage_users.py stats
    python manage_users.py export > users.csv
    python manage_users.py import users.csv
    python manage_users.py backup
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add the backend directory to Python path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

from userstore.core.config import Settings
from userstore.core.logging_config import setup_logging
from userstore.db.kv_store import create_kv_store
from userstore.services.user_store import UserStore


async def run(args) -> int:
    settings = Settings()
    if args.db:
        settings.KV_DATABASE_PATH = args.db
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    kv = create_kv_store(settings)
    store = UserStore(kv, settings)
    try:
        await store.initialize()

        if args.command == "stats":
            for name, value in store.get_stats().model_dump().items():
                print(f"{name:>22}: {value}")
        elif args.command == "export":
            print(store.export_users())
        elif args.command == "import":
            result = await store.import_users(Path(args.file).read_text(encoding="utf-8"))
            print(f"Imported {result.imported} users")
            for error in result.errors:
                print(f"  {error}", file=sys.stderr)
        elif args.command == "backup":
            key = await store.backup_scheduler.create_backup()
            if not key:
                print("Backup failed, see log for details", file=sys.stderr)
                return 1
            print(f"Created {key}")
            for existing in await store.backup_scheduler.list_backups():
                print(f"  {existing}")
        return 0
    finally:
        await store.close()
        await kv.close()


def main():
    ap = argparse.ArgumentParser(description="Maintain the persisted user store.")
    ap.add_argument("--db", help="Override KV_DATABASE_PATH for the sqlite backend")
    sub = ap.add_subparsers(dest="command", required=True)
    sub.add_parser("stats", help="Print aggregate user statistics")
    sub.add_parser("export", help="Write all users as CSV to stdout")
    import_parser = sub.add_parser("import", help="Import users from a CSV file")
    import_parser.add_argument("file", help="CSV file with an ID,Name,Email,Role header")
    sub.add_parser("backup", help="Take a snapshot now and rotate old ones")
    args = ap.parse_args()

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
