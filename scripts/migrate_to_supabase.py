"""
Copy the local SQL database into Supabase.

Reads every commerce, project, task and config entry from DATABASE_URL and
upserts them into the Supabase project (ids and created_at are kept, so the
script can be re-run). The Supabase tables must already exist: run the
alembic migration against the hosted Postgres first.

Usage:
    python scripts/migrate_to_supabase.py
    python scripts/migrate_to_supabase.py --database-url sqlite+aiosqlite:///./backup.db
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path so we can import app modules
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.core.config import settings
from app.core.logging import configure_logging
from app.repositories.base import StoreError
from app.repositories.sql_store import SqlStore
from app.repositories.supabase_store import SupabaseStore
from app.services.data_migration import migrate_to_supabase


async def run(database_url: str, supabase_url: str, supabase_key: str) -> bool:
    target = SupabaseStore(supabase_url, supabase_key)
    source = SqlStore(database_url, auto_create_tables=False)
    try:
        report = await migrate_to_supabase(source, target)
    finally:
        await source.close()
        await target.close()

    for table, copied in report.copied.items():
        failed = report.failed.get(table, 0)
        mark = "✓" if not failed else "❌"
        print(f"{mark} {table}: {copied} copied, {failed} failed")
    return report.ok


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--database-url", default=settings.DATABASE_URL)
    parser.add_argument("--supabase-url", default=settings.SUPABASE_URL or "")
    parser.add_argument("--supabase-key", default=settings.SUPABASE_KEY or "")
    args = parser.parse_args()

    configure_logging(settings)
    print("--- Starting migration ---")
    try:
        ok = asyncio.run(run(args.database_url, args.supabase_url, args.supabase_key))
    except StoreError as exc:
        print(f"❌ Migration failed: {exc}")
        sys.exit(1)
    print("--- Migration finished ---")
    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
