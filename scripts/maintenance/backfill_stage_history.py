#!/usr/bin/env python3
"""Backfill stage history for applications that have none.

Applications created by older import paths can have a current stage but no
stage_history rows. This script synthesizes a minimal ledger for each of
them (null -> CV_RECEIVED, then CV_RECEIVED -> current stage) stamped with
the application's created_at.

Usage:
    python scripts/maintenance/backfill_stage_history.py [--dry-run]

Environment variables:
    DATABASE_URL (same as the API)
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from app.db.session import get_async_session_context
from app.services.history_reconciliation_service import HistoryReconciliationService


async def backfill(dry_run: bool) -> int:
    async with get_async_session_context(commit=not dry_run) as db:
        service = HistoryReconciliationService(db)
        print("Looking for applications without stage history...")
        result = await service.backfill_missing_history(dry_run=dry_run)

    for application_id in result.application_ids:
        print(f"  - {application_id}")

    print("=" * 50)
    print(f"Applications without history: {result.examined}")
    print(f"Backfilled: {result.repaired}{' (dry run, nothing written)' if dry_run else ''}")
    print(f"Skipped: {result.skipped}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Backfill missing stage history")
    parser.add_argument("--dry-run", action="store_true", help="Report what would be written without writing")
    args = parser.parse_args()
    return asyncio.run(backfill(args.dry_run))


if __name__ == "__main__":
    sys.exit(main())
