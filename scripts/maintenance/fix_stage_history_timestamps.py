#!/usr/bin/env python3
"""Re-stamp the creation entries of each application's stage history.

The first two ledger entries (null -> CV_RECEIVED and CV_RECEIVED ->
HR_REVIEW) should carry the application's created_at. Imports that replayed
old applications wrote them with the import time instead. When both entries
are within a second of each other but away from created_at, they are reset.

Usage:
    python scripts/maintenance/fix_stage_history_timestamps.py [--dry-run]
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from app.db.session import get_async_session_context
from app.services.history_reconciliation_service import HistoryReconciliationService


async def fix_timestamps(dry_run: bool) -> int:
    async with get_async_session_context(commit=not dry_run) as db:
        service = HistoryReconciliationService(db)
        print("Checking initial stage history timestamps...")
        result = await service.fix_initial_timestamps(dry_run=dry_run)

    for application_id in result.application_ids:
        print(f"  - {application_id}")

    print(f"Applications with history: {result.examined}")
    print(f"Re-stamped: {result.repaired}{' (dry run, nothing written)' if dry_run else ''}")
    print(f"Already correct: {result.skipped}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Fix creation timestamps in stage history")
    parser.add_argument("--dry-run", action="store_true", help="Report what would change without writing")
    args = parser.parse_args()
    return asyncio.run(fix_timestamps(args.dry_run))


if __name__ == "__main__":
    sys.exit(main())
