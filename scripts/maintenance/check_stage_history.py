#!/usr/bin/env python3
"""Report applications whose stage history disagrees with their current state.

Replays every application's ledger and compares the result with the stored
stage, status, offer status, outcome and rejection reason. Read-only.

Usage:
    python scripts/maintenance/check_stage_history.py [--limit N]

Exit code is 1 when any mismatch is found.
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from app.db.session import async_session_maker
from app.services.history_reconciliation_service import HistoryReconciliationService


async def check(limit) -> int:
    async with async_session_maker() as db:
        service = HistoryReconciliationService(db)
        reports = await service.find_inconsistencies(limit=limit)

    if not reports:
        print("All stage histories match their applications")
        return 0

    for report in reports:
        replayed = (
            f"{report.replayed_stage.value}/{report.replayed_status.value}"
            if report.replayed_stage is not None
            else "no history"
        )
        print(
            f"{report.application_id}: stored {report.projected_stage.value}/{report.projected_status.value}, "
            f"replayed {replayed} ({report.history_length} entries) "
            f"mismatch: {', '.join(report.mismatched_fields)}"
        )
    print(f"{len(reports)} inconsistent application(s)")
    return 1


def main() -> int:
    parser = argparse.ArgumentParser(description="Check stage history against application state")
    parser.add_argument("--limit", type=int, default=None, help="Stop after N mismatches")
    args = parser.parse_args()
    return asyncio.run(check(args.limit))


if __name__ == "__main__":
    sys.exit(main())
