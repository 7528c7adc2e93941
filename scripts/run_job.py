#!/usr/bin/env python3
"""Run a scheduled job in-process: ``python scripts/run_job.py dispatch-outbox|weekly-summary``."""

import json
import sys

from app.core.database import SessionLocal
from app.core.logging import configure_logging
from app.services.jobs import run_dispatch_outbox, run_weekly_summary

JOBS = {
    "dispatch-outbox": run_dispatch_outbox,
    "weekly-summary": run_weekly_summary,
}


def main() -> None:
    if len(sys.argv) != 2 or sys.argv[1] not in JOBS:
        print(f"usage: run_job.py {{{'|'.join(JOBS)}}}")
        raise SystemExit(2)

    configure_logging()
    db = SessionLocal()
    try:
        result = JOBS[sys.argv[1]](db)
    finally:
        db.close()
    print(json.dumps(result.body))
    if result.status_code >= 400:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
