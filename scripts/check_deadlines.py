"""
Deadline sweep for cron / a scheduled job.

Sends a deadline reminder for each open document due within
DEADLINE_REMINDER_DAYS to its assignee, or to every active processing-staff
user while it is still unassigned (at most one per document per day
per recipient, so running it more than once a day is harmless).

Usage:
  python scripts/check_deadlines.py
"""

from __future__ import annotations

import os
import sys
from datetime import date, datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.docutrack.config import load_settings
from app.docutrack.modules.documents.repository import SqlAlchemyDocumentRepository
from app.docutrack.modules.notifications.service import check_deadlines, recipients_for_role
from scripts._db_utils import script_database_url, script_session


def run_sweep(*, database_url: str | None = None, today: date | None = None) -> int:
    settings = load_settings()
    today = today or datetime.utcnow().date()
    total = 0
    with script_session(script_database_url(database_url)) as s:
        documents = SqlAlchemyDocumentRepository(s).list()
        for email in recipients_for_role(s, "staff"):
            upcoming, sent = check_deadlines(
                s,
                documents,
                email,
                today,
                window=settings.deadline_warning_days,
                remind_within=settings.deadline_reminder_days,
            )
            print(f"{email}: {len(upcoming)} upcoming, {len(sent)} reminder(s) sent", flush=True)
            total += len(sent)
    return total


def main() -> None:
    if not (os.environ.get("DATABASE_URL") or "").strip():
        print("WARNING: DATABASE_URL not set, using local sqlite", flush=True)
    total = run_sweep()
    print(f"Deadline sweep complete ({total} reminder(s)).", flush=True)


if __name__ == "__main__":
    main()
