"""Mark unconfirmed volunteers of ended events as absent.

Meant for cron, e.g. every 15 minutes:
    */15 * * * * cd /srv/volunteer_roster && python scripts/process_absences.py
"""

from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
for path in (REPO_ROOT, REPO_ROOT / "src" / "volunteer_roster"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from dotenv import load_dotenv

from config import get_settings_module

from volunteer_roster.container import build_container


def main() -> int:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    container = build_container(db_config=dict(settings.DB_CONFIG), settings=settings)
    report = container.absence_processor.run()

    if not report.absences_by_event:
        print("OK: nothing to process")
        return 0
    for line in report.messages():
        print(line)
    print(f"OK: {report.total} absence(s) recorded")
    return 0


if __name__ == "__main__":
    sys.exit(main())
