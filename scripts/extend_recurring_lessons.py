#!/usr/bin/env python3
# =============================================================================
# scripts/extend_recurring_lessons.py - Extend Recurring Lesson Series
# =============================================================================
# Runs the recurring series extension directly, without Celery.
# Useful after importing a calendar or changing RECURRING_HORIZON_DAYS.
#
# Usage:
#   poetry run python scripts/extend_recurring_lessons.py --dry-run
#   poetry run python scripts/extend_recurring_lessons.py
# =============================================================================

import argparse
import logging
import os
import sys

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from dotenv import load_dotenv
load_dotenv(os.path.join(PROJECT_ROOT, ".env"))

from core.services.lesson_service import LessonService


def main():
    parser = argparse.ArgumentParser(description="Book recurring lesson series out to the horizon")
    parser.add_argument("--dry-run", action="store_true", help="Only report what would be created")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    result = LessonService.extend_recurring_series(dry_run=args.dry_run)

    mode = "DRY RUN" if result["dry_run"] else "APPLIED"
    print(f"[{mode}] Extending through {result['until']:%Y-%m-%d}")
    print(f"  Standalone series: {result['series_found']}")
    print(f"  Session series:    {result['session_series_found']}")
    print(f"  Lessons created:   {result['lessons_created']}")
    print(f"  Sessions created:  {result['sessions_created']}")

    for series in result["series"]:
        print(f"  - {series['key']} ({series['interval']}): {len(series['new_dates'])} new")

    if result["errors"]:
        print(f"\n{len(result['errors'])} errors:")
        for error in result["errors"]:
            print(f"  ! {error}")
        sys.exit(1)


if __name__ == "__main__":
    main()
