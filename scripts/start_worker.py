#!/usr/bin/env python3
# =============================================================================
# scripts/start_worker.py - Run the TutorDesk Worker
# =============================================================================
# Development entry point for the Celery worker. In production the worker and
# beat run as separate processes via the celery CLI.
#
# Usage:
#   poetry run python scripts/start_worker.py            # email + default queues
#   poetry run python scripts/start_worker.py --beat     # also run reminders/recurring schedule
#   poetry run python scripts/start_worker.py -Q email   # email queue only
#
# Requires a reachable REDIS_URL (see .env).
# =============================================================================

import argparse
import os
import sys

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from dotenv import load_dotenv
load_dotenv(os.path.join(PROJECT_ROOT, ".env"))

from app.config import settings
from workers.celery_app import celery_app
from workers.config import DEFAULT_QUEUE, EMAIL_QUEUE


def build_argv(queues: str, concurrency: int, beat: bool) -> list[str]:
    argv = [
        "worker",
        f"--loglevel={'debug' if settings.DEBUG else 'info'}",
        f"--queues={queues}",
        f"--concurrency={concurrency}",
    ]
    if beat:
        argv.append("--beat")
    return argv


def main():
    parser = argparse.ArgumentParser(description="Run the TutorDesk Celery worker")
    parser.add_argument("-Q", "--queues", default=f"{DEFAULT_QUEUE},{EMAIL_QUEUE}")
    parser.add_argument("-c", "--concurrency", type=int, default=2)
    parser.add_argument("--beat", action="store_true", help="Embed the beat scheduler (dev only)")
    args = parser.parse_args()

    print(f"TutorDesk worker: queues={args.queues} beat={'on' if args.beat else 'off'} tz={settings.TIMEZONE}")
    celery_app.worker_main(build_argv(args.queues, args.concurrency, args.beat))


if __name__ == "__main__":
    main()
