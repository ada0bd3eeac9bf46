#!/usr/bin/env python3
"""
Delete login history older than the retention period.

Run from backend dir:
  python scripts/purge_sessions.py            # uses SESSION_RETENTION_DAYS
  python scripts/purge_sessions.py --days 30
"""
import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from timegate.core.config import settings
from timegate.core.db_transaction import db_transaction
from timegate.core.logging_config import get_logger
from timegate.services.session_tracker import SessionTracker

logger = get_logger("purge_sessions")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument(
        "--days",
        type=int,
        default=settings.SESSION_RETENTION_DAYS,
        help=f"delete sessions whose login time is older than this (default: {settings.SESSION_RETENTION_DAYS})",
    )
    args = parser.parse_args(argv)
    if args.days < 0:
        parser.error("--days must not be negative")
    return args


def purge_sessions(days: int, db=None) -> int:
    with db_transaction(db) as session:
        return SessionTracker(session).purge_older_than(days)


def main(argv=None) -> int:
    args = parse_args(argv)
    count = purge_sessions(args.days)
    print(f"Deleted {count} login session(s) older than {args.days} days")
    return 0


if __name__ == "__main__":
    sys.exit(main())
