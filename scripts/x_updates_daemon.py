"""
Daemon that periodically mirrors recent X posts into the database.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from civic.config import get_settings
from civic.dependencies import build_db_client, build_sync_service
from civic.x_updates import run_loop

logger = logging.getLogger(__name__)


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="X updates sync daemon")
    parser.add_argument(
        "--interval-seconds",
        type=float,
        default=settings.x_sync_interval_seconds,
        help="Seconds between sync cycles",
    )
    parser.add_argument(
        "--jitter-seconds",
        type=float,
        default=30,
        help="Max random jitter added to sleep",
    )
    parser.add_argument(
        "--retention-limit",
        type=int,
        default=None,
        help="Override how many posts to keep after each cycle",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single sync cycle and exit",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    if args.retention_limit is not None:
        settings = settings.model_copy(
            update={"x_retention_limit": args.retention_limit}
        )

    db = build_db_client(settings)
    service = build_sync_service(settings, db)
    try:
        run_loop(
            service,
            interval_seconds=args.interval_seconds,
            jitter_seconds=args.jitter_seconds,
            once=args.once,
        )
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
