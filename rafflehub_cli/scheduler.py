from __future__ import annotations

import argparse
import json
import logging
import signal
import sys

from fastapi.encoders import jsonable_encoder

from rafflehub.core.config import db_configured, settings
from rafflehub.core.logging import configure_logging
from rafflehub.services.scheduler import LifecycleScheduler

logger = logging.getLogger("rafflehub.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Activate upcoming raffles whose start time has arrived")
    parser.add_argument("--once", action="store_true", help="run a single tick and exit")
    parser.add_argument(
        "--interval",
        type=float,
        default=settings.scheduler_interval_seconds,
        help="seconds between ticks (default: SCHEDULER_INTERVAL_SECONDS)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging()
    if not db_configured():
        logger.error("Database configuration is missing")
        return 2

    scheduler = LifecycleScheduler(interval_seconds=args.interval)
    if args.once:
        summary = scheduler.tick()
        print(json.dumps(jsonable_encoder(summary), indent=2))
        return 1 if summary["failed"] else 0

    def _shutdown(signum, _frame):
        logger.info("Received signal %s, finishing current announcement", signum)
        scheduler.stop()

    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)
    scheduler.run_forever()
    return 0


if __name__ == "__main__":
    sys.exit(main())
