"""CLI script to run the grant expiry sweep once or register its schedule."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

BACKEND_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_ROOT))


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Release lapsed access grants and notify both parties.",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum grants to process in this run (default: GRANT_EXPIRY_SWEEP_BATCH_SIZE)",
    )
    parser.add_argument(
        "--schedule",
        action="store_true",
        help="Register the recurring sweep with rq-scheduler instead of running it now",
    )
    parser.add_argument(
        "--interval-seconds",
        type=int,
        default=None,
        help="Override the schedule interval when used with --schedule",
    )
    return parser.parse_args()


async def _run() -> int:
    from app.core.logging import configure_logging
    from app.db.session import async_session_maker
    from app.services.access_grants.sweep import (
        bootstrap_expiry_sweep_schedule,
        sweep_expired_grants,
    )

    configure_logging()
    args = _parse_args()
    if args.schedule:
        bootstrap_expiry_sweep_schedule(interval_seconds=args.interval_seconds)
        sys.stdout.write("scheduled=true\n")
        return 0

    async with async_session_maker() as session:
        expired = await sweep_expired_grants(session, limit=args.limit)

    sys.stdout.write(f"expired={len(expired)}\n")
    for request in expired:
        sys.stdout.write(
            f"- request_id={request.id} doctor_id={request.doctor_id} "
            f"patient_id={request.patient_id}\n",
        )
    return 0


def main() -> None:
    """Run the async CLI workflow and exit with its return code."""
    raise SystemExit(asyncio.run(_run()))


if __name__ == "__main__":
    main()
