#!/usr/bin/env python3
"""
Run one reminder dispatch from the command line.

Useful for hosts with a plain crontab, and for checking which reminders a
given moment would send against a dev database.

Usage:
    python scripts/dispatch_reminders.py
    python scripts/dispatch_reminders.py --now 2026-10-17T14:00:00+00:00

Requirements:
    - DATABASE_URL and TELEGRAM_BOT_TOKEN set (in .env / .env.local)
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
load_dotenv(project_root / ".env")
load_dotenv(project_root / ".env.local", override=True)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def parse_now(value: str) -> datetime:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Not an ISO 8601 timestamp: {value}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


async def main(now: datetime | None) -> int:
    from core.database import close_engine
    from core.reminders import (
        ConfigurationError,
        DispatchConfig,
        SessionFetchError,
        run_reminder_dispatch,
    )

    try:
        config = DispatchConfig.from_env()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    try:
        result = await run_reminder_dispatch(config, now=now)
    except SessionFetchError as e:
        print(f"Error fetching sessions: {e}", file=sys.stderr)
        return 1
    finally:
        await close_engine()

    print(json.dumps(result.to_response(), indent=2))
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run one reminder dispatch")
    parser.add_argument(
        "--now",
        type=parse_now,
        default=None,
        help="Reference time (ISO 8601, default: current UTC time)",
    )
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.now)))
