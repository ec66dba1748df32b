"""Entry point: gather medal, user and badge data and upload it to osekai.

Usage:
    osekai-scripts                      # loop over the configured schedule
    osekai-scripts -t medals -t rarity  # run a single task once
    python -m osekai_scripts --debug -t ranking -e 2 -e 3

Task values:
  - medals: retrieve the full medal list and store it
  - leaderboard: in addition to osekai's users, scan the top 10,000
      leaderboard users of every mode
  - rarity: compute medal rarities from the requested users
  - ranking: process all users and store their ranking rows
  - badges: collect the badges of all requested users
  - default: medals | rarity | ranking | badges
  - full: default | leaderboard, plus every registered osekai user
"""

from __future__ import annotations

import argparse
import asyncio
import functools
import operator
import signal

import structlog

from osekai_scripts.client.osu import OsuClient
from osekai_scripts.config import Settings, get_settings
from osekai_scripts.database import StateReader, StateWriter, connect_pool
from osekai_scripts.harvester import Harvester
from osekai_scripts.logging import setup_logging
from osekai_scripts.notify import Notifier
from osekai_scripts.schedule import Schedule
from osekai_scripts.task import parse_task

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="osekai-scripts",
        description="Gather medal, user, and badge data, process it, and upload it to osekai.",
    )
    parser.add_argument(
        "-e", "--extra", type=int, action="append", default=[], metavar="USER_ID",
        help="additional user id to check (repeatable)",
    )
    parser.add_argument(
        "-i", "--interval", type=float, default=None, metavar="HOURS",
        help="time in between two tasks",
    )
    parser.add_argument(
        "--initial-delay", type=float, default=None, metavar="MINUTES",
        help="time until the first task is started",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="only log errors")
    parser.add_argument(
        "-t", "--task", type=parse_task, action="append", default=[],
        help="specific task to be run only once (repeatable)",
    )
    parser.add_argument("--debug", action="store_true", help="only request a small sample of users")
    return parser


async def async_main(args: argparse.Namespace, settings: Settings) -> None:
    task = functools.reduce(operator.or_, args.task) if args.task else None
    schedule = Schedule.parse(settings.schedule) if task is None else None
    shutdown = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown.set)

    pool = await connect_pool(settings)
    api = OsuClient(settings)
    notifier = Notifier.from_settings(settings)
    harvester = Harvester(settings, api, StateReader(pool), StateWriter(pool), notifier, shutdown)

    # Looping waits a minute before the first cycle unless told otherwise
    initial_delay = args.initial_delay
    if initial_delay is None:
        initial_delay = settings.initial_delay_minutes
    if initial_delay is None:
        initial_delay = 0.0 if task is not None else 1.0

    try:
        if task is not None:
            await harvester.run_once(task, initial_delay * 60, args.extra, args.debug)
        elif schedule is not None:
            interval = args.interval if args.interval is not None else settings.interval_hours
            await harvester.run_schedule(
                schedule,
                interval_seconds=interval * 3600,
                initial_delay_seconds=initial_delay * 60,
                extra_ids=args.extra,
                debug=args.debug,
            )
    finally:
        if shutdown.is_set():
            logger.info("shutdown_requested")
        await notifier.close()
        await api.close()
        await pool.close()
        logger.info("shutting_down")


def run() -> None:
    args = build_parser().parse_args()
    settings = get_settings()
    setup_logging(settings, quiet=args.quiet)
    asyncio.run(async_main(args, settings))


if __name__ == "__main__":
    run()
