"""Collection cycle orchestration.

One cycle:
  1. assemble the user ids (stored participants, leaderboards, extras)
  2. request every user, one at a time, all four modes concurrently
  3. fold badges into the badge catalog while requesting
  4. fetch the medal catalog and store it, awaited
  5. compute medal rarities and rankings
  6. store everything in the background and join before finishing

Users are requested sequentially so the API client's rate limiter is
the only thing deciding the request rate. Failures are logged and
skipped per user, page or stage; nothing short of a shutdown request
ends a cycle early.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from osekai_scripts.client.osu import OsuClient
from osekai_scripts.config import Settings
from osekai_scripts.database.reader import StateReader
from osekai_scripts.database.writer import StateWriter
from osekai_scripts.errors import UserNotFound, is_retryable
from osekai_scripts.eta import Eta
from osekai_scripts.models.badge import BadgeCatalog
from osekai_scripts.models.medal import MedalCatalogEntry
from osekai_scripts.models.progress import FinishRecord, ProgressState
from osekai_scripts.models.ranking import RankingUser
from osekai_scripts.models.rarity import MedalRarities, calculate_rarities, seed_new_medals
from osekai_scripts.models.user import MODES, AvailableUser, OsuUser, RestrictedUser
from osekai_scripts.notify import Notifier
from osekai_scripts.schedule import Schedule
from osekai_scripts.task import Task, format_task

logger = structlog.get_logger(__name__)


@dataclass
class CycleStats:
    requested: int = 0
    available: int = 0
    restricted: int = 0
    failed: int = 0
    abandoned: bool = False


@dataclass(frozen=True)
class _Cycle:
    id: int
    start: datetime
    task: Task

    @property
    def label(self) -> str:
        return format_task(self.task)


class Harvester:
    """Runs collection cycles against the osu! API and the database."""

    def __init__(
        self,
        settings: Settings,
        api: OsuClient,
        reader: StateReader,
        writer: StateWriter,
        notifier: Notifier,
        shutdown: asyncio.Event | None = None,
    ) -> None:
        self._settings = settings
        self._api = api
        self._reader = reader
        self._writer = writer
        self._notifier = notifier
        self._shutdown = shutdown or asyncio.Event()

    @property
    def stopping(self) -> bool:
        return self._shutdown.is_set()

    async def run_schedule(
        self,
        schedule: Schedule,
        interval_seconds: float,
        initial_delay_seconds: float = 0.0,
        extra_ids: Iterable[int] = (),
        debug: bool = False,
    ) -> None:
        """Run the scheduled tasks in rotation until shutdown."""
        logger.info("schedule_started", schedule=str(schedule), interval_seconds=interval_seconds)
        extra_ids = list(extra_ids)

        if initial_delay_seconds > 0 and await self._sleep(initial_delay_seconds):
            return

        for task in schedule.cycle():
            await self.run_cycle(task, extra_ids, debug)
            if self.stopping:
                return

            logger.info("cycle_sleeping", seconds=interval_seconds)
            if await self._sleep(interval_seconds):
                return

    async def run_once(
        self,
        task: Task,
        initial_delay_seconds: float = 0.0,
        extra_ids: Iterable[int] = (),
        debug: bool = False,
    ) -> CycleStats | None:
        """Run a single task, unless shut down during the initial delay."""
        if initial_delay_seconds > 0 and await self._sleep(initial_delay_seconds):
            return None
        return await self.run_cycle(task, extra_ids, debug)

    async def run_cycle(self, task: Task, extra_ids: Iterable[int] = (), debug: bool = False) -> CycleStats:
        start = datetime.now(timezone.utc)
        cycle = _Cycle(id=int(start.timestamp()), start=start, task=task)

        structlog.contextvars.bind_contextvars(cycle_id=cycle.id, task=cycle.label)
        try:
            return await self._run(cycle, extra_ids, debug)
        finally:
            structlog.contextvars.unbind_contextvars("cycle_id", "task")

    async def _run(self, cycle: _Cycle, extra_ids: Iterable[int], debug: bool) -> CycleStats:
        task = cycle.task
        stats = CycleStats()

        user_ids = await self.gather_user_ids(task, extra_ids, debug)
        stats.requested = len(user_ids)
        logger.info("cycle_started", users=len(user_ids))

        badges = BadgeCatalog() if task.badges() else None
        users = await self.request_users(user_ids, cycle, stats, badges)

        if self.stopping:
            stats.abandoned = True
            logger.warning("cycle_abandoned", processed=len(users))
            return stats

        pending: list[asyncio.Task[bool]] = []

        if badges is not None:
            await self._dispatch_badges(badges, pending)

        medals: list[MedalCatalogEntry] | None = None
        catalog_failed = False
        if task.medals() or task.rarity():
            medals = await self._fetch_medal_catalog()
            catalog_failed = medals is None

        rarities: MedalRarities | None = None
        recompute = task.rarity() and bool(users) and not catalog_failed

        medals_stored = False
        if medals is not None and (task.medals() or recompute):
            # Rarity rows reference medals; they must be stored first
            medals_stored = await self._store_medals(medals, seed=task.medals() and not recompute, pending=pending)

        if recompute and medals is not None:
            rarities = calculate_rarities(users, medals)
            logger.info("rarities_calculated", medals=len(rarities), users=len(users))
            if medals_stored:
                self._spawn(pending, "store_rarities", self._writer.store_rarities(rarities), count=len(rarities))
            else:
                logger.warning("rarities_not_stored", reason="medal catalog not stored")

        if task.ranking() and users and not catalog_failed:
            if rarities is None:
                rarities = await self._fetch_stored_rarities()

            if rarities is not None:
                rankings = (RankingUser.from_user(user, rarities) for user in users)
                self._spawn(pending, "store_rankings", self._writer.store_rankings(rankings), count=len(users))
        elif catalog_failed:
            logger.warning("stages_skipped", reason="medal catalog unavailable", stages="medals, rarity, ranking")

        if pending:
            await asyncio.gather(*pending)

        await self._report_finish(cycle, len(user_ids))
        logger.info(
            "cycle_finished",
            requested=stats.requested,
            available=stats.available,
            restricted=stats.restricted,
            failed=stats.failed,
        )
        return stats

    async def gather_user_ids(self, task: Task, extra_ids: Iterable[int] = (), debug: bool = False) -> list[int]:
        """Assemble the sorted set of user ids a cycle requests."""
        user_ids: set[int] = set()

        if task.ranking():
            try:
                user_ids |= await self._reader.fetch_known_participant_ids()
            except Exception:
                logger.exception("participant_ids_failed")

        pages = self._leaderboard_pages(task)
        if pages > 0:
            user_ids |= await self.scan_leaderboards(pages)

        if task.contains(Task.FULL):
            try:
                user_ids |= await self._reader.fetch_full_ranking_ids()
            except Exception:
                logger.exception("full_ranking_ids_failed")

        user_ids.update(extra_ids)
        ids = sorted(user_ids)

        if debug:
            ids = ids[: self._settings.debug_sample_size] or [self._settings.debug_fallback_user_id]
            logger.info("debug_sample", users=ids)

        return ids

    def _leaderboard_pages(self, task: Task) -> int:
        if task.leaderboard() or task.rarity():
            return self._settings.leaderboard_pages
        if task.ranking():
            return self._settings.ranking_refresh_pages
        return 0

    async def scan_leaderboards(self, pages: int) -> set[int]:
        """Collect the user ids on the first ``pages`` pages of every mode."""
        user_ids: set[int] = set()

        for page in range(1, pages + 1):
            if self.stopping:
                break

            results = await asyncio.gather(
                *(self._api.fetch_leaderboard_page(mode, page) for mode in MODES),
                return_exceptions=True,
            )

            for mode, result in zip(MODES, results):
                if isinstance(result, BaseException):
                    logger.error("leaderboard_page_failed", mode=mode, page=page, error=str(result))
                    continue
                user_ids.update(result)

        logger.info("leaderboards_scanned", pages=pages, users=len(user_ids))
        return user_ids

    async def request_users(
        self,
        user_ids: list[int],
        cycle: _Cycle,
        stats: CycleStats,
        badges: BadgeCatalog | None = None,
    ) -> list[OsuUser]:
        """Request every user in turn, reporting progress along the way."""
        users: list[OsuUser] = []
        eta = Eta()
        total = len(user_ids)
        interval = self._settings.progress_interval
        processed = 0

        for user_id in user_ids:
            if self.stopping:
                break

            try:
                user = await self.request_user(user_id)
            except Exception:
                stats.failed += 1
                logger.exception("user_request_failed", user_id=user_id)
            else:
                users.append(user)
                if isinstance(user, RestrictedUser):
                    stats.restricted += 1
                else:
                    stats.available += 1
                    if badges is not None:
                        for badge in user.badges:
                            badges.push(user.user_id, badge)

            processed += 1
            eta.tick()

            if interval > 0 and processed % interval == 0:
                await self._report_progress(cycle, processed, total, eta)

        # The last cadence report may already carry the final count
        if interval <= 0 or processed == 0 or processed % interval != 0:
            await self._report_progress(cycle, processed, total, eta)
        return users

    async def request_user(self, user_id: int) -> OsuUser:
        """Request all four modes of a user.

        A 404 on the primary mode, including on its retry, means the user
        is restricted. A dropped connection is retried once for the
        affected mode; any other error fails the whole user.
        """
        results = await asyncio.gather(
            *(self._api.fetch_user(user_id, mode) for mode in MODES),
            return_exceptions=True,
        )

        if isinstance(results[0], UserNotFound):
            return RestrictedUser(user_id)

        payloads = []
        for mode, result in zip(MODES, results):
            if isinstance(result, BaseException):
                if not is_retryable(result):
                    raise result
                logger.info("user_request_retry", user_id=user_id, mode=mode, error=str(result))
                try:
                    result = await self._api.fetch_user(user_id, mode)
                except UserNotFound:
                    if mode != MODES[0]:
                        raise
                    return RestrictedUser(user_id)
            payloads.append(result)

        return AvailableUser.from_modes(*payloads)

    async def _fetch_medal_catalog(self) -> list[MedalCatalogEntry] | None:
        try:
            medals = await self._api.fetch_medal_catalog()
        except Exception:
            logger.exception("medal_catalog_failed")
            return None

        logger.info("medal_catalog_fetched", medals=len(medals))
        return medals

    async def _store_medals(
        self,
        medals: list[MedalCatalogEntry],
        seed: bool,
        pending: list[asyncio.Task[bool]],
    ) -> bool:
        """Store the medal catalog and, if requested, zero rarities for new medals.

        With ``seed`` unset the new medals are covered by the full
        rarity table computed later in the cycle. Returns whether the
        catalog was stored; nothing is seeded otherwise.
        """
        stored_ids: set[int] | None = None
        if seed:
            try:
                stored_ids = await self._reader.fetch_medal_ids()
            except Exception:
                logger.exception("medal_ids_failed")

        if not await self._store("store_medals", self._writer.store_medals(medals), count=len(medals)):
            return False

        if stored_ids is not None:
            new_medals = seed_new_medals(medals, stored_ids)
            if new_medals:
                logger.info("new_medals", medal_ids=sorted(new_medals))
                self._spawn(pending, "store_rarities", self._writer.store_rarities(new_medals), count=len(new_medals))

        return True

    async def _fetch_stored_rarities(self) -> MedalRarities | None:
        try:
            return await self._reader.fetch_medal_rarity_table()
        except Exception:
            logger.exception("stored_rarities_failed")
            return None

    async def _dispatch_badges(self, badges: BadgeCatalog, pending: list[asyncio.Task[bool]]) -> None:
        """Merge the fresh badges into the stored catalog and store the result.

        Storing replaces the whole catalog, so nothing is written if the
        stored catalog could not be read.
        """
        try:
            stored = await self._reader.fetch_badge_catalog()
        except Exception:
            logger.exception("stored_badges_failed")
            return

        stored.merge(badges)
        self._spawn(pending, "store_badges", self._writer.store_badges(stored), count=len(stored))

    def _spawn(self, pending: list[asyncio.Task[bool]], operation: str, action: Awaitable[object], count: int) -> None:
        pending.append(asyncio.create_task(self._store(operation, action, count)))

    async def _store(self, operation: str, action: Awaitable[object], count: int) -> bool:
        """Await a store call, logging its outcome. Returns whether it succeeded."""
        try:
            await action
        except Exception:
            logger.exception("store_failed", operation=operation)
            return False

        logger.info("store_succeeded", operation=operation, count=count)
        return True

    async def _report_progress(self, cycle: _Cycle, current: int, total: int, eta: Eta) -> None:
        estimate = eta.estimate(total - current)
        progress = ProgressState(
            id=cycle.id,
            start=cycle.start,
            current=current,
            total=total,
            eta_seconds=estimate.as_seconds(),
            task=cycle.label,
        )
        logger.info("progress", current=current, total=total, eta=str(estimate))

        try:
            await self._notifier.notify_progress(progress)
        except Exception:
            logger.exception("progress_notify_failed")

        try:
            await self._writer.store_progress(progress)
        except Exception:
            logger.exception("progress_store_failed")

    async def _report_finish(self, cycle: _Cycle, requested_users: int) -> None:
        finish = FinishRecord(id=cycle.id, requested_users=requested_users, task=cycle.label)

        try:
            await self._notifier.notify_finish(finish)
        except Exception:
            logger.exception("finish_notify_failed")

        try:
            await self._writer.store_finish(finish)
        except Exception:
            logger.exception("finish_store_failed")

    async def _sleep(self, seconds: float) -> bool:
        """Sleep unless shut down first. Returns True on shutdown."""
        try:
            await asyncio.wait_for(self._shutdown.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True
