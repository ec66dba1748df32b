"""Upserts collected data.

Every call runs in its own transaction: either all of its rows are
written or none are. Calls are independent of each other, except that
medal_rarity references medals and must be written after it.
"""

from __future__ import annotations

from collections.abc import Iterable

import asyncpg

from osekai_scripts.database.connection import guarded
from osekai_scripts.models.badge import BadgeCatalog
from osekai_scripts.models.medal import MedalCatalogEntry
from osekai_scripts.models.progress import FinishRecord, ProgressState
from osekai_scripts.models.ranking import RankingUser
from osekai_scripts.models.rarity import MedalRarities

_RANKING_COLUMNS = (
    "id", "name", "country_code", "avatar_url", "restricted",
    "total_pp", "stdev_pp", "standard_pp", "taiko_pp", "ctb_pp", "mania_pp",
    "stdev_acc", "standard_acc", "taiko_acc", "ctb_acc", "mania_acc",
    "stdev_level", "standard_level", "taiko_level", "ctb_level", "mania_level",
    "standard_global", "taiko_global", "ctb_global", "mania_global",
    "medal_count", "rarest_medal_id", "rarest_medal_achieved", "badge_count",
    "ranked_maps", "loved_maps", "followers", "subscribers", "replays_watched", "kudosu",
)


def _upsert(table: str, columns: tuple[str, ...], key: str) -> str:
    placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
    updates = ", ".join(f"{column} = EXCLUDED.{column}" for column in columns if column != key)
    return (
        f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) "
        f"ON CONFLICT ({key}) DO UPDATE SET {updates}"
    )


class StateWriter:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def _executemany(self, operation: str, query: str, args: list[tuple]) -> None:
        async def execute() -> None:
            async with self._pool.acquire() as conn, conn.transaction():
                await conn.executemany(query, args)

        await guarded(operation, execute)

    async def store_medals(self, medals: list[MedalCatalogEntry]) -> None:
        columns = ("medal_id", "name", "link", "description", "gamemode", '"grouping"', "instructions", "ordering")
        await self._executemany(
            "store_medals",
            _upsert("medals", columns, "medal_id"),
            [
                (m.id, m.name, m.icon_url, m.description, m.mode, m.grouping, m.instructions, m.ordering)
                for m in medals
            ],
        )

    async def store_rarities(self, rarities: MedalRarities) -> None:
        await self._executemany(
            "store_rarities",
            _upsert("medal_rarity", ("medal_id", "count", "frequency"), "medal_id"),
            [(medal_id, entry.count, entry.frequency) for medal_id, entry in rarities.items()],
        )

    async def store_rankings(self, rankings: Iterable[RankingUser]) -> int:
        rows = [tuple(getattr(ranking, column) for column in _RANKING_COLUMNS) for ranking in rankings]
        await self._executemany("store_rankings", _upsert("rankings", _RANKING_COLUMNS, "id"), rows)
        return len(rows)

    async def store_badges(self, badges: BadgeCatalog) -> None:
        """Replace the stored badge catalog with ``badges``."""
        name_rows = sorted(badges.names.items())
        owner_rows = [
            (name, description, owner.user_id, owner.awarded_at)
            for description, name, _, owners in badges.iter_rows()
            for owner in owners
        ]

        async def replace() -> None:
            async with self._pool.acquire() as conn, conn.transaction():
                await conn.execute("DELETE FROM badge_owners")
                await conn.execute("DELETE FROM badges")
                await conn.executemany("INSERT INTO badges (name, image_url) VALUES ($1, $2)", name_rows)
                await conn.executemany(
                    "INSERT INTO badge_owners (name, description, user_id, awarded_at) VALUES ($1, $2, $3, $4)",
                    owner_rows,
                )

        await guarded("store_badges", replace)

    async def store_progress(self, progress: ProgressState) -> None:
        query = (
            "INSERT INTO script_history (id, task, started_at, count_current, count_total, eta_seconds, updated_at) "
            "VALUES ($1, $2, $3, $4, $5, $6, NOW()) "
            "ON CONFLICT (id) DO UPDATE SET count_current = EXCLUDED.count_current, "
            "count_total = EXCLUDED.count_total, eta_seconds = EXCLUDED.eta_seconds, updated_at = NOW()"
        )
        await guarded(
            "store_progress",
            lambda: self._pool.execute(
                query,
                progress.id,
                progress.task,
                progress.start,
                progress.current,
                progress.total,
                progress.eta_seconds,
            ),
        )

    async def store_finish(self, finish: FinishRecord) -> None:
        await guarded(
            "store_finish",
            lambda: self._pool.execute(
                "INSERT INTO script_finish (cycle_id, task, requested_users, finished_at) VALUES ($1, $2, $3, $4)",
                finish.id,
                finish.task,
                finish.requested_users,
                finish.finished_at,
            ),
        )
