"""Reads the state stored by previous cycles."""

from __future__ import annotations

import asyncpg

from osekai_scripts.database.connection import guarded
from osekai_scripts.models.badge import BadgeCatalog, BadgeOwner
from osekai_scripts.models.rarity import MedalRarities, MedalRarityEntry


class StateReader:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def fetch_known_participant_ids(self) -> set[int]:
        """Users already listed in the rankings."""
        rows = await guarded(
            "fetch_known_participant_ids",
            lambda: self._pool.fetch("SELECT id FROM rankings_users"),
        )
        return {row["id"] for row in rows}

    async def fetch_full_ranking_ids(self) -> set[int]:
        """Every user registered on the site."""
        rows = await guarded(
            "fetch_full_ranking_ids",
            lambda: self._pool.fetch("SELECT user_id FROM system_users"),
        )
        return {row["user_id"] for row in rows}

    async def fetch_medal_ids(self) -> set[int]:
        rows = await guarded(
            "fetch_medal_ids",
            lambda: self._pool.fetch("SELECT medal_id FROM medals"),
        )
        return {row["medal_id"] for row in rows}

    async def fetch_medal_rarity_table(self) -> MedalRarities:
        rows = await guarded(
            "fetch_medal_rarity_table",
            lambda: self._pool.fetch("SELECT medal_id, count, frequency FROM medal_rarity"),
        )
        return {
            row["medal_id"]: MedalRarityEntry(count=row["count"] or 0, frequency=row["frequency"] or 0.0)
            for row in rows
        }

    async def fetch_badge_catalog(self) -> BadgeCatalog:
        async def fetch() -> tuple[list[asyncpg.Record], list[asyncpg.Record]]:
            async with self._pool.acquire() as conn:
                names = await conn.fetch("SELECT name, image_url FROM badges")
                owners = await conn.fetch(
                    "SELECT name, description, user_id, awarded_at FROM badge_owners"
                )
            return names, owners

        name_rows, owner_rows = await guarded("fetch_badge_catalog", fetch)

        catalog = BadgeCatalog()
        for row in name_rows:
            catalog.names.setdefault(row["name"], row["image_url"] or "")

        for row in owner_rows:
            image_url = catalog.names.get(row["name"], "")
            owner = BadgeOwner(row["user_id"], row["awarded_at"])
            catalog.add_owner(row["description"] or "", row["name"], image_url, owner)

        return catalog
