"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock

import pytest

from osekai_scripts.client.osu import OsuClient
from osekai_scripts.config import Settings
from osekai_scripts.database.reader import StateReader
from osekai_scripts.database.writer import StateWriter
from osekai_scripts.harvester import Harvester
from osekai_scripts.models.badge import BadgeCatalog
from osekai_scripts.models.medal import MedalCatalogEntry
from osekai_scripts.models.user import ApiUser, AvailableUser, ModeStats, OwnedMedal, RawBadge
from osekai_scripts.notify import Notifier

AWARDED = datetime(2023, 5, 1, tzinfo=timezone.utc)


def api_user_payload(
    user_id: int = 1,
    username: str = "player",
    pp: float = 1000.0,
    accuracy: float = 98.5,
    play_count: int = 5000,
    global_rank: int | None = 1234,
    medal_ids: Sequence[int] = (),
    badges: Sequence[dict[str, Any]] = (),
) -> dict[str, Any]:
    """A minimal ``GET /users/{id}/{mode}`` response body."""
    return {
        "id": user_id,
        "username": username,
        "country_code": "DE",
        "avatar_url": f"https://a.ppy.sh/{user_id}",
        "follower_count": 10,
        "mapping_follower_count": 2,
        "ranked_beatmapset_count": 1,
        "loved_beatmapset_count": 0,
        "kudosu": {"total": 7, "available": 3},
        "statistics": {
            "hit_accuracy": accuracy,
            "level": {"current": 100, "progress": 50},
            "global_rank": global_rank,
            "play_count": play_count,
            "pp": pp,
            "replays_watched_by_others": 4,
        },
        "user_achievements": [
            {"achievement_id": medal_id, "achieved_at": "2022-01-01T00:00:00+00:00"}
            for medal_id in medal_ids
        ],
        "badges": list(badges),
    }


def api_user(**kwargs: Any) -> ApiUser:
    return ApiUser.model_validate(api_user_payload(**kwargs))


def badge(description: str, image_url: str, awarded_at: datetime = AWARDED) -> RawBadge:
    return RawBadge(awarded_at=awarded_at, description=description, image_url=image_url)


def owned(medal_id: int, achieved_at: datetime = AWARDED) -> OwnedMedal:
    return OwnedMedal(medal_id=medal_id, achieved_at=achieved_at)


def make_user(
    user_id: int = 1,
    pps: Sequence[float] = (1000.0, 500.0, 250.0, 100.0),
    accs: Sequence[float] = (98.0, 97.0, 96.0, 95.0),
    levels: Sequence[float] = (100.0, 80.0, 60.0, 40.0),
    playcounts: Sequence[int] = (10000, 2000, 1000, 600),
    ranks: Sequence[int | None] = (1000, 2000, 3000, 4000),
    medals: Sequence[OwnedMedal] = (),
    badges: Sequence[RawBadge] = (),
) -> AvailableUser:
    modes = tuple(
        ModeStats(accuracy=acc, level=level, global_rank=rank, playcount=playcount, pp=pp)
        for pp, acc, level, playcount, rank in zip(pps, accs, levels, playcounts, ranks)
    )
    return AvailableUser(
        user_id=user_id,
        username=f"user{user_id}",
        modes=modes,  # type: ignore[arg-type]
        medals=list(medals),
        badges=list(badges),
    )


def medal_entry(medal_id: int) -> MedalCatalogEntry:
    return MedalCatalogEntry(
        id=medal_id,
        name=f"Medal {medal_id}",
        icon_url=f"https://assets.ppy.sh/medals/{medal_id}.png",
        grouping="Skill",
        ordering=0,
        description="Do the thing",
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        leaderboard_pages=1,
        ranking_refresh_pages=1,
        progress_interval=2,
        debug_sample_size=3,
        debug_fallback_user_id=2,
    )


@pytest.fixture
def api() -> AsyncMock:
    client = AsyncMock(spec=OsuClient)
    client.fetch_leaderboard_page.return_value = []
    client.fetch_medal_catalog.return_value = [medal_entry(1), medal_entry(2)]

    async def fetch_user(user_id: int, mode: str) -> ApiUser:
        return api_user(user_id=user_id)

    client.fetch_user.side_effect = fetch_user
    return client


@pytest.fixture
def reader() -> AsyncMock:
    state = AsyncMock(spec=StateReader)
    state.fetch_known_participant_ids.return_value = set()
    state.fetch_full_ranking_ids.return_value = set()
    state.fetch_medal_ids.return_value = {1, 2}
    state.fetch_medal_rarity_table.return_value = {}
    state.fetch_badge_catalog.side_effect = lambda: BadgeCatalog()
    return state


@pytest.fixture
def writer() -> AsyncMock:
    return AsyncMock(spec=StateWriter)


@pytest.fixture
def notifier() -> AsyncMock:
    return AsyncMock(spec=Notifier)


@pytest.fixture
def harvester(settings: Settings, api: AsyncMock, reader: AsyncMock, writer: AsyncMock, notifier: AsyncMock) -> Harvester:
    return Harvester(settings, api, reader, writer, notifier)
