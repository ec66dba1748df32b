"""User payloads from the osu! API and the per-cycle user record built from them.

A user is requested once per game mode. The four payloads are folded into
a single ``AvailableUser``; a user the API refuses to show (404 on the
primary mode) becomes a ``RestrictedUser`` that only carries its id.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

# mode₀..mode₃ as named by the API
MODES: tuple[str, str, str, str] = ("osu", "taiko", "fruits", "mania")


class ApiLevel(BaseModel):
    current: int = 0
    progress: int = 0


class ApiStatistics(BaseModel):
    """Per-mode statistics block of a user payload."""

    hit_accuracy: float = 0.0
    level: ApiLevel = Field(default_factory=ApiLevel)
    global_rank: int | None = None
    play_count: int = 0
    pp: float = 0.0
    replays_watched_by_others: int = 0


class ApiKudosu(BaseModel):
    total: int = 0
    available: int = 0


class OwnedMedal(BaseModel):
    """A medal the user has unlocked."""

    model_config = ConfigDict(populate_by_name=True)

    medal_id: int = Field(alias="achievement_id")
    achieved_at: datetime


class RawBadge(BaseModel):
    """A badge as shown on a user's profile."""

    awarded_at: datetime
    description: str
    image_url: str
    url: str = ""


class ApiUser(BaseModel):
    """The subset of ``GET /api/v2/users/{id}/{mode}`` the collector uses."""

    id: int
    username: str
    country_code: str = ""
    avatar_url: str = ""
    follower_count: int = 0
    mapping_follower_count: int = 0
    ranked_beatmapset_count: int = 0
    loved_beatmapset_count: int = 0
    kudosu: ApiKudosu = Field(default_factory=ApiKudosu)
    statistics: ApiStatistics | None = None
    user_achievements: list[OwnedMedal] = Field(default_factory=list)
    badges: list[RawBadge] = Field(default_factory=list)


@dataclass(frozen=True)
class ModeStats:
    accuracy: float = 0.0
    level: float = 0.0
    global_rank: int | None = None  # None when unranked in this mode
    playcount: int = 0
    pp: float = 0.0

    @classmethod
    def from_api(cls, stats: ApiStatistics | None) -> ModeStats:
        if stats is None:
            return cls()

        return cls(
            accuracy=stats.hit_accuracy,
            level=stats.level.current + stats.level.progress / 100,
            global_rank=stats.global_rank or None,
            playcount=stats.play_count,
            pp=stats.pp,
        )


@dataclass
class AvailableUser:
    user_id: int
    username: str
    modes: tuple[ModeStats, ModeStats, ModeStats, ModeStats]
    medals: list[OwnedMedal] = field(default_factory=list)
    badges: list[RawBadge] = field(default_factory=list)
    country_code: str = ""
    avatar_url: str = ""
    followers: int = 0
    subscribers: int = 0
    maps_ranked: int = 0
    maps_loved: int = 0
    replays_watched: int = 0
    kudosu: int = 0

    @classmethod
    def from_modes(cls, osu: ApiUser, taiko: ApiUser, fruits: ApiUser, mania: ApiUser) -> AvailableUser:
        """Fold the four per-mode payloads of one user.

        Account data is identical across modes so it is taken from the
        primary mode payload; only statistics differ.
        """
        payloads = (osu, taiko, fruits, mania)
        replays_watched = sum(
            payload.statistics.replays_watched_by_others
            for payload in payloads
            if payload.statistics is not None
        )

        return cls(
            user_id=osu.id,
            username=osu.username,
            modes=tuple(ModeStats.from_api(payload.statistics) for payload in payloads),  # type: ignore[arg-type]
            medals=list(osu.user_achievements),
            badges=list(osu.badges),
            country_code=osu.country_code,
            avatar_url=osu.avatar_url,
            followers=osu.follower_count,
            subscribers=osu.mapping_follower_count,
            maps_ranked=osu.ranked_beatmapset_count,
            maps_loved=osu.loved_beatmapset_count,
            replays_watched=replays_watched,
            kudosu=osu.kudosu.total,
        )


@dataclass(frozen=True)
class RestrictedUser:
    user_id: int


OsuUser = AvailableUser | RestrictedUser
