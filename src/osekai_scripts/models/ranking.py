"""Per-user ranking row and the statistics derived for it."""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import datetime, timezone

from pydantic import BaseModel

from osekai_scripts.models.rarity import MedalRarities
from osekai_scripts.models.user import AvailableUser, OsuUser, OwnedMedal

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Accounts below this playcount in every mode have meaningless accuracy
MIN_PLAYCOUNT = 500


def robust_total(values: Sequence[float]) -> float:
    """Sum of the values penalized by twice their sample standard deviation.

    A player strong in a single mode scores lower than one with the same
    total spread evenly across all modes. Never negative.
    """
    total = sum(values)
    mean = total / len(values)
    variance = sum((value - mean) ** 2 for value in values)
    std_dev = math.sqrt(variance / (len(values) - 1))

    return max(0.0, total - 2 * std_dev)


def rarest_medal(user: AvailableUser, rarities: MedalRarities) -> OwnedMedal | None:
    """The owned medal with the fewest owners; ties go to the lowest medal id."""
    known = [medal for medal in user.medals if medal.medal_id in rarities]
    if not known:
        return None
    return min(known, key=lambda medal: (rarities[medal.medal_id].count, medal.medal_id))


def ignores_accuracy(user: AvailableUser) -> bool:
    """Whether the user is too inactive for accuracy to be a ranking signal."""
    max_global_rank = max((stats.global_rank or 0 for stats in user.modes), default=0)
    max_playcount = max((stats.playcount for stats in user.modes), default=0)

    return max_global_rank == 0 or max_playcount < MIN_PLAYCOUNT


class RankingUser(BaseModel):
    """Flat ranking row for one user."""

    id: int
    name: str = ""
    country_code: str = ""
    avatar_url: str = ""
    restricted: bool = False

    total_pp: float = 0.0
    stdev_pp: float = 0.0
    standard_pp: float = 0.0
    taiko_pp: float = 0.0
    ctb_pp: float = 0.0
    mania_pp: float = 0.0

    stdev_acc: float = 0.0
    standard_acc: float = 0.0
    taiko_acc: float = 0.0
    ctb_acc: float = 0.0
    mania_acc: float = 0.0

    stdev_level: float = 0.0
    standard_level: float = 0.0
    taiko_level: float = 0.0
    ctb_level: float = 0.0
    mania_level: float = 0.0

    standard_global: int | None = None
    taiko_global: int | None = None
    ctb_global: int | None = None
    mania_global: int | None = None

    medal_count: int = 0
    rarest_medal_id: int = 0
    rarest_medal_achieved: datetime = EPOCH
    badge_count: int = 0
    ranked_maps: int = 0
    loved_maps: int = 0
    followers: int = 0
    subscribers: int = 0
    replays_watched: int = 0
    kudosu: int = 0

    @classmethod
    def from_user(cls, user: OsuUser, rarities: MedalRarities) -> RankingUser:
        if not isinstance(user, AvailableUser):
            return cls(id=user.user_id, restricted=True)

        std, tko, ctb, mna = user.modes

        accs = [stats.accuracy for stats in user.modes]
        if ignores_accuracy(user):
            accs = [0.0, 0.0, 0.0, 0.0]
        levels = [stats.level for stats in user.modes]
        pps = [stats.pp for stats in user.modes]

        rarest = rarest_medal(user, rarities)

        return cls(
            id=user.user_id,
            name=user.username,
            country_code=user.country_code,
            avatar_url=user.avatar_url,
            total_pp=sum(pps),
            stdev_pp=robust_total(pps),
            standard_pp=std.pp,
            taiko_pp=tko.pp,
            ctb_pp=ctb.pp,
            mania_pp=mna.pp,
            stdev_acc=robust_total(accs),
            standard_acc=accs[0],
            taiko_acc=accs[1],
            ctb_acc=accs[2],
            mania_acc=accs[3],
            stdev_level=robust_total(levels),
            standard_level=std.level,
            taiko_level=tko.level,
            ctb_level=ctb.level,
            mania_level=mna.level,
            standard_global=std.global_rank,
            taiko_global=tko.global_rank,
            ctb_global=ctb.global_rank,
            mania_global=mna.global_rank,
            medal_count=len(user.medals),
            rarest_medal_id=rarest.medal_id if rarest else 0,
            rarest_medal_achieved=rarest.achieved_at if rarest else EPOCH,
            badge_count=len(user.badges),
            ranked_maps=user.maps_ranked,
            loved_maps=user.maps_loved,
            followers=user.followers,
            subscribers=user.subscribers,
            replays_watched=user.replays_watched,
            kudosu=user.kudosu,
        )
