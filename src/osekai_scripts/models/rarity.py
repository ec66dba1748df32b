"""Medal rarity: how many tracked users own each medal."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from osekai_scripts.models.medal import MedalCatalogEntry
from osekai_scripts.models.user import AvailableUser, OsuUser


@dataclass(frozen=True)
class MedalRarityEntry:
    count: int
    frequency: float  # percentage of tracked users


MedalRarities = dict[int, MedalRarityEntry]


def calculate_rarities(users: Sequence[OsuUser], medals: Iterable[MedalCatalogEntry]) -> MedalRarities:
    """Count owners per medal id among the given users.

    Restricted users count towards the total but never own a medal.
    Medals nobody owns yet still get a zero entry.
    """
    counts: Counter[int] = Counter()

    for user in users:
        if isinstance(user, AvailableUser):
            counts.update({medal.medal_id for medal in user.medals})

    for medal in medals:
        counts.setdefault(medal.id, 0)

    user_count = len(users)

    return {
        medal_id: MedalRarityEntry(
            count=count,
            frequency=100 * count / user_count if user_count else 0.0,
        )
        for medal_id, count in counts.items()
    }


def seed_new_medals(medals: Iterable[MedalCatalogEntry], stored_ids: set[int]) -> MedalRarities:
    """Zero entries for catalog medals the store does not know yet."""
    return {
        medal.id: MedalRarityEntry(count=0, frequency=0.0)
        for medal in medals
        if medal.id not in stored_ids
    }
