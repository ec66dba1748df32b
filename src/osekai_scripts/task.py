"""Task selector: which stages a collection cycle runs."""

from __future__ import annotations

from enum import IntFlag


class Task(IntFlag):
    """Bitset of the stages of a cycle."""

    MEDALS = 1 << 0
    LEADERBOARD = 1 << 1
    BADGES = 1 << 2
    RARITY = 1 << 3
    RANKING = 1 << 4

    DEFAULT = MEDALS | BADGES | RARITY | RANKING
    FULL = MEDALS | LEADERBOARD | BADGES | RARITY | RANKING

    def contains(self, other: Task) -> bool:
        return self & other == other

    def medals(self) -> bool:
        return self.contains(Task.MEDALS)

    def leaderboard(self) -> bool:
        return self.contains(Task.LEADERBOARD)

    def badges(self) -> bool:
        return self.contains(Task.BADGES)

    def rarity(self) -> bool:
        return self.contains(Task.RARITY)

    def ranking(self) -> bool:
        return self.contains(Task.RANKING)


EMPTY = Task(0)

# Checked in this order; the default subset is collapsed into one label
_NAMES = (
    (Task.MEDALS, "Medals"),
    (Task.LEADERBOARD, "Leaderboard"),
    (Task.BADGES, "Badges"),
    (Task.RARITY, "Rarity"),
    (Task.RANKING, "Ranking"),
)

_KEYWORDS = (
    ("default", Task.DEFAULT),
    ("full", Task.FULL),
    ("medal", Task.MEDALS),
    ("leaderboard", Task.LEADERBOARD),
    ("lb", Task.LEADERBOARD),
    ("rarity", Task.RARITY),
    ("rarities", Task.RARITY),
    ("badge", Task.BADGES),
    ("ranking", Task.RANKING),
)


def parse_task(value: str) -> Task:
    """Parse a task from free text, unioning every keyword it contains.

    Any delimiter works: ``"medals|rarity"``, ``"lb + badges"``.
    """
    lowered = value.lower()
    task = EMPTY

    for keyword, flag in _KEYWORDS:
        if keyword in lowered:
            task |= flag

    if task == EMPTY:
        msg = (
            f"Failed to parse task `{value}`; must contain either of the following: "
            "default, full, medal, leaderboard, rarity, badge, ranking"
        )
        raise ValueError(msg)

    return task


def format_task(task: Task) -> str:
    if task.contains(Task.FULL):
        return "Full"

    parts: list[str] = []
    remaining = task

    if remaining.contains(Task.DEFAULT):
        parts.append("Default")
        remaining &= ~Task.DEFAULT

    for flag, name in _NAMES:
        if remaining.contains(flag):
            parts.append(name)

    return " | ".join(parts)
