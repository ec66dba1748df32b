"""Rotation of tasks run one after the other with an interval in between."""

from __future__ import annotations

import itertools
from collections.abc import Iterator
from dataclasses import dataclass

from osekai_scripts.task import Task, format_task, parse_task


@dataclass(frozen=True)
class Schedule:
    tasks: tuple[Task, ...]

    @classmethod
    def parse(cls, value: str) -> Schedule:
        """Parse a comma separated list of tasks, e.g. ``"default, lb"``."""
        items = [item.strip() for item in value.split(",") if item.strip()]
        if not items:
            raise ValueError(f"Failed to parse schedule `{value}`; must contain at least one task")
        return cls(tuple(parse_task(item) for item in items))

    def __iter__(self) -> Iterator[Task]:
        return iter(self.tasks)

    def cycle(self) -> Iterator[Task]:
        """Endlessly repeat the tasks in order."""
        return itertools.cycle(self.tasks)

    def __str__(self) -> str:
        if not self.tasks:
            return "No tasks"
        return ", ".join(format_task(task) for task in self.tasks)
