"""Tests for task selectors and schedules."""

import pytest

from osekai_scripts.schedule import Schedule
from osekai_scripts.task import EMPTY, Task, format_task, parse_task


class TestTask:
    def test_default_is_full_without_leaderboard(self):
        assert Task.FULL.contains(Task.DEFAULT)
        assert not Task.DEFAULT.leaderboard()
        assert Task.FULL & ~Task.DEFAULT == Task.LEADERBOARD

    def test_predicates(self):
        task = Task.MEDALS | Task.RANKING
        assert task.medals()
        assert task.ranking()
        assert not task.rarity()
        assert not task.badges()
        assert not task.contains(Task.DEFAULT)

    def test_empty_contains_nothing(self):
        assert not EMPTY.medals()
        assert EMPTY.contains(EMPTY)


class TestParseTask:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("default", Task.DEFAULT),
            ("FULL", Task.FULL),
            ("medals", Task.MEDALS),
            ("lb", Task.LEADERBOARD),
            ("rarities", Task.RARITY),
            ("badges", Task.BADGES),
            ("ranking", Task.RANKING),
        ],
    )
    def test_keywords(self, value, expected):
        assert parse_task(value) == expected

    def test_union_of_keywords(self):
        assert parse_task("medals|rarity") == Task.MEDALS | Task.RARITY
        assert parse_task("lb + badges") == Task.LEADERBOARD | Task.BADGES

    def test_unknown_value(self):
        with pytest.raises(ValueError, match="Failed to parse task"):
            parse_task("nothing")


class TestFormatTask:
    def test_full(self):
        assert format_task(Task.FULL) == "Full"

    def test_default_collapsed(self):
        assert format_task(Task.DEFAULT) == "Default"

    def test_names_in_order(self):
        assert format_task(Task.RANKING | Task.MEDALS) == "Medals | Ranking"

    def test_empty(self):
        assert format_task(EMPTY) == ""


class TestSchedule:
    def test_parse(self):
        schedule = Schedule.parse("default, lb ,")
        assert list(schedule) == [Task.DEFAULT, Task.LEADERBOARD]
        assert str(schedule) == "Default, Leaderboard"

    @pytest.mark.parametrize("value", ["", " , ", ","])
    def test_no_tasks(self, value):
        with pytest.raises(ValueError, match="at least one task"):
            Schedule.parse(value)

    def test_empty_str(self):
        assert str(Schedule(())) == "No tasks"

    def test_cycle_repeats(self):
        schedule = Schedule((Task.MEDALS, Task.BADGES))
        tasks = schedule.cycle()
        assert [next(tasks) for _ in range(5)] == [
            Task.MEDALS,
            Task.BADGES,
            Task.MEDALS,
            Task.BADGES,
            Task.MEDALS,
        ]

    def test_invalid_item(self):
        with pytest.raises(ValueError):
            Schedule.parse("default, bogus")
