"""Tests for medal rarity and ranking rows."""

from datetime import datetime, timezone

import pytest

from osekai_scripts.models.ranking import EPOCH, RankingUser, ignores_accuracy, rarest_medal, robust_total
from osekai_scripts.models.rarity import MedalRarityEntry, calculate_rarities, seed_new_medals
from osekai_scripts.models.user import RestrictedUser
from tests.conftest import badge, make_user, medal_entry, owned


class TestRarity:
    def test_single_owner_of_four(self):
        users = [make_user(1, medals=[owned(7)]), make_user(2), make_user(3), make_user(4)]

        rarities = calculate_rarities(users, [medal_entry(7)])

        assert rarities == {7: MedalRarityEntry(count=1, frequency=25.0)}

    def test_every_catalog_medal_present(self):
        users = [make_user(1, medals=[owned(1), owned(2)]), make_user(2, medals=[owned(2)])]
        catalog = [medal_entry(medal_id) for medal_id in (1, 2, 3)]

        rarities = calculate_rarities(users, catalog)

        assert set(rarities) == {1, 2, 3}
        assert rarities[2] == MedalRarityEntry(count=2, frequency=100.0)
        assert rarities[3] == MedalRarityEntry(count=0, frequency=0.0)
        assert all(0 <= entry.count <= len(users) for entry in rarities.values())

    def test_uncatalogued_owned_medal_kept(self):
        rarities = calculate_rarities([make_user(1, medals=[owned(99)])], [])
        assert rarities[99].count == 1

    def test_duplicate_ownership_counted_once(self):
        rarities = calculate_rarities([make_user(1, medals=[owned(5), owned(5)])], [medal_entry(5)])
        assert rarities[5].count == 1

    def test_restricted_users_in_denominator(self):
        users = [make_user(1, medals=[owned(7)]), RestrictedUser(2)]

        rarities = calculate_rarities(users, [medal_entry(7)])

        assert rarities[7] == MedalRarityEntry(count=1, frequency=50.0)

    def test_no_users(self):
        rarities = calculate_rarities([], [medal_entry(1)])
        assert rarities == {1: MedalRarityEntry(count=0, frequency=0.0)}

    def test_seed_new_medals(self):
        catalog = [medal_entry(medal_id) for medal_id in (1, 2, 3)]
        seeded = seed_new_medals(catalog, stored_ids={1, 2})
        assert seeded == {3: MedalRarityEntry(count=0, frequency=0.0)}


class TestRobustTotal:
    def test_outlier_penalized(self):
        # mean 250, stdev sqrt(270000 / 3) = 300
        assert robust_total([100, 100, 100, 700]) == pytest.approx(400.0)

    def test_even_spread_untouched(self):
        assert robust_total([250, 250, 250, 250]) == pytest.approx(1000.0)

    def test_single_mode_player(self):
        assert robust_total([100, 0, 0, 0]) == pytest.approx(0.0)

    def test_never_negative(self):
        assert robust_total([0, 0, 0, 1000]) >= 0.0
        assert robust_total([0, 0, 0, 0]) == 0.0


class TestAccuracySuppression:
    def test_low_playcount(self):
        user = make_user(playcounts=(10, 0, 0, 0))
        assert ignores_accuracy(user)

        row = RankingUser.from_user(user, {})

        assert (row.standard_acc, row.taiko_acc, row.ctb_acc, row.mania_acc) == (0.0, 0.0, 0.0, 0.0)
        assert row.stdev_acc == 0.0

    def test_unranked_everywhere(self):
        user = make_user(ranks=(None, None, None, None))
        assert ignores_accuracy(user)
        assert RankingUser.from_user(user, {}).standard_acc == 0.0

    def test_active_user_keeps_accuracy(self):
        user = make_user(playcounts=(600, 0, 0, 0), ranks=(1000, None, None, None))
        assert not ignores_accuracy(user)

        row = RankingUser.from_user(user, {})

        assert row.standard_acc == 98.0
        assert row.stdev_acc > 0.0


class TestRarestMedal:
    RARITIES = {
        1: MedalRarityEntry(count=5, frequency=50.0),
        2: MedalRarityEntry(count=2, frequency=20.0),
        3: MedalRarityEntry(count=2, frequency=20.0),
    }

    def test_fewest_owners_lowest_id(self):
        user = make_user(medals=[owned(3), owned(1), owned(2), owned(42)])
        assert rarest_medal(user, self.RARITIES).medal_id == 2

    def test_no_known_medal(self):
        user = make_user(medals=[owned(42)])
        assert rarest_medal(user, self.RARITIES) is None

        row = RankingUser.from_user(user, self.RARITIES)

        assert row.rarest_medal_id == 0
        assert row.rarest_medal_achieved == EPOCH
        assert row.medal_count == 1


class TestRankingUser:
    def test_available(self):
        achieved = datetime(2021, 6, 1, tzinfo=timezone.utc)
        user = make_user(
            user_id=7,
            pps=(1000.0, 500.0, 250.0, 100.0),
            ranks=(1000, None, 3000, None),
            medals=[owned(1), owned(2, achieved_at=achieved)],
            badges=[badge("World Cup winner", "https://assets.ppy.sh/b/owc.png")],
        )
        rarities = {1: MedalRarityEntry(5, 50.0), 2: MedalRarityEntry(1, 10.0)}

        row = RankingUser.from_user(user, rarities)

        assert row.id == 7
        assert not row.restricted
        assert row.total_pp == pytest.approx(1850.0)
        assert row.stdev_pp == pytest.approx(robust_total([1000.0, 500.0, 250.0, 100.0]))
        assert row.stdev_pp < row.total_pp
        assert (row.standard_global, row.taiko_global, row.ctb_global, row.mania_global) == (1000, None, 3000, None)
        assert row.rarest_medal_id == 2
        assert row.rarest_medal_achieved == achieved
        assert row.medal_count == 2
        assert row.badge_count == 1

    def test_restricted(self):
        row = RankingUser.from_user(RestrictedUser(42), {1: MedalRarityEntry(1, 100.0)})

        assert row == RankingUser(id=42, restricted=True)
        assert row.total_pp == 0.0
        assert row.stdev_acc == 0.0
        assert row.medal_count == 0
        assert row.standard_global is None
        assert row.rarest_medal_achieved == EPOCH
