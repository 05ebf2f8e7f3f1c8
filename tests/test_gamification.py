"""Tests for gamification.py — profile XP/level, streaks and the achievement engine."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from conftest import TODAY
from gamification import (
    ACHIEVEMENTS,
    AchievementDefinition,
    AchievementEngine,
    AggregateStats,
    ProfileStore,
    StreakCalculator,
    UserProfile,
    level_for_xp,
)
from storage import Collection


@pytest.fixture
def profiles(store, clock):
    p = ProfileStore(store, now=clock.now)
    p.login({"id": "u1", "name": "Ada", "email": "ada@example.com"})
    return p


@pytest.fixture
def streaks(profiles, clock):
    return StreakCalculator(profiles, today=clock.today)


class TestLevelFormula:
    def test_level_from_xp(self):
        """Level = floor(xp / 100) + 1"""
        cases = [(0, 1), (99, 1), (100, 2), (250, 3), (1000, 11)]
        for xp, expected in cases:
            assert level_for_xp(xp) == expected, f"XP={xp} should be level {expected}"

    def test_level_progress(self):
        profile = UserProfile(id="u", name="A", email="a@x", xp=250, level=3)
        assert profile.xp_into_level == 50
        assert profile.level_progress_pct == 50


class TestProfileXp:
    def test_apply_delta_recomputes_level(self, profiles):
        result = profiles.apply_xp_delta(120)
        assert result == {"xp_delta": 120, "total_xp": 120, "level": 2, "level_up": 2}
        assert profiles.profile.level == 2

    def test_xp_never_negative(self, profiles):
        profiles.apply_xp_delta(5)
        for _ in range(10):
            result = profiles.apply_xp_delta(-10)
        assert profiles.profile.xp == 0
        assert result["xp_delta"] == 0

    def test_level_tracks_xp_after_any_sequence(self, profiles):
        for delta in (10, 95, -30, 250, -1000, 40, 60, -5):
            profiles.apply_xp_delta(delta)
            p = profiles.profile
            assert p.xp >= 0
            assert p.level == p.xp // 100 + 1

    def test_no_profile_means_no_xp(self, store):
        assert ProfileStore(store).apply_xp_delta(10) is None

    def test_xp_persisted(self, profiles, store):
        profiles.apply_xp_delta(30)
        assert store.read(Collection.PROFILE)["xp"] == 30


class TestLogin:
    def test_new_profile_defaults(self, profiles, clock):
        p = profiles.profile
        assert (p.xp, p.level, p.streak) == (0, 1, 0)
        assert p.joined_at == clock.now().isoformat()
        assert p.last_login == clock.now().isoformat()
        assert "ui-avatars.com" in p.avatar

    def test_missing_seed_fields_are_generated(self, store):
        p = ProfileStore(store).login({})
        assert p.name == "Learner"
        assert p.email == f"user{p.id}@example.com"

    def test_seed_level_is_ignored(self, store):
        p = ProfileStore(store).login({"email": "x@example.com", "xp": 5, "level": 9})
        assert p.level == 1

    def test_same_email_restores_progress(self, profiles, store, clock):
        profiles.apply_xp_delta(150)
        joined = profiles.profile.joined_at

        clock.current = TODAY + timedelta(days=2)
        restored = ProfileStore(store, now=clock.now).login({"email": "ada@example.com", "name": "Ada L."})
        assert restored.xp == 150
        assert restored.level == 2
        assert restored.name == "Ada L."
        assert restored.joined_at == joined
        assert restored.last_login == clock.now().isoformat()

    def test_different_email_starts_fresh(self, profiles, store):
        profiles.apply_xp_delta(150)
        p = ProfileStore(store).login({"email": "grace@example.com"})
        assert p.xp == 0

    def test_logout_clears_store(self, profiles, store):
        profiles.logout()
        assert profiles.profile is None
        assert store.read(Collection.PROFILE) is None

    def test_load_reconciles_level(self, store):
        store.write(Collection.PROFILE, {"id": "u", "name": "A", "email": "a@x", "xp": 340, "level": 1})
        assert ProfileStore(store).load().level == 4

    def test_corrupt_profile_loads_as_none(self, store):
        store.write(Collection.PROFILE, {"name": "no id", "xp": "lots"})
        assert ProfileStore(store).load() is None


class TestUpdateFields:
    def test_rename(self, profiles, store):
        profiles.update_fields({"name": "Countess"})
        assert store.read(Collection.PROFILE)["name"] == "Countess"

    def test_level_cannot_be_set(self, profiles):
        profiles.update_fields({"level": 50})
        assert profiles.profile.level == 1

    def test_xp_update_rederives_level(self, profiles):
        profiles.update_fields(xp=420)
        assert profiles.profile.level == 5

    def test_camel_and_snake_case(self, profiles):
        profiles.update_fields({"lastActiveDate": "2026-03-01"})
        assert profiles.profile.last_active_date == "2026-03-01"
        profiles.update_fields(last_active_date="2026-03-02")
        assert profiles.profile.to_dict()["lastActiveDate"] == "2026-03-02"

    def test_unknown_field_rejected(self, profiles):
        with pytest.raises(ValueError):
            profiles.update_fields({"password": "hunter2"})

    def test_requires_login(self, store):
        with pytest.raises(ValueError):
            ProfileStore(store).update_fields({"name": "x"})

    @pytest.mark.parametrize("field, value", [
        ("xp", None), ("xp", "10"), ("streak", True), ("longestStreak", 2.5),
        ("lastActiveDate", 20260309), ("name", None),
    ])
    def test_wrong_type_rejected(self, profiles, field, value):
        with pytest.raises(ValueError):
            profiles.update_fields({field: value})
        assert profiles.profile.xp == 0
        assert profiles.profile.last_active_date == ""

    def test_rejected_update_changes_nothing(self, profiles):
        with pytest.raises(ValueError):
            profiles.update_fields({"name": "Countess", "xp": "lots"})
        assert profiles.profile.name == "Ada"


class TestUpdateIdentity:
    def test_identity_fields(self, profiles):
        p = profiles.update_identity({"name": "Countess", "email": "c@example.com", "level": 9})
        assert (p.name, p.email, p.level) == ("Countess", "c@example.com", 1)

    @pytest.mark.parametrize("field", ["xp", "streak", "longestStreak", "last_active_date", "joinedAt", "id"])
    def test_progress_fields_are_read_only(self, profiles, field):
        with pytest.raises(ValueError, match="read-only"):
            profiles.update_identity({field: 5})

    def test_unknown_field(self, profiles):
        with pytest.raises(ValueError, match="Unknown"):
            profiles.update_identity({"password": "x"})


class TestStreak:
    def test_new_user_starts_at_one(self, streaks, profiles):
        assert streaks.check() == 1
        assert profiles.profile.last_active_date == TODAY.isoformat()

    def test_same_day_is_noop(self, streaks, profiles):
        streaks.check()
        assert streaks.check() == 1
        assert profiles.profile.streak == 1

    def test_yesterday_continues(self, streaks, profiles):
        profiles.update_fields(streak=4, last_active_date=(TODAY - timedelta(days=1)).isoformat())
        assert streaks.check() == 5
        assert profiles.profile.last_active_date == TODAY.isoformat()

    def test_gap_resets(self, streaks, profiles):
        profiles.update_fields(streak=4, last_active_date=(TODAY - timedelta(days=3)).isoformat())
        assert streaks.check() == 1

    def test_future_date_resets(self, streaks, profiles):
        profiles.update_fields(streak=4, last_active_date=(TODAY + timedelta(days=1)).isoformat())
        assert streaks.check() == 1

    def test_unparseable_date_counts_as_unset(self, streaks, profiles):
        profiles.update_fields(streak=9, last_active_date="Tue Mar 10 2026")
        assert streaks.check() == 1

    def test_consecutive_days(self, streaks, profiles, clock):
        for offset in range(4):
            clock.current = TODAY + timedelta(days=offset)
            streaks.check()
        assert profiles.profile.streak == 4
        assert profiles.profile.longest_streak == 4

    def test_longest_streak_survives_reset(self, streaks, profiles, clock):
        profiles.update_fields(streak=6, last_active_date=(TODAY - timedelta(days=1)).isoformat())
        streaks.check()
        clock.current = TODAY + timedelta(days=5)
        streaks.check()
        assert profiles.profile.streak == 1
        assert profiles.profile.longest_streak == 7

    def test_no_profile(self, store):
        assert StreakCalculator(ProfileStore(store), today=lambda: date(2026, 1, 1)).check() == 0


class TestAchievementEngine:
    FIVE = AchievementDefinition("five", "Five", "Complete 5", "fa-star", 25,
                                 lambda s: s.completed_count >= 5)

    def test_fires_exactly_once(self, store):
        engine = AchievementEngine(store, definitions=(self.FIVE,))
        assert engine.evaluate(AggregateStats(completed_count=4)) == []
        assert engine.evaluate(AggregateStats(completed_count=5)) == [self.FIVE]
        assert engine.evaluate(AggregateStats(completed_count=5)) == []

    def test_never_revoked(self, store):
        engine = AchievementEngine(store)
        sizes = []
        for count in (12, 3, 0, 6, 1):
            engine.evaluate(AggregateStats(completed_count=count, streak=count))
            sizes.append(len(engine.unlocked))
        assert sizes == sorted(sizes)
        assert engine.is_unlocked("dedicated-learner")

    def test_batch_unlock(self, store):
        engine = AchievementEngine(store)
        newly = engine.evaluate(AggregateStats(completed_count=10, bookmarked_count=1))
        assert {a.id for a in newly} == {
            "first-steps", "getting-started", "dedicated-learner", "bookworm",
        }

    def test_persisted_and_restored(self, store, clock):
        engine = AchievementEngine(store, now=clock.now)
        engine.evaluate(AggregateStats(completed_count=1))
        assert store.read(Collection.ACHIEVEMENTS) == [
            {"id": "first-steps", "unlockedAt": clock.now().isoformat()},
        ]
        reloaded = AchievementEngine(store)
        assert reloaded.evaluate(AggregateStats(completed_count=1)) == []

    def test_legacy_id_list(self, store):
        store.write(Collection.ACHIEVEMENTS, ["first-steps", {"bogus": True}])
        engine = AchievementEngine(store)
        assert engine.is_unlocked("first-steps")
        assert len(engine.unlocked) == 1

    def test_catalog_wide_conditions(self, store):
        engine = AchievementEngine(store)
        stats = AggregateStats(completed_count=5, total_units=5,
                               categories_fully_completed=2, total_categories=2)
        ids = {a.id for a in engine.evaluate(stats)}
        assert {"category-master", "polymath", "halfway-there", "completionist"} <= ids

    def test_empty_catalog_unlocks_nothing_catalog_wide(self, store):
        engine = AchievementEngine(store)
        assert engine.evaluate(AggregateStats()) == []

    def test_achievement_progress(self, store):
        engine = AchievementEngine(store)
        engine.evaluate(AggregateStats(bookmarked_count=1))
        info = engine.achievement_progress("bookworm")
        assert info["unlocked"] is True
        assert info["xp"] == 5
        assert engine.achievement_progress("curator")["unlocked"] is False
        assert engine.achievement_progress("nope") is None

    def test_ids_are_unique(self):
        ids = [a.id for a in ACHIEVEMENTS]
        assert len(ids) == len(set(ids))
