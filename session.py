"""
Wires the progress, profile, streak and achievement stores into one LearningSession.

Every operation follows the same order: mutate the owning store, derive the
dependent values (level, streak, achievements), and let each store persist
itself before returning. Aggregate stats are computed on demand and never cached.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import date, datetime
from typing import Any

from catalog import Catalog
from gamification import (
    AchievementEngine,
    AggregateStats,
    ProfileStore,
    StreakCalculator,
    UserProfile,
)
from preferences import ExpandedCards, SearchHistory, ThemePreference
from progress import ActivityLog, NoteStore, ProgressTracker, StudyGoalTracker
from storage import DurableStore

logger = logging.getLogger(__name__)


class LearningSession:
    def __init__(
        self,
        store: DurableStore,
        catalog: Catalog | None = None,
        today: Callable[[], date] = date.today,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.catalog = catalog or Catalog()
        self.profiles = ProfileStore(store, now=now)
        self.progress = ProgressTracker(store, award_xp=self.profiles.apply_xp_delta, now=now)
        self.streaks = StreakCalculator(self.profiles, today=today)
        self.activity = ActivityLog(store, today=today)
        self.notes = NoteStore(store)
        self.goals = StudyGoalTracker(store)
        self.achievements = AchievementEngine(store, now=now)
        self.theme = ThemePreference(store)
        self.search_history = SearchHistory(store)
        self.expanded = ExpandedCards(store)

    @property
    def profile(self) -> UserProfile | None:
        return self.profiles.profile

    def start(self) -> list[dict]:
        """Restore the profile, run the daily streak check, and evaluate achievements."""
        if self.profiles.load() is not None:
            self.streaks.check()
        return self._evaluate_achievements()

    def stats(self) -> AggregateStats:
        completed = self.progress.completed
        profile = self.profiles.profile
        return AggregateStats(
            completed_count=len(completed),
            bookmarked_count=len(self.progress.bookmarked),
            total_units=self.catalog.total_units,
            categories_fully_completed=self.catalog.categories_fully_completed(completed),
            total_categories=sum(1 for c in self.catalog.categories if c.cards),
            streak=profile.streak if profile else 0,
        )

    # ── Profile ────────────────────────────────────────────────────────

    def login(self, seed: Mapping[str, Any] | None = None) -> dict:
        profile = self.profiles.login(seed)
        self.streaks.check()
        return {
            "profile": profile.to_dict(),
            "new_achievements": self._evaluate_achievements(),
        }

    def logout(self) -> None:
        self.profiles.logout()

    def update_profile(self, partial: Mapping[str, Any]) -> UserProfile:
        return self.profiles.update_identity(partial)

    # ── Cards ──────────────────────────────────────────────────────────

    def toggle_completed(self, card_id: str) -> dict:
        result = self.progress.toggle_completed(card_id)
        if result["completed"]:
            self.activity.record_completion(card_id)
            self.streaks.check()
        else:
            self.activity.record_uncompletion(card_id)
        result["streak"] = self.profile.streak if self.profile else 0
        result["new_achievements"] = self._evaluate_achievements()
        return result

    def toggle_bookmarked(self, card_id: str) -> dict:
        result = self.progress.toggle_bookmarked(card_id)
        result["new_achievements"] = self._evaluate_achievements()
        return result

    def reset_progress(self) -> None:
        """Forget all progress, notes and achievements; keep identity and goals."""
        self.progress.reset()
        self.activity.reset()
        self.notes.reset()
        self.achievements.reset()
        if self.profile is not None:
            self.profiles.update_fields(xp=0, streak=0, longest_streak=0, last_active_date="")
        logger.info("Progress reset")

    # ── Goals & dashboard ──────────────────────────────────────────────

    def goal_status(self) -> dict:
        return {
            "daily": self.goals.check_daily_goal(self.activity.completed_today()),
            "weekly": self.goals.check_weekly_goal(self.activity.completed_this_week()),
            "streak": self.goals.check_streak_goal(self.stats().streak),
        }

    def dashboard(self) -> dict:
        stats = self.stats()
        profile = self.profile
        return {
            "profile": profile.to_dict() if profile else None,
            "level_progress_pct": profile.level_progress_pct if profile else 0,
            "stats": {
                "completedCount": stats.completed_count,
                "bookmarkedCount": stats.bookmarked_count,
                "totalUnits": stats.total_units,
                "categoriesFullyCompleted": stats.categories_fully_completed,
                "streak": stats.streak,
            },
            "overall_progress": self.catalog.overall_progress(self.progress.completed),
            "category_progress": self.catalog.category_progress(self.progress.completed),
            "goals": self.goal_status(),
            "achievements": {
                "unlocked": self.achievements.unlocked_list(),
                "total": len(self.achievements.definitions),
            },
        }

    def _evaluate_achievements(self) -> list[dict]:
        return [a.to_dict() for a in self.achievements.evaluate(self.stats())]
