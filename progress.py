"""
Card progress — completed/bookmarked sets, daily activity, notes and study goals.

Each class owns exactly one collection in the durable store and writes it
back after every mutation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import date, datetime, timedelta
from typing import Any

from gamification import XP_AWARDS
from storage import Collection, DurableStore

logger = logging.getLogger(__name__)

ACTIVITY_RETENTION_DAYS = 90

DEFAULT_GOALS = {
    "dailyCards": 3,
    "weeklyCards": 15,
    "streakGoal": 7,
}


# ── Completion / Bookmark Tracking ─────────────────────────────────────

class ProgressTracker:
    """Completed and bookmarked card sets.

    Toggling is the only way to change membership. ``award_xp`` is called
    exactly once per toggle with the XP delta for that change.
    """

    def __init__(
        self,
        store: DurableStore,
        award_xp: Callable[[int], dict | None] | None = None,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.award_xp = award_xp
        self._now = now
        self.completed: set[str] = set()
        self.bookmarked: set[str] = set()
        self._load()

    def toggle_completed(self, card_id: str) -> dict:
        if card_id in self.completed:
            self.completed.discard(card_id)
            delta = -XP_AWARDS["complete_card"]
        else:
            self.completed.add(card_id)
            delta = XP_AWARDS["complete_card"]
        self._save()
        return {
            "card_id": card_id,
            "completed": card_id in self.completed,
            "xp": self._request_xp(delta),
        }

    def toggle_bookmarked(self, card_id: str) -> dict:
        if card_id in self.bookmarked:
            self.bookmarked.discard(card_id)
            delta = -XP_AWARDS["bookmark_card"]
        else:
            self.bookmarked.add(card_id)
            delta = XP_AWARDS["bookmark_card"]
        self._save()
        return {
            "card_id": card_id,
            "bookmarked": card_id in self.bookmarked,
            "xp": self._request_xp(delta),
        }

    def is_completed(self, card_id: str) -> bool:
        return card_id in self.completed

    def is_bookmarked(self, card_id: str) -> bool:
        return card_id in self.bookmarked

    def reset(self) -> None:
        self.completed = set()
        self.bookmarked = set()
        self.store.clear(Collection.PROGRESS)

    def to_dict(self) -> dict:
        return {
            "completedCards": sorted(self.completed),
            "bookmarks": sorted(self.bookmarked),
        }

    def _request_xp(self, delta: int) -> dict | None:
        if self.award_xp is None:
            return None
        return self.award_xp(delta)

    def _save(self) -> None:
        self.store.write(Collection.PROGRESS, {
            **self.to_dict(),
            "lastUpdated": self._now().isoformat(),
        })

    def _load(self) -> None:
        data = self.store.read(Collection.PROGRESS)
        self.completed = _string_set(data.get("completedCards"))
        self.bookmarked = _string_set(data.get("bookmarks"))


def _string_set(values: Any) -> set[str]:
    if not isinstance(values, list):
        return set()
    return {str(v) for v in values if isinstance(v, (str, int))}


# ── Activity Logging ───────────────────────────────────────────────────

class ActivityLog:
    """Cards completed per calendar day, for daily and weekly goals.

    Stored as ``{"2026-03-10": ["closures", ...]}`` so an un-completion only
    takes back the day on which that card was completed.
    """

    def __init__(self, store: DurableStore, today: Callable[[], date] = date.today) -> None:
        self.store = store
        self._today = today
        self.days: dict[str, list[str]] = {}
        self._load()

    def record_completion(self, card_id: str) -> None:
        cards = self.days.setdefault(self._today().isoformat(), [])
        if card_id not in cards:
            cards.append(card_id)
        self._save()

    def record_uncompletion(self, card_id: str) -> None:
        """Undo today's completion of ``card_id``. Earlier days are left untouched."""
        key = self._today().isoformat()
        cards = self.days.get(key, [])
        if card_id not in cards:
            return
        cards.remove(card_id)
        if not cards:
            del self.days[key]
        self._save()

    def completed_on(self, day: date) -> int:
        return len(self.days.get(day.isoformat(), []))

    def completed_today(self) -> int:
        return self.completed_on(self._today())

    def completed_this_week(self) -> int:
        today = self._today()
        week_start = today - timedelta(days=today.weekday())
        return sum(
            len(cards) for day, cards in self.days.items()
            if week_start.isoformat() <= day <= today.isoformat()
        )

    def reset(self) -> None:
        self.days = {}
        self.store.clear(Collection.ACTIVITY)

    def _save(self) -> None:
        cutoff = (self._today() - timedelta(days=ACTIVITY_RETENTION_DAYS)).isoformat()
        self.days = {d: cards for d, cards in self.days.items() if d >= cutoff}
        self.store.write(Collection.ACTIVITY, self.days)

    def _load(self) -> None:
        for day, cards in self.store.read(Collection.ACTIVITY).items():
            if not isinstance(cards, list):
                continue
            ids = list(dict.fromkeys(str(c) for c in cards if isinstance(c, str)))
            if ids:
                self.days[str(day)] = ids


# ── Notes ──────────────────────────────────────────────────────────────

class NoteStore:
    """Free-text note per card. A missing entry is the only "no note" state."""

    def __init__(self, store: DurableStore) -> None:
        self.store = store
        self.notes: dict[str, str] = {}
        self._load()

    def get_note(self, card_id: str) -> str:
        return self.notes.get(card_id, "")

    def has_note(self, card_id: str) -> bool:
        return card_id in self.notes

    def save_note(self, card_id: str, text: str) -> None:
        if not text or not text.strip():
            self.delete_note(card_id)
            return
        self.notes[card_id] = text
        self._save()

    def delete_note(self, card_id: str) -> None:
        self.notes.pop(card_id, None)
        self._save()

    def reset(self) -> None:
        self.notes = {}
        self.store.clear(Collection.NOTES)

    def _save(self) -> None:
        self.store.write(Collection.NOTES, self.notes)

    def _load(self) -> None:
        for card_id, text in self.store.read(Collection.NOTES).items():
            if isinstance(text, str) and text.strip():
                self.notes[str(card_id)] = text


# ── Study Goals ────────────────────────────────────────────────────────

class StudyGoalTracker:
    """Daily/weekly card targets and the streak goal."""

    def __init__(self, store: DurableStore) -> None:
        self.store = store
        self.goals: dict[str, int] = dict(DEFAULT_GOALS)
        self._load()

    def update_goals(self, partial: Mapping[str, Any]) -> dict[str, int]:
        """Merge new targets. Every target must be a positive integer."""
        updates = {}
        for key, value in partial.items():
            if key not in DEFAULT_GOALS:
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{key} must be a positive integer")
            updates[key] = value
        self.goals.update(updates)
        self.store.write(Collection.GOALS, self.goals)
        return self.goals

    def check_daily_goal(self, completed_today: int) -> dict:
        return _goal_status(completed_today, self.goals["dailyCards"])

    def check_weekly_goal(self, completed_this_week: int) -> dict:
        return _goal_status(completed_this_week, self.goals["weeklyCards"])

    def check_streak_goal(self, streak: int) -> dict:
        return _goal_status(streak, self.goals["streakGoal"])

    def _load(self) -> None:
        data = self.store.read(Collection.GOALS)
        if data is None:
            return
        for key in DEFAULT_GOALS:
            value = data.get(key)
            if isinstance(value, int) and not isinstance(value, bool) and value > 0:
                self.goals[key] = value


def _goal_status(current: int, target: int) -> dict:
    return {
        "met": current >= target,
        "progress": min(100.0, current / target * 100),
        "target": target,
        "current": current,
    }
