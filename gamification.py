"""
User profile, XP/level, login streaks and achievements.

The profile is persisted as one record in the ``profile`` collection, the
unlocked achievements in ``achievements``. Level is always derived from XP
inside ProfileStore; callers never set it.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Optional
from urllib.parse import quote

from storage import Collection, DurableStore

logger = logging.getLogger(__name__)

XP_PER_LEVEL = 100

XP_AWARDS = {
    "complete_card": 10,
    "bookmark_card": 5,
}


def level_for_xp(xp: int) -> int:
    """Level = floor(xp / 100) + 1"""
    return max(0, xp) // XP_PER_LEVEL + 1


# ── User Profile ───────────────────────────────────────────────────────

# wire/storage name -> attribute name
_FIELD_NAMES = {
    "id": "id",
    "name": "name",
    "email": "email",
    "avatar": "avatar",
    "xp": "xp",
    "streak": "streak",
    "longestStreak": "longest_streak",
    "lastActiveDate": "last_active_date",
    "joinedAt": "joined_at",
    "lastLogin": "last_login",
}
_DERIVED_FIELDS = {"level"}
_COUNTER_FIELDS = {"xp", "streak", "longest_streak"}
# fields a user may edit directly; the rest move only through XP and streak updates
_IDENTITY_FIELDS = {"name", "email", "avatar"}


def _default_avatar(name: str) -> str:
    return f"https://ui-avatars.com/api/?name={quote(name or 'User')}&background=667eea&color=fff"


@dataclass
class UserProfile:
    id: str
    name: str
    email: str
    avatar: str = ""
    xp: int = 0
    level: int = 1
    streak: int = 0
    longest_streak: int = 0
    last_active_date: str = ""  # "2026-02-16"
    joined_at: str = ""
    last_login: str = ""

    @property
    def xp_into_level(self) -> int:
        return self.xp % XP_PER_LEVEL

    @property
    def level_progress_pct(self) -> int:
        return int(self.xp_into_level / XP_PER_LEVEL * 100)

    def to_dict(self) -> dict:
        data = {wire: getattr(self, attr) for wire, attr in _FIELD_NAMES.items()}
        data["level"] = self.level
        return data

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> UserProfile:
        """Build a profile from a stored record, reconciling level with xp."""
        xp = max(0, int(data.get("xp") or 0))
        streak = max(0, int(data.get("streak") or 0))
        return UserProfile(
            id=str(data["id"]),
            name=str(data.get("name") or "Learner"),
            email=str(data.get("email") or ""),
            avatar=str(data.get("avatar") or ""),
            xp=xp,
            level=level_for_xp(xp),
            streak=streak,
            longest_streak=max(streak, int(data.get("longestStreak") or 0)),
            last_active_date=str(data.get("lastActiveDate") or ""),
            joined_at=str(data.get("joinedAt") or ""),
            last_login=str(data.get("lastLogin") or ""),
        )


class ProfileStore:
    """Owns the logged-in user's profile and the ``profile`` collection."""

    def __init__(self, store: DurableStore, now: Callable[[], datetime] = datetime.now) -> None:
        self.store = store
        self._now = now
        self.profile: Optional[UserProfile] = None

    def load(self) -> Optional[UserProfile]:
        data = self.store.read(Collection.PROFILE)
        if data is None:
            self.profile = None
            return None
        try:
            self.profile = UserProfile.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring corrupt profile record: %s", e)
            self.profile = None
        return self.profile

    def login(self, seed: Mapping[str, Any] | None = None) -> UserProfile:
        """Create a profile from ``seed``, or restore the stored one with the same email."""
        seed = dict(seed or {})
        now = self._now().isoformat()

        stored = self.profile or self.load()
        email = seed.get("email")
        if stored is not None and email and stored.email == email:
            profile = stored
            for key in ("name", "avatar"):
                if seed.get(key):
                    setattr(profile, key, str(seed[key]))
        else:
            user_id = str(seed.get("id") or uuid.uuid4().hex)
            name = str(seed.get("name") or "Learner")
            profile = UserProfile(
                id=user_id,
                name=name,
                email=str(email or f"user{user_id}@example.com"),
                avatar=str(seed.get("avatar") or _default_avatar(name)),
                joined_at=str(seed.get("joinedAt") or ""),
            )

        if not profile.joined_at:
            profile.joined_at = now
        profile.last_login = now
        profile.level = level_for_xp(profile.xp)
        self.profile = profile
        self._save()
        logger.info("Logged in as %s (level %d)", profile.name, profile.level)
        return profile

    def logout(self) -> None:
        self.profile = None
        self.store.clear(Collection.PROFILE)

    def apply_xp_delta(self, delta: int) -> dict | None:
        """Add ``delta`` XP (floored at zero) and re-derive level.

        Returns None when nobody is logged in.
        """
        profile = self.profile
        if profile is None:
            return None

        old_level = profile.level
        new_xp = max(0, profile.xp + delta)
        applied = new_xp - profile.xp
        profile.xp = new_xp
        profile.level = level_for_xp(new_xp)
        self._save()

        result = {"xp_delta": applied, "total_xp": profile.xp, "level": profile.level}
        if profile.level > old_level:
            result["level_up"] = profile.level
            logger.info("Level up: %s reached level %d", profile.name, profile.level)
        return result

    def update_identity(self, partial: Mapping[str, Any]) -> UserProfile:
        """Apply a user edit: only name, email and avatar may change."""
        attr_names = set(_FIELD_NAMES.values())
        for key in partial:
            attr = _FIELD_NAMES.get(key, key)
            if attr in attr_names and attr not in _IDENTITY_FIELDS:
                raise ValueError(f"Profile field is read-only: {key}")
        return self.update_fields(partial)

    def update_fields(self, partial: Mapping[str, Any] | None = None, **fields: Any) -> UserProfile:
        """Merge profile fields. ``level`` is ignored; it is always derived.

        Raises ValueError for unknown fields and for values of the wrong type.
        """
        profile = self.profile
        if profile is None:
            raise ValueError("No profile is logged in")

        updates = {**(partial or {}), **fields}
        changes = {}
        attr_names = set(_FIELD_NAMES.values())
        for key, value in updates.items():
            if key in _DERIVED_FIELDS:
                continue
            attr = _FIELD_NAMES.get(key, key)
            if attr not in attr_names:
                raise ValueError(f"Unknown profile field: {key}")
            if attr in _COUNTER_FIELDS:
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ValueError(f"{key} must be an integer")
                value = max(0, value)
            elif not isinstance(value, str):
                raise ValueError(f"{key} must be a string")
            changes[attr] = value

        for attr, value in changes.items():
            setattr(profile, attr, value)
        profile.level = level_for_xp(profile.xp)
        profile.longest_streak = max(profile.longest_streak, profile.streak)
        self._save()
        return profile

    def _save(self) -> None:
        if self.profile is not None:
            self.store.write(Collection.PROFILE, self.profile.to_dict())


# ── Streaks ────────────────────────────────────────────────────────────

class StreakCalculator:
    """Advances the consecutive-day streak stored on the profile."""

    def __init__(self, profiles: ProfileStore, today: Callable[[], date] = date.today) -> None:
        self.profiles = profiles
        self._today = today

    def check(self) -> int:
        """Run the once-per-day streak update. Returns the current streak."""
        profile = self.profiles.profile
        if profile is None:
            return 0

        today = self._today()
        last = _parse_date(profile.last_active_date)

        if last == today:
            return profile.streak
        if last == today - timedelta(days=1):
            streak = profile.streak + 1
        else:
            # Gap of 2+ days, never active, or a last-active date in the future
            streak = 1

        self.profiles.update_fields(streak=streak, last_active_date=today.isoformat())
        return streak


def _parse_date(value: str) -> date | None:
    if not value or not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


# ── Achievements ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class AggregateStats:
    completed_count: int = 0
    bookmarked_count: int = 0
    total_units: int = 0
    categories_fully_completed: int = 0
    total_categories: int = 0
    streak: int = 0


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    title: str
    description: str
    icon: str
    xp_reward: int
    condition: Callable[[AggregateStats], bool] = field(compare=False, repr=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "icon": self.icon,
            "xp": self.xp_reward,
        }


ACHIEVEMENTS: tuple[AchievementDefinition, ...] = (
    AchievementDefinition("first-steps", "First Steps", "Complete your first card", "fa-shoe-prints", 10,
                          lambda s: s.completed_count >= 1),
    AchievementDefinition("getting-started", "Getting Started", "Complete 5 cards", "fa-play", 25,
                          lambda s: s.completed_count >= 5),
    AchievementDefinition("dedicated-learner", "Dedicated Learner", "Complete 10 cards", "fa-book", 50,
                          lambda s: s.completed_count >= 10),
    AchievementDefinition("knowledge-seeker", "Knowledge Seeker", "Complete 25 cards", "fa-brain", 100,
                          lambda s: s.completed_count >= 25),
    AchievementDefinition("scholar", "Scholar", "Complete 50 cards", "fa-graduation-cap", 200,
                          lambda s: s.completed_count >= 50),
    AchievementDefinition("bookworm", "Bookworm", "Bookmark your first card", "fa-bookmark", 5,
                          lambda s: s.bookmarked_count >= 1),
    AchievementDefinition("curator", "Curator", "Bookmark 10 cards", "fa-layer-group", 25,
                          lambda s: s.bookmarked_count >= 10),
    AchievementDefinition("on-fire", "On Fire", "Keep a 3-day streak", "fa-fire", 30,
                          lambda s: s.streak >= 3),
    AchievementDefinition("week-warrior", "Week Warrior", "Keep a 7-day streak", "fa-calendar-week", 75,
                          lambda s: s.streak >= 7),
    AchievementDefinition("monthly-master", "Monthly Master", "Keep a 30-day streak", "fa-medal", 300,
                          lambda s: s.streak >= 30),
    AchievementDefinition("category-master", "Category Master", "Complete every card in a category",
                          "fa-trophy", 100, lambda s: s.categories_fully_completed >= 1),
    AchievementDefinition("polymath", "Polymath", "Complete every category", "fa-globe", 500,
                          lambda s: s.total_categories > 0
                          and s.categories_fully_completed >= s.total_categories),
    AchievementDefinition("halfway-there", "Halfway There", "Complete half of all cards", "fa-flag", 150,
                          lambda s: s.total_units > 0 and s.completed_count * 2 >= s.total_units),
    AchievementDefinition("completionist", "Completionist", "Complete every card", "fa-crown", 1000,
                          lambda s: s.total_units > 0 and s.completed_count >= s.total_units),
)


class AchievementEngine:
    """Unlocks achievements exactly once; the unlocked set only ever grows."""

    def __init__(
        self,
        store: DurableStore,
        definitions: tuple[AchievementDefinition, ...] = ACHIEVEMENTS,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.definitions = definitions
        self._now = now
        self.unlocked: dict[str, str] = {}  # id -> unlockedAt
        self._load()

    def evaluate(self, stats: AggregateStats) -> list[AchievementDefinition]:
        """Unlock every not-yet-unlocked achievement whose condition holds.

        Returns only the newly unlocked definitions.
        """
        newly = [
            a for a in self.definitions
            if a.id not in self.unlocked and a.condition(stats)
        ]
        if not newly:
            return []

        unlocked_at = self._now().isoformat()
        for achievement in newly:
            self.unlocked[achievement.id] = unlocked_at
            logger.info("Achievement unlocked: %s", achievement.title,
                        extra={"achievement_id": achievement.id})
        self._save()
        return newly

    def is_unlocked(self, achievement_id: str) -> bool:
        return achievement_id in self.unlocked

    def get_definition(self, achievement_id: str) -> AchievementDefinition | None:
        for a in self.definitions:
            if a.id == achievement_id:
                return a
        return None

    def achievement_progress(self, achievement_id: str) -> dict | None:
        achievement = self.get_definition(achievement_id)
        if achievement is None:
            return None
        return {
            **achievement.to_dict(),
            "unlocked": self.is_unlocked(achievement_id),
            "unlockedAt": self.unlocked.get(achievement_id),
        }

    def unlocked_list(self) -> list[dict]:
        return [{"id": a_id, "unlockedAt": at} for a_id, at in self.unlocked.items()]

    def reset(self) -> None:
        self.unlocked = {}
        self.store.clear(Collection.ACHIEVEMENTS)

    def _save(self) -> None:
        # Each entry carries its unlock time; _load also accepts a plain list of ids
        self.store.write(Collection.ACHIEVEMENTS, self.unlocked_list())

    def _load(self) -> None:
        for entry in self.store.read(Collection.ACHIEVEMENTS):
            if isinstance(entry, str):
                self.unlocked.setdefault(entry, "")
            elif isinstance(entry, dict) and entry.get("id"):
                self.unlocked.setdefault(str(entry["id"]), str(entry.get("unlockedAt") or ""))
