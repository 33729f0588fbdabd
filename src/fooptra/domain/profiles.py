"""Profile and leaderboard domain models."""

from dataclasses import dataclass, field
from uuid import UUID

from fooptra.domain.errors import ValidationError

DEFAULT_SETTINGS: dict[str, dict[str, object]] = {
    "notifications": {"email": True, "push": True},
    "privacy": {"profile_visible": True, "show_on_leaderboard": True},
    "appearance": {"theme": "light", "language": "en"},
}


def merge_settings(
    base: dict[str, object], updates: dict[str, object]
) -> dict[str, object]:
    """Deep-merge settings updates into a copy of the base settings."""
    merged: dict[str, object] = dict(base)
    for key, value in updates.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_settings(current, value)
        else:
            merged[key] = value
    return merged


@dataclass(frozen=True)
class Profile:
    """User profile with the gamification counters kept by the store."""

    id: UUID
    name: str
    avatar_ref: str | None = None
    bio: str = ""
    location: str = ""
    total_points: int = 0
    level: int = 1
    current_streak: int = 0
    longest_streak: int = 0
    settings: dict[str, object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.total_points < 0:
            raise ValidationError("total_points must be non-negative")
        if self.level < 1:
            raise ValidationError("level must be at least 1")
        object.__setattr__(
            self, "settings", merge_settings(DEFAULT_SETTINGS, self.settings)
        )

    @property
    def shows_on_leaderboard(self) -> bool:
        privacy = self.settings.get("privacy")
        if isinstance(privacy, dict):
            return bool(privacy.get("show_on_leaderboard", True))
        return True


@dataclass(frozen=True)
class LeaderboardRow:
    """Public score projection of a profile."""

    id: UUID
    name: str
    avatar_ref: str | None
    total_points: int
    level: int
    current_streak: int
