"""Profile and identity services."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from fooptra.domain.errors import NotFoundError, ValidationError
from fooptra.domain.profiles import LeaderboardRow, Profile, merge_settings
from fooptra.domain.social import PublicProfile

EDITABLE_FIELDS = ("name", "bio", "location", "avatar_ref")
THEMES = ("light", "dark")


class IdentityProvider(Protocol):
    """Resolves an access token to the signed-in user."""

    def current_user_id(self, access_token: str) -> UUID | None:
        """Return the user id for a valid token, or None."""


class ProfileRepository(Protocol):
    """Persistence interface for profiles."""

    def get_profile(self, user_id: UUID) -> Profile | None:
        """Return a profile by user id, if present."""

    def update_profile(self, user_id: UUID, patch: dict[str, object]) -> Profile:
        """Apply a partial update and return the stored profile."""

    def get_public_profiles(self, user_ids: list[UUID]) -> list[PublicProfile]:
        """Return public profile info for the given users."""

    def search_profiles(self, query: str, limit: int) -> list[PublicProfile]:
        """Return profiles whose name contains the query, case-insensitive."""

    def list_leaderboard(self, limit: int) -> list[LeaderboardRow]:
        """Return visible profiles ordered by points, highest first."""


@dataclass
class ProfileService:
    """Application service for reading and editing the user's profile."""

    repository: ProfileRepository

    def get(self, user_id: UUID) -> Profile:
        """Return the user's profile or raise NotFoundError."""
        profile = self.repository.get_profile(user_id)
        if profile is None:
            raise NotFoundError("Profile not found")
        return profile

    def update_details(self, user_id: UUID, updates: dict[str, object]) -> Profile:
        """Update editable profile fields; counters are never touched here."""
        unknown = set(updates) - set(EDITABLE_FIELDS)
        if unknown:
            fields = ", ".join(sorted(unknown))
            raise ValidationError(f"Fields cannot be edited: {fields}")
        patch = dict(updates)
        if "name" in patch:
            name = str(patch["name"] or "").strip()
            if not name:
                raise ValidationError("Name is required")
            patch["name"] = name
        if not patch:
            return self.get(user_id)
        return self.repository.update_profile(user_id, patch)

    def update_settings(self, user_id: UUID, updates: dict[str, object]) -> Profile:
        """Merge settings updates into the stored settings."""
        profile = self.get(user_id)
        merged = merge_settings(profile.settings, updates)
        return self.repository.update_profile(user_id, {"settings": merged})

    def set_theme(self, user_id: UUID, theme: str) -> Profile:
        """Switch between light and dark appearance."""
        if theme not in THEMES:
            raise ValidationError(f"Unknown theme: {theme!r}")
        return self.update_settings(user_id, {"appearance": {"theme": theme}})
