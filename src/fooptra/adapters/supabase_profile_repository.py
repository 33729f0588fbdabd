"""Supabase repository for profiles."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from fooptra.adapters.supabase_errors import execute
from fooptra.domain.errors import NotFoundError
from fooptra.domain.profiles import LeaderboardRow, Profile
from fooptra.domain.social import PublicProfile
from fooptra.services.profiles import ProfileRepository

_PROFILE_COLUMNS = (
    "id, name, avatar_url, bio, location, total_points, level, "
    "current_streak, longest_streak, settings"
)
_PUBLIC_COLUMNS = "id, name, avatar_url, total_points, level"
_LEADERBOARD_COLUMNS = (
    "id, name, avatar_url, total_points, level, current_streak, settings"
)
_FIELD_COLUMNS = {"avatar_ref": "avatar_url"}


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so the text only matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass
class SupabaseProfileRepository(ProfileRepository):
    """Supabase implementation for profiles."""

    client: Client

    def get_profile(self, user_id: UUID) -> Profile | None:
        """Return a full profile row."""
        response = execute(
            self.client.table("profiles")
            .select(_PROFILE_COLUMNS)
            .eq("id", str(user_id))
            .limit(1),
            "load profile",
        )
        if not response.data:
            return None
        return _parse_profile(response.data[0])

    def update_profile(self, user_id: UUID, patch: dict[str, object]) -> Profile:
        """Update profile columns and return the stored row."""
        payload = {_FIELD_COLUMNS.get(key, key): value for key, value in patch.items()}
        response = execute(
            self.client.table("profiles").update(payload).eq("id", str(user_id)),
            "update profile",
        )
        if not response.data:
            raise NotFoundError("Profile not found")
        return _parse_profile(response.data[0])

    def get_public_profiles(self, user_ids: list[UUID]) -> list[PublicProfile]:
        """Return public info for several users in one request."""
        if not user_ids:
            return []
        response = execute(
            self.client.table("profiles")
            .select(_PUBLIC_COLUMNS)
            .in_("id", [str(user_id) for user_id in user_ids]),
            "load profiles",
        )
        return [_parse_public(row) for row in response.data or []]

    def search_profiles(self, query: str, limit: int) -> list[PublicProfile]:
        """Case-insensitive substring search on names."""
        response = execute(
            self.client.table("profiles")
            .select(_PUBLIC_COLUMNS)
            .ilike("name", f"%{escape_like(query)}%")
            .order("name", desc=False)
            .limit(limit),
            "search profiles",
        )
        return [_parse_public(row) for row in response.data or []]

    def list_leaderboard(self, limit: int) -> list[LeaderboardRow]:
        """Return the top profiles by points, ties broken by id."""
        response = execute(
            self.client.table("profiles")
            .select(_LEADERBOARD_COLUMNS)
            .order("total_points", desc=True)
            .order("id", desc=False)
            .limit(limit),
            "load leaderboard",
        )
        rows = []
        for row in response.data or []:
            settings = row.get("settings") or {}
            privacy = settings.get("privacy") or {}
            if privacy.get("show_on_leaderboard", True) is False:
                continue
            rows.append(
                LeaderboardRow(
                    id=UUID(str(row["id"])),
                    name=str(row.get("name") or ""),
                    avatar_ref=row.get("avatar_url"),
                    total_points=int(row.get("total_points") or 0),
                    level=int(row.get("level") or 1),
                    current_streak=int(row.get("current_streak") or 0),
                )
            )
        return rows


def _parse_profile(row: dict[str, object]) -> Profile:
    return Profile(
        id=UUID(str(row["id"])),
        name=str(row.get("name") or ""),
        avatar_ref=row.get("avatar_url"),
        bio=str(row.get("bio") or ""),
        location=str(row.get("location") or ""),
        total_points=int(row.get("total_points") or 0),
        level=int(row.get("level") or 1),
        current_streak=int(row.get("current_streak") or 0),
        longest_streak=int(row.get("longest_streak") or 0),
        settings=row.get("settings") or {},
    )


def _parse_public(row: dict[str, object]) -> PublicProfile:
    return PublicProfile(
        id=UUID(str(row["id"])),
        name=str(row.get("name") or ""),
        avatar_ref=row.get("avatar_url"),
        total_points=int(row.get("total_points") or 0),
        level=int(row.get("level") or 1),
    )
