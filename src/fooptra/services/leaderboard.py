"""Leaderboard ranking."""

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

from fooptra.domain.profiles import LeaderboardRow
from fooptra.services.profiles import ProfileRepository
from fooptra.services.social import SocialGraphService

LEADERBOARD_LIMIT = 100


class LeaderboardScope(StrEnum):
    """Which users the board is ranked against."""

    GLOBAL = "global"
    FRIENDS = "friends"


def rank(user_id: UUID, rows: list[LeaderboardRow]) -> int:
    """Return the 1-based position of the user in rows, or 0 when absent.

    Rows are taken in the order given; the store already sorted them.
    """
    for position, row in enumerate(rows, start=1):
        if row.id == user_id:
            return position
    return 0


def filter_friends(
    rows: list[LeaderboardRow], friend_ids: set[UUID]
) -> list[LeaderboardRow]:
    """Keep rows of the given users, preserving their relative order."""
    return [row for row in rows if row.id in friend_ids]


@dataclass(frozen=True)
class LeaderboardView:
    """Rows for one scope with the viewer's rank within that scope."""

    scope: LeaderboardScope
    rows: list[LeaderboardRow]
    viewer_rank: int


@dataclass
class LeaderboardService:
    """Builds global and friends leaderboards."""

    profile_repository: ProfileRepository
    social_service: SocialGraphService
    limit: int = LEADERBOARD_LIMIT

    def board(
        self, viewer_id: UUID, scope: LeaderboardScope = LeaderboardScope.GLOBAL
    ) -> LeaderboardView:
        """Return the board for a scope; ranks are positions in that scope."""
        rows = self.profile_repository.list_leaderboard(self.limit)
        if scope == LeaderboardScope.FRIENDS:
            members = self.social_service.friend_ids(viewer_id) | {viewer_id}
            rows = filter_friends(rows, members)
        return LeaderboardView(
            scope=scope, rows=rows, viewer_rank=rank(viewer_id, rows)
        )
