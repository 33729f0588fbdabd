"""Tests for leaderboard ranking."""

from uuid import UUID

from fooptra.domain.profiles import LeaderboardRow, Profile
from fooptra.services.leaderboard import (
    LeaderboardScope,
    LeaderboardService,
    filter_friends,
    rank,
)
from fooptra.services.social import SocialGraphService
from tests.conftest import ALICE, BOB, CAROL, InMemoryProfileRepository

DAVE = UUID("00000000-0000-0000-0000-00000000000d")


def _row(user_id: UUID, points: int) -> LeaderboardRow:
    return LeaderboardRow(
        id=user_id,
        name=str(user_id)[-1],
        avatar_ref=None,
        total_points=points,
        level=1,
        current_streak=0,
    )


def test_rank_is_one_based_position() -> None:
    rows = [_row(CAROL, 300), _row(ALICE, 200), _row(BOB, 100)]

    assert rank(CAROL, rows) == 1
    assert rank(BOB, rows) == 3
    assert rank(DAVE, rows) == 0


def test_rank_does_not_resort() -> None:
    rows = [_row(BOB, 100), _row(ALICE, 200)]

    assert rank(ALICE, rows) == 2


def test_filter_friends_preserves_order() -> None:
    rows = [_row(CAROL, 300), _row(ALICE, 200), _row(BOB, 100)]

    filtered = filter_friends(rows, {BOB, CAROL})

    assert [row.id for row in filtered] == [CAROL, BOB]


def test_global_board_ranks_viewer(
    profile_repository: InMemoryProfileRepository, social_service: SocialGraphService
) -> None:
    service = LeaderboardService(profile_repository, social_service)

    view = service.board(ALICE)

    assert [row.id for row in view.rows] == [CAROL, ALICE, BOB]
    assert view.viewer_rank == 2


def test_friends_board_ranks_within_scope(
    profile_repository: InMemoryProfileRepository,
    social_service: SocialGraphService,
    friend_repository,
) -> None:
    edge = friend_repository.create_edge(BOB, ALICE)
    social_service.accept(ALICE, edge.id)
    service = LeaderboardService(profile_repository, social_service)

    view = service.board(BOB, LeaderboardScope.FRIENDS)

    assert [row.id for row in view.rows] == [ALICE, BOB]
    assert view.viewer_rank == 2


def test_ties_are_broken_by_id(
    profile_repository: InMemoryProfileRepository, social_service: SocialGraphService
) -> None:
    profile_repository.add(Profile(id=DAVE, name="Dave", total_points=1500, level=2))
    service = LeaderboardService(profile_repository, social_service)

    view = service.board(DAVE)

    assert [row.id for row in view.rows] == [CAROL, ALICE, DAVE, BOB]
    assert view.viewer_rank == 3


def test_opted_out_profiles_are_hidden(
    profile_repository: InMemoryProfileRepository, social_service: SocialGraphService
) -> None:
    profile_repository.add(
        Profile(
            id=DAVE,
            name="Dave",
            total_points=9000,
            level=9,
            settings={"privacy": {"show_on_leaderboard": False}},
        )
    )
    service = LeaderboardService(profile_repository, social_service)

    view = service.board(DAVE)

    assert DAVE not in [row.id for row in view.rows]
    assert view.viewer_rank == 0


def test_limit_caps_rows(
    profile_repository: InMemoryProfileRepository, social_service: SocialGraphService
) -> None:
    service = LeaderboardService(profile_repository, social_service, limit=2)

    view = service.board(BOB)

    assert len(view.rows) == 2
    assert view.viewer_rank == 0
