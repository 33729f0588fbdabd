"""Tests for Supabase adapter implementations."""

from dataclasses import dataclass, field
from datetime import date
from types import SimpleNamespace
from uuid import uuid4

import pytest
from supabase import AuthApiError, AuthError, PostgrestAPIError

from fooptra.adapters.supabase_friend_repository import SupabaseFriendRepository
from fooptra.adapters.supabase_goal_repository import SupabaseGoalRepository
from fooptra.adapters.supabase_identity_provider import SupabaseIdentityProvider
from fooptra.adapters.supabase_profile_repository import (
    SupabaseProfileRepository,
    escape_like,
)
from fooptra.adapters.supabase_waste_log_repository import (
    SupabaseWasteLogRepository,
)
from fooptra.domain.errors import (
    ConsistencyConflict,
    NotFoundError,
    RemoteOperationError,
)
from fooptra.domain.social import FriendStatus
from fooptra.domain.waste import NewWasteEntry, WasteCategory, WasteReason
from tests.conftest import ALICE, BOB


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {"select": [], "insert": [], "update": [], "delete": []}
    )
    last_payload: object | None = None
    last_filters: list[tuple[str, str, object]] = field(default_factory=list)
    last_order: list[tuple[str, bool]] = field(default_factory=list)
    last_limit: int | None = None
    error: Exception | None = None

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args) -> "FakeTable":
        self._action = "select"
        self.last_filters = []
        self.last_order = []
        self.last_limit = None
        return self

    def insert(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "insert"
        self.last_payload = payload
        return self

    def update(self, payload) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "update"
        self.last_payload = payload
        self.last_filters = []
        return self

    def delete(self) -> "FakeTable":
        self._action = "delete"
        self.last_filters = []
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("eq", column, value))
        return self

    def in_(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("in", column, value))
        return self

    def ilike(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("ilike", column, value))
        return self

    def or_(self, filters: str) -> "FakeTable":
        self.last_filters.append(("or", "", filters))
        return self

    def gte(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append(("gte", column, value))
        return self

    def limit(self, count: int) -> "FakeTable":
        self.last_limit = count
        return self

    def order(self, column: str, desc: bool = False) -> "FakeTable":
        self.last_order.append((column, desc))
        return self

    def execute(self) -> FakeResponse:
        if self.error is not None:
            raise self.error
        action = getattr(self, "_action", "select")
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        return FakeResponse(data=data)


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]


def _waste_row(**overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "id": str(uuid4()),
        "user_id": str(ALICE),
        "category": "Fruits",
        "quantity": 150,
        "reason": "Analyzed from image",
        "date": "2025-03-01",
        "notes": "AI detected: Banana (87% confidence)",
        "image_url": "photo-1",
        "ai_analyzed": True,
        "created_at": "2025-03-01T10:00:00+00:00",
    }
    row.update(overrides)
    return row


def _edge_row(status: str = "pending") -> dict[str, object]:
    return {
        "id": str(uuid4()),
        "requester_id": str(ALICE),
        "recipient_id": str(BOB),
        "status": status,
        "created_at": "2025-03-01T10:00:00+00:00",
    }


def test_waste_log_batch_insert() -> None:
    client = FakeSupabaseClient()
    table = client.table("waste_logs")
    table.queue("insert", [_waste_row(), _waste_row(category="Dairy")])
    repository = SupabaseWasteLogRepository(client)
    entry = NewWasteEntry(
        owner_id=ALICE,
        category=WasteCategory.FRUITS,
        quantity_grams=150,
        reason=WasteReason.ANALYZED_FROM_IMAGE,
        date=date(2025, 3, 1),
        source_image_id="photo-1",
        ai_analyzed=True,
    )

    saved = repository.insert_entries([entry, entry])

    assert isinstance(table.last_payload, list)
    assert len(table.last_payload) == 2
    assert table.last_payload[0]["image_url"] == "photo-1"
    assert table.last_payload[0]["date"] == "2025-03-01"
    assert [row.category for row in saved] == [
        WasteCategory.FRUITS,
        WasteCategory.DAIRY,
    ]
    assert saved[0].source_image_id == "photo-1"


def test_waste_log_insert_without_rows_fails() -> None:
    client = FakeSupabaseClient()
    repository = SupabaseWasteLogRepository(client)
    entry = NewWasteEntry(
        owner_id=ALICE,
        category=WasteCategory.FRUITS,
        quantity_grams=150,
        reason=WasteReason.EXPIRED,
        date=date(2025, 3, 1),
    )

    with pytest.raises(RemoteOperationError):
        repository.insert_entries([entry])


def test_waste_log_listing_filters_and_orders() -> None:
    client = FakeSupabaseClient()
    table = client.table("waste_logs")
    table.queue("select", [_waste_row(quantity="42.5")])
    repository = SupabaseWasteLogRepository(client)

    entries = repository.list_entries(
        ALICE, since=date(2025, 2, 1), limit=5, newest_first=False
    )

    assert entries[0].quantity_grams == 42.5
    assert ("eq", "user_id", str(ALICE)) in table.last_filters
    assert ("gte", "date", "2025-02-01") in table.last_filters
    assert table.last_order == [("date", False), ("created_at", False)]
    assert table.last_limit == 5


def test_waste_log_get_missing() -> None:
    repository = SupabaseWasteLogRepository(FakeSupabaseClient())

    assert repository.get_entry(uuid4()) is None


def test_unique_violation_is_conflict() -> None:
    client = FakeSupabaseClient()
    client.table("friendships").error = PostgrestAPIError(
        {"message": "duplicate key", "code": "23505", "hint": "", "details": ""}
    )
    repository = SupabaseFriendRepository(client)

    with pytest.raises(ConsistencyConflict):
        repository.create_edge(ALICE, BOB)


def test_other_postgrest_errors_are_remote_failures() -> None:
    client = FakeSupabaseClient()
    client.table("friendships").error = PostgrestAPIError(
        {"message": "timeout", "code": "57014", "hint": "", "details": ""}
    )
    repository = SupabaseFriendRepository(client)

    with pytest.raises(RemoteOperationError):
        repository.list_edges(ALICE)


def test_friend_lookup_checks_both_directions() -> None:
    client = FakeSupabaseClient()
    table = client.table("friendships")
    table.queue("select", [_edge_row()])
    repository = SupabaseFriendRepository(client)

    edge = repository.find_edge_between(BOB, ALICE)

    assert edge is not None
    assert edge.requester_id == ALICE
    ((_, _, expression),) = table.last_filters
    assert f"and(requester_id.eq.{BOB},recipient_id.eq.{ALICE})" in expression
    assert f"and(requester_id.eq.{ALICE},recipient_id.eq.{BOB})" in expression


def test_friend_create_and_accept() -> None:
    client = FakeSupabaseClient()
    table = client.table("friendships")
    table.queue("insert", [_edge_row()])
    table.queue("update", [_edge_row("accepted")])
    repository = SupabaseFriendRepository(client)

    created = repository.create_edge(ALICE, BOB)
    accepted = repository.update_status(created.id, FriendStatus.ACCEPTED)

    assert created.status == FriendStatus.PENDING
    assert accepted.status == FriendStatus.ACCEPTED
    assert table.last_payload == {"status": "accepted"}


def test_friend_update_missing_edge() -> None:
    repository = SupabaseFriendRepository(FakeSupabaseClient())

    with pytest.raises(NotFoundError):
        repository.update_status(uuid4(), FriendStatus.ACCEPTED)


def test_friend_delete_removes_both_directions() -> None:
    client = FakeSupabaseClient()
    table = client.table("friendships")
    repository = SupabaseFriendRepository(client)

    repository.delete_edges_between(ALICE, BOB, FriendStatus.PENDING)

    (or_filter, status_filter) = table.last_filters
    expression = or_filter[2]
    assert f"and(requester_id.eq.{ALICE},recipient_id.eq.{BOB})" in expression
    assert f"and(requester_id.eq.{BOB},recipient_id.eq.{ALICE})" in expression
    assert status_filter == ("eq", "status", "pending")

    repository.delete_edges_between(ALICE, BOB)

    assert [kind for kind, _, _ in table.last_filters] == ["or"]


def test_friend_list_filters_status() -> None:
    client = FakeSupabaseClient()
    table = client.table("friendships")
    table.queue("select", [_edge_row("accepted")])
    repository = SupabaseFriendRepository(client)

    edges = repository.list_edges(ALICE, FriendStatus.ACCEPTED)

    assert len(edges) == 1
    assert ("eq", "status", "accepted") in table.last_filters
    assert table.last_order == [("created_at", True)]


def test_profile_update_maps_avatar_column() -> None:
    client = FakeSupabaseClient()
    table = client.table("profiles")
    table.queue(
        "update",
        [{"id": str(ALICE), "name": "Alice", "avatar_url": "avatars/a.png"}],
    )
    repository = SupabaseProfileRepository(client)

    profile = repository.update_profile(ALICE, {"avatar_ref": "avatars/a.png"})

    assert table.last_payload == {"avatar_url": "avatars/a.png"}
    assert profile.avatar_ref == "avatars/a.png"
    assert profile.level == 1
    assert profile.settings["appearance"]["theme"] == "light"


def test_profile_public_lookup_skips_empty_request() -> None:
    client = FakeSupabaseClient()
    repository = SupabaseProfileRepository(client)

    assert repository.get_public_profiles([]) == []
    assert client.tables == {}


def test_profile_search_uses_substring_pattern() -> None:
    client = FakeSupabaseClient()
    table = client.table("profiles")
    table.queue("select", [{"id": str(BOB), "name": "Bob", "total_points": 900}])
    repository = SupabaseProfileRepository(client)

    results = repository.search_profiles("bo", limit=20)

    assert [profile.name for profile in results] == ["Bob"]
    assert ("ilike", "name", "%bo%") in table.last_filters
    assert table.last_limit == 20


@pytest.mark.parametrize(
    ("query", "expected"),
    [
        ("bob", "bob"),
        ("50%_off", "50\\%\\_off"),
        ("back\\slash", "back\\\\slash"),
    ],
)
def test_escape_like(query: str, expected: str) -> None:
    assert escape_like(query) == expected


def test_profile_search_escapes_wildcards() -> None:
    client = FakeSupabaseClient()
    table = client.table("profiles")
    repository = SupabaseProfileRepository(client)

    repository.search_profiles("a_b%", limit=5)

    assert ("ilike", "name", "%a\\_b\\%%") in table.last_filters


def test_leaderboard_orders_and_skips_hidden_profiles() -> None:
    client = FakeSupabaseClient()
    table = client.table("profiles")
    table.queue(
        "select",
        [
            {"id": str(ALICE), "name": "Alice", "total_points": 1500, "level": 2},
            {
                "id": str(BOB),
                "name": "Bob",
                "total_points": 900,
                "settings": {"privacy": {"show_on_leaderboard": False}},
            },
        ],
    )
    repository = SupabaseProfileRepository(client)

    rows = repository.list_leaderboard(limit=100)

    assert [row.id for row in rows] == [ALICE]
    assert rows[0].level == 2
    assert table.last_order == [("total_points", True), ("id", False)]


def test_goal_repository_parses_targets() -> None:
    client = FakeSupabaseClient()
    table = client.table("goals")
    goal_id = str(uuid4())
    table.queue(
        "select",
        [
            {
                "id": goal_id,
                "user_id": str(ALICE),
                "target_quantity": "2000",
                "target_reduction_percent": None,
                "period": "monthly",
                "start_date": "2025-03-01",
                "end_date": "2025-03-31",
                "achieved": False,
            }
        ],
    )
    repository = SupabaseGoalRepository(client)

    (goal,) = repository.list_goals(ALICE, limit=3)

    assert str(goal.id) == goal_id
    assert goal.target_quantity == 2000
    assert goal.target_reduction_percent is None
    assert goal.end_date == date(2025, 3, 31)
    assert table.last_limit == 3


@dataclass
class FakeAuth:
    user_id: str | None = None
    error: Exception | None = None

    def get_user(self, _token: str) -> SimpleNamespace:
        if self.error is not None:
            raise self.error
        user = SimpleNamespace(id=self.user_id) if self.user_id else None
        return SimpleNamespace(user=user)


def test_identity_provider_returns_user_id() -> None:
    client = SimpleNamespace(auth=FakeAuth(user_id=str(ALICE)))

    assert SupabaseIdentityProvider(client).current_user_id("token") == ALICE


def test_identity_provider_rejects_invalid_token() -> None:
    client = SimpleNamespace(
        auth=FakeAuth(error=AuthApiError("invalid JWT", 401, "bad_jwt"))
    )

    assert SupabaseIdentityProvider(client).current_user_id("token") is None


def test_identity_provider_surfaces_outages() -> None:
    client = SimpleNamespace(auth=FakeAuth(error=AuthError("network down", None)))

    with pytest.raises(RemoteOperationError):
        SupabaseIdentityProvider(client).current_user_id("token")
