"""Supabase repository for friendships."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from fooptra.adapters.supabase_errors import execute
from fooptra.domain.errors import NotFoundError, RemoteOperationError
from fooptra.domain.social import FriendEdge, FriendStatus
from fooptra.services.social import FRIENDSHIPS_TABLE, FriendRepository

_COLUMNS = "id, requester_id, recipient_id, status, created_at"


@dataclass
class SupabaseFriendRepository(FriendRepository):
    """Supabase implementation for friend edges."""

    client: Client

    def find_edge_between(self, user_a: UUID, user_b: UUID) -> FriendEdge | None:
        """Return the edge linking both users in either direction."""
        response = execute(
            self.client.table(FRIENDSHIPS_TABLE)
            .select(_COLUMNS)
            .or_(_pair_filter(user_a, user_b))
            .limit(1),
            "look up friendship",
        )
        if not response.data:
            return None
        return _parse_edge(response.data[0])

    def get_edge(self, edge_id: UUID) -> FriendEdge | None:
        """Return an edge by id."""
        response = execute(
            self.client.table(FRIENDSHIPS_TABLE)
            .select(_COLUMNS)
            .eq("id", str(edge_id))
            .limit(1),
            "load friendship",
        )
        if not response.data:
            return None
        return _parse_edge(response.data[0])

    def create_edge(self, requester_id: UUID, recipient_id: UUID) -> FriendEdge:
        """Insert a pending edge; duplicates surface as ConsistencyConflict."""
        response = execute(
            self.client.table(FRIENDSHIPS_TABLE).insert(
                {
                    "requester_id": str(requester_id),
                    "recipient_id": str(recipient_id),
                    "status": FriendStatus.PENDING.value,
                }
            ),
            "send friend request",
        )
        if not response.data:
            raise RemoteOperationError("Failed to send friend request")
        return _parse_edge(response.data[0])

    def update_status(self, edge_id: UUID, status: FriendStatus) -> FriendEdge:
        """Set the status of an edge."""
        response = execute(
            self.client.table(FRIENDSHIPS_TABLE)
            .update({"status": status.value})
            .eq("id", str(edge_id)),
            "update friendship",
        )
        if not response.data:
            raise NotFoundError("Friend request not found")
        return _parse_edge(response.data[0])

    def delete_edges_between(
        self, user_a: UUID, user_b: UUID, status: FriendStatus | None = None
    ) -> None:
        """Delete the edges linking both users, whichever way they point."""
        query = (
            self.client.table(FRIENDSHIPS_TABLE)
            .delete()
            .or_(_pair_filter(user_a, user_b))
        )
        if status is not None:
            query = query.eq("status", status.value)
        execute(query, "delete friendship")

    def list_edges(
        self, user_id: UUID, status: FriendStatus | None = None
    ) -> list[FriendEdge]:
        """Return edges where the user is requester or recipient."""
        query = (
            self.client.table(FRIENDSHIPS_TABLE)
            .select(_COLUMNS)
            .or_(f"requester_id.eq.{user_id},recipient_id.eq.{user_id}")
        )
        if status is not None:
            query = query.eq("status", status.value)
        response = execute(query.order("created_at", desc=True), "list friendships")
        return [_parse_edge(row) for row in response.data or []]


def _pair_filter(user_a: UUID, user_b: UUID) -> str:
    return (
        f"and(requester_id.eq.{user_a},recipient_id.eq.{user_b}),"
        f"and(requester_id.eq.{user_b},recipient_id.eq.{user_a})"
    )


def _parse_edge(row: dict[str, object]) -> FriendEdge:
    return FriendEdge(
        id=UUID(str(row["id"])),
        requester_id=UUID(str(row["requester_id"])),
        recipient_id=UUID(str(row["recipient_id"])),
        status=FriendStatus(row["status"]),
        created_at=datetime.fromisoformat(str(row["created_at"])),
    )
