"""Friend graph management with realtime refresh."""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from fooptra.domain.errors import (
    ConsistencyConflict,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from fooptra.domain.social import (
    Friend,
    FriendEdge,
    FriendRequest,
    FriendStatus,
    PublicProfile,
    RelationshipStatus,
    RequestOutcome,
    UserSearchResult,
)
from fooptra.services.profiles import ProfileRepository

FRIENDSHIPS_TABLE = "friendships"
SEARCH_LIMIT = 20

_logger = logging.getLogger(__name__)


class FriendRepository(Protocol):
    """Persistence interface for friend edges."""

    def find_edge_between(self, user_a: UUID, user_b: UUID) -> FriendEdge | None:
        """Return the edge linking both users, whichever way it points."""

    def get_edge(self, edge_id: UUID) -> FriendEdge | None:
        """Return an edge by id, if present."""

    def create_edge(self, requester_id: UUID, recipient_id: UUID) -> FriendEdge:
        """Create a pending edge; raise ConsistencyConflict on duplicates."""

    def update_status(self, edge_id: UUID, status: FriendStatus) -> FriendEdge:
        """Change an edge's status and return it."""

    def delete_edges_between(
        self, user_a: UUID, user_b: UUID, status: FriendStatus | None = None
    ) -> None:
        """Delete every edge linking both users, optionally only in one status."""

    def list_edges(
        self, user_id: UUID, status: FriendStatus | None = None
    ) -> list[FriendEdge]:
        """Return every edge where the user is either party."""


@dataclass(frozen=True)
class ChangeEvent:
    """A row change delivered by the realtime feed."""

    table: str
    event_type: str
    record: dict[str, object]
    old_record: dict[str, object]


ChangeHandler = Callable[[ChangeEvent], None]
Unsubscribe = Callable[[], Awaitable[None]]


class ChangeFeed(Protocol):
    """Realtime subscription to row changes."""

    async def subscribe(
        self, table: str, column: str, value: str, handler: ChangeHandler
    ) -> Unsubscribe:
        """Deliver inserts and updates of rows where column equals value."""

    async def subscribe_deletes(
        self, table: str, handler: ChangeHandler
    ) -> Unsubscribe:
        """Deliver every delete on the table; only the old primary key is set."""


def edge_between(
    edges: list[FriendEdge], user_a: UUID, user_b: UUID
) -> FriendEdge | None:
    """Find the edge linking two users in a list, ignoring direction."""
    for edge in edges:
        if edge.connects(user_a, user_b):
            return edge
    return None


def status_of(edge: FriendEdge | None) -> RelationshipStatus:
    """Translate an optional edge into a relationship status."""
    if edge is None:
        return RelationshipStatus.NONE
    if edge.status == FriendStatus.ACCEPTED:
        return RelationshipStatus.ACCEPTED
    return RelationshipStatus.PENDING


@dataclass(frozen=True)
class FriendsSnapshot:
    """Everything the friends page shows, fetched in one go."""

    friends: list[Friend]
    incoming: list[FriendRequest]
    outgoing: list[FriendRequest]

    def edge_ids(self) -> set[str]:
        """Return the ids of every edge shown, as strings."""
        edges = [friend.edge for friend in self.friends] + [
            request.edge for request in self.incoming + self.outgoing
        ]
        return {str(edge.id) for edge in edges}


@dataclass
class SocialGraphService:
    """Application service for friend requests and friendships."""

    friend_repository: FriendRepository
    profile_repository: ProfileRepository
    change_feed: ChangeFeed | None = None

    def relationship_status(self, user_a: UUID, user_b: UUID) -> RelationshipStatus:
        """Return the relationship between two users in either direction."""
        return status_of(self.friend_repository.find_edge_between(user_a, user_b))

    def is_friend(self, user_a: UUID, user_b: UUID) -> bool:
        """Return True when the users are accepted friends."""
        return self.relationship_status(user_a, user_b) == RelationshipStatus.ACCEPTED

    def send_request(self, from_id: UUID, to_id: UUID) -> RequestOutcome:
        """Create a pending request unless any edge already links the users."""
        if from_id == to_id:
            raise ValidationError("You cannot send a friend request to yourself")
        existing = self.friend_repository.find_edge_between(from_id, to_id)
        if existing is not None:
            if existing.status == FriendStatus.ACCEPTED:
                return RequestOutcome.ALREADY_FRIENDS
            return RequestOutcome.ALREADY_REQUESTED
        try:
            self.friend_repository.create_edge(from_id, to_id)
        except ConsistencyConflict:
            _logger.info("Duplicate friend request %s -> %s ignored", from_id, to_id)
            return RequestOutcome.ALREADY_REQUESTED
        return RequestOutcome.SENT

    def accept(self, user_id: UUID, edge_id: UUID) -> FriendEdge:
        """Accept a pending request addressed to the user."""
        edge = self._require_edge(edge_id)
        if edge.recipient_id != user_id:
            raise PermissionDenied("Only the recipient can accept this request")
        if edge.status == FriendStatus.ACCEPTED:
            return edge
        return self.friend_repository.update_status(edge_id, FriendStatus.ACCEPTED)

    def decline(self, user_id: UUID, edge_id: UUID) -> None:
        """Decline a pending request; the edge is deleted outright."""
        edge = self._require_edge(edge_id)
        if edge.recipient_id != user_id:
            raise PermissionDenied("Only the recipient can decline this request")
        if edge.status != FriendStatus.PENDING:
            raise ValidationError("Request was already accepted")
        self.friend_repository.delete_edges_between(
            edge.requester_id, edge.recipient_id, FriendStatus.PENDING
        )

    def cancel_request(self, user_id: UUID, edge_id: UUID) -> None:
        """Withdraw a pending request the user sent."""
        edge = self._require_edge(edge_id)
        if edge.requester_id != user_id:
            raise PermissionDenied("Only the requester can cancel this request")
        if edge.status != FriendStatus.PENDING:
            raise ValidationError("Request was already accepted")
        self.friend_repository.delete_edges_between(
            edge.requester_id, edge.recipient_id, FriendStatus.PENDING
        )

    def remove(self, user_id: UUID, edge_id: UUID, other_user_id: UUID) -> None:
        """Unfriend, whichever of the two users originally asked."""
        edge = self.friend_repository.get_edge(edge_id)
        if edge is None or not edge.connects(user_id, other_user_id):
            edge = self.friend_repository.find_edge_between(user_id, other_user_id)
        if edge is None:
            raise NotFoundError("Friendship not found")
        if edge.status != FriendStatus.ACCEPTED:
            raise ValidationError("You are not friends with this user")
        self.friend_repository.delete_edges_between(user_id, other_user_id)

    def list_friends(self, user_id: UUID) -> list[Friend]:
        """Return accepted friends with their profiles."""
        edges = self.friend_repository.list_edges(user_id, FriendStatus.ACCEPTED)
        profiles = self._profiles_for(user_id, edges)
        return [
            Friend(edge=edge, profile=profiles[edge.other_party(user_id)])
            for edge in edges
            if edge.other_party(user_id) in profiles
        ]

    def friend_ids(self, user_id: UUID) -> set[UUID]:
        """Return the ids of the user's accepted friends."""
        edges = self.friend_repository.list_edges(user_id, FriendStatus.ACCEPTED)
        return {edge.other_party(user_id) for edge in edges}

    def list_incoming_requests(self, user_id: UUID) -> list[FriendRequest]:
        """Return pending requests other users sent to this user."""
        return self._requests(user_id, incoming=True)

    def list_outgoing_requests(self, user_id: UUID) -> list[FriendRequest]:
        """Return pending requests this user sent."""
        return self._requests(user_id, incoming=False)

    def snapshot(self, user_id: UUID) -> FriendsSnapshot:
        """Fetch friends and both request lists."""
        edges = self.friend_repository.list_edges(user_id)
        profiles = self._profiles_for(user_id, edges)
        friends: list[Friend] = []
        incoming: list[FriendRequest] = []
        outgoing: list[FriendRequest] = []
        for edge in edges:
            other = profiles.get(edge.other_party(user_id))
            if other is None:
                continue
            if edge.status == FriendStatus.ACCEPTED:
                friends.append(Friend(edge=edge, profile=other))
            elif edge.recipient_id == user_id:
                incoming.append(FriendRequest(edge=edge, other=other))
            else:
                outgoing.append(FriendRequest(edge=edge, other=other))
        return FriendsSnapshot(friends=friends, incoming=incoming, outgoing=outgoing)

    def search(
        self,
        viewer_id: UUID,
        query: str,
        exclude_self: bool = True,
        limit: int = SEARCH_LIMIT,
    ) -> list[UserSearchResult]:
        """Find users by name and annotate each with the viewer's relationship."""
        cleaned = query.strip()
        if not cleaned:
            return []
        profiles = self.profile_repository.search_profiles(cleaned, limit)
        edges = self.friend_repository.list_edges(viewer_id)
        results = []
        for profile in profiles:
            if exclude_self and profile.id == viewer_id:
                continue
            edge = edge_between(edges, viewer_id, profile.id)
            results.append(
                UserSearchResult(
                    profile=profile,
                    status=status_of(edge),
                    edge_id=edge.id if edge else None,
                    requested_by_viewer=bool(edge and edge.requester_id == viewer_id),
                )
            )
        return results

    @asynccontextmanager
    async def watch(
        self,
        user_id: UUID,
        on_change: Callable[[FriendsSnapshot], None] | None = None,
    ) -> AsyncIterator["FriendsView"]:
        """Keep a friends view fresh while the block runs."""
        view = FriendsView(service=self, user_id=user_id, on_change=on_change)
        async with AsyncExitStack() as stack:
            if self.change_feed is not None:
                for column in ("requester_id", "recipient_id"):
                    unsubscribe = await self.change_feed.subscribe(
                        FRIENDSHIPS_TABLE, column, str(user_id), view.handle_event
                    )
                    stack.push_async_callback(unsubscribe)
                unsubscribe = await self.change_feed.subscribe_deletes(
                    FRIENDSHIPS_TABLE, view.handle_event
                )
                stack.push_async_callback(unsubscribe)
                _logger.info("Watching friendships for %s", user_id)
            # Subscribed first so nothing committed before the fetch is missed.
            view.refresh()
            yield view
        _logger.info("Stopped watching friendships for %s", user_id)

    def _require_edge(self, edge_id: UUID) -> FriendEdge:
        edge = self.friend_repository.get_edge(edge_id)
        if edge is None:
            raise NotFoundError("Friend request not found")
        return edge

    def _requests(self, user_id: UUID, incoming: bool) -> list[FriendRequest]:
        edges = [
            edge
            for edge in self.friend_repository.list_edges(
                user_id, FriendStatus.PENDING
            )
            if (edge.recipient_id == user_id) == incoming
        ]
        profiles = self._profiles_for(user_id, edges)
        return [
            FriendRequest(edge=edge, other=profiles[edge.other_party(user_id)])
            for edge in edges
            if edge.other_party(user_id) in profiles
        ]

    def _profiles_for(
        self, user_id: UUID, edges: list[FriendEdge]
    ) -> dict[UUID, PublicProfile]:
        other_ids = list(dict.fromkeys(edge.other_party(user_id) for edge in edges))
        if not other_ids:
            return {}
        return {
            profile.id: profile
            for profile in self.profile_repository.get_public_profiles(other_ids)
        }


@dataclass
class FriendsView:
    """Friends snapshot that is re-fetched wholesale on every change."""

    service: SocialGraphService
    user_id: UUID
    on_change: Callable[[FriendsSnapshot], None] | None = None
    snapshot: FriendsSnapshot = field(
        default_factory=lambda: FriendsSnapshot(friends=[], incoming=[], outgoing=[])
    )
    refresh_count: int = 0

    def refresh(self) -> FriendsSnapshot:
        """Replace the snapshot with a fresh fetch."""
        self.snapshot = self.service.snapshot(self.user_id)
        self.refresh_count += 1
        return self.snapshot

    def handle_event(self, event: ChangeEvent) -> None:
        """Realtime callback: refetch and notify the listener.

        Deletes arrive for the whole table, so only those removing an edge
        this view shows trigger a refetch.
        """
        if event.event_type == "DELETE":
            if str(event.old_record.get("id")) not in self.snapshot.edge_ids():
                return
        _logger.info(
            "Friendship %s for %s, refreshing", event.event_type, self.user_id
        )
        snapshot = self.refresh()
        if self.on_change is not None:
            self.on_change(snapshot)
