"""Domain models for the friend graph."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from fooptra.domain.errors import ValidationError


class FriendStatus(StrEnum):
    """Persisted status of a friend edge."""

    PENDING = "pending"
    ACCEPTED = "accepted"


class RelationshipStatus(StrEnum):
    """Relationship between two users regardless of edge direction."""

    NONE = "none"
    PENDING = "pending"
    ACCEPTED = "accepted"


class RequestOutcome(StrEnum):
    """Result of sending a friend request."""

    SENT = "sent"
    ALREADY_REQUESTED = "already_requested"
    ALREADY_FRIENDS = "already_friends"


@dataclass(frozen=True)
class FriendEdge:
    """Directed friendship row; the requester is who asked first."""

    id: UUID
    requester_id: UUID
    recipient_id: UUID
    status: FriendStatus
    created_at: datetime

    def __post_init__(self) -> None:
        if self.requester_id == self.recipient_id:
            raise ValidationError("A user cannot befriend themselves")
        object.__setattr__(self, "status", FriendStatus(self.status))

    def involves(self, user_id: UUID) -> bool:
        """Return True when the user is either party of the edge."""
        return user_id in (self.requester_id, self.recipient_id)

    def connects(self, user_a: UUID, user_b: UUID) -> bool:
        """Return True when the edge links both users in any direction."""
        return {self.requester_id, self.recipient_id} == {user_a, user_b}

    def other_party(self, user_id: UUID) -> UUID:
        """Return the user on the other end of the edge."""
        if user_id == self.requester_id:
            return self.recipient_id
        if user_id == self.recipient_id:
            return self.requester_id
        raise ValidationError("User is not part of this friendship")


@dataclass(frozen=True)
class PublicProfile:
    """Minimal profile info shown next to friends and search results."""

    id: UUID
    name: str
    avatar_ref: str | None
    total_points: int
    level: int


@dataclass(frozen=True)
class FriendRequest:
    """A pending edge with the other party's profile."""

    edge: FriendEdge
    other: PublicProfile


@dataclass(frozen=True)
class Friend:
    """An accepted edge with the friend's profile."""

    edge: FriendEdge
    profile: PublicProfile


@dataclass(frozen=True)
class UserSearchResult:
    """Search hit annotated with the viewer's relationship to it."""

    profile: PublicProfile
    status: RelationshipStatus
    edge_id: UUID | None
    requested_by_viewer: bool
