"""Request bodies accepted by the API."""

import datetime
from uuid import UUID

from pydantic import BaseModel


class WasteLogCreate(BaseModel):
    """Manual waste entry."""

    category: str
    quantity: float | str
    reason: str
    date: datetime.date | None = None
    notes: str = ""


class ItemEdit(BaseModel):
    """Edited fields of a detected item, as typed."""

    name: str = ""
    category: str = ""
    quantity: float | str | None = None


class ProfileUpdate(BaseModel):
    """Editable profile fields; omitted fields stay unchanged."""

    name: str | None = None
    bio: str | None = None
    location: str | None = None
    avatar_ref: str | None = None


class ThemeUpdate(BaseModel):
    """Appearance theme switch."""

    theme: str


class FriendRequestCreate(BaseModel):
    """Target of a new friend request."""

    recipient_id: UUID


class RemoveFriend(BaseModel):
    """Friend to remove, addressed by edge and user."""

    other_user_id: UUID
