"""Waste logging service."""

import math
from dataclasses import dataclass
from datetime import date
from typing import Protocol
from uuid import UUID

from fooptra.domain.errors import NotFoundError, PermissionDenied, ValidationError
from fooptra.domain.waste import (
    NewWasteEntry,
    WasteEntry,
    parse_category,
    parse_reason,
)

RECENT_LIMIT = 100


class WasteLogRepository(Protocol):
    """Persistence interface for waste entries."""

    def insert_entries(self, entries: list[NewWasteEntry]) -> list[WasteEntry]:
        """Insert entries as one batch and return the stored rows."""

    def get_entry(self, entry_id: UUID) -> WasteEntry | None:
        """Return an entry by id, if present."""

    def list_entries(
        self,
        owner_id: UUID,
        since: date | None = None,
        limit: int | None = None,
        newest_first: bool = True,
    ) -> list[WasteEntry]:
        """Return a user's entries ordered by date."""

    def delete_entry(self, entry_id: UUID) -> None:
        """Delete an entry by id."""


@dataclass
class WasteLogService:
    """Application service for logging and browsing waste entries."""

    repository: WasteLogRepository

    def log_manual(  # noqa: PLR0913
        self,
        owner_id: UUID,
        category: str,
        quantity_grams: object,
        reason: str,
        entry_date: date | None = None,
        notes: str = "",
    ) -> WasteEntry:
        """Validate and store a manually entered waste entry."""
        entry = NewWasteEntry(
            owner_id=owner_id,
            category=parse_category(category),
            quantity_grams=_parse_quantity(quantity_grams),
            reason=parse_reason(reason),
            date=entry_date or date.today(),
            notes=notes.strip(),
            ai_analyzed=False,
        )
        return self.repository.insert_entries([entry])[0]

    def log_batch(self, entries: list[NewWasteEntry]) -> list[WasteEntry]:
        """Store several entries in a single insert."""
        if not entries:
            raise ValidationError("Nothing to save")
        return self.repository.insert_entries(entries)

    def recent(self, owner_id: UUID, limit: int = RECENT_LIMIT) -> list[WasteEntry]:
        """Return the user's latest entries, newest first."""
        return self.repository.list_entries(owner_id, limit=limit)

    def since(self, owner_id: UUID, start: date) -> list[WasteEntry]:
        """Return the user's entries from a date on, oldest first."""
        return self.repository.list_entries(owner_id, since=start, newest_first=False)

    def delete(self, owner_id: UUID, entry_id: UUID) -> None:
        """Delete an entry owned by the user."""
        entry = self.repository.get_entry(entry_id)
        if entry is None:
            raise NotFoundError("Waste entry not found")
        if entry.owner_id != owner_id:
            raise PermissionDenied("Only the owner can delete this entry")
        self.repository.delete_entry(entry_id)


def _parse_quantity(value: object) -> float:
    if isinstance(value, bool):
        raise ValidationError("Please enter a valid quantity")
    if isinstance(value, int | float):
        quantity = float(value)
    elif isinstance(value, str):
        try:
            quantity = float(value.strip())
        except ValueError as exc:
            raise ValidationError("Please enter a valid quantity") from exc
    else:
        raise ValidationError("Please enter a valid quantity")
    if not math.isfinite(quantity) or quantity <= 0:
        raise ValidationError("Please enter a valid quantity")
    return quantity
