"""Supabase repository for waste logs."""

from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from supabase import Client

from fooptra.adapters.supabase_errors import execute
from fooptra.domain.errors import RemoteOperationError
from fooptra.domain.waste import NewWasteEntry, WasteCategory, WasteEntry, WasteReason
from fooptra.services.waste_logs import WasteLogRepository

_COLUMNS = (
    "id, user_id, category, quantity, reason, date, notes, image_url, "
    "ai_analyzed, created_at"
)


@dataclass
class SupabaseWasteLogRepository(WasteLogRepository):
    """Supabase implementation for waste logs."""

    client: Client

    def insert_entries(self, entries: list[NewWasteEntry]) -> list[WasteEntry]:
        """Insert all entries in one request and return the stored rows."""
        payload = [
            {
                "user_id": str(entry.owner_id),
                "category": entry.category.value,
                "quantity": entry.quantity_grams,
                "reason": entry.reason.value,
                "date": entry.date.isoformat(),
                "notes": entry.notes,
                "image_url": entry.source_image_id,
                "ai_analyzed": entry.ai_analyzed,
            }
            for entry in entries
        ]
        response = execute(
            self.client.table("waste_logs").insert(payload), "save waste logs"
        )
        if not response.data:
            raise RemoteOperationError("Failed to save waste logs")
        return [_parse_entry(row) for row in response.data]

    def get_entry(self, entry_id: UUID) -> WasteEntry | None:
        """Return a waste log by id."""
        response = execute(
            self.client.table("waste_logs")
            .select(_COLUMNS)
            .eq("id", str(entry_id))
            .limit(1),
            "load waste log",
        )
        if not response.data:
            return None
        return _parse_entry(response.data[0])

    def list_entries(
        self,
        owner_id: UUID,
        since: date | None = None,
        limit: int | None = None,
        newest_first: bool = True,
    ) -> list[WasteEntry]:
        """Return the user's waste logs ordered by date."""
        query = (
            self.client.table("waste_logs")
            .select(_COLUMNS)
            .eq("user_id", str(owner_id))
        )
        if since is not None:
            query = query.gte("date", since.isoformat())
        query = query.order("date", desc=newest_first).order(
            "created_at", desc=newest_first
        )
        if limit is not None:
            query = query.limit(limit)
        response = execute(query, "list waste logs")
        return [_parse_entry(row) for row in response.data or []]

    def delete_entry(self, entry_id: UUID) -> None:
        """Delete a waste log row."""
        execute(
            self.client.table("waste_logs").delete().eq("id", str(entry_id)),
            "delete waste log",
        )


def _parse_entry(row: dict[str, object]) -> WasteEntry:
    return WasteEntry(
        id=UUID(str(row["id"])),
        owner_id=UUID(str(row["user_id"])),
        category=WasteCategory(row["category"]),
        quantity_grams=float(row.get("quantity") or 0.0),
        reason=WasteReason(row["reason"]),
        date=date.fromisoformat(str(row["date"])),
        notes=str(row.get("notes") or ""),
        source_image_id=row.get("image_url"),
        ai_analyzed=bool(row.get("ai_analyzed", False)),
        created_at=datetime.fromisoformat(str(row["created_at"])),
    )
