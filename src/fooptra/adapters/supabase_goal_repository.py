"""Supabase repository for goals."""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from supabase import Client

from fooptra.adapters.supabase_errors import execute
from fooptra.domain.stats import Goal
from fooptra.services.stats import GoalRepository


@dataclass
class SupabaseGoalRepository(GoalRepository):
    """Supabase implementation for goals."""

    client: Client

    def list_goals(self, owner_id: UUID, limit: int) -> list[Goal]:
        """Return the newest goals for a user."""
        response = execute(
            self.client.table("goals")
            .select(
                "id, user_id, target_quantity, target_reduction_percent, period, "
                "start_date, end_date, achieved"
            )
            .eq("user_id", str(owner_id))
            .order("created_at", desc=True)
            .limit(limit),
            "list goals",
        )
        return [_parse_goal(row) for row in response.data or []]


def _parse_goal(row: dict[str, object]) -> Goal:
    target = row.get("target_quantity")
    reduction = row.get("target_reduction_percent")
    return Goal(
        id=UUID(str(row["id"])),
        owner_id=UUID(str(row["user_id"])),
        target_quantity=float(target) if target is not None else None,
        target_reduction_percent=float(reduction) if reduction is not None else None,
        period=str(row.get("period") or ""),
        start_date=date.fromisoformat(str(row["start_date"])),
        end_date=date.fromisoformat(str(row["end_date"])),
        achieved=bool(row.get("achieved", False)),
    )
