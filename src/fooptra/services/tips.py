"""Waste-reduction tips: a static catalog plus generated advice."""

from dataclasses import dataclass
from datetime import date
from typing import Protocol
from uuid import UUID

from fooptra.domain.errors import RemoteOperationError, ValidationError
from fooptra.domain.stats import AnalyticsReport
from fooptra.services.stats import StatsService, TimeRange

TIP_CATEGORIES = ("storage", "shopping", "cooking", "leftovers")


@dataclass(frozen=True)
class Tip:
    """A catalog tip."""

    id: int
    title: str
    description: str
    category: str


TIPS: tuple[Tip, ...] = (
    Tip(
        1,
        "Store Vegetables Properly",
        "Keep vegetables in the crisper drawer with proper humidity settings "
        "to extend freshness.",
        "storage",
    ),
    Tip(
        2,
        "Make a Shopping List",
        "Plan meals and create a shopping list to avoid overbuying and reduce "
        "impulse purchases.",
        "shopping",
    ),
    Tip(
        3,
        'Use "First In, First Out"',
        "Organize your fridge so older items are in front and used before "
        "newer ones.",
        "storage",
    ),
    Tip(
        4,
        "Embrace Imperfect Produce",
        "Buy ugly fruits and vegetables. They taste the same and reduce "
        "agricultural waste.",
        "shopping",
    ),
    Tip(
        5,
        "Cook with Scraps",
        "Use vegetable scraps to make broths, and fruit peels for zests and "
        "preserves.",
        "cooking",
    ),
    Tip(
        6,
        "Freeze Leftovers",
        "Portion and freeze leftovers within 2 hours of cooking for future "
        "quick meals.",
        "leftovers",
    ),
)


def search_tips(query: str = "", category: str = "all") -> list[Tip]:
    """Filter the catalog by category and a case-insensitive text query."""
    if category != "all" and category not in TIP_CATEGORIES:
        raise ValidationError(f"Unknown tip category: {category!r}")
    needle = query.strip().lower()
    return [
        tip
        for tip in TIPS
        if (category == "all" or tip.category == category)
        and (needle in tip.title.lower() or needle in tip.description.lower())
    ]


class TextGenerationClient(Protocol):
    """Interface for a generative text API."""

    async def generate(self, *, model: str, instructions: str, prompt: str) -> str:
        """Return the generated text for a prompt."""


@dataclass
class TipsService:
    """Generates personalised tips from the user's recent analytics."""

    client: TextGenerationClient
    stats_service: StatsService
    model: str

    async def personalised_tips(
        self, owner_id: UUID, today: date | None = None
    ) -> str:
        """Return free-text advice based on the last month of waste."""
        report = self.stats_service.analytics(owner_id, TimeRange.MONTH, today)
        try:
            text = await self.client.generate(
                model=self.model,
                instructions=(
                    "You are a friendly assistant helping households reduce "
                    "food waste. Give three short, practical tips."
                ),
                prompt=build_tips_prompt(report),
            )
        except RemoteOperationError:
            raise
        except Exception as exc:
            raise RemoteOperationError("Tip generation failed") from exc
        return text.strip()


def build_tips_prompt(report: AnalyticsReport) -> str:
    """Describe the user's waste pattern for the text model."""
    if report.total_grams == 0:
        return (
            "The user has not logged any food waste in the last month. "
            "Suggest habits that keep waste low."
        )
    lines = [
        f"Food wasted in the last {report.time_range}: "
        f"{round(report.total_grams)} g "
        f"(about {report.average_daily_grams} g per day).",
    ]
    if report.most_wasted_category:
        lines.append(
            f"Most wasted category: {report.most_wasted_category} "
            f"({report.most_wasted_category_grams} g)."
        )
    if report.most_common_reason:
        lines.append(f"Most common reason: {report.most_common_reason}.")
    if report.peak_weekday:
        lines.append(f"Most waste happens on {report.peak_weekday}.")
    lines.append(f"Trend versus earlier in the period: {report.trend_percent:+d}%.")
    return "\n".join(lines)
