"""Domain models for dashboards, analytics and goals."""

from dataclasses import dataclass
from datetime import date
from uuid import UUID


@dataclass(frozen=True)
class EnvironmentalImpact:
    """Resource footprint attributed to wasted food."""

    co2_kg: float
    water_liters: float
    land_m2: float


@dataclass(frozen=True)
class DailyWaste:
    """Grams wasted on a single day."""

    day: date
    grams: float


@dataclass(frozen=True)
class Breakdown:
    """Total for one key of a category or reason breakdown."""

    key: str
    value: float


@dataclass(frozen=True)
class DashboardSummary:
    """Headline totals shown on the dashboard."""

    today_grams: float
    week_grams: float
    month_grams: float
    total_grams: float
    impact: EnvironmentalImpact
    last_7_days: list[DailyWaste]
    categories: list[Breakdown]


@dataclass(frozen=True)
class AnalyticsReport:
    """Analytics for a selectable time range."""

    time_range: str
    total_grams: float
    average_daily_grams: int
    most_wasted_category: str | None
    most_wasted_category_grams: float
    most_common_reason: str | None
    peak_weekday: str | None
    trend_percent: int
    time_series: list[Breakdown]
    categories: list[Breakdown]
    reasons: list[Breakdown]


@dataclass(frozen=True)
class Goal:
    """A waste-reduction goal over a date range."""

    id: UUID
    owner_id: UUID
    target_quantity: float | None
    target_reduction_percent: float | None
    period: str
    start_date: date
    end_date: date
    achieved: bool


@dataclass(frozen=True)
class GoalProgress:
    """Progress for a goal; percent is None when it cannot be computed."""

    goal: Goal
    wasted_grams: float
    percent: int | None

    @property
    def completed(self) -> bool:
        return self.percent is not None and self.percent >= 100
