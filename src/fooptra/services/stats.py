"""Dashboard, analytics and goal progress for waste entries."""

from calendar import monthrange
from collections import Counter, defaultdict
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from enum import StrEnum
from typing import Protocol
from uuid import UUID

from fooptra.domain.errors import ValidationError
from fooptra.domain.stats import (
    AnalyticsReport,
    Breakdown,
    DailyWaste,
    DashboardSummary,
    EnvironmentalImpact,
    Goal,
    GoalProgress,
)
from fooptra.domain.waste import WasteCategory, WasteEntry
from fooptra.services.waste_logs import RECENT_LIMIT, WasteLogRepository

CO2_KG_PER_KG = 2.5
WATER_LITERS_PER_KG = 1000.0
LAND_M2_PER_KG = 0.5
GOALS_LIMIT = 3


class TimeRange(StrEnum):
    """Analytics windows."""

    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


_RANGE_DAYS = {
    TimeRange.WEEK: 7,
    TimeRange.MONTH: 30,
    TimeRange.QUARTER: 90,
    TimeRange.YEAR: 365,
}


class GoalRepository(Protocol):
    """Persistence interface for goals."""

    def list_goals(self, owner_id: UUID, limit: int) -> list[Goal]:
        """Return the user's most recent goals."""


@dataclass
class StatsService:
    """Service computing waste totals and trends."""

    repository: WasteLogRepository
    goal_repository: GoalRepository

    def dashboard(self, owner_id: UUID, today: date | None = None) -> DashboardSummary:
        """Return headline totals over the user's recent entries."""
        current = today or date.today()
        logs = self.repository.list_entries(owner_id, limit=RECENT_LIMIT)
        week_start = current - timedelta(days=7)
        month_start = current - timedelta(days=30)
        total = _sum(logs)
        return DashboardSummary(
            today_grams=_sum(log for log in logs if log.date == current),
            week_grams=_sum(log for log in logs if log.date >= week_start),
            month_grams=_sum(log for log in logs if log.date >= month_start),
            total_grams=total,
            impact=environmental_impact(total),
            last_7_days=_last_days(logs, current, 7),
            categories=_category_totals(logs),
        )

    def analytics(
        self,
        owner_id: UUID,
        time_range: TimeRange | str = TimeRange.MONTH,
        today: date | None = None,
    ) -> AnalyticsReport:
        """Return analytics for the selected time range."""
        try:
            selected = TimeRange(time_range)
        except ValueError as exc:
            raise ValidationError(f"Unknown time range: {time_range!r}") from exc
        current = today or date.today()
        logs = self.repository.list_entries(
            owner_id, since=range_start(selected, current), newest_first=False
        )
        total = _sum(logs)
        categories = _breakdown(logs, key=lambda log: log.category.value)
        reasons = _breakdown(logs, key=lambda log: log.reason.value)
        top_category = categories[0] if categories else None
        reason_counts = Counter(log.reason.value for log in logs).most_common(1)
        weekdays = _breakdown(logs, key=lambda log: log.date.strftime("%A"))
        return AnalyticsReport(
            time_range=selected.value,
            total_grams=total,
            average_daily_grams=round(total / _RANGE_DAYS[selected]),
            most_wasted_category=top_category.key if top_category else None,
            most_wasted_category_grams=top_category.value if top_category else 0,
            most_common_reason=reason_counts[0][0] if reason_counts else None,
            peak_weekday=weekdays[0].key if weekdays else None,
            trend_percent=waste_trend(logs),
            time_series=_time_series(logs, selected),
            categories=categories,
            reasons=reasons,
        )

    def goal_progress(
        self, owner_id: UUID, today: date | None = None
    ) -> list[GoalProgress]:
        """Return progress for the user's latest goals."""
        current = today or date.today()
        progress = []
        for goal in self.goal_repository.list_goals(owner_id, GOALS_LIMIT):
            logs = self.repository.list_entries(
                owner_id, since=goal.start_date, newest_first=False
            )
            in_period = [
                log
                for log in logs
                if goal.start_date <= log.date <= min(goal.end_date, current)
            ]
            wasted = _sum(in_period)
            percent = _goal_percent(goal, wasted)
            progress.append(
                GoalProgress(goal=goal, wasted_grams=wasted, percent=percent)
            )
        return progress


def environmental_impact(total_grams: float) -> EnvironmentalImpact:
    """Convert wasted grams into a CO2, water and land footprint."""
    kilograms = total_grams / 1000
    return EnvironmentalImpact(
        co2_kg=kilograms * CO2_KG_PER_KG,
        water_liters=kilograms * WATER_LITERS_PER_KG,
        land_m2=kilograms * LAND_M2_PER_KG,
    )


def waste_trend(logs: list[WasteEntry]) -> int:
    """Percent change of the second half of the logs versus the first half."""
    if len(logs) < 2:  # noqa: PLR2004
        return 0
    middle = len(logs) // 2
    first = _sum(logs[:middle])
    second = _sum(logs[middle:])
    if first == 0:
        return 0
    return round((second - first) / first * 100)


def range_start(time_range: TimeRange, today: date) -> date:
    """Return the first day included in a range."""
    if time_range == TimeRange.WEEK:
        return today - timedelta(days=7)
    if time_range == TimeRange.MONTH:
        return _months_ago(today, 1)
    if time_range == TimeRange.QUARTER:
        return _months_ago(today, 3)
    return _months_ago(today, 12)


def _months_ago(day: date, months: int) -> date:
    month_index = day.year * 12 + day.month - 1 - months
    year, month = divmod(month_index, 12)
    month += 1
    return date(year, month, min(day.day, monthrange(year, month)[1]))


def _goal_percent(goal: Goal, wasted: float) -> int | None:
    if goal.target_quantity:
        return max(0, min(100, round((1 - wasted / goal.target_quantity) * 100)))
    # Reduction-percentage goals need a baseline period that is not defined yet.
    return None


def _sum(logs: Iterable[WasteEntry]) -> float:
    return float(sum(log.quantity_grams for log in logs))


def _breakdown(
    logs: list[WasteEntry], key: Callable[[WasteEntry], str]
) -> list[Breakdown]:
    totals: dict[str, float] = defaultdict(float)
    for log in logs:
        totals[key(log)] += log.quantity_grams
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [Breakdown(key=name, value=round(value)) for name, value in ranked]


def _category_totals(logs: list[WasteEntry]) -> list[Breakdown]:
    totals = {category: 0.0 for category in WasteCategory}
    for log in logs:
        totals[log.category] += log.quantity_grams
    return [
        Breakdown(key=category.value, value=value)
        for category, value in totals.items()
        if value > 0
    ]


def _last_days(logs: list[WasteEntry], today: date, days: int) -> list[DailyWaste]:
    series = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        grams = _sum(log for log in logs if log.date == day)
        series.append(DailyWaste(day=day, grams=grams))
    return series


def _time_series(logs: list[WasteEntry], time_range: TimeRange) -> list[Breakdown]:
    grouped: dict[str, float] = {}
    for log in logs:
        if time_range in (TimeRange.WEEK, TimeRange.MONTH):
            label = f"{log.date:%b} {log.date.day}"
        else:
            label = f"{log.date:%b %Y}"
        grouped[label] = grouped.get(label, 0.0) + log.quantity_grams
    return [
        Breakdown(key=label, value=round(value)) for label, value in grouped.items()
    ]
