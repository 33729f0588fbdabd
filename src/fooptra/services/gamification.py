"""Display values derived from the stored level and points counters."""

from dataclasses import dataclass

from fooptra.domain.profiles import Profile

POINTS_PER_LEVEL = 1000


def level_floor(level: int) -> int:
    return (level - 1) * POINTS_PER_LEVEL


def level_ceiling(level: int) -> int:
    return level * POINTS_PER_LEVEL


def progress_to_next_level(profile: Profile) -> float:
    """Return progress through the current level, clamped to [0, 1]."""
    floor = level_floor(profile.level)
    ceiling = level_ceiling(profile.level)
    fraction = (profile.total_points - floor) / (ceiling - floor)
    return min(1.0, max(0.0, fraction))


def points_to_next_level(profile: Profile) -> int:
    """Return the points still missing to reach the next level."""
    return max(0, level_ceiling(profile.level) - profile.total_points)


@dataclass(frozen=True)
class LevelProgress:
    """Progress-bar values for a profile."""

    level: int
    total_points: int
    level_floor: int
    level_ceiling: int
    fraction: float
    percent: int
    points_remaining: int
    current_streak: int
    longest_streak: int


def level_progress(profile: Profile) -> LevelProgress:
    """Bundle the derived values; recompute on every read."""
    fraction = progress_to_next_level(profile)
    return LevelProgress(
        level=profile.level,
        total_points=profile.total_points,
        level_floor=level_floor(profile.level),
        level_ceiling=level_ceiling(profile.level),
        fraction=fraction,
        percent=round(fraction * 100),
        points_remaining=points_to_next_level(profile),
        current_streak=profile.current_streak,
        longest_streak=profile.longest_streak,
    )
