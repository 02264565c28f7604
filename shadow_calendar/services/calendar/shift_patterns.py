from __future__ import annotations

from shadow_calendar.domain.value_objects.schedule import TypicalShift

DEFAULT_EMPLOYMENT_TYPE = "full-time"


def _weekly(days: tuple[int, ...], start_hour: int, end_hour: int) -> list[TypicalShift]:
    return [TypicalShift(day_of_week=day, start_hour=start_hour, end_hour=end_hour) for day in days]


# day_of_week: 0 = Sunday ... 6 = Saturday
TYPICAL_SHIFTS: dict[str, tuple[TypicalShift, ...]] = {
    "full-time": tuple(_weekly((1, 2, 3, 4, 5), 9, 17)),
    "part-time": tuple(_weekly((1, 3, 5), 10, 14)),
    "retail": tuple(_weekly((0, 2, 4), 11, 19) + _weekly((6,), 9, 17)),
    "restaurant": tuple(_weekly((2, 3, 4, 5, 6), 16, 23)),
}


def normalize_employment_type(employment_type: str | None) -> str:
    if not employment_type:
        return DEFAULT_EMPLOYMENT_TYPE
    return "-".join(employment_type.strip().lower().replace("_", " ").split())


def get_typical_shifts(employment_type: str | None) -> list[TypicalShift]:
    """Default weekly pattern for an employment type; unknown types get full-time."""
    key = normalize_employment_type(employment_type)
    return list(TYPICAL_SHIFTS.get(key, TYPICAL_SHIFTS[DEFAULT_EMPLOYMENT_TYPE]))
