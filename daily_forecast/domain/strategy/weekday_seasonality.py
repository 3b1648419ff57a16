"""
WEEKDAY SEASONALITY TABLE

Static per-weekday multipliers learned from history. Each value is the ratio of
that weekday's average daily volume to the month's average daily pace, so the
seven factors average to 1.0.

Weekday indices follow date.weekday(): Monday is 0 and Sunday is 6.
The table is calibrated offline and never recomputed at runtime.
"""

from datetime import date

from daily_forecast.domain.errors import InvalidArgumentError

# -------------------------------------------------------------------
# Calibrated Factors
# -------------------------------------------------------------------

WEEKDAY_FACTORS = {
    0: 1.12,  # Monday
    1: 1.18,  # Tuesday
    2: 1.20,  # Wednesday
    3: 1.29,  # Thursday
    4: 1.09,  # Friday
    5: 0.71,  # Saturday
    6: 0.41,  # Sunday
}

WEEKDAY_NAMES = {
    0: "Monday",
    1: "Tuesday",
    2: "Wednesday",
    3: "Thursday",
    4: "Friday",
    5: "Saturday",
    6: "Sunday",
}

# -------------------------------------------------------------------
# Lookup Helpers
# -------------------------------------------------------------------

def factor_for(weekday: int) -> float:
    """
    Return the seasonality multiplier for a weekday index.

    Raises:
        InvalidArgumentError: If weekday is not an integer in 0..6
    """
    if isinstance(weekday, bool) or not isinstance(weekday, int):
        raise InvalidArgumentError(f"Weekday index must be an integer, got {weekday!r}")
    if weekday not in WEEKDAY_FACTORS:
        raise InvalidArgumentError(f"Weekday index out of range 0..6: {weekday}")
    return WEEKDAY_FACTORS[weekday]


def factor_for_date(day: date) -> float:
    return factor_for(day.weekday())


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]
