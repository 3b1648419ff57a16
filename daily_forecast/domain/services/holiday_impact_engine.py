"""
HOLIDAY IMPACT ENGINE
Operation factors for holidays and the days around them

RESPONSIBILITIES:
- Find holidays inside a date window
- Spread their effect onto neighbouring days (extended impact)
- Produce a per-day operation factor and a period-level adjustment factor

RULES:
❌ Never blocks forecast generation (lookup failures degrade to neutral)
❌ An extended day never overrides an official holiday or an earlier claim
✅ Pure calculation once holidays are fetched
✅ Deterministic output
"""

import logging
from datetime import date, timedelta
from typing import Iterable, Protocol

from daily_forecast.domain.errors import InvalidArgumentError, UpstreamUnavailableError
from daily_forecast.domain.models import (
    ExtendedImpactDay,
    Holiday,
    HolidayAdjustment,
    ImpactPosition,
)
from daily_forecast.domain.strategy.holiday_calendar import (
    find_extended_impact,
    holiday_day_factor,
)

logger = logging.getLogger(__name__)

NO_HOLIDAYS_EXPLANATION = "no holidays in period"
NO_DATA_EXPLANATION = "no holiday data available"


class HolidayRepository(Protocol):
    """Protocol for holiday data access - ASYNC"""

    async def get_holidays(self, start_date: date, end_date: date) -> list[Holiday]:
        """Get active holidays with start_date <= date <= end_date"""
        ...


class HolidayImpactEngine:
    """
    Holiday Impact Engine
    Converts a holiday calendar into operation factors
    """

    def __init__(self, holiday_repo: HolidayRepository | None = None):
        """Initialize with an optional holiday source"""
        self.holiday_repo = holiday_repo

    async def calculate_adjustment(
        self,
        start_date: date,
        number_of_days: int,
        current_daily_pace: float = 0.0
    ) -> HolidayAdjustment:
        """
        Fetch holidays for the window and compute their impact

        A failed lookup returns a neutral result carrying a warning.

        Raises:
            InvalidArgumentError: If number_of_days is negative
        """
        self._validate_days(number_of_days)
        if number_of_days == 0:
            return self.neutral(start_date, 0)
        if self.holiday_repo is None:
            return self.neutral(start_date, number_of_days, warning=NO_DATA_EXPLANATION)

        end_date = start_date + timedelta(days=number_of_days)
        try:
            holidays = await self.holiday_repo.get_holidays(start_date, end_date)
        except UpstreamUnavailableError as exc:
            logger.warning(
                "HOLIDAY_LOOKUP_FAILED | start=%s | end=%s | error=%s",
                start_date,
                end_date,
                exc,
            )
            return self.neutral(
                start_date,
                number_of_days,
                explanation=NO_DATA_EXPLANATION,
                warning=f"Holiday data unavailable, neutral factor applied: {exc}",
            )

        return self.compute_adjustment(start_date, number_of_days, holidays, current_daily_pace)

    def compute_adjustment(
        self,
        start_date: date,
        number_of_days: int,
        holidays: Iterable[Holiday],
        current_daily_pace: float = 0.0
    ) -> HolidayAdjustment:
        """
        Compute the holiday impact over [start_date, start_date + number_of_days)

        Args:
            start_date: First day of the window
            number_of_days: Window length in days
            holidays: Holidays fetched for [start_date, start_date + number_of_days];
                      one sitting on the closing boundary can still project
                      extended days into the window
            current_daily_pace: Daily volume used to size the impact

        Returns:
            HolidayAdjustment
        """
        self._validate_days(number_of_days)
        if number_of_days == 0:
            return self.neutral(start_date, 0)

        window_end = start_date + timedelta(days=number_of_days)
        fetched = sorted(holidays, key=lambda h: (h.date, h.name))
        if not fetched:
            return self.neutral(start_date, number_of_days)

        official_dates = {h.date for h in fetched}

        in_window: list[Holiday] = []
        seen_dates: set[date] = set()
        for holiday in fetched:
            if start_date <= holiday.date < window_end and holiday.date not in seen_dates:
                in_window.append(holiday)
                seen_dates.add(holiday.date)

        extended_days = self._generate_extended_days(fetched, start_date, window_end, official_dates)

        day_factors: dict[date, float] = {}
        for holiday in in_window:
            day_factors[holiday.date] = holiday_day_factor(
                holiday.base_factor,
                holiday.observed_impact_pct
            )
        for extended in extended_days:
            day_factors[extended.date] = extended.factor

        holiday_sum = sum(day_factors[h.date] for h in in_window)
        extended_sum = sum(d.factor for d in extended_days)
        normal_days = number_of_days - len(in_window) - len(extended_days)
        effective_days = normal_days + holiday_sum + extended_sum
        adjustment_factor = effective_days / number_of_days

        result = HolidayAdjustment(
            start_date=start_date,
            total_days=number_of_days,
            adjustment_factor=adjustment_factor,
            effective_days=effective_days,
            holidays=tuple(in_window),
            extended_days=tuple(extended_days),
            day_factors=day_factors,
            estimated_volume_impact=current_daily_pace * (effective_days - number_of_days),
            explanation=self._explain(in_window, extended_days),
        )

        logger.info(
            "HOLIDAY_ADJUSTMENT | start=%s | days=%s | holidays=%s | extended=%s | factor=%.4f",
            start_date,
            number_of_days,
            len(in_window),
            len(extended_days),
            adjustment_factor,
        )
        return result

    @staticmethod
    def neutral(
        start_date: date,
        number_of_days: int,
        explanation: str = NO_HOLIDAYS_EXPLANATION,
        warning: str | None = None
    ) -> HolidayAdjustment:
        """Adjustment with no holiday effect at all"""
        return HolidayAdjustment(
            start_date=start_date,
            total_days=number_of_days,
            adjustment_factor=1.0,
            effective_days=float(number_of_days),
            explanation=explanation,
            warning=warning,
        )

    @staticmethod
    def _validate_days(number_of_days: int) -> None:
        if number_of_days < 0:
            raise InvalidArgumentError(f"Number of days cannot be negative: {number_of_days}")

    @staticmethod
    def _generate_extended_days(
        holidays: list[Holiday],
        start_date: date,
        window_end: date,
        official_dates: set[date]
    ) -> list[ExtendedImpactDay]:
        """
        Spread each holiday onto its configured neighbouring days

        First claim wins: holidays are visited in date order and a date already
        taken by another holiday's extension is never overwritten.
        """
        claimed: dict[date, ExtendedImpactDay] = {}

        for holiday in holidays:
            config = find_extended_impact(holiday.name)
            if config is None:
                continue

            candidates = [
                (holiday.date - timedelta(days=offset), config.before_factor, ImpactPosition.BEFORE)
                for offset in range(1, config.days_before + 1)
            ] + [
                (holiday.date + timedelta(days=offset), config.after_factor, ImpactPosition.AFTER)
                for offset in range(1, config.days_after + 1)
            ]

            for day, factor, position in candidates:
                if not start_date <= day < window_end:
                    continue
                if day in official_dates or day in claimed:
                    continue
                claimed[day] = ExtendedImpactDay(
                    date=day,
                    holiday_name=holiday.name,
                    factor=factor,
                    position=position,
                )

        return sorted(claimed.values(), key=lambda d: d.date)

    @staticmethod
    def _explain(holidays: list[Holiday], extended_days: list[ExtendedImpactDay]) -> str:
        before = sum(1 for d in extended_days if d.position == ImpactPosition.BEFORE)
        after = len(extended_days) - before

        if holidays:
            names = ", ".join(f"{h.name} ({h.date.isoformat()})" for h in holidays)
            text = f"{len(holidays)} holiday(s) in period: {names}"
        else:
            text = "no holidays in period"

        if extended_days:
            text += f"; extended impact on {before} day(s) before and {after} day(s) after"
        return text
