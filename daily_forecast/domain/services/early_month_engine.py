"""
EARLY MONTH ENGINE
Monthly projection for the first days of a month

During the first days the intra-month pace rests on one or two days and is
too noisy to extrapolate. Until then the month is projected from the same
calendar month in prior years, drifted by year-over-year growth and the
previous month's momentum.
"""

import logging
from datetime import date
from typing import Optional, Sequence

from daily_forecast.domain.errors import InsufficientDataError
from daily_forecast.domain.models import (
    ConfidenceTier,
    EarlyMonthProjection,
    ForecastThresholds,
    MonthlyTotal,
)

logger = logging.getLogger(__name__)

MAX_PRIOR_YEARS = 3


class EarlyMonthEngine:
    """Same-month-of-prior-years projection with growth and momentum"""

    def __init__(self, thresholds: ForecastThresholds | None = None):
        self.thresholds = thresholds or ForecastThresholds()

    def is_early_month(self, current_date: date) -> bool:
        return current_date.day <= self.thresholds.early_month_last_day

    def project(
        self,
        current_date: date,
        historical_totals: Sequence[MonthlyTotal]
    ) -> EarlyMonthProjection:
        """
        Project the month of current_date from prior years

        Returns an inactive projection once realtime mode applies.

        Raises:
            InsufficientDataError: In early mode with no prior-year month
        """
        day = current_date.day
        days_until_realtime = max(0, self.thresholds.early_month_last_day + 1 - day)

        if not self.is_early_month(current_date):
            return EarlyMonthProjection(
                is_early_month=False,
                day_of_month=day,
                days_until_realtime=0,
                methodology="realtime intra-month data",
            )

        same_month = sorted(
            (t for t in historical_totals
             if t.month == current_date.month and t.year < current_date.year),
            key=lambda t: t.year,
        )[-MAX_PRIOR_YEARS:]
        if not same_month:
            raise InsufficientDataError(
                f"No prior-year data for month {current_date.month}, "
                "early-month projection unavailable"
            )

        by_period = {t.period_index: t.services for t in historical_totals}
        current_index = current_date.year * 12 + (current_date.month - 1)

        same_month_average = sum(t.services for t in same_month) / len(same_month)
        yoy_growth = self._yoy_growth(by_period, current_index)
        momentum = self._momentum(by_period, current_index)

        projection = same_month_average
        if yoy_growth is not None:
            projection *= 1 + yoy_growth
        if momentum is not None:
            projection *= 1 + self.thresholds.momentum_weight * momentum
        projection = max(0.0, projection)

        years = tuple(t.year for t in same_month)
        confidence = self._confidence(len(years), yoy_growth, momentum)

        logger.info(
            "EARLY_MONTH_PROJECTION | date=%s | years=%s | yoy=%s | momentum=%s | projection=%.1f",
            current_date,
            years,
            yoy_growth,
            momentum,
            projection,
        )

        return EarlyMonthProjection(
            is_early_month=True,
            day_of_month=day,
            days_until_realtime=days_until_realtime,
            projection=projection,
            years_used=years,
            same_month_average=same_month_average,
            yoy_growth=yoy_growth,
            momentum=momentum,
            confidence=confidence,
            methodology=self._methodology(years, yoy_growth, momentum),
        )

    @staticmethod
    def _yoy_growth(by_period: dict[int, float], current_index: int) -> Optional[float]:
        """Latest three complete months against the same months a year earlier"""
        recent = [by_period.get(current_index - offset) for offset in (1, 2, 3)]
        year_ago = [by_period.get(current_index - offset - 12) for offset in (1, 2, 3)]
        if any(v is None for v in recent + year_ago):
            return None
        if sum(year_ago) <= 0:
            return None
        return sum(recent) / sum(year_ago) - 1

    @staticmethod
    def _momentum(by_period: dict[int, float], current_index: int) -> Optional[float]:
        """Previous month against the average of the three months before it"""
        previous = by_period.get(current_index - 1)
        baseline = [by_period.get(current_index - offset) for offset in (2, 3, 4)]
        if previous is None or any(v is None for v in baseline):
            return None
        baseline_mean = sum(baseline) / len(baseline)
        if baseline_mean <= 0:
            return None
        return previous / baseline_mean - 1

    @staticmethod
    def _confidence(
        years: int,
        yoy_growth: Optional[float],
        momentum: Optional[float]
    ) -> ConfidenceTier:
        signals = sum(1 for s in (yoy_growth, momentum) if s is not None)
        if years >= 3 and signals == 2:
            return ConfidenceTier.HIGH
        if years >= 2 and signals >= 1:
            return ConfidenceTier.MEDIUM
        return ConfidenceTier.LOW

    def _methodology(
        self,
        years: tuple[int, ...],
        yoy_growth: Optional[float],
        momentum: Optional[float]
    ) -> str:
        parts = [f"average of same month in {', '.join(str(y) for y in years)}"]
        if yoy_growth is not None:
            parts.append(f"year-over-year growth {yoy_growth:+.1%}")
        if momentum is not None:
            parts.append(f"momentum {momentum:+.1%} at {self.thresholds.momentum_weight:.0%} weight")
        return "; ".join(parts)
