"""
DAY COMPARISON BUILDER
Per-day forecast vs actual records for a calendar month

RESPONSIBILITIES:
- Forecast every day from the base pace and its operation factors
- Attach actuals, variance and cumulative totals to closed days
- Apply the correction factor, uncertainty cone and reach probability to future days

RULES:
❌ Never corrects past days or today (adjusted = actual)
❌ Cumulative totals are accumulated in calendar order, never recomputed per day
✅ Uncertainty is 0 on closed days and non-decreasing afterwards
✅ Pure calculation
"""

import logging
import math
from datetime import date
from typing import Mapping, Optional

from daily_forecast.domain.errors import InsufficientDataError, InvalidArgumentError
from daily_forecast.domain.models import (
    DailyActual,
    DayComparison,
    ForecastThresholds,
    HolidayAdjustment,
    PastDayVariance,
)
from daily_forecast.domain.strategy.weekday_seasonality import factor_for_date, weekday_name
from daily_forecast.utils.time import days_in_month, month_days

logger = logging.getLogger(__name__)


class DayComparisonBuilder:
    """
    Day Comparison Builder
    Builds the month's day records in one ordered pass
    """

    def __init__(self, thresholds: ForecastThresholds | None = None):
        self.thresholds = thresholds or ForecastThresholds()

    def forecast_for(
        self,
        day: date,
        base_pace: float,
        holiday_adjustment: Optional[HolidayAdjustment] = None
    ) -> int:
        """round(base_pace x weekday factor x operation factor)"""
        operation_factor = holiday_adjustment.factor_for(day) if holiday_adjustment else 1.0
        return int(round(base_pace * factor_for_date(day) * operation_factor))

    def uncertainty_for(self, day: date, current_date: date) -> float:
        """Relative band half-width; grows with the square root of days ahead"""
        days_ahead = (day - current_date).days
        if days_ahead <= 0:
            return 0.0
        return min(
            self.thresholds.max_uncertainty,
            self.thresholds.base_uncertainty * math.sqrt(days_ahead),
        )

    @staticmethod
    def probability_to_reach(forecast: int, adjusted: int, uncertainty: float) -> float:
        """
        Probability (0-100) that the day reaches its original forecast

        Volume is modelled as Normal(adjusted, adjusted x uncertainty).
        """
        sigma = adjusted * uncertainty
        if sigma <= 0:
            return 100.0 if adjusted >= forecast else 0.0

        z = (forecast - adjusted) / sigma
        probability = 100.0 * 0.5 * (1.0 - math.erf(z / math.sqrt(2.0)))
        return min(100.0, max(0.0, probability))

    def past_day_variances(
        self,
        current_date: date,
        base_pace: float,
        actuals: Mapping[date, DailyActual],
        holiday_adjustment: Optional[HolidayAdjustment] = None
    ) -> list[PastDayVariance]:
        """Forecast vs actual for the days strictly before current_date"""
        variances = []
        for day in month_days(current_date.year, current_date.month):
            if day >= current_date:
                break
            forecast = self.forecast_for(day, base_pace, holiday_adjustment)
            actual = self._actual_services(actuals, day)
            variances.append(PastDayVariance(
                day_of_month=day.day,
                forecast=forecast,
                actual=actual,
                variance_pct=self._variance_pct(actual - forecast, forecast),
            ))
        return variances

    def build(
        self,
        current_date: date,
        base_pace: float,
        actuals: Mapping[date, DailyActual],
        correction_factor: float = 1.0,
        aov: float = 0.0,
        holiday_adjustment: Optional[HolidayAdjustment] = None
    ) -> tuple[DayComparison, ...]:
        """
        One record per calendar day of current_date's month

        Closed days (before or on current_date) without a stored actual are
        treated as zero-volume days.

        Raises:
            InsufficientDataError: If there is no actual for any closed day
            InvalidArgumentError: On a negative pace or AOV
        """
        if base_pace < 0:
            raise InvalidArgumentError(f"Base pace cannot be negative: {base_pace}")
        if aov < 0:
            raise InvalidArgumentError(f"AOV cannot be negative: {aov}")

        first_day = current_date.replace(day=1)
        if not any(first_day <= d <= current_date for d in actuals):
            raise InsufficientDataError(
                f"No actuals recorded for {current_date:%Y-%m} up to {current_date}"
            )

        official_holidays = {
            h.date: h.name for h in (holiday_adjustment.holidays if holiday_adjustment else ())
        }

        forecast_cum = 0
        lower_cum = 0.0
        upper_cum = 0.0
        adjusted_cum = 0
        actual_cum = 0
        gmv_actual_cum = 0.0

        comparisons = []
        for day in month_days(current_date.year, current_date.month):
            is_past = day < current_date
            is_today = day == current_date
            closed = is_past or is_today

            weekday_factor = factor_for_date(day)
            operation_factor = holiday_adjustment.factor_for(day) if holiday_adjustment else 1.0
            forecast = self.forecast_for(day, base_pace, holiday_adjustment)
            uncertainty = self.uncertainty_for(day, current_date)
            forecast_lower = forecast * (1 - uncertainty)
            forecast_upper = forecast * (1 + uncertainty)

            if closed:
                actual = self._actual_services(actuals, day)
                stored = actuals.get(day)
                realized_gmv = stored.gmv if stored is not None else 0.0
                adjusted = actual
                adjustment_factor = 1.0
                variance = actual - forecast
                variance_pct = self._variance_pct(variance, forecast)
                probability = 100.0 if actual >= forecast else 0.0
                actual_cum += actual
                gmv_actual_cum += actual * aov
                actual_cumulative = actual_cum
                gmv_actual_cumulative = gmv_actual_cum
            else:
                actual = None
                realized_gmv = None
                adjusted = int(round(forecast * correction_factor))
                adjustment_factor = correction_factor
                variance = None
                variance_pct = None
                probability = self.probability_to_reach(forecast, adjusted, uncertainty)
                actual_cumulative = None
                gmv_actual_cumulative = None

            forecast_cum += forecast
            lower_cum += forecast_lower
            upper_cum += forecast_upper
            adjusted_cum += adjusted

            comparisons.append(DayComparison(
                date=day,
                day_of_month=day.day,
                day_label=f"{weekday_name(day)[:3]} {day.day:02d}",
                weekday_name=weekday_name(day),
                is_past=is_past,
                is_today=is_today,
                is_holiday=day in official_holidays,
                holiday_name=official_holidays.get(day),
                weekday_factor=weekday_factor,
                operation_factor=operation_factor,
                adjustment_factor=adjustment_factor,
                forecast=forecast,
                adjusted_forecast=adjusted,
                actual=actual,
                variance=variance,
                variance_pct=variance_pct,
                forecast_lower=forecast_lower,
                forecast_upper=forecast_upper,
                uncertainty_pct=uncertainty * 100.0,
                probability_to_reach=probability,
                forecast_cumulative=forecast_cum,
                forecast_lower_cumulative=lower_cum,
                forecast_upper_cumulative=upper_cum,
                adjusted_cumulative=adjusted_cum,
                actual_cumulative=actual_cumulative,
                realized_gmv=realized_gmv,
                gmv_forecast=forecast * aov,
                gmv_adjusted_forecast=adjusted * aov,
                gmv_actual=actual * aov if actual is not None else None,
                gmv_variance=variance * aov if variance is not None else None,
                gmv_variance_pct=variance_pct,
                gmv_forecast_lower=forecast_lower * aov,
                gmv_forecast_upper=forecast_upper * aov,
                gmv_forecast_cumulative=forecast_cum * aov,
                gmv_forecast_lower_cumulative=lower_cum * aov,
                gmv_forecast_upper_cumulative=upper_cum * aov,
                gmv_adjusted_cumulative=adjusted_cum * aov,
                gmv_actual_cumulative=gmv_actual_cumulative,
            ))

        logger.debug(
            "DAY_COMPARISONS_BUILT | date=%s | days=%s | pace=%.2f | factor=%.4f",
            current_date,
            days_in_month(current_date.year, current_date.month),
            base_pace,
            correction_factor,
        )
        return tuple(comparisons)

    @staticmethod
    def _actual_services(actuals: Mapping[date, DailyActual], day: date) -> int:
        stored = actuals.get(day)
        return stored.services if stored is not None else 0

    @staticmethod
    def _variance_pct(variance: int, forecast: int) -> Optional[float]:
        if forecast <= 0:
            return None
        return variance / forecast * 100.0
