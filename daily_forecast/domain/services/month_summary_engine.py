"""
MONTH SUMMARY ENGINE
Month-level KPIs folded from the day comparisons

RULES:
❌ No recomputation of day forecasts
✅ Pure reduction over the ordered day records
"""

import logging
from typing import Optional, Sequence

from daily_forecast.domain.errors import InvalidArgumentError
from daily_forecast.domain.models import (
    DayComparison,
    ForecastThresholds,
    MonthSummary,
    TrendDirection,
)

logger = logging.getLogger(__name__)

TREND_WINDOW = 3


class MonthSummaryEngine:
    """
    Month Summary Engine
    Aggregates the day records into month KPIs
    """

    def __init__(self, thresholds: ForecastThresholds | None = None):
        self.thresholds = thresholds or ForecastThresholds()

    def summarize(self, day_comparisons: Sequence[DayComparison]) -> MonthSummary:
        """
        Fold the day records of one month

        Raises:
            InvalidArgumentError: If there are no day records
        """
        if not day_comparisons:
            raise InvalidArgumentError("Cannot summarize an empty month")

        closed = [d for d in day_comparisons if d.is_closed]
        future = [d for d in day_comparisons if d.is_future]
        days_in_month = len(day_comparisons)

        days_met = sum(1 for d in closed if d.met_forecast)
        trend, trend_shift = self._trend(closed)

        actual_to_date = sum(d.actual for d in closed)
        forecast_to_date = sum(d.forecast for d in closed)
        variance_to_date = actual_to_date - forecast_to_date
        closed_variances = [d.variance_pct for d in closed if d.variance_pct is not None]

        original = sum(d.forecast for d in day_comparisons)
        adjusted = actual_to_date + sum(d.adjusted_forecast for d in future)
        pessimistic = actual_to_date + sum(
            d.adjusted_forecast * (1 - d.uncertainty_pct / 100.0) for d in future
        )
        optimistic = actual_to_date + sum(
            d.adjusted_forecast * (1 + d.uncertainty_pct / 100.0) for d in future
        )

        pro_rata_target = original * len(closed) / days_in_month

        if future:
            probability = sum(d.probability_to_reach for d in future) / len(future)
        else:
            probability = 100.0 if adjusted >= original else 0.0

        summary = MonthSummary(
            days_in_month=days_in_month,
            closed_days=len(closed),
            remaining_days=len(future),
            days_met_forecast=days_met,
            days_missed_forecast=len(closed) - days_met,
            trend=trend,
            trend_shift=trend_shift,
            actual_to_date=actual_to_date,
            forecast_to_date=forecast_to_date,
            variance_to_date=variance_to_date,
            variance_to_date_pct=_pct(variance_to_date, forecast_to_date),
            average_variance_pct=(
                sum(closed_variances) / len(closed_variances) if closed_variances else None
            ),
            original_monthly_forecast=original,
            adjusted_monthly_forecast=adjusted,
            pessimistic_monthly_forecast=pessimistic,
            optimistic_monthly_forecast=optimistic,
            adjustment_pct=_pct(adjusted - original, original),
            pro_rata_target=pro_rata_target,
            progress_vs_pro_rata_pct=_pct(actual_to_date, pro_rata_target),
            target_reach_probability=probability,
            gmv_actual_to_date=sum(d.gmv_actual for d in closed),
            gmv_original_monthly_forecast=sum(d.gmv_forecast for d in day_comparisons),
            gmv_adjusted_monthly_forecast=(
                sum(d.gmv_actual for d in closed)
                + sum(d.gmv_adjusted_forecast for d in future)
            ),
        )

        logger.debug(
            "MONTH_SUMMARY | closed=%s | met=%s | trend=%s | original=%s | adjusted=%s",
            len(closed),
            days_met,
            trend.value,
            original,
            adjusted,
        )
        return summary

    def _trend(self, closed: list[DayComparison]) -> tuple[TrendDirection, Optional[float]]:
        """Newest minus oldest variance % over the last closed days"""
        window = [d.variance_pct for d in closed if d.variance_pct is not None][-TREND_WINDOW:]
        if len(window) < TREND_WINDOW:
            return TrendDirection.STABLE, None

        shift = window[-1] - window[0]
        threshold = self.thresholds.trend_shift_threshold
        if shift > threshold:
            return TrendDirection.IMPROVING, shift
        if shift < -threshold:
            return TrendDirection.DECLINING, shift
        return TrendDirection.STABLE, shift


def _pct(part: float, whole: float) -> Optional[float]:
    if whole <= 0:
        return None
    return part / whole * 100.0


def compute_month_summary(
    day_comparisons: Sequence[DayComparison],
    thresholds: ForecastThresholds | None = None
) -> MonthSummary:
    """Month KPIs for a sequence of day records"""
    return MonthSummaryEngine(thresholds).summarize(day_comparisons)
