"""
VARIANCE CORRECTION ENGINE
Bounded correction factor from the realized-vs-forecast variance

RESPONSIBILITIES:
- Weight elapsed days' variance by recency
- Clamp the weighted variance
- Turn it into a single factor for every remaining day

RULES:
❌ Never corrects past days or today (they use actuals)
❌ No correction below the minimum sample size
✅ Factor always inside [1 - max_correction, 1 + max_correction]
✅ Pure calculation
"""

import logging
import math
from typing import Iterable

from daily_forecast.domain.models import (
    ConfidenceTier,
    DynamicAdjustmentResult,
    ForecastThresholds,
    PastDayVariance,
)

logger = logging.getLogger(__name__)

# Variance inside this band (as a decimal) is reported as "no adjustment needed"
NEUTRAL_VARIANCE_BAND = 0.005


class VarianceCorrectionEngine:
    """
    Variance Correction Engine
    Recalibrates future days against the month's running performance
    """

    def __init__(self, thresholds: ForecastThresholds | None = None):
        self.thresholds = thresholds or ForecastThresholds()

    def calculate(
        self,
        past_days: Iterable[PastDayVariance],
        current_day: int
    ) -> DynamicAdjustmentResult:
        """
        Compute the correction factor for the remaining days

        Args:
            past_days: Elapsed days with their forecast, actual and variance %
            current_day: Day of month of the reference date

        Returns:
            DynamicAdjustmentResult
        """
        samples = [
            day for day in past_days
            if day.actual is not None
            and day.variance_pct is not None
            and day.forecast > 0
            and day.day_of_month < current_day
        ]

        minimum = self.thresholds.min_correction_samples
        if len(samples) < minimum:
            return DynamicAdjustmentResult(
                observed_variance_pct=0.0,
                correction_factor=1.0,
                confidence=ConfidenceTier.LOW,
                data_points_used=len(samples),
                reason=(
                    f"insufficient data: {len(samples)} of {minimum} required days "
                    "with actuals, no adjustment applied"
                ),
            )

        weighted_variance = self._recency_weighted_variance(samples, current_day)
        limit = self.thresholds.max_correction
        clamped = min(limit, max(-limit, weighted_variance))
        correction_factor = 1.0 + clamped

        result = DynamicAdjustmentResult(
            observed_variance_pct=round(clamped * 100.0, 4),
            correction_factor=correction_factor,
            confidence=self._confidence_tier(len(samples)),
            data_points_used=len(samples),
            reason=self._reason(clamped, len(samples)),
        )

        logger.info(
            "DYNAMIC_ADJUSTMENT | day=%s | samples=%s | variance=%.4f | factor=%.4f",
            current_day,
            len(samples),
            weighted_variance,
            correction_factor,
        )
        return result

    def recency_weight(self, days_ago: int) -> float:
        """
        Weight of an observation made days_ago days before the reference day

        Strictly decreasing in days_ago.
        """
        return math.exp(-max(0, days_ago) / self.thresholds.recency_decay_days)

    def _recency_weighted_variance(
        self,
        samples: list[PastDayVariance],
        current_day: int
    ) -> float:
        weighted_sum = 0.0
        total_weight = 0.0
        for day in samples:
            weight = self.recency_weight(current_day - day.day_of_month)
            weighted_sum += weight * (day.variance_pct / 100.0)
            total_weight += weight
        return weighted_sum / total_weight

    def _confidence_tier(self, sample_count: int) -> ConfidenceTier:
        if sample_count >= self.thresholds.high_confidence_samples:
            return ConfidenceTier.HIGH
        if sample_count >= self.thresholds.min_correction_samples:
            return ConfidenceTier.MEDIUM
        return ConfidenceTier.LOW

    @staticmethod
    def _reason(variance: float, sample_count: int) -> str:
        if abs(variance) < NEUTRAL_VARIANCE_BAND:
            return f"no adjustment needed: on track over {sample_count} days"

        direction = "over-performance" if variance > 0 else "under-performance"
        return (
            f"{variance * 100:+.1f}% adjustment due to {direction} "
            f"over {sample_count} days"
        )


def compute_dynamic_adjustment(
    past_days: Iterable[PastDayVariance],
    current_day: int,
    thresholds: ForecastThresholds | None = None
) -> DynamicAdjustmentResult:
    """Correction factor for the remaining days of the month"""
    return VarianceCorrectionEngine(thresholds).calculate(past_days, current_day)
