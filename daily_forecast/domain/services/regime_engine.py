"""
REGIME DETECTION ENGINE
Classify the monthly series and derive adaptive guardrails

RESPONSIBILITIES:
- Detect the growth regime (normal, exponential, declining, volatile)
- Score the evidence behind it (changepoints, exponential fit, whiteness)
- Derive plausible lower/upper limits for the monthly total

RULES:
❌ No predictions (see EnsembleEngine)
❌ Never fabricates a regime from fewer than MIN_HISTORY_MONTHS points
✅ Deterministic: same series, same result
✅ Confidence always in [0, 1]
"""

import logging
from typing import Sequence

import numpy as np

from daily_forecast.domain.errors import InsufficientDataError
from daily_forecast.domain.models import (
    AdaptiveGuardrails,
    ExponentialFit,
    Regime,
    RegimeAnalysis,
)

logger = logging.getLogger(__name__)

MIN_HISTORY_MONTHS = 3

# Prior belief in each regime before looking at the data
REGIME_PRIORS = {
    Regime.NORMAL: 0.40,
    Regime.EXPONENTIAL: 0.20,
    Regime.DECLINING: 0.20,
    Regime.VOLATILE: 0.20,
}

# Lowest likelihood any regime can receive
LIKELIHOOD_FLOOR = 0.05

# Window sizes
FIT_WINDOW = 12
VOLATILITY_WINDOW = 6
TREND_BASELINE_WINDOW = 3

# Minimum relative spread used by the guardrails when the series is flat
MIN_RELATIVE_SPREAD = 0.05


class RegimeEngine:
    """
    Regime Engine
    Qualitative classification of a monthly series
    """

    def classify(self, series: Sequence[float]) -> RegimeAnalysis:
        """
        Classify a chronological series of monthly totals

        The latest point is usually the current month's projection so that a
        break in the current month is visible to the classifier.

        Raises:
            InsufficientDataError: If fewer than MIN_HISTORY_MONTHS points
        """
        data = np.asarray(series, dtype=float)
        if data.size < MIN_HISTORY_MONTHS:
            raise InsufficientDataError(
                f"Regime classification needs at least {MIN_HISTORY_MONTHS} months, "
                f"got {data.size}"
            )

        changepoints = self.detect_changepoints(data)
        fit = self.exponential_fit(data[-FIT_WINDOW:])
        recent_trend = self._recent_trend(data)
        volatility = self._growth_volatility(data)
        ljung_box_p = self.ljung_box_p_value(self._detrended(data[-FIT_WINDOW:]))

        posteriors = self._posteriors(recent_trend, volatility, fit)

        # Ties resolve in declaration order of Regime
        regime = max(Regime, key=lambda r: posteriors[r])
        confidence = float(min(1.0, max(0.0, posteriors[regime])))
        score = fit.overall_score if regime == Regime.EXPONENTIAL else posteriors[regime]

        analysis = RegimeAnalysis(
            regime=regime,
            confidence=confidence,
            score=float(score),
            changepoints=tuple(changepoints),
            exponential_fit=fit,
            posteriors=posteriors,
            ljung_box_p_value=ljung_box_p,
            volatility_score=volatility,
            recent_trend=recent_trend,
        )

        logger.debug(
            "REGIME_CLASSIFIED | regime=%s | confidence=%.3f | trend=%.3f | volatility=%.3f",
            regime.value,
            confidence,
            recent_trend,
            volatility,
        )
        return analysis

    def guardrails(
        self,
        series: Sequence[float],
        analysis: RegimeAnalysis,
        current_value: float,
        time_horizon: float = 1.0
    ) -> AdaptiveGuardrails:
        """
        Adaptive lower/upper limits for the monthly total

        Limits are mu +/- k * sigma scaled by a regime multiplier. k widens as
        regime confidence drops; a confident exponential regime may also anchor
        the upper limit on the current value so it can exceed every historical
        month.
        """
        data = np.asarray(series, dtype=float)
        mean = float(np.mean(data))
        sigma = max(float(np.std(data)), MIN_RELATIVE_SPREAD * abs(mean))

        if analysis.regime == Regime.EXPONENTIAL:
            k_factor = 2.58 + analysis.confidence * 0.5
            regime_multiplier = 1.5 + max(0.0, analysis.exponential_fit.growth_rate) * 2
        elif analysis.regime == Regime.VOLATILE:
            k_factor = 2.24
            regime_multiplier = 1.2
        elif analysis.regime == Regime.DECLINING:
            k_factor = 1.96
            regime_multiplier = 0.8
        else:
            k_factor = 1.96
            regime_multiplier = 1.0

        # Less certain classification, wider band
        k_factor *= 1.0 + 0.5 * (1.0 - analysis.confidence)

        spread = k_factor * sigma * float(np.sqrt(time_horizon))
        upper = (mean + spread) * regime_multiplier
        lower = max(0.0, (mean - spread) * regime_multiplier)

        if analysis.regime == Regime.EXPONENTIAL and mean > 0:
            upper = max(upper, current_value * (1 + k_factor * sigma / mean))

        return AdaptiveGuardrails(
            lower_limit=lower,
            upper_limit=max(upper, lower),
            k_factor=k_factor,
            regime_multiplier=regime_multiplier,
        )

    @staticmethod
    def detect_changepoints(data: np.ndarray, penalty: float = 1.5) -> list[int]:
        """
        Mean-shift changepoints (simplified PELT)

        Index i is a changepoint when the segments before and after it differ
        in mean by a significant t statistic and by more than 10%.
        """
        n = data.size
        if n < 6:
            return []

        changepoints = []
        for i in range(2, n - 2):
            left, right = data[:i], data[i:]
            left_mean, right_mean = float(left.mean()), float(right.mean())
            shift = abs(left_mean - right_mean)
            if shift <= 0.1 * max(abs(left_mean), abs(right_mean)):
                continue

            pooled_std = float(np.sqrt((left.var() + right.var()) / 2))
            if pooled_std == 0:
                changepoints.append(i)
                continue

            t_statistic = shift / (pooled_std * np.sqrt(2 / min(left.size, right.size)))
            if t_statistic > penalty:
                changepoints.append(i)

        return changepoints

    @staticmethod
    def exponential_fit(data: np.ndarray) -> ExponentialFit:
        """
        Fit ln(y) = ln(a) + lambda * t over the positive values

        Returns a zero fit with fewer than four positive points.
        """
        positive = data[data > 0]
        if positive.size < 4:
            return ExponentialFit(growth_rate=0.0, r_squared=0.0, stability=0.0, overall_score=0.0)

        x = np.arange(positive.size, dtype=float)
        log_y = np.log(positive)
        growth_rate, intercept = np.polyfit(x, log_y, 1)

        residuals = log_y - (intercept + growth_rate * x)
        ss_res = float(np.sum(residuals ** 2))
        ss_tot = float(np.sum((log_y - log_y.mean()) ** 2))
        # A perfectly flat series has no trend to explain
        r_squared = max(0.0, 1 - ss_res / ss_tot) if ss_tot > 0 else 0.0

        growth_rates = positive[1:] / positive[:-1] - 1
        growth_mean = float(growth_rates.mean())
        if abs(growth_mean) > 1e-9:
            stability = max(0.0, 1 - float(growth_rates.std()) / abs(growth_mean))
        else:
            stability = 0.0

        overall = r_squared * 0.4 + stability * 0.4 + min(1.0, abs(growth_rate) / 0.2) * 0.2

        return ExponentialFit(
            growth_rate=float(growth_rate),
            r_squared=float(r_squared),
            stability=float(stability),
            overall_score=float(overall),
        )

    @staticmethod
    def ljung_box_p_value(residuals: np.ndarray, lag: int = 5) -> float:
        """
        Approximate Ljung-Box p-value for whiteness of the residuals

        Uses the exp(-Q / 2h) approximation of the chi-square tail.
        """
        n = residuals.size
        if n < lag + 2:
            return 1.0

        denominator = float(np.sum(residuals ** 2))
        if denominator == 0:
            return 1.0

        statistic = 0.0
        for k in range(1, lag + 1):
            rho = float(np.sum(residuals[k:] * residuals[:-k])) / denominator
            statistic += rho * rho / (n - k)
        statistic *= n * (n + 2)

        return float(np.exp(-statistic / (2 * lag)))

    @staticmethod
    def _detrended(data: np.ndarray) -> np.ndarray:
        """Residuals around the straight line joining first and last points"""
        if data.size < 2:
            return np.zeros(1)
        line = np.linspace(data[0], data[-1], data.size)
        return data - line

    @staticmethod
    def _recent_trend(data: np.ndarray) -> float:
        """Latest value relative to the mean of the preceding points"""
        baseline = data[-1 - TREND_BASELINE_WINDOW:-1]
        baseline_mean = float(baseline.mean()) if baseline.size else 0.0
        if baseline_mean <= 0:
            return 0.0
        return float(data[-1] / baseline_mean - 1)

    @staticmethod
    def _growth_volatility(data: np.ndarray) -> float:
        """Standard deviation of the latest month-over-month growth rates"""
        window = data[-(VOLATILITY_WINDOW + 1):]
        previous, current = window[:-1], window[1:]
        valid = previous > 0
        if valid.sum() < 2:
            return 0.0
        growth = current[valid] / previous[valid] - 1
        return float(growth.std())

    @staticmethod
    def _posteriors(
        recent_trend: float,
        volatility: float,
        fit: ExponentialFit
    ) -> dict[Regime, float]:
        trend_quality = 0.5 + 0.5 * max(fit.r_squared, fit.stability)

        likelihoods = {
            Regime.NORMAL: (
                max(LIKELIHOOD_FLOOR, 1 - 4 * abs(recent_trend))
                * max(LIKELIHOOD_FLOOR, 1 - 3 * volatility)
            ),
            Regime.EXPONENTIAL: (
                min(1.0, recent_trend / 0.5) * trend_quality
                if recent_trend > 0.10 else LIKELIHOOD_FLOOR
            ),
            Regime.DECLINING: (
                min(1.0, -recent_trend / 0.3) * trend_quality
                if recent_trend < -0.10 else LIKELIHOOD_FLOOR
            ),
            Regime.VOLATILE: max(LIKELIHOOD_FLOOR, min(1.0, 2.5 * volatility)),
        }

        raw = {regime: REGIME_PRIORS[regime] * likelihoods[regime] for regime in Regime}
        total = sum(raw.values())
        return {regime: float(value / total) for regime, value in raw.items()}
