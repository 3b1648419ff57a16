"""
ENSEMBLE ENGINE
Regime-aware blend of monthly total predictors

RESPONSIBILITIES:
- Run the individual predictors over the monthly history
- Weight them by performance, regime affinity and confidence
- Clip the blend to the regime's guardrails and report uncertainty

RULES:
❌ No data fetching (history is passed in)
❌ No random sampling: identical input, identical output
✅ Prediction always inside the guardrails
✅ Uncertainty bounds always contain the prediction
"""

import logging
import math
from typing import Optional, Sequence

import numpy as np

from daily_forecast.domain.errors import InsufficientDataError, InvalidArgumentError
from daily_forecast.domain.models import (
    AdaptiveGuardrails,
    ConfidenceTier,
    EnsembleForecast,
    ModelPrediction,
    MonthlyTotal,
    Regime,
    RegimeAnalysis,
    UncertaintyBounds,
)
from daily_forecast.domain.services.regime_engine import MIN_HISTORY_MONTHS, RegimeEngine

logger = logging.getLogger(__name__)

INTRAMONTH_MODEL = "Intra-month Pace"
HOLT_MODEL = "Holt Trend"
LINEAR_MODEL = "Linear Trend"
SEASONAL_MODEL = "Seasonal Same-Month"

# Extra weight a model gets under each regime
REGIME_BONUS = {
    Regime.EXPONENTIAL: {INTRAMONTH_MODEL: 1.3, LINEAR_MODEL: 1.2},
    Regime.VOLATILE: {INTRAMONTH_MODEL: 1.2, SEASONAL_MODEL: 1.2},
    Regime.DECLINING: {HOLT_MODEL: 1.2, LINEAR_MODEL: 1.2},
    Regime.NORMAL: {},
}

RECOMMENDATIONS = {
    Regime.NORMAL: "stable pattern: standard planning ranges apply",
    Regime.EXPONENTIAL: "sustained growth detected: review capacity for the coming weeks",
    Regime.DECLINING: "downward trend detected: review drivers of the decline",
    Regime.VOLATILE: "irregular pattern: plan against the conservative bound",
}

VOLATILE_WARNING = "volatile pattern — higher uncertainty expected"
GUARDRAIL_WARNING = "adjusted by guardrails for realism"
LOW_CONFIDENCE_WARNING = "model confidence below 70%"

HIGH_CONFIDENCE = 0.7
MEDIUM_CONFIDENCE = 0.5
HOLT_ALPHA = 0.3
HOLT_BETA = 0.3
SEASONAL_YEARS = 3


class EnsembleEngine:
    """
    Ensemble Engine
    Produces the regime-aware monthly prediction
    """

    def __init__(self, regime_engine: Optional[RegimeEngine] = None):
        self.regime_engine = regime_engine or RegimeEngine()

    def forecast(
        self,
        historical_totals: Sequence[MonthlyTotal],
        intramonth_projection: float,
        month_progress: float = 0.5,
        target_year: Optional[int] = None,
        target_month: Optional[int] = None
    ) -> EnsembleForecast:
        """
        Blend the predictors into a single monthly prediction

        Args:
            historical_totals: Complete past months (any order)
            intramonth_projection: Naive projection of the current month
            month_progress: Fraction of the current month already observed
            target_year / target_month: Month being predicted; defaults to the
                month after the latest history entry

        Raises:
            InsufficientDataError: With fewer than three historical months
            InvalidArgumentError: On a negative projection or progress outside [0, 1]
        """
        history = sorted(historical_totals, key=lambda t: t.period_index)
        if len(history) < MIN_HISTORY_MONTHS:
            raise InsufficientDataError(
                f"Regime ensemble needs at least {MIN_HISTORY_MONTHS} historical months, "
                f"got {len(history)}"
            )
        if intramonth_projection < 0:
            raise InvalidArgumentError("Intra-month projection cannot be negative")
        if not 0.0 <= month_progress <= 1.0:
            raise InvalidArgumentError(f"Month progress must be in [0, 1]: {month_progress}")

        if target_year is None or target_month is None:
            next_index = history[-1].period_index + 1
            target_year, target_month = divmod(next_index, 12)
            target_month += 1

        values = np.array([t.services for t in history], dtype=float)
        series = np.append(values, intramonth_projection)

        regime = self.regime_engine.classify(series)
        guardrails = self.regime_engine.guardrails(series, regime, intramonth_projection)

        models = self._run_models(history, values, intramonth_projection, month_progress, target_month)
        weights = self._weights(models, regime.regime)

        raw_prediction = float(sum(weights[m.name] * m.value for m in models))
        prediction = guardrails.clamp(raw_prediction)
        regime_adjusted = prediction != raw_prediction

        model_values = np.array([m.value for m in models])
        spread = 1.96 * float(model_values.std())
        bounds = UncertaintyBounds(
            lower=max(guardrails.lower_limit, prediction - spread),
            upper=min(guardrails.upper_limit, prediction + spread),
        )

        mean_value = float(model_values.mean())
        if mean_value > 0:
            agreement = max(0.0, min(1.0, 1 - float(model_values.std()) / mean_value))
        else:
            agreement = 0.0

        confidence = self._confidence_tier(agreement, regime.confidence)
        warnings = self._warnings(regime, regime_adjusted)

        result = EnsembleForecast(
            prediction=prediction,
            raw_prediction=raw_prediction,
            uncertainty_bounds=bounds,
            regime=regime,
            guardrails=guardrails,
            regime_adjusted=regime_adjusted,
            weights=weights,
            models=tuple(models),
            ensemble_agreement=agreement,
            confidence=confidence,
            justification=self._justification(regime, guardrails),
            reasoning=self._reasoning(models, weights, regime, len(history)),
            warnings=warnings,
        )

        logger.info(
            "REGIME_ENSEMBLE | target=%s-%02d | regime=%s | prediction=%.1f | raw=%.1f | confidence=%s",
            target_year,
            target_month,
            regime.regime.value,
            prediction,
            raw_prediction,
            confidence.value,
        )
        return result

    # -------------------------------------------------------------------
    # Predictors
    # -------------------------------------------------------------------

    def _run_models(
        self,
        history: list[MonthlyTotal],
        values: np.ndarray,
        intramonth_projection: float,
        month_progress: float,
        target_month: int
    ) -> list[ModelPrediction]:
        progress_score = 0.3 + 0.6 * month_progress
        models = [
            ModelPrediction(
                name=INTRAMONTH_MODEL,
                value=intramonth_projection,
                confidence=progress_score,
                performance_score=progress_score,
                regime_affinity=0.8,
            ),
            self._holt_model(values),
            self._linear_model(values),
        ]

        seasonal = self._seasonal_model(history, target_month)
        if seasonal is not None:
            models.append(seasonal)
        return models

    @staticmethod
    def _holt_model(values: np.ndarray) -> ModelPrediction:
        """Double exponential smoothing, scored by in-sample MAPE"""
        level = values[0]
        trend = values[1] - values[0]
        errors = []

        for actual in values[1:]:
            fitted = level + trend
            if actual > 0:
                errors.append(abs(actual - fitted) / actual)
            new_level = HOLT_ALPHA * actual + (1 - HOLT_ALPHA) * (level + trend)
            trend = HOLT_BETA * (new_level - level) + (1 - HOLT_BETA) * trend
            level = new_level

        mape = float(np.mean(errors)) if errors else 1.0
        performance = max(0.0, 1 - mape)
        return ModelPrediction(
            name=HOLT_MODEL,
            value=max(0.0, float(level + trend)),
            confidence=min(0.9, performance * 1.2),
            performance_score=performance,
            regime_affinity=0.8,
        )

    @staticmethod
    def _linear_model(values: np.ndarray) -> ModelPrediction:
        """Least-squares line extended one month ahead"""
        x = np.arange(values.size, dtype=float)
        slope, intercept = np.polyfit(x, values, 1)

        fitted = intercept + slope * x
        ss_res = float(np.sum((values - fitted) ** 2))
        ss_tot = float(np.sum((values - values.mean()) ** 2))
        if ss_tot > 0:
            r_squared = max(0.0, 1 - ss_res / ss_tot)
        else:
            # Constant series is fitted exactly
            r_squared = 1.0

        return ModelPrediction(
            name=LINEAR_MODEL,
            value=max(0.0, float(intercept + slope * values.size)),
            confidence=min(0.85, r_squared),
            performance_score=r_squared,
            regime_affinity=0.9,
        )

    @staticmethod
    def _seasonal_model(
        history: list[MonthlyTotal],
        target_month: int
    ) -> Optional[ModelPrediction]:
        """Same calendar month of recent years, drifted by year-over-year growth"""
        same_month = [t.services for t in history if t.month == target_month][-SEASONAL_YEARS:]
        if not same_month:
            return None

        by_period = {t.period_index: t.services for t in history}
        recent = history[-3:]
        year_ago = [by_period.get(t.period_index - 12) for t in recent]

        drift = 0.0
        if all(v is not None for v in year_ago) and sum(year_ago) > 0:
            drift = sum(t.services for t in recent) / sum(year_ago) - 1

        years = len(same_month)
        return ModelPrediction(
            name=SEASONAL_MODEL,
            value=max(0.0, float(np.mean(same_month)) * (1 + drift)),
            confidence=min(0.7, 0.4 + 0.1 * years),
            performance_score=0.6,
            regime_affinity=0.6,
        )

    # -------------------------------------------------------------------
    # Blending
    # -------------------------------------------------------------------

    @staticmethod
    def _weights(models: list[ModelPrediction], regime: Regime) -> dict[str, float]:
        """Softmax over the combined model scores"""
        bonus = REGIME_BONUS[regime]
        scores = [
            (m.performance_score * 0.4 + m.regime_affinity * 0.3 + m.confidence * 0.3)
            * bonus.get(m.name, 1.0)
            for m in models
        ]
        top = max(scores)
        exps = [math.exp(score - top) for score in scores]
        total = sum(exps)
        return {m.name: e / total for m, e in zip(models, exps)}

    @staticmethod
    def _confidence_tier(agreement: float, regime_confidence: float) -> ConfidenceTier:
        if agreement >= HIGH_CONFIDENCE and regime_confidence >= HIGH_CONFIDENCE:
            return ConfidenceTier.HIGH
        if agreement >= MEDIUM_CONFIDENCE and regime_confidence >= MEDIUM_CONFIDENCE:
            return ConfidenceTier.MEDIUM
        return ConfidenceTier.LOW

    @staticmethod
    def _warnings(regime: RegimeAnalysis, regime_adjusted: bool) -> tuple[str, ...]:
        warnings = []
        if regime.regime == Regime.VOLATILE:
            warnings.append(VOLATILE_WARNING)
        if regime_adjusted:
            warnings.append(GUARDRAIL_WARNING)
        if regime.confidence < HIGH_CONFIDENCE:
            warnings.append(LOW_CONFIDENCE_WARNING)
        return tuple(warnings)

    @staticmethod
    def _justification(regime: RegimeAnalysis, guardrails: AdaptiveGuardrails) -> str:
        fit = regime.exponential_fit
        return (
            f"{regime.regime.value} regime with posterior {regime.confidence:.2f}; "
            f"log-linear growth {fit.growth_rate:.4f}/month (R2 {fit.r_squared:.2f}, "
            f"stability {fit.stability:.2f}); {len(regime.changepoints)} changepoint(s); "
            f"Ljung-Box p {regime.ljung_box_p_value:.2f}; guardrails "
            f"[{guardrails.lower_limit:.0f}, {guardrails.upper_limit:.0f}] "
            f"with k {guardrails.k_factor:.2f} x {guardrails.regime_multiplier:.2f}"
        )

    @staticmethod
    def _reasoning(
        models: list[ModelPrediction],
        weights: dict[str, float],
        regime: RegimeAnalysis,
        history_months: int
    ) -> tuple[str, ...]:
        dominant = max(models, key=lambda m: weights[m.name])
        lines = [
            f"dominant model: {dominant.name} ({weights[dominant.name]:.0%} weight)",
            f"recent trend {regime.recent_trend:+.1%}, growth volatility {regime.volatility_score:.2f}",
            RECOMMENDATIONS[regime.regime],
        ]
        if history_months < 12:
            lines.append(f"only {history_months} months of history available")
        return tuple(lines)


def compute_regime_ensemble(
    historical_totals: Sequence[MonthlyTotal],
    intramonth_projection: float,
    month_progress: float = 0.5
) -> EnsembleForecast:
    """Regime-aware monthly prediction with default engines"""
    return EnsembleEngine().forecast(historical_totals, intramonth_projection, month_progress)
