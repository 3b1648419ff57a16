"""
Unit Tests for RegimeEngine and EnsembleEngine

Scenarios use synthetic monthly series with a known shape.
"""

import pytest
import numpy as np
from dataclasses import replace

from daily_forecast.domain.errors import InsufficientDataError, InvalidArgumentError
from daily_forecast.domain.models import AdaptiveGuardrails, ConfidenceTier, MonthlyTotal, Regime
from daily_forecast.domain.services.ensemble_engine import (
    GUARDRAIL_WARNING,
    VOLATILE_WARNING,
    EnsembleEngine,
    compute_regime_ensemble,
)
from daily_forecast.domain.services.regime_engine import RegimeEngine


def monthly_series(values, start_year=2024, start_month=1):
    totals = []
    for offset, value in enumerate(values):
        year, month = divmod(start_year * 12 + start_month - 1 + offset, 12)
        totals.append(MonthlyTotal(year=year, month=month + 1, services=value, gmv=value * 500.0))
    return totals


@pytest.fixture
def regime_engine():
    return RegimeEngine()


class TestRegimeEngine:

    def test_flat_series_is_normal(self, regime_engine):
        analysis = regime_engine.classify([1000.0] * 13)

        assert analysis.regime == Regime.NORMAL
        assert analysis.confidence > 0.9
        assert analysis.changepoints == ()

    def test_steady_growth_is_exponential(self, regime_engine):
        series = [1000.0 * 1.1 ** k for k in range(13)]

        analysis = regime_engine.classify(series)

        assert analysis.regime == Regime.EXPONENTIAL
        assert analysis.exponential_fit.growth_rate == pytest.approx(np.log(1.1))
        assert analysis.exponential_fit.r_squared == pytest.approx(1.0)

    def test_steady_decline_is_declining(self, regime_engine):
        series = [1000.0 * 0.9 ** k for k in range(13)]

        analysis = regime_engine.classify(series)

        assert analysis.regime == Regime.DECLINING

    def test_posteriors_form_a_distribution(self, regime_engine):
        analysis = regime_engine.classify([900.0, 1300.0, 800.0, 1500.0, 700.0, 1600.0])

        assert sum(analysis.posteriors.values()) == pytest.approx(1.0)
        assert 0.0 <= analysis.confidence <= 1.0
        assert analysis.confidence == max(analysis.posteriors.values())

    def test_classification_is_deterministic(self, regime_engine):
        series = [1000.0, 1040.0, 980.0, 1100.0, 1210.0, 1190.0, 1300.0]
        assert regime_engine.classify(series) == regime_engine.classify(series)

    def test_fewer_than_three_points_rejected(self, regime_engine):
        with pytest.raises(InsufficientDataError):
            regime_engine.classify([1000.0, 1100.0])

    def test_changepoint_detected_at_level_shift(self, regime_engine):
        changepoints = regime_engine.detect_changepoints(np.array([100.0] * 6 + [200.0] * 6))
        assert 6 in changepoints

    def test_ljung_box_white_noise_has_high_p_value(self, regime_engine):
        assert regime_engine.ljung_box_p_value(np.zeros(12)) == 1.0

    def test_low_confidence_widens_guardrails(self, regime_engine):
        series = [1000.0] * 13
        confident = regime_engine.classify(series)
        doubtful = replace(confident, confidence=0.4)

        narrow = regime_engine.guardrails(series, confident, 1000.0)
        wide = regime_engine.guardrails(series, doubtful, 1000.0)

        assert wide.upper_limit > narrow.upper_limit
        assert wide.lower_limit < narrow.lower_limit

    def test_lower_limit_never_negative(self, regime_engine):
        series = [10.0, 2000.0, 5.0, 1800.0, 1.0, 2500.0]
        analysis = regime_engine.classify(series)

        guardrails = regime_engine.guardrails(series, analysis, 2500.0)

        assert guardrails.lower_limit >= 0.0
        assert guardrails.upper_limit >= guardrails.lower_limit


class TestEnsembleEngine:

    def test_flat_then_three_times_expands_guardrails(self):
        history = monthly_series([1000.0] * 24)

        result = compute_regime_ensemble(history, intramonth_projection=3000.0)

        assert result.regime.regime in (Regime.EXPONENTIAL, Regime.VOLATILE)
        assert result.guardrails.upper_limit > 2 * 1000.0
        assert result.prediction > 1000.0
        assert not result.regime_adjusted
        assert result.uncertainty_bounds.lower <= result.prediction <= result.uncertainty_bounds.upper

    def test_flat_then_three_times_reports_low_confidence(self):
        result = compute_regime_ensemble(monthly_series([1000.0] * 24), 3000.0)

        assert result.confidence == ConfidenceTier.LOW
        assert VOLATILE_WARNING in result.warnings
        assert "model confidence below 70%" in result.warnings

    def test_stable_history_is_high_confidence(self):
        result = compute_regime_ensemble(monthly_series([1000.0] * 12), 1000.0)

        assert result.regime.regime == Regime.NORMAL
        assert result.prediction == pytest.approx(1000.0)
        assert result.ensemble_agreement == pytest.approx(1.0)
        assert result.confidence == ConfidenceTier.HIGH
        assert result.warnings == ()

    def test_prediction_always_inside_guardrails(self):
        history = monthly_series([1000.0, 1020.0, 990.0, 1010.0, 1005.0, 995.0])

        result = compute_regime_ensemble(history, intramonth_projection=50000.0)

        assert result.guardrails.lower_limit <= result.prediction <= result.guardrails.upper_limit
        assert result.guardrails.lower_limit <= result.uncertainty_bounds.lower
        assert result.uncertainty_bounds.upper <= result.guardrails.upper_limit

    def test_guardrails_clip_raw_blend(self):
        class NarrowRegimeEngine(RegimeEngine):
            def guardrails(self, series, analysis, current_value, time_horizon=1.0):
                return AdaptiveGuardrails(lower_limit=900.0, upper_limit=1100.0, k_factor=1.96, regime_multiplier=1.0)

        history = monthly_series([1000.0, 1020.0, 990.0, 1010.0, 1005.0, 995.0])

        result = EnsembleEngine(NarrowRegimeEngine()).forecast(history, 50000.0)

        assert result.prediction == 1100.0
        assert result.raw_prediction > result.prediction
        assert result.regime_adjusted
        assert GUARDRAIL_WARNING in result.warnings
        assert result.uncertainty_bounds.lower == 900.0
        assert result.uncertainty_bounds.upper == 1100.0

    def test_weights_sum_to_one(self):
        result = compute_regime_ensemble(monthly_series([1000.0 + 15 * k for k in range(18)]), 1300.0)

        assert sum(result.weights.values()) == pytest.approx(1.0)
        assert {m.name for m in result.models} == set(result.weights)

    def test_month_progress_raises_intramonth_weight(self):
        history = monthly_series([1000.0 + 10 * k for k in range(12)])
        engine = EnsembleEngine()

        early = engine.forecast(history, 1500.0, month_progress=0.1)
        late = engine.forecast(history, 1500.0, month_progress=0.9)

        assert late.weights["Intra-month Pace"] > early.weights["Intra-month Pace"]

    def test_seasonal_model_needs_same_month_history(self):
        history = monthly_series([1000.0] * 6, start_year=2025, start_month=3)

        result = EnsembleEngine().forecast(history, 1000.0)

        assert "Seasonal Same-Month" not in result.weights

    def test_fewer_than_three_months_rejected(self):
        with pytest.raises(InsufficientDataError):
            compute_regime_ensemble(monthly_series([1000.0, 1100.0]), 1200.0)

    def test_negative_projection_rejected(self):
        with pytest.raises(InvalidArgumentError):
            compute_regime_ensemble(monthly_series([1000.0] * 6), -1.0)

    def test_result_is_deterministic(self):
        history = monthly_series([800.0, 950.0, 900.0, 1200.0, 1100.0, 1300.0, 1250.0])
        assert compute_regime_ensemble(history, 1400.0) == compute_regime_ensemble(history, 1400.0)
