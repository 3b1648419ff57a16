from pydantic import BaseModel, ConfigDict
from datetime import date
from typing import Dict, List, Optional

from daily_forecast.domain.models import (
    ConfidenceTier,
    EnsembleForecast,
    ForecastSnapshot,
    HolidayAdjustment,
    ImpactPosition,
    TrendDirection,
)


class DayComparisonSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: date
    day_of_month: int
    day_label: str
    weekday_name: str
    is_past: bool
    is_today: bool
    is_holiday: bool
    holiday_name: Optional[str]
    weekday_factor: float
    operation_factor: float
    adjustment_factor: float
    forecast: int
    adjusted_forecast: int
    actual: Optional[int]
    variance: Optional[int]
    variance_pct: Optional[float]
    forecast_lower: float
    forecast_upper: float
    uncertainty_pct: float
    probability_to_reach: float
    forecast_cumulative: int
    forecast_lower_cumulative: float
    forecast_upper_cumulative: float
    adjusted_cumulative: int
    actual_cumulative: Optional[int]
    realized_gmv: Optional[float]
    gmv_forecast: float
    gmv_adjusted_forecast: float
    gmv_actual: Optional[float]
    gmv_variance: Optional[float]
    gmv_variance_pct: Optional[float]
    gmv_forecast_lower: float
    gmv_forecast_upper: float
    gmv_forecast_cumulative: float
    gmv_forecast_lower_cumulative: float
    gmv_forecast_upper_cumulative: float
    gmv_adjusted_cumulative: float
    gmv_actual_cumulative: Optional[float]


class MonthSummarySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    days_in_month: int
    closed_days: int
    remaining_days: int
    days_met_forecast: int
    days_missed_forecast: int
    trend: TrendDirection
    trend_shift: Optional[float]
    actual_to_date: int
    forecast_to_date: int
    variance_to_date: int
    variance_to_date_pct: Optional[float]
    average_variance_pct: Optional[float]
    original_monthly_forecast: int
    adjusted_monthly_forecast: int
    pessimistic_monthly_forecast: float
    optimistic_monthly_forecast: float
    adjustment_pct: Optional[float]
    pro_rata_target: float
    progress_vs_pro_rata_pct: Optional[float]
    target_reach_probability: float
    gmv_actual_to_date: float
    gmv_original_monthly_forecast: float
    gmv_adjusted_monthly_forecast: float


class DynamicAdjustmentSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    observed_variance_pct: float
    correction_factor: float
    confidence: ConfidenceTier
    data_points_used: int
    reason: str


class ExtendedImpactDaySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: date
    holiday_name: str
    factor: float
    position: ImpactPosition


class HolidaySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: date
    name: str
    base_factor: float
    observed_impact_pct: Optional[float]


class HolidayAdjustmentSchema(BaseModel):
    start_date: date
    total_days: int
    adjustment_factor: float
    effective_days: float
    holidays: List[HolidaySchema]
    extended_days: List[ExtendedImpactDaySchema]
    day_factors: Dict[str, float]
    estimated_volume_impact: float
    explanation: str
    warning: Optional[str]

    @classmethod
    def from_adjustment(cls, adjustment: HolidayAdjustment) -> "HolidayAdjustmentSchema":
        return cls(
            start_date=adjustment.start_date,
            total_days=adjustment.total_days,
            adjustment_factor=adjustment.adjustment_factor,
            effective_days=adjustment.effective_days,
            holidays=[HolidaySchema.model_validate(h) for h in adjustment.holidays],
            extended_days=[ExtendedImpactDaySchema.model_validate(d) for d in adjustment.extended_days],
            day_factors={d.isoformat(): f for d, f in sorted(adjustment.day_factors.items())},
            estimated_volume_impact=adjustment.estimated_volume_impact,
            explanation=adjustment.explanation,
            warning=adjustment.warning,
        )


class EarlyMonthSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_early_month: bool
    day_of_month: int
    days_until_realtime: int
    projection: Optional[float]
    years_used: List[int]
    same_month_average: Optional[float]
    yoy_growth: Optional[float]
    momentum: Optional[float]
    confidence: ConfidenceTier
    methodology: str


class RegimeEnsembleSchema(BaseModel):
    prediction: float
    raw_prediction: float
    lower_bound: float
    upper_bound: float
    regime: str
    regime_confidence: float
    regime_posteriors: Dict[str, float]
    changepoints: List[int]
    guardrail_lower: float
    guardrail_upper: float
    regime_adjusted: bool
    weights: Dict[str, float]
    ensemble_agreement: float
    confidence: ConfidenceTier
    justification: str
    reasoning: List[str]
    warnings: List[str]

    @classmethod
    def from_ensemble(cls, ensemble: EnsembleForecast) -> "RegimeEnsembleSchema":
        regime = ensemble.regime
        return cls(
            prediction=ensemble.prediction,
            raw_prediction=ensemble.raw_prediction,
            lower_bound=ensemble.uncertainty_bounds.lower,
            upper_bound=ensemble.uncertainty_bounds.upper,
            regime=regime.regime.value,
            regime_confidence=regime.confidence,
            regime_posteriors={r.value: p for r, p in regime.posteriors.items()},
            changepoints=list(regime.changepoints),
            guardrail_lower=ensemble.guardrails.lower_limit,
            guardrail_upper=ensemble.guardrails.upper_limit,
            regime_adjusted=ensemble.regime_adjusted,
            weights=dict(ensemble.weights),
            ensemble_agreement=ensemble.ensemble_agreement,
            confidence=ensemble.confidence.value,
            justification=ensemble.justification,
            reasoning=list(ensemble.reasoning),
            warnings=list(ensemble.warnings),
        )


class ForecastSnapshotResponse(BaseModel):
    as_of: date
    monthly_target: float
    base_pace: float
    aov: float
    intramonth_projection: Optional[float]
    days: List[DayComparisonSchema]
    summary: MonthSummarySchema
    dynamic_adjustment: DynamicAdjustmentSchema
    holiday_adjustment: HolidayAdjustmentSchema
    early_month: EarlyMonthSchema
    ensemble: Optional[RegimeEnsembleSchema]
    warnings: List[str]

    @classmethod
    def from_snapshot(cls, snapshot: ForecastSnapshot) -> "ForecastSnapshotResponse":
        return cls(
            as_of=snapshot.as_of,
            monthly_target=snapshot.monthly_target,
            base_pace=snapshot.base_pace,
            aov=snapshot.aov,
            intramonth_projection=snapshot.intramonth_projection,
            days=[DayComparisonSchema.model_validate(d) for d in snapshot.day_comparisons],
            summary=MonthSummarySchema.model_validate(snapshot.summary),
            dynamic_adjustment=DynamicAdjustmentSchema.model_validate(snapshot.dynamic_adjustment),
            holiday_adjustment=HolidayAdjustmentSchema.from_adjustment(snapshot.holiday_adjustment),
            early_month=EarlyMonthSchema.model_validate(snapshot.early_month),
            ensemble=(
                RegimeEnsembleSchema.from_ensemble(snapshot.ensemble)
                if snapshot.ensemble is not None else None
            ),
            warnings=list(snapshot.warnings),
        )
