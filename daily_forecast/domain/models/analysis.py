"""
Domain Models - Analysis Results
Immutable outputs of the holiday, correction, regime and early-month engines
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Optional, Tuple

from .entities import ConfidenceTier, Holiday, ImpactPosition, Regime


@dataclass(frozen=True)
class ExtendedImpactDay:
    """Day next to a holiday that inherits a decayed operation factor"""
    date: date
    holiday_name: str
    factor: float
    position: ImpactPosition


@dataclass(frozen=True)
class HolidayAdjustment:
    """
    Holiday effect over a date window - Immutable

    day_factors only lists affected dates; every other date operates at 1.0.
    """
    start_date: date
    total_days: int
    adjustment_factor: float
    effective_days: float
    holidays: Tuple[Holiday, ...] = ()
    extended_days: Tuple[ExtendedImpactDay, ...] = ()
    day_factors: Dict[date, float] = field(default_factory=dict)
    estimated_volume_impact: float = 0.0
    explanation: str = "no holidays in period"
    warning: Optional[str] = None

    def factor_for(self, day: date) -> float:
        return self.day_factors.get(day, 1.0)

    @property
    def holiday_count(self) -> int:
        return len(self.holidays)

    @property
    def extended_before_count(self) -> int:
        return sum(1 for d in self.extended_days if d.position == ImpactPosition.BEFORE)

    @property
    def extended_after_count(self) -> int:
        return sum(1 for d in self.extended_days if d.position == ImpactPosition.AFTER)


@dataclass(frozen=True)
class DynamicAdjustmentResult:
    """Bounded correction derived from the trailing variance"""
    observed_variance_pct: float
    correction_factor: float
    confidence: ConfidenceTier
    data_points_used: int
    reason: str

    @property
    def is_applied(self) -> bool:
        return self.correction_factor != 1.0


@dataclass(frozen=True)
class ExponentialFit:
    """Log-linear fit of the series: y = a * exp(lambda * t)"""
    growth_rate: float
    r_squared: float
    stability: float
    overall_score: float


@dataclass(frozen=True)
class RegimeAnalysis:
    """Regime classification of the monthly series - Immutable"""
    regime: Regime
    confidence: float
    score: float
    changepoints: Tuple[int, ...]
    exponential_fit: ExponentialFit
    posteriors: Dict[Regime, float]
    ljung_box_p_value: float
    volatility_score: float
    recent_trend: float


@dataclass(frozen=True)
class AdaptiveGuardrails:
    """Plausible range for the monthly total"""
    lower_limit: float
    upper_limit: float
    k_factor: float
    regime_multiplier: float

    def clamp(self, value: float) -> float:
        return min(max(value, self.lower_limit), self.upper_limit)


@dataclass(frozen=True)
class UncertaintyBounds:
    lower: float
    upper: float


@dataclass(frozen=True)
class ModelPrediction:
    """One ensemble member's view of the monthly total"""
    name: str
    value: float
    confidence: float
    performance_score: float
    regime_affinity: float


@dataclass(frozen=True)
class EnsembleForecast:
    """
    Blended monthly prediction - Immutable

    prediction is always inside the guardrails; raw_prediction is the
    unclipped blend.
    """
    prediction: float
    raw_prediction: float
    uncertainty_bounds: UncertaintyBounds
    regime: RegimeAnalysis
    guardrails: AdaptiveGuardrails
    regime_adjusted: bool
    weights: Dict[str, float]
    models: Tuple[ModelPrediction, ...]
    ensemble_agreement: float
    confidence: ConfidenceTier
    justification: str
    reasoning: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()


@dataclass(frozen=True)
class EarlyMonthProjection:
    """
    Projection used while intra-month data is too thin

    projection is None once realtime mode is active.
    """
    is_early_month: bool
    day_of_month: int
    days_until_realtime: int
    projection: Optional[float] = None
    years_used: Tuple[int, ...] = ()
    same_month_average: Optional[float] = None
    yoy_growth: Optional[float] = None
    momentum: Optional[float] = None
    confidence: ConfidenceTier = ConfidenceTier.LOW
    methodology: str = ""
