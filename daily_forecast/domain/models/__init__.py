"""
Domain Models Package
Export all domain entities
"""

from .entities import (
    # Enums
    ConfidenceTier,
    ImpactPosition,
    Regime,
    TrendDirection,

    # Entities
    DailyActual,
    ForecastThresholds,
    Holiday,
    MonthlyTotal,
    PastDayVariance,
)
from .analysis import (
    AdaptiveGuardrails,
    DynamicAdjustmentResult,
    EarlyMonthProjection,
    EnsembleForecast,
    ExponentialFit,
    ExtendedImpactDay,
    HolidayAdjustment,
    ModelPrediction,
    RegimeAnalysis,
    UncertaintyBounds,
)
from .forecast import (
    DayComparison,
    ForecastSnapshot,
    MonthSummary,
)

__all__ = [
    # Enums
    "ConfidenceTier",
    "ImpactPosition",
    "Regime",
    "TrendDirection",

    # Entities
    "DailyActual",
    "ForecastThresholds",
    "Holiday",
    "MonthlyTotal",
    "PastDayVariance",

    # Analysis results
    "AdaptiveGuardrails",
    "DynamicAdjustmentResult",
    "EarlyMonthProjection",
    "EnsembleForecast",
    "ExponentialFit",
    "ExtendedImpactDay",
    "HolidayAdjustment",
    "ModelPrediction",
    "RegimeAnalysis",
    "UncertaintyBounds",

    # Forecast output
    "DayComparison",
    "ForecastSnapshot",
    "MonthSummary",
]
