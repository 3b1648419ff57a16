"""
Domain Models - Forecast Output
Per-day comparison records, month summary and the full pipeline snapshot
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

from .analysis import (
    DynamicAdjustmentResult,
    EarlyMonthProjection,
    EnsembleForecast,
    HolidayAdjustment,
)
from .entities import TrendDirection


@dataclass(frozen=True)
class DayComparison:
    """
    Forecast vs actual for one calendar day - Immutable

    Services fields are counts; gmv_* fields mirror them at the current AOV.
    actual/variance fields are None for days after the reference date.
    """
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

    @property
    def is_closed(self) -> bool:
        """Closed days have a known actual"""
        return self.is_past or self.is_today

    @property
    def is_future(self) -> bool:
        return not self.is_closed

    @property
    def met_forecast(self) -> Optional[bool]:
        if self.actual is None:
            return None
        return self.actual >= self.forecast


@dataclass(frozen=True)
class MonthSummary:
    """Month-level KPIs folded from the day comparisons - Immutable"""
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


@dataclass(frozen=True)
class ForecastSnapshot:
    """Everything one pipeline run produced for a reference date"""
    as_of: date
    monthly_target: float
    base_pace: float
    aov: float
    intramonth_projection: Optional[float]
    day_comparisons: Tuple[DayComparison, ...]
    summary: MonthSummary
    dynamic_adjustment: DynamicAdjustmentResult
    holiday_adjustment: HolidayAdjustment
    early_month: EarlyMonthProjection
    ensemble: Optional[EnsembleForecast] = None
    warnings: Tuple[str, ...] = ()
