"""
Domain Models - Entities
Pure domain objects with no infrastructure dependencies
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional


class Regime(str, Enum):
    """Qualitative shape of the monthly series"""
    NORMAL = "normal"
    EXPONENTIAL = "exponential"
    DECLINING = "declining"
    VOLATILE = "volatile"


class ConfidenceTier(str, Enum):
    """Confidence tier attached to a derived number"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TrendDirection(str, Enum):
    """Direction of the recent closed-day variance"""
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class ImpactPosition(str, Enum):
    """Side of the holiday an extended impact day falls on"""
    BEFORE = "before"
    AFTER = "after"


@dataclass(frozen=True)
class ForecastThresholds:
    """
    Tunable constants of the pipeline - Immutable

    Defaults mirror the calibrated values; override through Settings.
    """
    base_uncertainty: float = 0.15
    max_uncertainty: float = 0.60
    max_correction: float = 0.30
    min_correction_samples: int = 5
    high_confidence_samples: int = 10
    recency_decay_days: float = 7.0
    trend_shift_threshold: float = 2.0
    early_month_last_day: int = 2
    momentum_weight: float = 0.30

    def __post_init__(self):
        if not 0 <= self.base_uncertainty <= self.max_uncertainty < 1:
            raise ValueError("Uncertainty rates must satisfy 0 <= base <= max < 1")
        if not 0 <= self.max_correction < 1:
            raise ValueError("Max correction must be in [0, 1)")
        if self.min_correction_samples < 1:
            raise ValueError("Min correction samples must be at least 1")
        if self.high_confidence_samples < self.min_correction_samples:
            raise ValueError("High confidence samples cannot be below the minimum")
        if self.recency_decay_days <= 0:
            raise ValueError("Recency decay must be positive")


@dataclass(frozen=True)
class DailyActual:
    """Realized volume for one calendar day - Immutable"""
    date: date
    services: int
    gmv: float

    def __post_init__(self):
        if self.services < 0:
            raise ValueError("Services cannot be negative")
        if self.gmv < 0:
            raise ValueError("GMV cannot be negative")

    @property
    def day_of_month(self) -> int:
        return self.date.day


@dataclass(frozen=True)
class MonthlyTotal:
    """Historical monthly aggregate - Immutable"""
    year: int
    month: int
    services: float
    gmv: float

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValueError(f"Invalid month: {self.month}")

    @property
    def period_index(self) -> int:
        """Months since year 0, used for ordering and gap checks"""
        return self.year * 12 + (self.month - 1)


@dataclass(frozen=True)
class Holiday:
    """Calendar holiday with its expected operation factor - Immutable"""
    date: date
    name: str
    base_factor: float
    observed_impact_pct: Optional[float] = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("Holiday name cannot be empty")
        if not 0 < self.base_factor <= 1:
            raise ValueError("Holiday base factor must be in (0, 1]")


@dataclass(frozen=True)
class PastDayVariance:
    """Realized-vs-forecast observation for one elapsed day"""
    day_of_month: int
    forecast: float
    actual: Optional[float]
    variance_pct: Optional[float]
