"""
HOLIDAY EXTENDED-IMPACT CONFIGURATION

Some holidays depress volume on the days around them as well as on the holiday
itself. This module holds the small table describing that spill-over and the
single lookup used to resolve a holiday to its configuration.

Matching is a case and accent insensitive substring match on the holiday name.
Callers must go through find_extended_impact() so the matching rule can later be
swapped for an explicit holiday category without touching day generation.
"""

import unicodedata
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ExtendedImpactConfig:
    """Spill-over of a holiday onto its neighbouring days"""
    keyword: str
    days_before: int
    days_after: int
    before_factor: float
    after_factor: float


# -------------------------------------------------------------------
# Extended Impact Table (first match wins)
# -------------------------------------------------------------------

EXTENDED_IMPACT_CONFIGS = (
    ExtendedImpactConfig("Navidad", days_before=2, days_after=1, before_factor=0.70, after_factor=0.60),
    ExtendedImpactConfig("Año Nuevo", days_before=1, days_after=1, before_factor=0.60, after_factor=0.75),
    ExtendedImpactConfig("Semana Santa", days_before=2, days_after=1, before_factor=0.85, after_factor=0.85),
    ExtendedImpactConfig("Independencia", days_before=1, days_after=0, before_factor=0.85, after_factor=1.0),
    ExtendedImpactConfig("Día de Muertos", days_before=1, days_after=0, before_factor=0.90, after_factor=1.0),
)

# Floor for a blended holiday factor; a holiday never zeroes out a day
MIN_HOLIDAY_FACTOR = 0.05


def _normalize(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def find_extended_impact(holiday_name: str) -> Optional[ExtendedImpactConfig]:
    """
    Resolve a holiday name to its extended-impact configuration.

    Returns:
        The first configuration whose keyword appears in the name, or None
    """
    normalized = _normalize(holiday_name)
    for config in EXTENDED_IMPACT_CONFIGS:
        if _normalize(config.keyword) in normalized:
            return config
    return None


def holiday_day_factor(base_factor: float, observed_impact_pct: Optional[float]) -> float:
    """
    Operation factor for the holiday date itself.

    observed_impact_pct is the signed change versus a normal day measured on
    past occurrences (-57.0 means 57% less volume). When present it is blended
    50/50 with the configured base factor.
    """
    if observed_impact_pct is None:
        return base_factor

    observed_factor = 1.0 + observed_impact_pct / 100.0
    blended = (base_factor + observed_factor) / 2.0
    return min(1.0, max(MIN_HOLIDAY_FACTOR, blended))
