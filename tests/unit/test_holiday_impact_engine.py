"""
Unit Tests for HolidayImpactEngine

Covers neutral results, extended impact generation, factor blending and
degradation when the holiday source is unavailable.
"""

import pytest
from datetime import date

from daily_forecast.domain.errors import InvalidArgumentError, UpstreamUnavailableError
from daily_forecast.domain.models import Holiday, ImpactPosition
from daily_forecast.domain.services.holiday_impact_engine import HolidayImpactEngine
from daily_forecast.domain.strategy.holiday_calendar import (
    find_extended_impact,
    holiday_day_factor,
)


class MockHolidayRepository:
    """In-memory holiday source"""

    def __init__(self, holidays=None):
        self.holidays = holidays or []
        self.calls = []

    async def get_holidays(self, start_date: date, end_date: date):
        self.calls.append((start_date, end_date))
        return [h for h in self.holidays if start_date <= h.date <= end_date]


class FailingHolidayRepository:
    async def get_holidays(self, start_date: date, end_date: date):
        raise UpstreamUnavailableError("connection refused")


@pytest.fixture
def engine():
    return HolidayImpactEngine()


class TestNeutralResults:

    def test_no_holidays_is_exactly_neutral(self, engine):
        result = engine.compute_adjustment(date(2026, 3, 1), 31, [])

        assert result.adjustment_factor == 1.0
        assert result.effective_days == 31
        assert result.holiday_count == 0
        assert result.explanation == "no holidays in period"

    def test_zero_days_is_neutral(self, engine):
        result = engine.compute_adjustment(date(2026, 3, 1), 0, [])

        assert result.adjustment_factor == 1.0
        assert result.total_days == 0

    def test_negative_days_rejected(self, engine):
        with pytest.raises(InvalidArgumentError):
            engine.compute_adjustment(date(2026, 3, 1), -1, [])

    async def test_lookup_failure_degrades_to_neutral(self):
        engine = HolidayImpactEngine(FailingHolidayRepository())

        result = await engine.calculate_adjustment(date(2026, 12, 1), 31)

        assert result.adjustment_factor == 1.0
        assert result.explanation == "no holiday data available"
        assert "connection refused" in result.warning

    async def test_fetch_range_includes_closing_boundary(self):
        repo = MockHolidayRepository()
        engine = HolidayImpactEngine(repo)

        await engine.calculate_adjustment(date(2025, 12, 1), 30)

        assert repo.calls == [(date(2025, 12, 1), date(2025, 12, 31))]


class TestNavidad:

    async def test_extended_days_before_and_after(self):
        navidad = Holiday(date=date(2025, 12, 25), name="Navidad", base_factor=0.30)
        engine = HolidayImpactEngine(MockHolidayRepository([navidad]))

        result = await engine.calculate_adjustment(date(2025, 12, 1), 30, current_daily_pace=100)

        extended = {d.date: d for d in result.extended_days}
        assert extended[date(2025, 12, 23)].factor == 0.70
        assert extended[date(2025, 12, 24)].factor == 0.70
        assert extended[date(2025, 12, 23)].position == ImpactPosition.BEFORE
        assert extended[date(2025, 12, 26)].factor == 0.60
        assert extended[date(2025, 12, 26)].position == ImpactPosition.AFTER
        assert result.factor_for(date(2025, 12, 25)) == 0.30
        assert result.factor_for(date(2025, 12, 10)) == 1.0
        assert result.adjustment_factor < 1.0
        assert result.extended_before_count == 2
        assert result.extended_after_count == 1

    def test_effective_days_and_volume_impact(self, engine):
        navidad = Holiday(date=date(2025, 12, 25), name="Navidad", base_factor=0.30)

        result = engine.compute_adjustment(date(2025, 12, 1), 30, [navidad], current_daily_pace=100)

        # 26 normal days + 0.30 + 2 x 0.70 + 0.60
        assert result.effective_days == pytest.approx(28.3)
        assert result.adjustment_factor == pytest.approx(28.3 / 30)
        assert result.estimated_volume_impact == pytest.approx(-170.0)
        assert "Navidad" in result.explanation
        assert "2 day(s) before and 1 day(s) after" in result.explanation

    def test_holiday_on_closing_boundary_projects_into_window(self, engine):
        holiday = Holiday(date=date(2025, 12, 31), name="Fin de año - Año Nuevo", base_factor=0.5)

        result = engine.compute_adjustment(date(2025, 12, 1), 30, [holiday])

        assert result.holiday_count == 0
        assert [d.date for d in result.extended_days] == [date(2025, 12, 30)]
        assert result.adjustment_factor < 1.0


class TestExtendedDayOverlap:

    def test_extended_days_never_overlap_official_holidays(self, engine):
        holidays = [
            Holiday(date=date(2025, 12, 24), name="Nochebuena", base_factor=0.5),
            Holiday(date=date(2025, 12, 25), name="Navidad", base_factor=0.3),
        ]

        result = engine.compute_adjustment(date(2025, 12, 1), 31, holidays)

        extended_dates = [d.date for d in result.extended_days]
        assert date(2025, 12, 24) not in extended_dates
        assert len(extended_dates) == len(set(extended_dates))
        assert result.factor_for(date(2025, 12, 24)) == 0.5

    def test_first_claim_wins(self, engine):
        # 12-26 is Navidad's after-day and Año Nuevo's before-day
        holidays = [
            Holiday(date=date(2025, 12, 27), name="Año Nuevo (observado)", base_factor=0.5),
            Holiday(date=date(2025, 12, 25), name="Navidad", base_factor=0.3),
        ]

        result = engine.compute_adjustment(date(2025, 12, 1), 31, holidays)

        claimed = {d.date: d for d in result.extended_days}
        assert claimed[date(2025, 12, 26)].holiday_name == "Navidad"
        assert claimed[date(2025, 12, 26)].position == ImpactPosition.AFTER
        assert claimed[date(2025, 12, 28)].holiday_name == "Año Nuevo (observado)"
        assert claimed[date(2025, 12, 28)].factor == 0.75
        assert len(claimed) == len(result.extended_days)

    def test_extended_days_stay_inside_window(self, engine):
        holiday = Holiday(date=date(2026, 4, 2), name="Semana Santa", base_factor=0.6)

        result = engine.compute_adjustment(date(2026, 4, 1), 30, [holiday])

        # 03-31 falls before the window
        assert [d.date for d in result.extended_days] == [date(2026, 4, 1), date(2026, 4, 3)]

    def test_unmatched_holiday_has_no_extension(self, engine):
        holiday = Holiday(date=date(2026, 5, 1), name="Día del Trabajo", base_factor=0.6)

        result = engine.compute_adjustment(date(2026, 5, 1), 31, [holiday])

        assert result.extended_days == ()
        assert result.effective_days == pytest.approx(30.6)


class TestHolidayCalendar:

    @pytest.mark.parametrize("name", ["Navidad", "NAVIDAD 2025", "navidad"])
    def test_match_is_case_insensitive(self, name):
        assert find_extended_impact(name).keyword == "Navidad"

    def test_match_ignores_accents(self):
        assert find_extended_impact("Dia de Muertos").keyword == "Día de Muertos"
        assert find_extended_impact("Ano Nuevo").keyword == "Año Nuevo"

    def test_no_match(self):
        assert find_extended_impact("Día de la Bandera") is None

    def test_observed_impact_blends_with_base(self):
        # (0.4 + (1 - 0.5)) / 2
        assert holiday_day_factor(0.4, -50.0) == pytest.approx(0.45)

    def test_blended_factor_is_floored(self):
        assert holiday_day_factor(0.05, -100.0) == pytest.approx(0.05)

    def test_without_observed_impact_base_factor_applies(self):
        assert holiday_day_factor(0.7, None) == 0.7
