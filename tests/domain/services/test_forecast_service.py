import pytest
from datetime import date, timedelta

from daily_forecast.domain.errors import InsufficientDataError, UpstreamUnavailableError
from daily_forecast.domain.models import DailyActual, Holiday, MonthlyTotal, Regime
from daily_forecast.domain.schemas.forecast import ForecastSnapshotResponse
from daily_forecast.domain.services.forecast_service import ForecastService
from daily_forecast.domain.strategy.weekday_seasonality import factor_for_date

AOV = 450.0


def flat_history(value=3100.0, months=24, start=(2024, 10)):
    totals = []
    for offset in range(months):
        year, month = divmod(start[0] * 12 + start[1] - 1 + offset, 12)
        totals.append(MonthlyTotal(year=year, month=month + 1, services=value, gmv=value * AOV))
    return totals


def on_pace_actuals(last_day, pace=100.0, year=2026, month=10):
    """One actual per day equal to the weekday forecast at the given pace"""
    rows = []
    day = date(year, month, 1)
    while day <= last_day:
        services = int(round(pace * factor_for_date(day)))
        rows.append(DailyActual(date=day, services=services, gmv=services * AOV))
        day += timedelta(days=1)
    return rows


class DummyActualRepository:
    def __init__(self, rows=None, error=None):
        self._rows = rows or []
        self._error = error

    async def get_daily_actuals(self, year, month):
        if self._error:
            raise self._error
        return [r for r in self._rows if r.date.year == year and r.date.month == month]


class DummyHistoryRepository:
    def __init__(self, totals=None, error=None):
        self._totals = totals or []
        self._error = error

    async def get_historical_monthly_totals(self):
        if self._error:
            raise self._error
        return list(self._totals)


class DummyHolidayRepository:
    def __init__(self, holidays=None, error=None):
        self._holidays = holidays or []
        self._error = error

    async def get_holidays(self, start_date, end_date):
        if self._error:
            raise self._error
        return [h for h in self._holidays if start_date <= h.date <= end_date]


class DummyAovProvider:
    def __init__(self, aov=AOV, error=None):
        self._aov = aov
        self._error = error

    async def get_current_aov(self):
        if self._error:
            raise self._error
        return self._aov


def make_service(
    as_of,
    rows=None,
    history=None,
    holidays=None,
    history_error=None,
    holiday_error=None,
    aov_error=None,
):
    return ForecastService(
        daily_actual_repo=DummyActualRepository(on_pace_actuals(as_of) if rows is None else rows),
        historical_repo=DummyHistoryRepository(
            flat_history() if history is None else history, error=history_error
        ),
        holiday_repo=DummyHolidayRepository(holidays, error=holiday_error),
        aov_provider=DummyAovProvider(error=aov_error),
        default_aov=6500.0,
    )


@pytest.mark.asyncio
async def test_snapshot_on_pace_month():
    as_of = date(2026, 10, 8)
    service = make_service(as_of)

    snapshot = await service.compute_snapshot(as_of)

    # Days 1-7 sum to 700 at pace 100, projecting 3100 for October
    assert snapshot.intramonth_projection == pytest.approx(3100.0)
    assert snapshot.monthly_target == pytest.approx(3100.0, rel=1e-6)
    assert snapshot.base_pace == pytest.approx(100.0, rel=1e-6)
    assert snapshot.aov == AOV
    assert snapshot.ensemble is not None
    assert not snapshot.early_month.is_early_month

    assert len(snapshot.day_comparisons) == 31
    assert snapshot.day_comparisons[0].forecast == 129
    assert snapshot.dynamic_adjustment.correction_factor == pytest.approx(1.0)
    assert snapshot.summary.closed_days == 8
    assert snapshot.summary.days_met_forecast == 8
    assert snapshot.warnings == ()


@pytest.mark.asyncio
async def test_snapshot_is_idempotent():
    as_of = date(2026, 10, 8)
    service = make_service(as_of)

    first = await service.compute_snapshot(as_of)
    second = await service.compute_snapshot(as_of)

    first_json = ForecastSnapshotResponse.from_snapshot(first).model_dump_json()
    second_json = ForecastSnapshotResponse.from_snapshot(second).model_dump_json()
    assert first_json == second_json


@pytest.mark.asyncio
async def test_compute_day_comparisons_matches_snapshot():
    as_of = date(2026, 10, 8)
    service = make_service(as_of)

    days = await service.compute_day_comparisons(as_of)
    snapshot = await service.compute_snapshot(as_of)

    assert days == snapshot.day_comparisons


@pytest.mark.asyncio
async def test_holiday_failure_degrades_to_neutral():
    as_of = date(2026, 10, 8)
    service = make_service(as_of, holiday_error=UpstreamUnavailableError("calendar offline"))

    snapshot = await service.compute_snapshot(as_of)

    assert snapshot.holiday_adjustment.adjustment_factor == 1.0
    assert any(w.startswith("Holiday data unavailable") for w in snapshot.warnings)
    assert not any(d.is_holiday for d in snapshot.day_comparisons)


@pytest.mark.asyncio
async def test_history_failure_uses_intramonth_projection():
    as_of = date(2026, 10, 8)
    service = make_service(as_of, history_error=UpstreamUnavailableError("warehouse down"))

    snapshot = await service.compute_snapshot(as_of)

    assert snapshot.ensemble is None
    assert snapshot.monthly_target == pytest.approx(snapshot.intramonth_projection)
    assert any(w.startswith("Historical totals unavailable") for w in snapshot.warnings)


@pytest.mark.asyncio
async def test_aov_failure_uses_default():
    as_of = date(2026, 10, 8)
    service = make_service(as_of, aov_error=UpstreamUnavailableError("timeout"))

    snapshot = await service.compute_snapshot(as_of)

    assert snapshot.aov == 6500.0
    assert snapshot.day_comparisons[0].gmv_forecast == 129 * 6500.0
    assert any(w.startswith("AOV unavailable") for w in snapshot.warnings)


@pytest.mark.asyncio
async def test_short_history_skips_ensemble():
    as_of = date(2026, 10, 8)
    service = make_service(as_of, history=flat_history(months=2, start=(2026, 8)))

    snapshot = await service.compute_snapshot(as_of)

    assert snapshot.ensemble is None
    assert any(w.startswith("Regime analysis unavailable") for w in snapshot.warnings)


@pytest.mark.asyncio
async def test_no_actuals_raises():
    as_of = date(2026, 10, 8)
    service = make_service(as_of, rows=[])

    with pytest.raises(InsufficientDataError):
        await service.compute_snapshot(as_of)


@pytest.mark.asyncio
async def test_actuals_failure_propagates():
    as_of = date(2026, 10, 8)
    service = ForecastService(
        daily_actual_repo=DummyActualRepository(error=UpstreamUnavailableError("db down")),
        historical_repo=DummyHistoryRepository(flat_history()),
    )

    with pytest.raises(UpstreamUnavailableError):
        await service.compute_snapshot(as_of)


@pytest.mark.asyncio
async def test_early_month_target_from_prior_years():
    as_of = date(2026, 10, 2)
    service = make_service(as_of)

    snapshot = await service.compute_snapshot(as_of)

    assert snapshot.early_month.is_early_month
    assert snapshot.early_month.years_used == (2024, 2025)
    assert snapshot.early_month.days_until_realtime == 1
    assert snapshot.monthly_target == pytest.approx(3100.0)
    assert snapshot.base_pace == pytest.approx(100.0)


@pytest.mark.asyncio
async def test_first_day_without_history_uses_closed_day_pace():
    as_of = date(2026, 10, 1)
    service = make_service(as_of, history=[])

    snapshot = await service.compute_snapshot(as_of)

    assert snapshot.intramonth_projection is None
    assert snapshot.ensemble is None
    assert snapshot.monthly_target == pytest.approx(129 * 31)
    assert any(w.startswith("Early-month projection unavailable") for w in snapshot.warnings)
    assert "Monthly target based on the current day's volume only" in snapshot.warnings


@pytest.mark.asyncio
async def test_correction_factor_stays_bounded():
    as_of = date(2026, 10, 15)
    rows = on_pace_actuals(date(2026, 10, 10), pace=100.0)
    rows += on_pace_actuals(as_of, pace=400.0)[10:]
    service = make_service(as_of, rows=rows)

    snapshot = await service.compute_snapshot(as_of)

    assert 0.7 <= snapshot.dynamic_adjustment.correction_factor <= 1.3
    future = [d for d in snapshot.day_comparisons if d.is_future]
    assert all(d.adjustment_factor == snapshot.dynamic_adjustment.correction_factor for d in future)


@pytest.mark.asyncio
async def test_holidays_shape_the_day_forecasts():
    as_of = date(2026, 10, 8)
    holiday = Holiday(date=date(2026, 10, 12), name="Día de la Raza", base_factor=0.5)
    service = make_service(as_of, holidays=[holiday])

    snapshot = await service.compute_snapshot(as_of)

    monday = snapshot.day_comparisons[11]
    assert monday.is_holiday
    assert monday.operation_factor == 0.5
    assert snapshot.holiday_adjustment.adjustment_factor == pytest.approx(30.5 / 31)
    assert snapshot.holiday_adjustment.estimated_volume_impact == pytest.approx(
        -0.5 * snapshot.base_pace
    )


@pytest.mark.asyncio
async def test_running_current_month_total_is_not_history():
    as_of = date(2026, 10, 8)
    partial_month = MonthlyTotal(year=2026, month=10, services=700, gmv=700 * AOV)
    baseline = make_service(as_of)
    with_partial = make_service(as_of, history=flat_history() + [partial_month])

    expected = await baseline.compute_snapshot(as_of)
    snapshot = await with_partial.compute_snapshot(as_of)

    assert snapshot.monthly_target == pytest.approx(expected.monthly_target)
    assert snapshot.ensemble.regime.regime == expected.ensemble.regime.regime
    assert snapshot.warnings == expected.warnings


@pytest.mark.asyncio
async def test_back_dated_run_ignores_later_months():
    as_of = date(2025, 10, 8)
    # Oct 2023 - Sep 2025 flat, later months doubled
    history = flat_history(months=24, start=(2023, 10)) + flat_history(value=6200.0, months=12, start=(2025, 10))
    rows = on_pace_actuals(as_of, year=2025, month=10)
    service = make_service(as_of, rows=rows, history=history)

    snapshot = await service.compute_snapshot(as_of)

    assert snapshot.monthly_target == pytest.approx(3100.0, rel=1e-6)
    assert snapshot.ensemble.regime.regime == Regime.NORMAL
