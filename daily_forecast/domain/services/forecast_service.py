"""
Forecast Service
High-level service running the daily forecast pipeline

Fetches the month's actuals, the monthly history, holidays and the current
AOV concurrently, then runs the pure engines in order:
monthly target -> base pace -> day forecasts -> variance correction ->
day comparisons -> month summary.

Upstream failures on optional inputs degrade to neutral values and are
reported as warning strings on the snapshot.
"""

import asyncio
import logging
from dataclasses import replace
from datetime import date
from typing import Optional, Protocol

from daily_forecast.domain.errors import InsufficientDataError, UpstreamUnavailableError
from daily_forecast.domain.models import (
    DailyActual,
    DayComparison,
    EarlyMonthProjection,
    EnsembleForecast,
    ForecastSnapshot,
    ForecastThresholds,
    MonthlyTotal,
)
from daily_forecast.domain.services.day_comparison_builder import DayComparisonBuilder
from daily_forecast.domain.services.early_month_engine import EarlyMonthEngine
from daily_forecast.domain.services.ensemble_engine import EnsembleEngine
from daily_forecast.domain.services.holiday_impact_engine import (
    HolidayImpactEngine,
    HolidayRepository,
)
from daily_forecast.domain.services.month_summary_engine import MonthSummaryEngine
from daily_forecast.domain.services.variance_correction_engine import VarianceCorrectionEngine
from daily_forecast.utils.time import days_in_month

logger = logging.getLogger(__name__)


class DailyActualRepository(Protocol):
    """Protocol for daily volume access - ASYNC"""

    async def get_daily_actuals(self, year: int, month: int) -> list[DailyActual]:
        """Get one actual per recorded day of the month"""
        ...


class HistoricalTotalsRepository(Protocol):
    """Protocol for monthly history access - ASYNC"""

    async def get_historical_monthly_totals(self) -> list[MonthlyTotal]:
        """Get every complete month, oldest first"""
        ...


class AovProvider(Protocol):
    """Protocol for the current average order value - ASYNC"""

    async def get_current_aov(self) -> float:
        ...


class ForecastService:
    """
    Forecast Service
    Orchestrates the forecast pipeline from repositories to snapshot
    """

    def __init__(
        self,
        daily_actual_repo: DailyActualRepository,
        historical_repo: HistoricalTotalsRepository,
        holiday_repo: Optional[HolidayRepository] = None,
        aov_provider: Optional[AovProvider] = None,
        thresholds: Optional[ForecastThresholds] = None,
        default_aov: float = 0.0
    ):
        """Initialize forecast service with its data sources"""
        self.daily_actual_repo = daily_actual_repo
        self.historical_repo = historical_repo
        self.aov_provider = aov_provider
        self.default_aov = default_aov
        self.thresholds = thresholds or ForecastThresholds()

        self.holiday_engine = HolidayImpactEngine(holiday_repo)
        self.correction_engine = VarianceCorrectionEngine(self.thresholds)
        self.ensemble_engine = EnsembleEngine()
        self.early_month_engine = EarlyMonthEngine(self.thresholds)
        self.day_builder = DayComparisonBuilder(self.thresholds)
        self.summary_engine = MonthSummaryEngine(self.thresholds)

    async def compute_day_comparisons(self, current_date: date) -> tuple[DayComparison, ...]:
        """Day records for the month of current_date"""
        snapshot = await self.compute_snapshot(current_date)
        return snapshot.day_comparisons

    async def compute_snapshot(self, current_date: date) -> ForecastSnapshot:
        """
        Run the full pipeline for a reference date

        Raises:
            InsufficientDataError: If no actual exists for the month up to current_date
            UpstreamUnavailableError: If the daily actuals cannot be fetched
        """
        year, month = current_date.year, current_date.month
        month_length = days_in_month(year, month)
        first_day = current_date.replace(day=1)
        warnings: list[str] = []

        logger.info("FORECAST_PIPELINE_START | date=%s", current_date)

        actual_rows, (history, history_warning), (aov, aov_warning), holiday_adjustment = (
            await asyncio.gather(
                self.daily_actual_repo.get_daily_actuals(year, month),
                self._fetch_history(),
                self._fetch_aov(),
                self.holiday_engine.calculate_adjustment(first_day, month_length),
            )
        )
        for warning in (history_warning, aov_warning, holiday_adjustment.warning):
            if warning:
                warnings.append(warning)

        actuals = {
            row.date: row for row in actual_rows
            if first_day <= row.date <= current_date
        }
        if not actuals:
            raise InsufficientDataError(
                f"No actuals recorded for {year}-{month:02d} up to {current_date}"
            )

        intramonth_projection, month_progress = self._intramonth_projection(
            actuals, current_date, month_length
        )

        # Only months closed before current_date's month count as history
        current_period = year * 12 + month - 1
        history = [t for t in history if t.period_index < current_period]

        early_month = self._early_month(current_date, history, warnings)
        ensemble = self._ensemble(history, intramonth_projection, month_progress, current_date, warnings)
        if ensemble is not None:
            warnings.extend(ensemble.warnings)

        monthly_target = self._monthly_target(
            early_month, ensemble, intramonth_projection, actuals, current_date, month_length, warnings
        )
        base_pace = monthly_target / month_length

        holiday_adjustment = replace(
            holiday_adjustment,
            estimated_volume_impact=base_pace * (
                holiday_adjustment.effective_days - holiday_adjustment.total_days
            ),
        )

        # Pass 1: original forecasts of elapsed days feed the correction
        past_days = self.day_builder.past_day_variances(
            current_date, base_pace, actuals, holiday_adjustment
        )
        dynamic_adjustment = self.correction_engine.calculate(past_days, current_date.day)

        # Pass 2: full records with the correction applied to future days
        day_comparisons = self.day_builder.build(
            current_date,
            base_pace,
            actuals,
            correction_factor=dynamic_adjustment.correction_factor,
            aov=aov,
            holiday_adjustment=holiday_adjustment,
        )
        summary = self.summary_engine.summarize(day_comparisons)

        snapshot = ForecastSnapshot(
            as_of=current_date,
            monthly_target=monthly_target,
            base_pace=base_pace,
            aov=aov,
            intramonth_projection=intramonth_projection,
            day_comparisons=day_comparisons,
            summary=summary,
            dynamic_adjustment=dynamic_adjustment,
            holiday_adjustment=holiday_adjustment,
            early_month=early_month,
            ensemble=ensemble,
            warnings=tuple(warnings),
        )

        logger.info(
            "FORECAST_PIPELINE_DONE | date=%s | target=%.1f | pace=%.2f | factor=%.4f | warnings=%s",
            current_date,
            monthly_target,
            base_pace,
            dynamic_adjustment.correction_factor,
            len(warnings),
        )
        return snapshot

    # -------------------------------------------------------------------
    # Fetching
    # -------------------------------------------------------------------

    async def _fetch_history(self) -> tuple[list[MonthlyTotal], Optional[str]]:
        try:
            return await self.historical_repo.get_historical_monthly_totals(), None
        except UpstreamUnavailableError as exc:
            logger.warning("HISTORY_LOOKUP_FAILED | error=%s", exc)
            return [], f"Historical totals unavailable, intra-month projection used: {exc}"

    async def _fetch_aov(self) -> tuple[float, Optional[str]]:
        if self.aov_provider is None:
            return self.default_aov, None
        try:
            return await self.aov_provider.get_current_aov(), None
        except UpstreamUnavailableError as exc:
            logger.warning("AOV_LOOKUP_FAILED | error=%s | fallback=%s", exc, self.default_aov)
            return self.default_aov, f"AOV unavailable, default {self.default_aov:.2f} used: {exc}"

    # -------------------------------------------------------------------
    # Monthly target
    # -------------------------------------------------------------------

    @staticmethod
    def _intramonth_projection(
        actuals: dict[date, DailyActual],
        current_date: date,
        month_length: int
    ) -> tuple[Optional[float], float]:
        """
        Naive linear projection from the complete days before current_date

        Returns (None, 0.0) on the first day of the month.
        """
        elapsed_days = current_date.day - 1
        if elapsed_days == 0:
            return None, 0.0

        elapsed_total = sum(
            row.services for day, row in actuals.items() if day < current_date
        )
        month_progress = elapsed_days / month_length
        return elapsed_total / month_progress, month_progress

    def _early_month(
        self,
        current_date: date,
        history: list[MonthlyTotal],
        warnings: list[str]
    ) -> EarlyMonthProjection:
        try:
            return self.early_month_engine.project(current_date, history)
        except InsufficientDataError as exc:
            logger.warning("EARLY_MONTH_UNAVAILABLE | date=%s | error=%s", current_date, exc)
            warnings.append(f"Early-month projection unavailable: {exc}")
            return EarlyMonthProjection(
                is_early_month=True,
                day_of_month=current_date.day,
                days_until_realtime=max(
                    0, self.thresholds.early_month_last_day + 1 - current_date.day
                ),
                methodology="no prior-year data",
            )

    def _ensemble(
        self,
        history: list[MonthlyTotal],
        intramonth_projection: Optional[float],
        month_progress: float,
        current_date: date,
        warnings: list[str]
    ) -> Optional[EnsembleForecast]:
        if intramonth_projection is None or not history:
            return None
        try:
            return self.ensemble_engine.forecast(
                history,
                intramonth_projection,
                month_progress,
                target_year=current_date.year,
                target_month=current_date.month,
            )
        except InsufficientDataError as exc:
            logger.warning("REGIME_ENSEMBLE_UNAVAILABLE | date=%s | error=%s", current_date, exc)
            warnings.append(f"Regime analysis unavailable, intra-month projection used: {exc}")
            return None

    @staticmethod
    def _monthly_target(
        early_month: EarlyMonthProjection,
        ensemble: Optional[EnsembleForecast],
        intramonth_projection: Optional[float],
        actuals: dict[date, DailyActual],
        current_date: date,
        month_length: int,
        warnings: list[str]
    ) -> float:
        """
        Monthly target in order of preference: early-month projection while
        early mode is active, ensemble prediction, intra-month projection and
        finally the pace of the closed days including today
        """
        if early_month.is_early_month and early_month.projection is not None:
            return early_month.projection
        if ensemble is not None:
            return ensemble.prediction
        if intramonth_projection is not None:
            return intramonth_projection

        closed_total = sum(row.services for row in actuals.values())
        warnings.append("Monthly target based on the current day's volume only")
        return closed_total / current_date.day * month_length
