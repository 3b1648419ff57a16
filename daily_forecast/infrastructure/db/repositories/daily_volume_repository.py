"""
Daily Volume Repository
Daily actuals and the trailing average order value
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional
import logging

from daily_forecast.config import settings
from daily_forecast.domain.errors import UpstreamUnavailableError
from daily_forecast.domain.models import DailyActual
from daily_forecast.infrastructure.db.models import DailyVolumeModel
from daily_forecast.utils.time import days_in_month, today_local

logger = logging.getLogger(__name__)


class DailyVolumeRepository:
    """Repository for daily volume data access"""

    def __init__(
        self,
        session: AsyncSession,
        default_aov: float = settings.DEFAULT_AOV,
        aov_lookback_days: int = settings.AOV_LOOKBACK_DAYS,
        aov_as_of: Optional[date] = None
    ):
        """Initialize with database session"""
        self.session = session
        self.default_aov = default_aov
        self.aov_lookback_days = aov_lookback_days
        self.aov_as_of = aov_as_of

    async def save(self, actual: DailyActual) -> DailyActual:
        """
        Insert or replace the volume of one day

        Args:
            actual: Realized services and GMV

        Returns:
            Stored DailyActual
        """
        result = await self.session.execute(
            select(DailyVolumeModel).where(DailyVolumeModel.date == actual.date)
        )
        model = result.scalar_one_or_none()

        if model is None:
            model = DailyVolumeModel(date=actual.date)
            self.session.add(model)
        model.services = actual.services
        model.gmv = Decimal(str(actual.gmv))

        await self.session.flush()
        return self._to_domain(model)

    async def get_daily_actuals(self, year: int, month: int) -> list[DailyActual]:
        """
        Get the recorded days of a month, day 1 first

        Days without a row are not returned; the forecast treats closed days
        without a row as zero-volume days.

        Raises:
            UpstreamUnavailableError: If the store cannot be read
        """
        start = date(year, month, 1)
        end = date(year, month, days_in_month(year, month))
        try:
            result = await self.session.execute(
                select(DailyVolumeModel)
                .where(DailyVolumeModel.date >= start, DailyVolumeModel.date <= end)
                .order_by(DailyVolumeModel.date)
            )
        except SQLAlchemyError as exc:
            logger.error("DAILY_ACTUALS_READ_FAILED | year=%s | month=%s | error=%s", year, month, exc)
            raise UpstreamUnavailableError(f"Daily actuals unavailable for {year}-{month:02d}") from exc

        return [self._to_domain(model) for model in result.scalars().all()]

    async def get_current_aov(self, as_of: Optional[date] = None) -> float:
        """
        Average order value (GMV / services) over the trailing lookback window

        Falls back to the default AOV when the window holds no services.

        Raises:
            UpstreamUnavailableError: If the store cannot be read
        """
        end = as_of or self.aov_as_of or today_local()
        start = end - timedelta(days=self.aov_lookback_days)
        try:
            result = await self.session.execute(
                select(
                    func.coalesce(func.sum(DailyVolumeModel.services), 0),
                    func.coalesce(func.sum(DailyVolumeModel.gmv), 0),
                ).where(DailyVolumeModel.date >= start, DailyVolumeModel.date < end)
            )
        except SQLAlchemyError as exc:
            logger.error("AOV_READ_FAILED | start=%s | end=%s | error=%s", start, end, exc)
            raise UpstreamUnavailableError("Average order value unavailable") from exc

        services, gmv = result.one()
        if not services:
            return self.default_aov
        return float(gmv) / float(services)

    @staticmethod
    def _to_domain(model: DailyVolumeModel) -> DailyActual:
        """Convert database model to domain entity"""
        return DailyActual(
            date=model.date,
            services=int(model.services),
            gmv=float(model.gmv),
        )
