"""
Holiday Calendar Repository
Active holidays with their configured and observed impact
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from datetime import date
import logging

from daily_forecast.domain.errors import UpstreamUnavailableError
from daily_forecast.domain.models import Holiday
from daily_forecast.infrastructure.db.models import HolidayModel

logger = logging.getLogger(__name__)


class HolidayCalendarRepository:
    """Repository for holiday data access"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    async def add(self, holiday: Holiday, is_active: bool = True) -> Holiday:
        model = HolidayModel(
            date=holiday.date,
            name=holiday.name,
            base_factor=holiday.base_factor,
            observed_impact_pct=holiday.observed_impact_pct,
            is_active=is_active,
        )
        self.session.add(model)
        await self.session.flush()
        return self._to_domain(model)

    async def get_holidays(self, start_date: date, end_date: date) -> list[Holiday]:
        """
        Get active holidays with start_date <= date <= end_date

        Raises:
            UpstreamUnavailableError: If the store cannot be read
        """
        try:
            result = await self.session.execute(
                select(HolidayModel)
                .where(
                    HolidayModel.is_active.is_(True),
                    HolidayModel.date >= start_date,
                    HolidayModel.date <= end_date,
                )
                .order_by(HolidayModel.date, HolidayModel.name)
            )
        except SQLAlchemyError as exc:
            logger.error(
                "HOLIDAYS_READ_FAILED | start=%s | end=%s | error=%s", start_date, end_date, exc
            )
            raise UpstreamUnavailableError("Holiday calendar unavailable") from exc

        return [self._to_domain(model) for model in result.scalars().all()]

    @staticmethod
    def _to_domain(model: HolidayModel) -> Holiday:
        return Holiday(
            date=model.date,
            name=model.name,
            base_factor=model.base_factor,
            observed_impact_pct=model.observed_impact_pct,
        )
