"""
Monthly Total Repository
Closed-month history feeding the regime ensemble and early-month mode
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from decimal import Decimal
import logging

from daily_forecast.domain.errors import UpstreamUnavailableError
from daily_forecast.domain.models import MonthlyTotal
from daily_forecast.infrastructure.db.models import MonthlyTotalModel

logger = logging.getLogger(__name__)


class MonthlyTotalRepository:
    """Repository for monthly history data access"""

    def __init__(self, session: AsyncSession):
        """Initialize with database session"""
        self.session = session

    async def save(self, total: MonthlyTotal) -> MonthlyTotal:
        """Insert or replace the aggregate of one month"""
        result = await self.session.execute(
            select(MonthlyTotalModel).where(
                MonthlyTotalModel.year == total.year,
                MonthlyTotalModel.month == total.month,
            )
        )
        model = result.scalar_one_or_none()

        if model is None:
            model = MonthlyTotalModel(year=total.year, month=total.month)
            self.session.add(model)
        model.services = int(total.services)
        model.gmv = Decimal(str(total.gmv))

        await self.session.flush()
        return self._to_domain(model)

    async def get_historical_monthly_totals(self) -> list[MonthlyTotal]:
        """
        Get every stored month, oldest first

        Raises:
            UpstreamUnavailableError: If the store cannot be read
        """
        try:
            result = await self.session.execute(
                select(MonthlyTotalModel).order_by(MonthlyTotalModel.year, MonthlyTotalModel.month)
            )
        except SQLAlchemyError as exc:
            logger.error("MONTHLY_TOTALS_READ_FAILED | error=%s", exc)
            raise UpstreamUnavailableError("Historical monthly totals unavailable") from exc

        return [self._to_domain(model) for model in result.scalars().all()]

    @staticmethod
    def _to_domain(model: MonthlyTotalModel) -> MonthlyTotal:
        return MonthlyTotal(
            year=model.year,
            month=model.month,
            services=float(model.services),
            gmv=float(model.gmv),
        )
