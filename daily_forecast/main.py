"""
Forecast Runner
Wires the SQL repositories into the forecast service and prints a snapshot
"""

import asyncio
import logging
import sys
from datetime import date
from contextlib import AsyncExitStack
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from daily_forecast.config import settings
from daily_forecast.core.logging import setup_logging
from daily_forecast.domain.errors import ForecastError
from daily_forecast.domain.models import ForecastSnapshot
from daily_forecast.domain.schemas.forecast import ForecastSnapshotResponse
from daily_forecast.domain.services.forecast_service import ForecastService
from daily_forecast.infrastructure.db.database import async_session_factory, close_db, init_db
from daily_forecast.infrastructure.db.repositories.daily_volume_repository import DailyVolumeRepository
from daily_forecast.infrastructure.db.repositories.holiday_repository import HolidayCalendarRepository
from daily_forecast.infrastructure.db.repositories.monthly_total_repository import MonthlyTotalRepository
from daily_forecast.utils.time import today_local

logger = logging.getLogger(__name__)

SESSIONS_PER_SNAPSHOT = 4


def build_forecast_service(
    sessions: Sequence[AsyncSession],
    as_of: date
) -> ForecastService:
    """
    Forecast service backed by the SQL repositories

    The service reads its sources concurrently and an AsyncSession cannot be
    shared between concurrent queries, so each repository gets its own session.
    """
    actuals_session, history_session, holiday_session, aov_session = sessions

    return ForecastService(
        daily_actual_repo=DailyVolumeRepository(actuals_session),
        historical_repo=MonthlyTotalRepository(history_session),
        holiday_repo=HolidayCalendarRepository(holiday_session),
        aov_provider=DailyVolumeRepository(aov_session, aov_as_of=as_of),
        thresholds=settings.forecast_thresholds(),
        default_aov=settings.DEFAULT_AOV,
    )


async def generate_snapshot(as_of: Optional[date] = None) -> ForecastSnapshot:
    """Compute the forecast snapshot for as_of (today in the operation timezone by default)"""
    as_of = as_of or today_local()
    async with AsyncExitStack() as stack:
        sessions = [
            await stack.enter_async_context(async_session_factory())
            for _ in range(SESSIONS_PER_SNAPSHOT)
        ]
        service = build_forecast_service(sessions, as_of)
        return await service.compute_snapshot(as_of)


async def run(as_of: Optional[date] = None) -> int:
    logger.info("FORECAST_RUN | env=%s | as_of=%s", settings.APP_ENV, as_of or "today")
    await init_db()
    try:
        snapshot = await generate_snapshot(as_of)
    except ForecastError as exc:
        logger.error("FORECAST_FAILED | as_of=%s | error=%s", as_of, exc)
        return 1
    finally:
        await close_db()

    print(ForecastSnapshotResponse.from_snapshot(snapshot).model_dump_json(indent=2))
    return 0


def main() -> None:
    setup_logging(settings.effective_log_level)
    as_of = date.fromisoformat(sys.argv[1]) if len(sys.argv) > 1 else None
    sys.exit(asyncio.run(run(as_of)))


if __name__ == "__main__":
    main()
