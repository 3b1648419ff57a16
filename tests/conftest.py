from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from daily_forecast.infrastructure.db.database import Base, init_db


@pytest.fixture()
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    db_path = tmp_path / "forecast.db"
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{db_path}",
        echo=False
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_maker(db_engine) -> async_sessionmaker:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session
        # cleanup
        for table in reversed(Base.metadata.sorted_tables):
            await session.execute(table.delete())
        await session.commit()
