"""
Database Models (SQLAlchemy ORM)
Daily volume, monthly history and the holiday calendar
"""

from sqlalchemy import (
    Column, Integer, String, Numeric, Date, DateTime, Boolean, Float, Index
)
from datetime import datetime

from daily_forecast.infrastructure.db.database import Base


class DailyVolumeModel(Base):
    """Realized services and GMV for one calendar day"""
    __tablename__ = "daily_volume"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False, unique=True, index=True)
    services = Column(Integer, nullable=False, default=0)
    gmv = Column(Numeric(14, 2), nullable=False, default=0)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)


class MonthlyTotalModel(Base):
    """Closed-month aggregate used as forecast history"""
    __tablename__ = "monthly_totals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    services = Column(Integer, nullable=False)
    gmv = Column(Numeric(16, 2), nullable=False)

    __table_args__ = (
        Index("ix_monthly_totals_period", "year", "month", unique=True),
    )


class HolidayModel(Base):
    """Calendar holiday and its expected operation factor"""
    __tablename__ = "holidays"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False, index=True)
    name = Column(String(120), nullable=False)
    base_factor = Column(Float, nullable=False)
    observed_impact_pct = Column(Float, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
