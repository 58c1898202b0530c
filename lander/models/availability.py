"""Landlord availability model definitions."""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, Time
from lander.database import Base


class LandlordAvailability(Base):
    """A recurring weekly window during which a landlord accepts viewings."""
    __tablename__ = "landlord_availabilities"
    __table_args__ = (
        Index("ix_landlord_availabilities_landlord_day", "landlord_id", "day_of_week"),
    )

    id = Column(Integer, primary_key=True)
    landlord_id = Column(Integer, nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_date = Column(DateTime)
