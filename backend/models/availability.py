"""Weekly availability model definitions."""

from sqlalchemy import Boolean, Column, Integer, String, UniqueConstraint
from backend.database import Base


WEEKDAYS = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')


class WeeklyAvailability(Base):
    """Which day periods a provider takes bookings on for one weekday."""
    __tablename__ = "weekly_availability"
    __table_args__ = (
        UniqueConstraint('provider_id', 'weekday', name='uq_weekly_availability_provider_day'),
    )

    id = Column(Integer, primary_key=True)
    provider_id = Column(String, nullable=False, index=True)
    weekday = Column(String, nullable=False)
    morning = Column(Boolean, nullable=False, default=False)
    afternoon = Column(Boolean, nullable=False, default=False)
    evening = Column(Boolean, nullable=False, default=False)
    start_time = Column(String(5))  # HH:MM, optional day opening
    end_time = Column(String(5))
