"""Service model definitions."""

from sqlalchemy import Column, DateTime, Float, Integer, String, func
from backend.database import Base


SERVICE_LOCATION_TYPES = ('office', 'client_location', 'online')


class Service(Base):
    """A bookable offering with a fixed duration."""
    __tablename__ = "services"

    id = Column(Integer, primary_key=True)
    provider_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(String)
    duration = Column(Integer, nullable=False)  # minutes
    price = Column(Float, nullable=False, default=0.0)
    location_type = Column(String, nullable=False, default='office')
    created_at = Column(DateTime, server_default=func.now())
