"""Booking model definitions."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String, func, text
from backend.core import config
from backend.database import Base


BOOKING_STATUSES = ('pending', 'confirmed', 'declined', 'rescheduled', 'canceled', 'emergency')
BLOCKING_STATUSES = ('confirmed', 'emergency')

_ACTIVE_SLOT_WHERE = text("status IN ('confirmed', 'emergency')")


class Booking(Base):
    """A client appointment with a provider on a given day and clock time."""
    __tablename__ = "bookings"
    __table_args__ = (
        Index('idx_bookings_professional_date', 'professional_id', 'date'),
        Index(
            'uq_bookings_active_slot',
            'professional_id',
            'date',
            'time',
            unique=True,
            postgresql_where=_ACTIVE_SLOT_WHERE,
            sqlite_where=_ACTIVE_SLOT_WHERE,
        ),
    )

    id = Column(Integer, primary_key=True)
    professional_id = Column(String, nullable=False)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=True)
    service_name = Column(String)
    client_name = Column(String)
    client_email = Column(String)
    client_phone = Column(String)
    external_id = Column(String)
    date = Column(Date, nullable=False)
    time = Column(String(5), nullable=False)  # HH:MM
    duration = Column(Integer, nullable=False, default=lambda: config.DEFAULT_BOOKING_DURATION_MINUTES)
    status = Column(String, nullable=False, default='confirmed')
    notes = Column(String)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
