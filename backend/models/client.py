"""Client model definitions."""

from sqlalchemy import Column, DateTime, Integer, String, func
from backend.database import Base


class Client(Base):
    """Represents a customer of the provider."""
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String)
    company = Column(String)
    address = Column(String)
    created_at = Column(DateTime, server_default=func.now())
