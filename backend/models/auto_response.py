"""Auto-response template model definitions."""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text, func, text
from backend.database import Base


MESSAGE_TYPES = ('general', 'missed_call', 'reschedule', 'cancellation', 'confirmation', 'emergency')

_DEFAULT_WHERE = text('is_default')


class AutoResponse(Base):
    """A reusable reply template for one message category of a provider."""
    __tablename__ = "auto_responses"
    __table_args__ = (
        Index('idx_auto_responses_user_type', 'user_id', 'type'),
        Index(
            'uq_auto_responses_default',
            'user_id',
            'type',
            unique=True,
            postgresql_where=_DEFAULT_WHERE,
            sqlite_where=_DEFAULT_WHERE,
        ),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False, default='general')
    content = Column(Text, nullable=False)
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
