from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from backend.core import config


connect_args = {"check_same_thread": False} if config.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(config.DATABASE_URL, echo=config.SQL_ECHO, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_booking_schema_checked = False
_auto_response_schema_checked = False


def ensure_booking_schema() -> None:
    global _booking_schema_checked

    if _booking_schema_checked:
        return

    with _schema_lock:
        if _booking_schema_checked:
            return

        inspector = inspect(engine)

        if 'bookings' not in inspector.get_table_names():
            _booking_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('bookings')}
        migration_steps = [
            ('duration', 'ALTER TABLE bookings ADD COLUMN duration INTEGER DEFAULT 60'),
            ('external_id', 'ALTER TABLE bookings ADD COLUMN external_id VARCHAR'),
            ('client_email', 'ALTER TABLE bookings ADD COLUMN client_email VARCHAR'),
            ('notes', 'ALTER TABLE bookings ADD COLUMN notes VARCHAR'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_bookings_professional_date ON bookings(professional_id, date)')
            )
            connection.execute(
                text(
                    'CREATE UNIQUE INDEX IF NOT EXISTS uq_bookings_active_slot '
                    'ON bookings(professional_id, date, time) '
                    "WHERE status IN ('confirmed', 'emergency')"
                )
            )

        _booking_schema_checked = True


def ensure_auto_response_schema() -> None:
    global _auto_response_schema_checked

    if _auto_response_schema_checked:
        return

    with _schema_lock:
        if _auto_response_schema_checked:
            return

        inspector = inspect(engine)

        if 'auto_responses' not in inspector.get_table_names():
            _auto_response_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('auto_responses')}
        migration_steps = [
            ('is_default', 'ALTER TABLE auto_responses ADD COLUMN is_default BOOLEAN DEFAULT FALSE'),
            ('updated_at', 'ALTER TABLE auto_responses ADD COLUMN updated_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_auto_responses_user_type ON auto_responses(user_id, type)')
            )
            connection.execute(
                text(
                    'CREATE UNIQUE INDEX IF NOT EXISTS uq_auto_responses_default '
                    'ON auto_responses(user_id, type) WHERE is_default'
                )
            )

        _auto_response_schema_checked = True
