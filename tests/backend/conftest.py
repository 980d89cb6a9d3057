import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from backend.database import Base  # noqa: E402
from backend.models import auto_response, availability, booking, client, service  # noqa: E402,F401


@pytest.fixture
def db_session():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def skip_schema_checks(monkeypatch: pytest.MonkeyPatch) -> None:
    for module in ('booking_routes', 'availability_routes', 'auto_response_routes', 'service_routes'):
        monkeypatch.setattr(f'backend.routes.{module}.ensure_database_ready', lambda: None)
