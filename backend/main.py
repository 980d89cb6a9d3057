import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from backend.core import config
from backend.database import Base, engine, ensure_auto_response_schema, ensure_booking_schema
from backend.models import auto_response, availability, booking, client, service  # noqa: F401
from backend.routes import auto_response_routes, availability_routes, booking_routes, service_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

config.validate_runtime_config()

app = FastAPI(title='CatchUp API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_booking_schema()
        ensure_auto_response_schema()
        logger.info('Database ready (slot mode: %s)', config.SLOT_ANCHOR_MODE)
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'CatchUp API Running'}


app.include_router(availability_routes.router, prefix='/availability')
app.include_router(booking_routes.router, prefix='/bookings')
app.include_router(service_routes.router, prefix='/services')
app.include_router(auto_response_routes.router, prefix='/auto-responses')
