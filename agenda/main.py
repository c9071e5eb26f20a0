import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from agenda.core import config
from agenda.database import engine, ensure_appointment_schema, ensure_availability_schema, ensure_doctor_schema
from agenda.models import appointment, availability, doctor, work_settings
from agenda.routes import doctor_routes, scheduling_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

config.validate_runtime_config()

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        doctor.Base.metadata.create_all(bind=engine)
        appointment.Base.metadata.create_all(bind=engine)
        availability.Base.metadata.create_all(bind=engine)
        work_settings.Base.metadata.create_all(bind=engine)
        ensure_availability_schema()
        ensure_appointment_schema()
        ensure_doctor_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Doctor Scheduling API Running'}


app.include_router(scheduling_routes.router, prefix='/scheduling')
app.include_router(doctor_routes.router, prefix='/doctors')
