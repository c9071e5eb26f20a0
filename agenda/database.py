from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from agenda.core import config


def engine_options(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False, "timeout": config.STORE_TIMEOUT_SECONDS}}
    return {"pool_timeout": config.STORE_TIMEOUT_SECONDS, "pool_pre_ping": True}


engine = create_engine(config.DATABASE_URL, **engine_options(config.DATABASE_URL))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_availability_schema_checked = False
_appointment_schema_checked = False
_doctor_schema_checked = False


def ensure_availability_schema() -> None:
    global _availability_schema_checked

    if _availability_schema_checked:
        return

    with _schema_lock:
        if _availability_schema_checked:
            return

        inspector = inspect(engine)

        if 'date_availability' not in inspector.get_table_names():
            _availability_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('date_availability')}
        migration_steps = [
            ('slots', 'ALTER TABLE date_availability ADD COLUMN slots JSON'),
            ('slot_duration', 'ALTER TABLE date_availability ADD COLUMN slot_duration INTEGER'),
            ('generated_from', 'ALTER TABLE date_availability ADD COLUMN generated_from JSON'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_date_availability_doctor_date ON date_availability(doctor_id, date_key)')
            )

        _availability_schema_checked = True


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('slot_end', 'ALTER TABLE appointments ADD COLUMN slot_end TIMESTAMP'),
            ('last_change_by', 'ALTER TABLE appointments ADD COLUMN last_change_by VARCHAR'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_doctor_slot ON appointments(doctor_id, slot_start)')
            )

        _appointment_schema_checked = True


def ensure_doctor_schema() -> None:
    global _doctor_schema_checked

    if _doctor_schema_checked:
        return

    with _schema_lock:
        if _doctor_schema_checked:
            return

        inspector = inspect(engine)

        if 'doctors' not in inspector.get_table_names():
            _doctor_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('doctors')}
        if 'accepts_new_patients' not in existing_columns:
            with engine.begin() as connection:
                connection.execute(text('ALTER TABLE doctors ADD COLUMN accepts_new_patients BOOLEAN DEFAULT TRUE'))

        _doctor_schema_checked = True
