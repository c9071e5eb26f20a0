import os
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from agenda.database import Base  # noqa: E402
from agenda.models.appointment import Appointment  # noqa: E402
from agenda.models.availability import DateAvailability  # noqa: E402
from agenda.models.doctor import Doctor  # noqa: E402
from agenda.models.work_settings import WorkSettingsRecord  # noqa: E402
from agenda.services.scheduling import SchedulingService  # noqa: E402
from agenda.store import SchedulingStore  # noqa: E402

TABLES = [Doctor.__table__, WorkSettingsRecord.__table__, DateAvailability.__table__, Appointment.__table__]


class FixedClock:
    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current


@pytest.fixture
def clock() -> FixedClock:
    # Thursday; the Monday used across tests is 2026-01-05.
    return FixedClock(datetime(2026, 1, 1, 8, 0))


@pytest.fixture
def scheduling_db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=TABLES)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(TABLES)))


@pytest.fixture
def store(scheduling_db) -> SchedulingStore:
    return SchedulingStore(scheduling_db)


@pytest.fixture
def service(store, clock) -> SchedulingService:
    return SchedulingService(store, clock=clock)
