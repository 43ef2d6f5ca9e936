import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from clinic_backend.database import Base  # noqa: E402
from clinic_backend.models.appointment import Appointment  # noqa: E402
from clinic_backend.models.availability import DoctorAvailability  # noqa: E402
from clinic_backend.models.schedule import DoctorSchedule  # noqa: E402

TABLES = [DoctorSchedule.__table__, DoctorAvailability.__table__, Appointment.__table__]


@pytest.fixture
def clinic_db():
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
def skip_schema_bootstrap(monkeypatch: pytest.MonkeyPatch) -> None:
    for module in ('schedule_routes', 'availability_routes', 'appointment_routes'):
        monkeypatch.setattr(f'clinic_backend.routes.{module}.ensure_database_ready', lambda: None)


@pytest.fixture
def add_schedule(clinic_db):
    def _add_schedule(**overrides) -> DoctorSchedule:
        values = {
            'schedule_id': f'sch-{clinic_db.query(DoctorSchedule).count() + 1:03d}',
            'doctor_id': 'doc-1',
            'day_of_week': 'Monday',
            'start_time': '09:00',
            'end_time': '10:00',
            'slot_duration': 15,
            'is_active': True,
        }
        values.update(overrides)
        schedule = DoctorSchedule(**values)
        clinic_db.add(schedule)
        clinic_db.commit()
        clinic_db.refresh(schedule)
        return schedule

    return _add_schedule
