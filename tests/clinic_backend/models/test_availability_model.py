from sqlalchemy import create_engine, inspect

from clinic_backend.database import Base
from clinic_backend.models.availability import DoctorAvailability


def test_availability_id_has_single_named_unique_index() -> None:
    engine = create_engine('sqlite:///:memory:')
    Base.metadata.create_all(bind=engine, tables=[DoctorAvailability.__table__])

    inspector = inspect(engine)
    unique_indexes = [
        index for index in inspector.get_indexes('doctor_availabilities')
        if index['column_names'] == ['availability_id']
    ]

    assert [index['name'] for index in unique_indexes] == ['uq_doctor_availabilities_availability_id']
    assert unique_indexes[0]['unique']
    assert inspector.get_unique_constraints('doctor_availabilities') == []
