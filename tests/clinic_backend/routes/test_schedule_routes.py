import pytest
from pydantic import ValidationError as PydanticValidationError

from clinic_backend.core.errors import NotFoundError, ValidationError
from clinic_backend.models.schedule import DoctorSchedule
from clinic_backend.routes.schedule_routes import (
    CreateScheduleRequest,
    UpdateScheduleRequest,
    create_schedule,
    delete_schedule,
    get_schedule,
    list_schedules,
    update_schedule,
)


def test_create_schedule_request_normalizes_weekday() -> None:
    request = CreateScheduleRequest(doctorId=' doc-1 ', dayOfWeek=' monday ', startTime='09:00', endTime='12:00')

    assert request.doctor_id == 'doc-1'
    assert request.day_of_week == 'Monday'


@pytest.mark.parametrize(
    'payload',
    [
        {'dayOfWeek': 'Funday'},
        {'startTime': '9:00'},
        {'endTime': '25:00'},
        {'slotDuration': 0},
    ],
)
def test_create_schedule_request_rejects_invalid_values(payload) -> None:
    with pytest.raises(PydanticValidationError):
        CreateScheduleRequest.model_validate(payload)


def test_create_schedule_rejects_missing_fields() -> None:
    with pytest.raises(ValidationError) as exception_info:
        create_schedule(CreateScheduleRequest(doctorId='doc-1', dayOfWeek='Monday'), db=None)

    assert exception_info.value.message == 'Missing required fields'


def test_create_schedule_rejects_inverted_window() -> None:
    with pytest.raises(ValidationError) as exception_info:
        create_schedule(
            CreateScheduleRequest(doctorId='doc-1', dayOfWeek='Monday', startTime='12:00', endTime='09:00'),
            db=None,
        )

    assert exception_info.value.message == 'startTime must be earlier than endTime.'


def test_create_schedule_assigns_sequential_ids_and_defaults(clinic_db, skip_schema_bootstrap) -> None:
    first = create_schedule(
        CreateScheduleRequest(doctorId='doc-1', dayOfWeek='Monday', startTime='09:00', endTime='12:00'),
        db=clinic_db,
    )
    second = create_schedule(
        CreateScheduleRequest(doctorId='doc-1', dayOfWeek='Friday', startTime='13:00', endTime='17:00', slotDuration=30),
        db=clinic_db,
    )

    assert first['data']['schedule']['scheduleId'] == 'sch-001'
    assert first['data']['schedule']['slotDuration'] == 15
    assert first['data']['schedule']['isActive'] is True
    assert second['data']['schedule']['scheduleId'] == 'sch-002'
    assert second['data']['schedule']['slotDuration'] == 30


def test_list_schedules_orders_by_doctor_then_weekday(clinic_db, add_schedule, skip_schema_bootstrap) -> None:
    add_schedule(doctor_id='doc-2', day_of_week='Monday')
    add_schedule(doctor_id='doc-1', day_of_week='Wednesday')
    add_schedule(doctor_id='doc-1', day_of_week='Monday', start_time='13:00', end_time='14:00')

    everything = list_schedules(doctor_id=None, db=clinic_db)
    doctor_one = list_schedules(doctor_id='doc-1', db=clinic_db)

    assert [(item['doctorId'], item['dayOfWeek']) for item in everything['data']['schedules']] == [
        ('doc-1', 'Monday'),
        ('doc-1', 'Wednesday'),
        ('doc-2', 'Monday'),
    ]
    assert doctor_one['data']['totalSchedules'] == 2


def test_get_schedule_returns_not_found(clinic_db, skip_schema_bootstrap) -> None:
    with pytest.raises(NotFoundError) as exception_info:
        get_schedule('sch-404', db=clinic_db)

    assert exception_info.value.message == 'Schedule not found'


def test_update_schedule_applies_partial_changes(clinic_db, add_schedule, skip_schema_bootstrap) -> None:
    schedule = add_schedule()

    response = update_schedule(
        schedule.schedule_id,
        UpdateScheduleRequest(scheduleId='sch-999', endTime='11:00', isActive=False),
        db=clinic_db,
    )

    updated = response['data']['schedule']
    assert updated['scheduleId'] == schedule.schedule_id
    assert updated['startTime'] == '09:00'
    assert updated['endTime'] == '11:00'
    assert updated['isActive'] is False


def test_update_schedule_validates_merged_window(clinic_db, add_schedule, skip_schema_bootstrap) -> None:
    schedule = add_schedule()

    with pytest.raises(ValidationError):
        update_schedule(schedule.schedule_id, UpdateScheduleRequest(startTime='10:30'), db=clinic_db)


def test_delete_schedule_removes_row(clinic_db, add_schedule, skip_schema_bootstrap) -> None:
    schedule = add_schedule()

    response = delete_schedule(schedule.schedule_id, db=clinic_db)

    assert response == {'success': True, 'message': 'Schedule deleted successfully'}
    assert clinic_db.query(DoctorSchedule).count() == 0
