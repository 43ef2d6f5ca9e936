import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import field_validator
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.core import config
from clinic_backend.core.errors import NotFoundError, StorageError, ValidationError
from clinic_backend.database import get_db
from clinic_backend.models.schedule import DoctorSchedule
from clinic_backend.routes.common import CamelModel, ensure_database_ready, serialize, success
from clinic_backend.services.slot_generator import WEEKDAY_NAMES, parse_clock_time

router = APIRouter(tags=['doctor-schedules'])

logger = logging.getLogger(__name__)

WEEKDAY_ORDER = {name: index for index, name in enumerate(WEEKDAY_NAMES)}


def normalize_day_of_week(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip().capitalize()
    if normalized not in WEEKDAY_ORDER:
        raise ValueError(f"dayOfWeek must be one of: {', '.join(WEEKDAY_NAMES)}.")
    return normalized


def normalize_clock_time(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    parse_clock_time(normalized)
    return normalized


class ScheduleFields(CamelModel):
    doctor_id: str | None = None
    day_of_week: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    slot_duration: int | None = None
    is_active: bool | None = None

    @field_validator('doctor_id')
    @classmethod
    def validate_doctor_id(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @field_validator('day_of_week')
    @classmethod
    def validate_day_of_week(cls, value: str | None) -> str | None:
        return normalize_day_of_week(value)

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_clock_time(cls, value: str | None) -> str | None:
        return normalize_clock_time(value)

    @field_validator('slot_duration')
    @classmethod
    def validate_slot_duration(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError('slotDuration must be a positive number of minutes.')
        return value


class CreateScheduleRequest(ScheduleFields):
    pass


class UpdateScheduleRequest(ScheduleFields):
    schedule_id: str | None = None


class ScheduleResponse(CamelModel):
    schedule_id: str
    doctor_id: str
    day_of_week: str
    start_time: str
    end_time: str
    slot_duration: int
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


def validate_schedule_window(start_time: str, end_time: str) -> None:
    if parse_clock_time(start_time) >= parse_clock_time(end_time):
        raise ValidationError('startTime must be earlier than endTime.')


def next_schedule_id(db: Session) -> str:
    highest_id = db.query(func.max(DoctorSchedule.id)).scalar() or 0
    return f'sch-{highest_id + 1:03d}'


def find_schedule(db: Session, schedule_id: str) -> DoctorSchedule:
    schedule = db.query(DoctorSchedule).filter(DoctorSchedule.schedule_id == schedule_id).first()
    if not schedule:
        logger.warning('Schedule not found: %s', schedule_id)
        raise NotFoundError('Schedule not found')
    return schedule


@router.get('/')
def list_schedules(
    doctor_id: str | None = Query(default=None, alias='doctorId'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(DoctorSchedule)
        if doctor_id:
            query = query.filter(DoctorSchedule.doctor_id == doctor_id)
        schedules = query.order_by(DoctorSchedule.doctor_id.asc(), DoctorSchedule.start_time.asc()).all()
    except SQLAlchemyError as exc:
        raise StorageError('Failed to fetch schedules') from exc

    schedules.sort(key=lambda schedule: (schedule.doctor_id, WEEKDAY_ORDER.get(schedule.day_of_week, len(WEEKDAY_ORDER))))
    return success({
        'schedules': [serialize(ScheduleResponse, schedule) for schedule in schedules],
        'totalSchedules': len(schedules),
    })


@router.get('/{schedule_id}')
def get_schedule(schedule_id: str, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        schedule = find_schedule(db, schedule_id)
    except SQLAlchemyError as exc:
        raise StorageError('Failed to fetch schedule') from exc

    return success({'schedule': serialize(ScheduleResponse, schedule)})


@router.post('/', status_code=status.HTTP_201_CREATED)
def create_schedule(data: CreateScheduleRequest, db: Session = Depends(get_db)):
    if not data.doctor_id or not data.day_of_week or not data.start_time or not data.end_time:
        raise ValidationError('Missing required fields')

    validate_schedule_window(data.start_time, data.end_time)

    ensure_database_ready()

    try:
        schedule = DoctorSchedule(
            schedule_id=next_schedule_id(db),
            doctor_id=data.doctor_id,
            day_of_week=data.day_of_week,
            start_time=data.start_time,
            end_time=data.end_time,
            slot_duration=data.slot_duration or config.DEFAULT_SLOT_DURATION_MINUTES,
            is_active=True if data.is_active is None else data.is_active,
        )
        db.add(schedule)
        db.commit()
        db.refresh(schedule)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Failed to create schedule') from exc

    logger.info('Created schedule %s for doctor %s', schedule.schedule_id, schedule.doctor_id)
    return success({'schedule': serialize(ScheduleResponse, schedule)})


@router.put('/{schedule_id}')
def update_schedule(schedule_id: str, data: UpdateScheduleRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        schedule = find_schedule(db, schedule_id)

        changes = data.model_dump(exclude_unset=True, exclude={'schedule_id'})
        changes = {field: value for field, value in changes.items() if value is not None}
        validate_schedule_window(
            changes.get('start_time', schedule.start_time),
            changes.get('end_time', schedule.end_time),
        )

        for field, value in changes.items():
            setattr(schedule, field, value)

        db.commit()
        db.refresh(schedule)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Failed to update schedule') from exc

    logger.info('Updated schedule %s', schedule_id)
    return success({'schedule': serialize(ScheduleResponse, schedule)})


@router.delete('/{schedule_id}')
def delete_schedule(schedule_id: str, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        schedule = find_schedule(db, schedule_id)
        db.delete(schedule)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Failed to delete schedule') from exc

    logger.info('Deleted schedule %s', schedule_id)
    return success(message='Schedule deleted successfully')
