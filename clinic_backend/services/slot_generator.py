"""Expansion of weekly doctor schedules into dated availability slots.

A schedule describes a recurring window on one weekday, e.g. Monday
09:00-12:00 in 15 minute steps. Generating for a date range walks every day
in the range, picks the schedules whose weekday matches and cuts each window
into back-to-back slots. A trailing remainder shorter than the slot duration
is dropped. Slots are keyed by ``build_availability_id`` so repeated runs
over the same range never create a second slot for the same doctor, date and
start time.
"""

import logging
from datetime import date, timedelta
from typing import Iterator

from sqlalchemy import insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.core.errors import NotFoundError, StorageError, ValidationError
from clinic_backend.models.availability import DoctorAvailability
from clinic_backend.models.schedule import DoctorSchedule

logger = logging.getLogger(__name__)

# Indexed by date.weekday(); never derived from locale formatting.
WEEKDAY_NAMES = (
    'Monday',
    'Tuesday',
    'Wednesday',
    'Thursday',
    'Friday',
    'Saturday',
    'Sunday',
)
MINUTES_PER_DAY = 24 * 60
EXISTING_ID_LOOKUP_CHUNK = 500

_CONFLICT_IGNORING_INSERTS = {
    'postgresql': postgresql.insert,
    'sqlite': sqlite.insert,
}


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def parse_clock_time(value: str) -> int:
    """Return minutes since midnight for a zero-padded 24-hour ``HH:MM`` string."""
    if not isinstance(value, str) or len(value) != 5 or value[2] != ':':
        raise ValueError(f'Invalid time {value!r}, expected HH:MM.')

    hours, minutes = value[:2], value[3:]
    if not (hours.isdigit() and minutes.isdigit()):
        raise ValueError(f'Invalid time {value!r}, expected HH:MM.')

    hours_value, minutes_value = int(hours), int(minutes)
    if hours_value > 23 or minutes_value > 59:
        raise ValueError(f'Invalid time {value!r}, expected HH:MM.')

    return hours_value * 60 + minutes_value


def format_clock_time(total_minutes: int) -> str:
    return f'{total_minutes // 60:02d}:{total_minutes % 60:02d}'


def build_availability_id(doctor_id: str, slot_date: date, start_time: str) -> str:
    """Derive the slot key for a (doctor, date, start time) triple.

    The date and time suffix has a fixed width, so the key can always be split
    back into its parts and two different triples never share a key.
    """
    return f"avail-{doctor_id}-{slot_date.isoformat()}-{start_time.replace(':', '')}"


def iterate_days(start_date: date, end_date: date) -> Iterator[date]:
    current_day = start_date
    while current_day <= end_date:
        yield current_day
        current_day += timedelta(days=1)


def expand_schedule(schedule: DoctorSchedule, slot_date: date) -> list[dict]:
    window_start = parse_clock_time(schedule.start_time)
    window_end = parse_clock_time(schedule.end_time)
    slot_duration = schedule.slot_duration

    if not slot_duration or slot_duration <= 0:
        raise ValueError(f'Schedule {schedule.schedule_id} has a non-positive slot duration.')

    slots = []
    cursor = window_start
    while cursor < window_end:
        slot_end = cursor + slot_duration
        if slot_end > window_end:
            break

        start_time = format_clock_time(cursor)
        slots.append(
            {
                'availability_id': build_availability_id(schedule.doctor_id, slot_date, start_time),
                'doctor_id': schedule.doctor_id,
                'date': slot_date,
                'start_time': start_time,
                'end_time': format_clock_time(slot_end),
                'is_booked': False,
                'appointment_id': None,
            }
        )
        cursor = slot_end

    return slots


def plan_slots(schedules: list[DoctorSchedule], start_date: date, end_date: date) -> list[dict]:
    """Return candidate slots for the range, one per availability id, in date order."""
    schedules_by_day: dict[str, list[DoctorSchedule]] = {}
    for schedule in schedules:
        schedules_by_day.setdefault(schedule.day_of_week, []).append(schedule)

    planned: list[dict] = []
    seen_ids: set[str] = set()
    for slot_date in iterate_days(start_date, end_date):
        for schedule in schedules_by_day.get(weekday_name(slot_date), []):
            for slot in expand_schedule(schedule, slot_date):
                if slot['availability_id'] in seen_ids:
                    continue
                seen_ids.add(slot['availability_id'])
                planned.append(slot)

    return planned


def find_active_schedules(db: Session, doctor_id: str) -> list[DoctorSchedule]:
    return db.query(DoctorSchedule).filter(
        DoctorSchedule.doctor_id == doctor_id,
        DoctorSchedule.is_active.is_(True),
    ).order_by(DoctorSchedule.start_time.asc(), DoctorSchedule.id.asc()).all()


def find_existing_availability_ids(db: Session, availability_ids: list[str]) -> set[str]:
    existing: set[str] = set()
    for offset in range(0, len(availability_ids), EXISTING_ID_LOOKUP_CHUNK):
        chunk = availability_ids[offset:offset + EXISTING_ID_LOOKUP_CHUNK]
        rows = db.query(DoctorAvailability.availability_id).filter(
            DoctorAvailability.availability_id.in_(chunk),
        ).all()
        existing.update(row.availability_id for row in rows)
    return existing


def insert_slots(db: Session, slots: list[dict]) -> int:
    """Insert slots in one statement and return how many rows were written.

    On PostgreSQL and SQLite a conflicting availability id is skipped by the
    database, so a concurrent run that inserted the same slot first is not an
    error and is not counted.
    """
    if not slots:
        return 0

    table = DoctorAvailability.__table__
    dialect_insert = _CONFLICT_IGNORING_INSERTS.get(db.get_bind().dialect.name)

    if dialect_insert is None:
        db.execute(insert(table), slots)
        return len(slots)

    statement = (
        dialect_insert(table)
        .on_conflict_do_nothing(index_elements=[table.c.availability_id])
        .returning(table.c.availability_id)
    )
    return len(db.execute(statement, slots).scalars().all())


def generate_availability_slots(
    db: Session,
    doctor_id: str | None,
    start_date: date | None,
    end_date: date | None,
) -> int:
    """Create the missing slots for ``doctor_id`` between the two dates inclusive.

    The whole range is written in a single transaction: a storage failure rolls
    back every slot of the call. Returns the number of slots inserted.
    """
    if not doctor_id or start_date is None or end_date is None:
        raise ValidationError('Missing required fields')

    try:
        schedules = find_active_schedules(db, doctor_id)
        if not schedules:
            logger.warning('No active schedules for doctor %s', doctor_id)
            raise NotFoundError('No active schedules found for this doctor')

        try:
            candidates = plan_slots(schedules, start_date, end_date)
        except ValueError as exc:
            logger.exception('Stored schedule for doctor %s is malformed', doctor_id)
            raise StorageError('Stored schedule is malformed') from exc

        existing_ids = find_existing_availability_ids(db, [slot['availability_id'] for slot in candidates])
        new_slots = [slot for slot in candidates if slot['availability_id'] not in existing_ids]

        inserted = insert_slots(db, new_slots)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Slot generation failed for doctor %s', doctor_id)
        raise StorageError('Failed to generate availability slots') from exc

    logger.info(
        'Generated %d availability slots for doctor %s between %s and %s',
        inserted,
        doctor_id,
        start_date,
        end_date,
    )
    return inserted
