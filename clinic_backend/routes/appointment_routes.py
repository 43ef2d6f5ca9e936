import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import field_validator
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.core.errors import ConflictError, NotFoundError, StorageError, ValidationError
from clinic_backend.database import get_db
from clinic_backend.models.appointment import Appointment
from clinic_backend.models.availability import DoctorAvailability
from clinic_backend.routes.common import CamelModel, ensure_database_ready, serialize, success

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

APPOINTMENT_STATUSES = ('booked', 'cancelled', 'completed', 'no-show')
MAX_APPOINTMENT_NOTES_LENGTH = 600


def normalize_notes(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > MAX_APPOINTMENT_NOTES_LENGTH:
        raise ValueError(f'Notes must be {MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

    return normalized


class CreateAppointmentRequest(CamelModel):
    user_id: str | None = None
    doctor_id: str | None = None
    availability_id: str | None = None
    reason: str | None = None
    notes: str | None = None

    @field_validator('user_id', 'doctor_id', 'availability_id')
    @classmethod
    def strip_identifier(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return normalize_notes(value)


class UpdateAppointmentRequest(CamelModel):
    appointment_id: str | None = None
    reason: str | None = None
    notes: str | None = None
    status: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return normalize_notes(value)

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip().lower()
        if normalized not in APPOINTMENT_STATUSES:
            raise ValueError(f"status must be one of: {', '.join(APPOINTMENT_STATUSES)}.")
        return normalized


class CompleteAppointmentRequest(CamelModel):
    notes: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return normalize_notes(value)


class AppointmentResponse(CamelModel):
    appointment_id: str
    user_id: str
    doctor_id: str
    availability_id: str | None = None
    appointment_date: date
    start_time: str
    end_time: str
    status: str
    reason: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


def next_appointment_id(db: Session) -> str:
    highest_id = db.query(func.max(Appointment.id)).scalar() or 0
    return f'apt-{highest_id + 1:06d}'


def find_appointment(db: Session, appointment_id: str) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.appointment_id == appointment_id).first()
    if not appointment:
        logger.warning('Appointment not found: %s', appointment_id)
        raise NotFoundError('Appointment not found')
    return appointment


def release_slot(db: Session, appointment_id: str) -> DoctorAvailability | None:
    slot = db.query(DoctorAvailability).filter(DoctorAvailability.appointment_id == appointment_id).first()
    if slot:
        slot.is_booked = False
        slot.appointment_id = None
    return slot


@router.get('/')
def list_appointments(
    user_id: str | None = Query(default=None, alias='userId'),
    doctor_id: str | None = Query(default=None, alias='doctorId'),
    appointment_status: str | None = Query(default=None, alias='status'),
    appointment_date: date | None = Query(default=None, alias='date'),
    db: Session = Depends(get_db),
):
    if appointment_status is not None and appointment_status not in APPOINTMENT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(APPOINTMENT_STATUSES)}.")

    ensure_database_ready()

    try:
        query = db.query(Appointment)
        if user_id:
            query = query.filter(Appointment.user_id == user_id)
        if doctor_id:
            query = query.filter(Appointment.doctor_id == doctor_id)
        if appointment_status:
            query = query.filter(Appointment.status == appointment_status)
        if appointment_date is not None:
            query = query.filter(Appointment.appointment_date == appointment_date)

        appointments = query.order_by(
            Appointment.appointment_date.asc(),
            Appointment.start_time.asc(),
        ).all()
    except SQLAlchemyError as exc:
        raise StorageError('Failed to fetch appointments') from exc

    return success({
        'appointments': [serialize(AppointmentResponse, appointment) for appointment in appointments],
        'totalAppointments': len(appointments),
    })


@router.get('/{appointment_id}')
def get_appointment(appointment_id: str, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        appointment = find_appointment(db, appointment_id)
    except SQLAlchemyError as exc:
        raise StorageError('Failed to fetch appointment') from exc

    return success({'appointment': serialize(AppointmentResponse, appointment)})


@router.post('/', status_code=status.HTTP_201_CREATED)
def book_appointment(data: CreateAppointmentRequest, db: Session = Depends(get_db)):
    if not data.user_id or not data.doctor_id or not data.availability_id:
        raise ValidationError('Missing required fields')

    ensure_database_ready()

    try:
        slot = db.query(DoctorAvailability).filter(
            DoctorAvailability.availability_id == data.availability_id,
        ).with_for_update().first()

        if not slot:
            raise NotFoundError('Availability not found')

        if slot.doctor_id != data.doctor_id:
            raise ValidationError('Availability does not belong to this doctor')

        if slot.is_booked:
            raise ConflictError('Slot is already booked')

        appointment = Appointment(
            appointment_id=next_appointment_id(db),
            user_id=data.user_id,
            doctor_id=data.doctor_id,
            availability_id=slot.availability_id,
            appointment_date=slot.date,
            start_time=slot.start_time,
            end_time=slot.end_time,
            status='booked',
            reason=data.reason or 'General consultation',
            notes=data.notes,
        )
        db.add(appointment)

        slot.is_booked = True
        slot.appointment_id = appointment.appointment_id

        db.commit()
        db.refresh(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Failed to book appointment') from exc

    logger.info('Booked appointment %s on slot %s', appointment.appointment_id, slot.availability_id)
    return success(
        {'appointment': serialize(AppointmentResponse, appointment)},
        message='Appointment booked successfully',
    )


@router.delete('/{appointment_id}')
def cancel_appointment(appointment_id: str, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        appointment = find_appointment(db, appointment_id)

        if appointment.status != 'cancelled':
            appointment.status = 'cancelled'
            release_slot(db, appointment_id)
            db.commit()
            db.refresh(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Failed to cancel appointment') from exc

    logger.info('Cancelled appointment %s', appointment_id)
    return success(
        {'appointment': serialize(AppointmentResponse, appointment)},
        message='Appointment cancelled successfully',
    )


@router.put('/{appointment_id}')
def update_appointment(
    appointment_id: str,
    data: UpdateAppointmentRequest,
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = find_appointment(db, appointment_id)

        changes = data.model_dump(exclude_unset=True, exclude={'appointment_id'})
        new_status = changes.get('status')
        if appointment.status == 'cancelled' and new_status not in (None, 'cancelled'):
            raise ValidationError('Cancelled appointments cannot be reopened')

        if new_status == 'cancelled' and appointment.status != 'cancelled':
            release_slot(db, appointment_id)

        for field, value in changes.items():
            if value is None and field == 'status':
                continue
            setattr(appointment, field, value)

        db.commit()
        db.refresh(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Failed to update appointment') from exc

    logger.info('Updated appointment %s', appointment_id)
    return success(
        {'appointment': serialize(AppointmentResponse, appointment)},
        message='Appointment updated successfully',
    )


@router.post('/{appointment_id}/complete')
def complete_appointment(
    appointment_id: str,
    data: CompleteAppointmentRequest | None = None,
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = find_appointment(db, appointment_id)

        if appointment.status == 'cancelled':
            raise ValidationError('Cancelled appointments cannot be completed')

        appointment.status = 'completed'
        if data is not None and data.notes:
            appointment.notes = data.notes

        db.commit()
        db.refresh(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Failed to complete appointment') from exc

    logger.info('Completed appointment %s', appointment_id)
    return success(
        {'appointment': serialize(AppointmentResponse, appointment)},
        message='Appointment marked as completed',
    )
