import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.core.errors import NotFoundError, StorageError, ValidationError
from clinic_backend.database import get_db
from clinic_backend.models.availability import DoctorAvailability
from clinic_backend.routes.common import CamelModel, ensure_database_ready, serialize, success
from clinic_backend.services.slot_generator import generate_availability_slots

router = APIRouter(tags=['doctor-availabilities'])

logger = logging.getLogger(__name__)


class GenerateAvailabilityRequest(CamelModel):
    doctor_id: str | None = None
    start_date: date | None = None
    end_date: date | None = None

    @field_validator('doctor_id')
    @classmethod
    def validate_doctor_id(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @field_validator('start_date', 'end_date', mode='before')
    @classmethod
    def blank_date_is_missing(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class UpdateAvailabilityRequest(CamelModel):
    """Booking state only. Date and times are fixed by the slot's availability id."""
    availability_id: str | None = None
    is_booked: bool | None = None
    appointment_id: str | None = None


class AvailabilityResponse(CamelModel):
    availability_id: str
    doctor_id: str
    date: date
    start_time: str
    end_time: str
    is_booked: bool
    appointment_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


def find_availability(db: Session, availability_id: str) -> DoctorAvailability:
    availability = db.query(DoctorAvailability).filter(
        DoctorAvailability.availability_id == availability_id,
    ).first()
    if not availability:
        logger.warning('Availability not found: %s', availability_id)
        raise NotFoundError('Availability not found')
    return availability


@router.get('/')
def list_availabilities(
    doctor_id: str | None = Query(default=None, alias='doctorId'),
    slot_date: date | None = Query(default=None, alias='date'),
    is_booked: bool | None = Query(default=None, alias='isBooked'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(DoctorAvailability)
        if doctor_id:
            query = query.filter(DoctorAvailability.doctor_id == doctor_id)
        if slot_date is not None:
            query = query.filter(DoctorAvailability.date == slot_date)
        if is_booked is not None:
            query = query.filter(DoctorAvailability.is_booked.is_(is_booked))

        availabilities = query.order_by(
            DoctorAvailability.date.asc(),
            DoctorAvailability.start_time.asc(),
        ).all()
    except SQLAlchemyError as exc:
        raise StorageError('Failed to fetch availabilities') from exc

    return success({
        'availabilities': [serialize(AvailabilityResponse, availability) for availability in availabilities],
        'totalAvailabilities': len(availabilities),
    })


@router.post('/generate', status_code=status.HTTP_201_CREATED)
def generate_availabilities(data: GenerateAvailabilityRequest, db: Session = Depends(get_db)):
    if not data.doctor_id or data.start_date is None or data.end_date is None:
        raise ValidationError('Missing required fields')

    ensure_database_ready()

    generated = generate_availability_slots(db, data.doctor_id, data.start_date, data.end_date)
    return success(
        {'generatedSlots': generated},
        message=f'Generated {generated} availability slots',
    )


@router.put('/{availability_id}')
def update_availability(
    availability_id: str,
    data: UpdateAvailabilityRequest,
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        availability = find_availability(db, availability_id)

        changes = data.model_dump(exclude_unset=True, exclude={'availability_id'})
        for field, value in changes.items():
            if value is None and field != 'appointment_id':
                continue
            setattr(availability, field, value)

        db.commit()
        db.refresh(availability)
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Failed to update availability') from exc

    logger.info('Updated availability %s', availability_id)
    return success({'availability': serialize(AvailabilityResponse, availability)})


@router.delete('/{availability_id}')
def delete_availability(availability_id: str, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        availability = find_availability(db, availability_id)
        db.delete(availability)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageError('Failed to delete availability') from exc

    logger.info('Deleted availability %s', availability_id)
    return success(message='Availability deleted successfully')
