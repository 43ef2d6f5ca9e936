"""Doctor schedule model definitions."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Index, func
from clinic_backend.database import Base


class DoctorSchedule(Base):
    """Recurring weekly availability window for one doctor on one weekday."""
    __tablename__ = "doctor_schedules"
    __table_args__ = (
        Index("idx_doctor_schedules_doctor_day", "doctor_id", "day_of_week"),
    )

    id = Column(Integer, primary_key=True)
    schedule_id = Column(String, unique=True, index=True, nullable=False)
    doctor_id = Column(String, index=True, nullable=False)
    day_of_week = Column(String, nullable=False)
    start_time = Column(String(5), nullable=False)  # "09:00"
    end_time = Column(String(5), nullable=False)  # "17:00"
    slot_duration = Column(Integer, default=15, nullable=False)  # minutes
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
