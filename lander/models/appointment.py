"""Appointment model definitions."""

import enum

from sqlalchemy import Column, DateTime, Index, Integer, String, text
from lander.database import Base


class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    REJECTED = "rejected"


# Statuses that hold a slot. Everything else frees it.
ACTIVE_STATUSES = (AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value)
RELEASED_STATUSES = (AppointmentStatus.CANCELLED.value, AppointmentStatus.REJECTED.value)

_ACTIVE_SLOT_PREDICATE = text("status IN ('pending', 'confirmed')")


class Appointment(Base):
    """Represents a viewing requested by a tenant for an apartment."""
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_apartment_date", "apartment_id", "appointment_date"),
        Index(
            "uq_appointments_active_slot",
            "apartment_id",
            "appointment_date",
            unique=True,
            sqlite_where=_ACTIVE_SLOT_PREDICATE,
            postgresql_where=_ACTIVE_SLOT_PREDICATE,
        ),
    )

    id = Column(Integer, primary_key=True)
    appointment_guid = Column(String(36), nullable=False, unique=True)
    apartment_id = Column(Integer, nullable=False, index=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    landlord_id = Column(Integer, nullable=False, index=True)
    appointment_date = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=30)
    status = Column(String(20), nullable=False, default=AppointmentStatus.PENDING.value, index=True)
    tenant_notes = Column(String(500))
    landlord_notes = Column(String(500))
    created_date = Column(DateTime)
    created_by_guid = Column(String(36))
    modified_date = Column(DateTime)
    modified_by_guid = Column(String(36))
