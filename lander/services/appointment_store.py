import logging
import uuid
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from lander.core import config
from lander.core.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from lander.models.appointment import ACTIVE_STATUSES, Appointment, AppointmentStatus
from lander.services.collaborators import ApartmentDirectory, ApartmentInfo

logger = logging.getLogger(__name__)

SLOT_ALREADY_BOOKED = 'This time slot is already booked'

# Postgres names the violated index; SQLite names the indexed columns.
ACTIVE_SLOT_VIOLATION_MARKERS = (
    'uq_appointments_active_slot',
    'appointments.apartment_id, appointments.appointment_date',
)


def is_active_slot_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return any(marker in message for marker in ACTIVE_SLOT_VIOLATION_MARKERS)


def validate_appointment_date(appointment_date: datetime, now: datetime | None = None) -> None:
    if appointment_date <= (now or datetime.now()):
        raise ValidationError('Appointment date must be in the future')


class AppointmentStore:
    """Persists appointments and applies their status transitions.

    Pending appointments are confirmed or rejected by the landlord, and
    either party may cancel. Cancelled and rejected appointments release
    their slot. Rows are never deleted.
    """

    def __init__(self, db: Session, apartments: ApartmentDirectory):
        self.db = db
        self.apartments = apartments

    def resolve_apartment(self, apartment_id: int) -> ApartmentInfo:
        apartment = self.apartments.get_apartment(apartment_id)
        if apartment is None:
            raise NotFoundError('Apartment not found')
        if apartment.landlord_id is None:
            raise ValidationError('Apartment does not have a landlord assigned')
        return apartment

    def is_slot_taken(self, apartment_id: int, appointment_date: datetime) -> bool:
        existing = self.db.query(Appointment.id).filter(
            Appointment.apartment_id == apartment_id,
            Appointment.appointment_date == appointment_date,
            Appointment.status.in_(ACTIVE_STATUSES),
        ).first()
        return existing is not None

    def create(
        self,
        tenant_id: int,
        apartment_id: int,
        appointment_date: datetime,
        tenant_notes: str | None = None,
        created_by_guid: str | None = None,
        apartment: ApartmentInfo | None = None,
        now: datetime | None = None,
    ) -> Appointment:
        now = now or datetime.now()
        validate_appointment_date(appointment_date, now)

        apartment = apartment or self.resolve_apartment(apartment_id)

        if self.is_slot_taken(apartment_id, appointment_date):
            raise ConflictError(SLOT_ALREADY_BOOKED)

        appointment = Appointment(
            appointment_guid=str(uuid.uuid4()),
            apartment_id=apartment_id,
            tenant_id=tenant_id,
            landlord_id=apartment.landlord_id,
            appointment_date=appointment_date,
            duration_minutes=config.SLOT_DURATION_MINUTES,
            status=AppointmentStatus.PENDING.value,
            tenant_notes=tenant_notes,
            created_by_guid=created_by_guid,
            created_date=now,
        )

        # A concurrent request can pass the check above; the partial unique
        # index on active slots rejects the second insert.
        self._save(appointment, add=True)

        logger.info(
            'Appointment %s requested by tenant %s for apartment %s at %s',
            appointment.id,
            tenant_id,
            apartment_id,
            appointment_date.isoformat(),
        )
        return appointment

    def get(self, appointment_id: int) -> Appointment:
        appointment = self.db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if appointment is None:
            raise NotFoundError('Appointment not found')
        return appointment

    def update_status(
        self,
        appointment_id: int,
        new_status: AppointmentStatus,
        acting_landlord_id: int,
        landlord_notes: str | None = None,
        modified_by_guid: str | None = None,
    ) -> Appointment:
        appointment = self.get(appointment_id)

        if appointment.landlord_id != acting_landlord_id:
            raise UnauthorizedError(
                'You are not the landlord of this appointment. Only the landlord can update appointment status'
            )

        # No transition table: the landlord may write any status, including
        # moving a cancelled appointment back to confirmed.
        appointment.status = AppointmentStatus(new_status).value
        appointment.landlord_notes = landlord_notes
        appointment.modified_by_guid = modified_by_guid
        appointment.modified_date = datetime.now()
        self._save(appointment)

        logger.info('Appointment %s set to %s by landlord %s', appointment.id, appointment.status, acting_landlord_id)
        return appointment

    def cancel(self, appointment_id: int, acting_user_id: int, modified_by_guid: str | None = None) -> Appointment:
        appointment = self.get(appointment_id)

        if acting_user_id not in (appointment.tenant_id, appointment.landlord_id):
            raise UnauthorizedError("You don't have permission to cancel this appointment")

        if appointment.status == AppointmentStatus.CANCELLED.value:
            return appointment

        appointment.status = AppointmentStatus.CANCELLED.value
        appointment.modified_by_guid = modified_by_guid
        appointment.modified_date = datetime.now()
        self._save(appointment)

        logger.info('Appointment %s cancelled by user %s', appointment.id, acting_user_id)
        return appointment

    def get_by_tenant(self, tenant_id: int) -> list[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.tenant_id == tenant_id,
        ).order_by(Appointment.appointment_date.desc()).all()

    def get_by_landlord(self, landlord_id: int) -> list[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.landlord_id == landlord_id,
        ).order_by(Appointment.appointment_date.desc()).all()

    def _save(self, appointment: Appointment, add: bool = False) -> None:
        try:
            if add:
                self.db.add(appointment)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if is_active_slot_violation(exc):
                raise ConflictError(SLOT_ALREADY_BOOKED) from exc
            raise
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(appointment)
