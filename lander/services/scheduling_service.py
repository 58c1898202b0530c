"""Orchestrates the public scheduling operations.

Every call receives the acting user explicitly. Authorisation happens here
or in the stores; notifications are handed to a dispatcher after the state
change has been committed and can never undo it.
"""

import logging
from datetime import date, datetime
from typing import Any, Callable

from sqlalchemy.orm import Session

from lander.core.errors import UnauthorizedError
from lander.models.appointment import Appointment, AppointmentStatus
from lander.models.availability import LandlordAvailability
from lander.services.appointment_store import AppointmentStore, validate_appointment_date
from lander.services.availability_store import AvailabilityStore, WindowInput
from lander.services.collaborators import (
    Actor,
    ApartmentDirectory,
    ApartmentInfo,
    ApprovalGate,
    LoggingNotificationGate,
    NotificationGate,
    SqlApartmentDirectory,
    SqlApprovalGate,
)
from lander.services.slot_generator import Slot, SlotGenerator

logger = logging.getLogger(__name__)

Dispatcher = Callable[..., Any]


def notify_safely(notification: Callable[..., None], *args: Any) -> None:
    try:
        notification(*args)
    except Exception:
        logger.exception('Notification %s failed; the scheduling change is kept', getattr(notification, '__name__', notification))


def dispatch_inline(func: Callable[..., Any], *args: Any) -> None:
    func(*args)


class SchedulingService:
    def __init__(
        self,
        db: Session,
        apartments: ApartmentDirectory | None = None,
        approvals: ApprovalGate | None = None,
        notifications: NotificationGate | None = None,
        dispatch: Dispatcher = dispatch_inline,
    ):
        self.db = db
        self.apartments = apartments or SqlApartmentDirectory(db)
        self.approvals = approvals or SqlApprovalGate(db)
        self.notifications = notifications or LoggingNotificationGate()
        self.dispatch = dispatch

        self.availability = AvailabilityStore(db)
        self.slots = SlotGenerator(db, self.availability)
        self.appointments = AppointmentStore(db, self.apartments)

    def create_appointment(
        self,
        actor: Actor,
        apartment_id: int,
        appointment_date: datetime,
        tenant_notes: str | None = None,
    ) -> Appointment:
        validate_appointment_date(appointment_date)
        apartment = self.appointments.resolve_apartment(apartment_id)

        if not self.approvals.has_approved_application(actor.user_id, apartment_id):
            logger.warning('Tenant %s has no approved application for apartment %s', actor.user_id, apartment_id)
            raise UnauthorizedError('You need an approved application for this apartment before booking a viewing')

        appointment = self.appointments.create(
            tenant_id=actor.user_id,
            apartment_id=apartment_id,
            appointment_date=appointment_date,
            tenant_notes=tenant_notes,
            created_by_guid=actor.user_guid,
            apartment=apartment,
        )

        self._notify(self.notifications.notify_landlord_of_request, appointment, apartment)
        return appointment

    def update_status(
        self,
        actor: Actor,
        appointment_id: int,
        new_status: AppointmentStatus,
        landlord_notes: str | None = None,
    ) -> Appointment:
        appointment = self.appointments.update_status(
            appointment_id,
            new_status,
            acting_landlord_id=actor.user_id,
            landlord_notes=landlord_notes,
            modified_by_guid=actor.user_guid,
        )

        self._notify_status_change(appointment)
        return appointment

    def cancel(self, actor: Actor, appointment_id: int) -> Appointment:
        already_cancelled = self.appointments.get(appointment_id).status == AppointmentStatus.CANCELLED.value
        appointment = self.appointments.cancel(appointment_id, actor.user_id, modified_by_guid=actor.user_guid)

        if not already_cancelled:
            self._notify_status_change(appointment)
        return appointment

    def get_appointment(self, actor: Actor, appointment_id: int) -> Appointment:
        appointment = self.appointments.get(appointment_id)
        if actor.user_id not in (appointment.tenant_id, appointment.landlord_id):
            raise UnauthorizedError("You don't have permission to view this appointment")
        return appointment

    def list_for_tenant(self, actor: Actor) -> list[Appointment]:
        return self.appointments.get_by_tenant(actor.user_id)

    def list_for_landlord(self, actor: Actor) -> list[Appointment]:
        appointments = self.appointments.get_by_landlord(actor.user_id)
        logger.info('Found %d appointments for landlord %s', len(appointments), actor.user_id)
        return appointments

    def get_available_slots(self, apartment_id: int, slot_date: date) -> list[Slot]:
        apartment = self.appointments.resolve_apartment(apartment_id)
        return self.slots.generate_slots(apartment_id, apartment.landlord_id, slot_date)

    def get_my_availability(self, actor: Actor) -> list[LandlordAvailability]:
        return self.availability.get_availability(actor.user_id)

    def set_my_availability(self, actor: Actor, windows: list[WindowInput]) -> list[LandlordAvailability]:
        return self.availability.set_availability(actor.user_id, windows)

    def lookup_apartment(self, apartment_id: int) -> ApartmentInfo | None:
        return self.apartments.get_apartment(apartment_id)

    def _notify_status_change(self, appointment: Appointment) -> None:
        try:
            apartment = self.lookup_apartment(appointment.apartment_id)
        except Exception:
            logger.exception('Could not load apartment %s for appointment %s notification', appointment.apartment_id, appointment.id)
            return
        self._notify(self.notifications.notify_status_change, appointment, apartment)

    def _notify(self, notification: Callable[..., None], *args: Any) -> None:
        try:
            self.dispatch(notify_safely, notification, *args)
        except Exception:
            logger.exception('Could not dispatch notification %s', getattr(notification, '__name__', notification))
