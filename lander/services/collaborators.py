"""Interfaces to the subsystems the scheduling engine consumes but does not own.

The default adapters read the listings and applications tables directly and
log outbound notifications. Other deployments can pass their own
implementations to ``SchedulingService``.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import func
from sqlalchemy.orm import Session

from lander.models.apartment import Apartment
from lander.models.application import ApartmentApplication
from lander.models.appointment import Appointment

logger = logging.getLogger(__name__)

APPROVED_APPLICATION_STATUS = 'approved'


@dataclass(frozen=True)
class Actor:
    """The authenticated user on whose behalf a call is made."""

    user_id: int
    user_guid: str | None = None


@dataclass(frozen=True)
class ApartmentInfo:
    apartment_id: int
    landlord_id: int | None
    title: str | None = None
    address: str | None = None


class ApartmentDirectory(Protocol):
    def get_apartment(self, apartment_id: int) -> ApartmentInfo | None:
        ...


class ApprovalGate(Protocol):
    def has_approved_application(self, tenant_id: int, apartment_id: int) -> bool:
        ...


class NotificationGate(Protocol):
    def notify_landlord_of_request(self, appointment: Appointment, apartment: ApartmentInfo) -> None:
        ...

    def notify_status_change(self, appointment: Appointment, apartment: ApartmentInfo | None) -> None:
        ...


class SqlApartmentDirectory:
    def __init__(self, db: Session):
        self.db = db

    def get_apartment(self, apartment_id: int) -> ApartmentInfo | None:
        apartment = self.db.query(Apartment).filter(Apartment.id == apartment_id).first()
        if apartment is None:
            return None

        return ApartmentInfo(
            apartment_id=apartment.id,
            landlord_id=apartment.landlord_id,
            title=apartment.title,
            address=apartment.address,
        )


class SqlApprovalGate:
    def __init__(self, db: Session):
        self.db = db

    def has_approved_application(self, tenant_id: int, apartment_id: int) -> bool:
        approved = self.db.query(ApartmentApplication.id).filter(
            ApartmentApplication.tenant_id == tenant_id,
            ApartmentApplication.apartment_id == apartment_id,
            # The applications subsystem stores "Approved"; older rows are lowercase.
            func.lower(ApartmentApplication.status) == APPROVED_APPLICATION_STATUS,
        ).first()
        return approved is not None


class LoggingNotificationGate:
    """Records outbound notifications in the application log.

    Delivery (email, push) belongs to the communication subsystem; this
    adapter keeps the booking flow observable until one is wired in.
    """

    def notify_landlord_of_request(self, appointment: Appointment, apartment: ApartmentInfo) -> None:
        logger.info(
            'Viewing request %s for apartment %s (%s) at %s sent to landlord %s',
            appointment.appointment_guid,
            apartment.apartment_id,
            apartment.title or 'untitled',
            appointment.appointment_date.isoformat(),
            appointment.landlord_id,
        )

    def notify_status_change(self, appointment: Appointment, apartment: ApartmentInfo | None) -> None:
        logger.info(
            'Appointment %s for apartment %s is now %s; notifying tenant %s and landlord %s',
            appointment.appointment_guid,
            appointment.apartment_id,
            appointment.status,
            appointment.tenant_id,
            appointment.landlord_id,
        )
