import logging
from datetime import date, datetime, time
from typing import NoReturn

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lander.auth.dependencies import get_current_actor
from lander.core import config
from lander.core.errors import SchedulingError
from lander.database import SessionLocal, ensure_appointment_schema, ensure_availability_schema
from lander.models.appointment import Appointment, AppointmentStatus
from lander.services.availability_store import WindowInput
from lander.services.collaborators import Actor, ApartmentInfo
from lander.services.scheduling_service import SchedulingService

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

DATABASE_UNAVAILABLE = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def normalize_notes(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > config.MAX_NOTES_LENGTH:
        raise ValueError(f'Notes must be {config.MAX_NOTES_LENGTH} characters or fewer.')

    return normalized


class CreateAppointmentRequest(BaseModel):
    apartment_id: int
    appointment_date: datetime
    tenant_notes: str | None = None

    @field_validator('appointment_date')
    @classmethod
    def validate_appointment_date(cls, value: datetime) -> datetime:
        # Scheduling works on naive local time.
        if value.tzinfo is not None:
            value = value.astimezone().replace(tzinfo=None)
        return value

    @field_validator('tenant_notes')
    @classmethod
    def validate_tenant_notes(cls, value: str | None) -> str | None:
        return normalize_notes(value)


class UpdateAppointmentStatusRequest(BaseModel):
    status: AppointmentStatus
    landlord_notes: str | None = None

    @field_validator('landlord_notes')
    @classmethod
    def validate_landlord_notes(cls, value: str | None) -> str | None:
        return normalize_notes(value)


class AvailabilityWindowRequest(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: time
    end_time: time


class SetAvailabilityRequest(BaseModel):
    slots: list[AvailabilityWindowRequest] = Field(default_factory=list)


class AvailabilityWindowResponse(BaseModel):
    id: int
    landlord_id: int
    day_of_week: int
    start_time: time
    end_time: time
    is_active: bool

    class Config:
        from_attributes = True


class AvailableSlotResponse(BaseModel):
    start_time: datetime
    end_time: datetime
    is_available: bool

    class Config:
        from_attributes = True


class AppointmentResponse(BaseModel):
    id: int
    appointment_guid: str
    apartment_id: int
    apartment_title: str | None = None
    apartment_address: str | None = None
    tenant_id: int
    landlord_id: int
    appointment_date: datetime
    duration_minutes: int
    status: AppointmentStatus
    tenant_notes: str | None = None
    landlord_notes: str | None = None
    created_date: datetime | None = None


def ensure_database_ready() -> None:
    try:
        ensure_availability_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_scheduling_service(background_tasks: BackgroundTasks, db: Session = Depends(get_db)) -> SchedulingService:
    return SchedulingService(db, dispatch=background_tasks.add_task)


def raise_http_error(exc: SchedulingError) -> NoReturn:
    logger.warning('Scheduling request rejected: %s', exc.message)
    raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc


def raise_database_unavailable(service: SchedulingService, exc: SQLAlchemyError) -> NoReturn:
    service.db.rollback()
    logger.exception('Database error while handling a scheduling request')
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE,
    ) from exc


def to_appointment_response(appointment: Appointment, apartment: ApartmentInfo | None) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        appointment_guid=appointment.appointment_guid,
        apartment_id=appointment.apartment_id,
        apartment_title=apartment.title if apartment else None,
        apartment_address=apartment.address if apartment else None,
        tenant_id=appointment.tenant_id,
        landlord_id=appointment.landlord_id,
        appointment_date=appointment.appointment_date,
        duration_minutes=appointment.duration_minutes or config.SLOT_DURATION_MINUTES,
        status=appointment.status,
        tenant_notes=appointment.tenant_notes,
        landlord_notes=appointment.landlord_notes,
        created_date=appointment.created_date,
    )


def to_appointment_responses(appointments: list[Appointment], service: SchedulingService) -> list[AppointmentResponse]:
    apartments: dict[int, ApartmentInfo | None] = {}
    responses = []
    for appointment in appointments:
        if appointment.apartment_id not in apartments:
            apartments[appointment.apartment_id] = service.lookup_apartment(appointment.apartment_id)
        responses.append(to_appointment_response(appointment, apartments[appointment.apartment_id]))
    return responses


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    ensure_database_ready()
    logger.info('Creating appointment for apartment %s at %s', data.apartment_id, data.appointment_date.isoformat())

    try:
        appointment = service.create_appointment(
            actor,
            apartment_id=data.apartment_id,
            appointment_date=data.appointment_date,
            tenant_notes=data.tenant_notes,
        )
        return to_appointment_response(appointment, service.lookup_apartment(appointment.apartment_id))
    except SchedulingError as exc:
        raise_http_error(exc)
    except SQLAlchemyError as exc:
        raise_database_unavailable(service, exc)


@router.get('/my-appointments', response_model=list[AppointmentResponse])
def list_my_appointments(
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    ensure_database_ready()

    try:
        return to_appointment_responses(service.list_for_tenant(actor), service)
    except SQLAlchemyError as exc:
        raise_database_unavailable(service, exc)


@router.get('/landlord-appointments', response_model=list[AppointmentResponse])
def list_landlord_appointments(
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    ensure_database_ready()

    try:
        return to_appointment_responses(service.list_for_landlord(actor), service)
    except SQLAlchemyError as exc:
        raise_database_unavailable(service, exc)


@router.get('/available-slots/{apartment_id}', response_model=list[AvailableSlotResponse])
def list_available_slots(
    apartment_id: int,
    slot_date: str = Query(..., alias='date'),
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    del actor
    if not slot_date.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Date parameter is required')

    try:
        parsed_date = date.fromisoformat(slot_date.strip())
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Invalid date format. Use yyyy-MM-dd',
        ) from exc

    ensure_database_ready()

    try:
        return [
            AvailableSlotResponse.model_validate(slot)
            for slot in service.get_available_slots(apartment_id, parsed_date)
        ]
    except SchedulingError as exc:
        raise_http_error(exc)
    except SQLAlchemyError as exc:
        raise_database_unavailable(service, exc)


@router.get('/availability', response_model=list[AvailabilityWindowResponse])
def get_my_availability(
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    ensure_database_ready()

    try:
        return service.get_my_availability(actor)
    except SQLAlchemyError as exc:
        raise_database_unavailable(service, exc)


@router.put('/availability', response_model=list[AvailabilityWindowResponse])
def set_my_availability(
    data: SetAvailabilityRequest,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    ensure_database_ready()

    windows = [
        WindowInput(day_of_week=slot.day_of_week, start_time=slot.start_time, end_time=slot.end_time)
        for slot in data.slots
    ]

    try:
        return service.set_my_availability(actor, windows)
    except SchedulingError as exc:
        raise_http_error(exc)
    except SQLAlchemyError as exc:
        raise_database_unavailable(service, exc)


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    ensure_database_ready()

    try:
        appointment = service.get_appointment(actor, appointment_id)
        return to_appointment_response(appointment, service.lookup_apartment(appointment.apartment_id))
    except SchedulingError as exc:
        raise_http_error(exc)
    except SQLAlchemyError as exc:
        raise_database_unavailable(service, exc)


@router.put('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateAppointmentStatusRequest,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    ensure_database_ready()

    try:
        appointment = service.update_status(
            actor,
            appointment_id,
            new_status=data.status,
            landlord_notes=data.landlord_notes,
        )
        return to_appointment_response(appointment, service.lookup_apartment(appointment.apartment_id))
    except SchedulingError as exc:
        raise_http_error(exc)
    except SQLAlchemyError as exc:
        raise_database_unavailable(service, exc)


@router.delete('/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def cancel_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    ensure_database_ready()

    try:
        service.cancel(actor, appointment_id)
    except SchedulingError as exc:
        raise_http_error(exc)
    except SQLAlchemyError as exc:
        raise_database_unavailable(service, exc)
