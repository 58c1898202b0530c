from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from sqlalchemy.orm import Session

from lander.core import config
from lander.models.appointment import Appointment, RELEASED_STATUSES
from lander.services.availability_store import AvailabilityStore

SLOT_DURATION_MINUTES = config.SLOT_DURATION_MINUTES
FALLBACK_WINDOW = (config.DEFAULT_WINDOW_START, config.DEFAULT_WINDOW_END)


@dataclass(frozen=True)
class Slot:
    start_time: datetime
    end_time: datetime
    is_available: bool


def day_of_week_for(slot_date: date) -> int:
    """Weekday of ``slot_date`` numbered from Sunday = 0 to Saturday = 6."""
    return slot_date.isoweekday() % 7


def tile_window(
    slot_date: date,
    window_start: time,
    window_end: time,
    duration_minutes: int = SLOT_DURATION_MINUTES,
) -> list[datetime]:
    """Cut one window into back-to-back slot starts, dropping a partial tail."""
    step = timedelta(minutes=duration_minutes)
    current = datetime.combine(slot_date, window_start)
    end = datetime.combine(slot_date, window_end)

    starts: list[datetime] = []
    while current + step <= end:
        starts.append(current)
        current += step

    return starts


def build_slots(
    slot_date: date,
    windows: list[tuple[time, time]],
    booked_starts: set[datetime],
    duration_minutes: int = SLOT_DURATION_MINUTES,
) -> list[Slot]:
    if not windows:
        windows = [FALLBACK_WINDOW]

    # Overlapping windows produce the same start more than once.
    slot_starts: set[datetime] = set()
    for window_start, window_end in windows:
        slot_starts.update(tile_window(slot_date, window_start, window_end, duration_minutes))

    step = timedelta(minutes=duration_minutes)
    return [
        Slot(start_time=start, end_time=start + step, is_available=start not in booked_starts)
        for start in sorted(slot_starts)
    ]


class SlotGenerator:
    """Enumerates the viewing slots of an apartment for a single date."""

    def __init__(self, db: Session, availability_store: AvailabilityStore | None = None):
        self.db = db
        self.availability_store = availability_store or AvailabilityStore(db)

    def get_booked_starts(self, apartment_id: int, slot_date: date) -> set[datetime]:
        day_start = datetime.combine(slot_date, time.min)
        day_end = day_start + timedelta(days=1)

        rows = self.db.query(Appointment.appointment_date).filter(
            Appointment.apartment_id == apartment_id,
            Appointment.appointment_date >= day_start,
            Appointment.appointment_date < day_end,
            Appointment.status.not_in(RELEASED_STATUSES),
        ).all()

        return {appointment_date for (appointment_date,) in rows}

    def generate_slots(self, apartment_id: int, landlord_id: int, slot_date: date) -> list[Slot]:
        windows = self.availability_store.get_windows_for_day(landlord_id, day_of_week_for(slot_date))
        booked_starts = self.get_booked_starts(apartment_id, slot_date)

        return build_slots(
            slot_date,
            [(window.start_time, window.end_time) for window in windows],
            booked_starts,
        )
