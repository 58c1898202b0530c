import logging
from dataclasses import dataclass
from datetime import datetime, time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lander.core.errors import ValidationError
from lander.models.availability import LandlordAvailability

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WindowInput:
    """One recurring weekly window as supplied by a landlord."""

    day_of_week: int
    start_time: time
    end_time: time


def validate_windows(windows: list[WindowInput]) -> None:
    for window in windows:
        if not 0 <= window.day_of_week <= 6:
            raise ValidationError('Day of week must be between 0 (Sunday) and 6 (Saturday).')
        if window.start_time >= window.end_time:
            raise ValidationError('Availability start time must be before end time.')


class AvailabilityStore:
    """Owns each landlord's recurring weekly availability windows."""

    def __init__(self, db: Session):
        self.db = db

    def set_availability(self, landlord_id: int, windows: list[WindowInput]) -> list[LandlordAvailability]:
        """Replace every window of ``landlord_id`` with ``windows``.

        The whole batch is validated before anything is written; the delete
        and insert share one transaction so readers never see a partial set.
        """
        validate_windows(windows)

        created_date = datetime.now()
        replacement = [
            LandlordAvailability(
                landlord_id=landlord_id,
                day_of_week=window.day_of_week,
                start_time=window.start_time,
                end_time=window.end_time,
                is_active=True,
                created_date=created_date,
            )
            for window in windows
        ]

        try:
            self.db.query(LandlordAvailability).filter(
                LandlordAvailability.landlord_id == landlord_id,
            ).delete(synchronize_session=False)
            self.db.add_all(replacement)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        for window in replacement:
            self.db.refresh(window)

        logger.info('Landlord %s availability replaced with %d window(s)', landlord_id, len(replacement))
        return replacement

    def get_availability(self, landlord_id: int) -> list[LandlordAvailability]:
        return self.db.query(LandlordAvailability).filter(
            LandlordAvailability.landlord_id == landlord_id,
            LandlordAvailability.is_active.is_(True),
        ).order_by(LandlordAvailability.day_of_week, LandlordAvailability.start_time).all()

    def get_windows_for_day(self, landlord_id: int, day_of_week: int) -> list[LandlordAvailability]:
        return self.db.query(LandlordAvailability).filter(
            LandlordAvailability.landlord_id == landlord_id,
            LandlordAvailability.day_of_week == day_of_week,
            LandlordAvailability.is_active.is_(True),
        ).all()
