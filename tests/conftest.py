import os
from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from lander.database import Base  # noqa: E402
from lander.models import apartment, application, appointment, availability  # noqa: E402,F401
from lander.services.collaborators import ApartmentInfo  # noqa: E402
from lander.services.slot_generator import day_of_week_for  # noqa: E402

LANDLORD_ID = 10
TENANT_ID = 20
OTHER_USER_ID = 30
APARTMENT_ID = 100
ORPHAN_APARTMENT_ID = 200


class FakeApartmentDirectory:
    def __init__(self, apartments: dict[int, ApartmentInfo] | None = None):
        self.apartments = apartments if apartments is not None else {
            APARTMENT_ID: ApartmentInfo(
                apartment_id=APARTMENT_ID,
                landlord_id=LANDLORD_ID,
                title='Sunny two-bedroom',
                address='12 Harbour Street',
            ),
            ORPHAN_APARTMENT_ID: ApartmentInfo(apartment_id=ORPHAN_APARTMENT_ID, landlord_id=None),
        }

    def get_apartment(self, apartment_id: int) -> ApartmentInfo | None:
        return self.apartments.get(apartment_id)


class FakeApprovalGate:
    def __init__(self, approved: set[tuple[int, int]] | None = None):
        self.approved = approved if approved is not None else {(TENANT_ID, APARTMENT_ID)}

    def has_approved_application(self, tenant_id: int, apartment_id: int) -> bool:
        return (tenant_id, apartment_id) in self.approved


class RecordingNotificationGate:
    def __init__(self):
        self.sent: list[tuple[str, object, object]] = []

    def notify_landlord_of_request(self, appointment, apartment) -> None:
        self.sent.append(('request', appointment, apartment))

    def notify_status_change(self, appointment, apartment) -> None:
        self.sent.append(('status', appointment, apartment))


def next_date_for(day_of_week: int, weeks_ahead: int = 1) -> date:
    """First date after today falling on ``day_of_week`` (Sunday = 0), pushed ``weeks_ahead`` weeks."""
    current = date.today() + timedelta(days=1)
    while day_of_week_for(current) != day_of_week:
        current += timedelta(days=1)
    return current + timedelta(weeks=weeks_ahead - 1)


@pytest.fixture
def db_session():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def apartments() -> FakeApartmentDirectory:
    return FakeApartmentDirectory()


@pytest.fixture
def approvals() -> FakeApprovalGate:
    return FakeApprovalGate()


@pytest.fixture
def notifications() -> RecordingNotificationGate:
    return RecordingNotificationGate()
