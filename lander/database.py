import logging
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from lander.core import config

logger = logging.getLogger(__name__)


def _engine_options(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(config.DATABASE_URL, **_engine_options(config.DATABASE_URL))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

ACTIVE_SLOT_INDEX_SQL = (
    'CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_active_slot '
    "ON appointments(apartment_id, appointment_date) WHERE status IN ('pending', 'confirmed')"
)

_schema_lock = Lock()
_availability_schema_checked = False
_appointment_schema_checked = False


def ensure_availability_schema() -> None:
    global _availability_schema_checked

    if _availability_schema_checked:
        return

    with _schema_lock:
        if _availability_schema_checked:
            return

        inspector = inspect(engine)

        if 'landlord_availabilities' not in inspector.get_table_names():
            _availability_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('landlord_availabilities')}
        migration_steps = [
            ('is_active', 'ALTER TABLE landlord_availabilities ADD COLUMN is_active BOOLEAN DEFAULT TRUE'),
            ('created_date', 'ALTER TABLE landlord_availabilities ADD COLUMN created_date TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text(
                    'CREATE INDEX IF NOT EXISTS ix_landlord_availabilities_landlord_day '
                    'ON landlord_availabilities(landlord_id, day_of_week)'
                )
            )

        _availability_schema_checked = True


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('landlord_notes', 'ALTER TABLE appointments ADD COLUMN landlord_notes VARCHAR(500)'),
            ('modified_by_guid', 'ALTER TABLE appointments ADD COLUMN modified_by_guid VARCHAR(36)'),
            ('modified_date', 'ALTER TABLE appointments ADD COLUMN modified_date TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS ix_appointments_apartment_date ON appointments(apartment_id, appointment_date)')
            )

        # Duplicate active bookings left by older releases block the unique
        # index until they are resolved by hand; the rest of the schema stays usable.
        try:
            with engine.begin() as connection:
                connection.execute(text(ACTIVE_SLOT_INDEX_SQL))
        except SQLAlchemyError:
            logger.exception(
                'Could not create uq_appointments_active_slot; resolve duplicate pending or confirmed '
                'appointments for the same apartment and time, then restart'
            )

        _appointment_schema_checked = True
