import pytest
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import StaticPool

from lander import database

LEGACY_APPOINTMENTS_TABLE = (
    'CREATE TABLE appointments ('
    'id INTEGER PRIMARY KEY, apartment_id INTEGER NOT NULL, appointment_date TIMESTAMP NOT NULL, '
    'status VARCHAR(20) NOT NULL)'
)


@pytest.fixture
def legacy_engine(monkeypatch: pytest.MonkeyPatch):
    engine = create_engine('sqlite://', connect_args={'check_same_thread': False}, poolclass=StaticPool)
    with engine.begin() as connection:
        connection.execute(text(LEGACY_APPOINTMENTS_TABLE))

    monkeypatch.setattr(database, 'engine', engine)
    monkeypatch.setattr(database, '_appointment_schema_checked', False)
    try:
        yield engine
    finally:
        engine.dispose()


def _index_names(engine) -> set[str]:
    return {index['name'] for index in inspect(engine).get_indexes('appointments')}


def test_appointment_schema_adds_columns_and_indexes(legacy_engine) -> None:
    database.ensure_appointment_schema()

    columns = {column['name'] for column in inspect(legacy_engine).get_columns('appointments')}
    assert {'landlord_notes', 'modified_by_guid', 'modified_date'} <= columns
    assert {'ix_appointments_apartment_date', 'uq_appointments_active_slot'} <= _index_names(legacy_engine)
    assert database._appointment_schema_checked is True


def test_duplicate_active_bookings_do_not_block_the_rest_of_the_migration(legacy_engine, caplog) -> None:
    with legacy_engine.begin() as connection:
        connection.execute(
            text(
                'INSERT INTO appointments (apartment_id, appointment_date, status) VALUES '
                "(100, '2030-01-07 10:00:00', 'pending'), (100, '2030-01-07 10:00:00', 'confirmed')"
            )
        )

    database.ensure_appointment_schema()

    columns = {column['name'] for column in inspect(legacy_engine).get_columns('appointments')}
    assert {'landlord_notes', 'modified_by_guid', 'modified_date'} <= columns
    assert 'ix_appointments_apartment_date' in _index_names(legacy_engine)
    assert 'uq_appointments_active_slot' not in _index_names(legacy_engine)
    assert database._appointment_schema_checked is True
    assert 'Could not create uq_appointments_active_slot' in caplog.text


def test_released_duplicates_do_not_block_the_unique_index(legacy_engine) -> None:
    with legacy_engine.begin() as connection:
        connection.execute(
            text(
                'INSERT INTO appointments (apartment_id, appointment_date, status) VALUES '
                "(100, '2030-01-07 10:00:00', 'cancelled'), (100, '2030-01-07 10:00:00', 'confirmed')"
            )
        )

    database.ensure_appointment_schema()

    assert 'uq_appointments_active_slot' in _index_names(legacy_engine)
