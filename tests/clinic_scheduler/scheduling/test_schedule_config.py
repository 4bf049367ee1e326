from datetime import date, datetime, time

import pytest

from clinic_scheduler.core.errors import InvalidInput
from clinic_scheduler.models.schedule_settings import ScheduleSettings
from clinic_scheduler.scheduling import schedule_config


def _settings(**overrides) -> dict:
    values = {
        'start_time': time(10, 0),
        'end_time': time(18, 0),
        'working_days': ['mon', 'Tue', 'WED', 'Thursday'],
        'appointment_duration_minutes': 20,
        'break_start': time(13, 0),
        'break_end': time(13, 30),
    }
    values.update(overrides)
    return values


def test_get_settings_returns_defaults_when_unset(db, doctor) -> None:
    settings = schedule_config.get_settings(db, doctor.id)

    assert settings.is_default
    assert settings.doctor_id == doctor.id
    assert settings.start_time == time(11, 0)
    assert settings.end_time == time(19, 0)
    assert settings.working_days == {'Mon', 'Tue', 'Wed', 'Thu', 'Fri'}
    assert settings.appointment_duration_minutes == 30
    assert (settings.break_start, settings.break_end) == (time(13, 0), time(14, 0))


def test_update_settings_inserts_then_updates_single_row(db, doctor) -> None:
    created = schedule_config.update_settings(db, doctor.id, _settings())
    updated = schedule_config.update_settings(db, doctor.id, _settings(appointment_duration_minutes=45))

    assert created.working_days == {'Mon', 'Tue', 'Wed', 'Thu'}
    assert created.ordered_working_days == ['Mon', 'Tue', 'Wed', 'Thu']
    assert updated.appointment_duration_minutes == 45
    assert not updated.is_default
    assert db.query(ScheduleSettings).filter(ScheduleSettings.doctor_id == doctor.id).count() == 1


def test_get_settings_reads_saved_row(db, doctor) -> None:
    schedule_config.update_settings(db, doctor.id, _settings())

    settings = schedule_config.get_settings(db, doctor.id)

    assert settings.start_time == time(10, 0)
    assert settings.working_days == frozenset({'Mon', 'Tue', 'Wed', 'Thu'})


def test_get_clinic_settings_uses_saved_row(db, doctor) -> None:
    assert schedule_config.get_clinic_settings(db).is_default

    schedule_config.update_settings(db, doctor.id, _settings())

    assert schedule_config.get_clinic_settings(db).doctor_id == doctor.id


@pytest.mark.parametrize(
    'overrides',
    [
        {'start_time': None},
        {'break_end': None},
        {'working_days': []},
        {'working_days': ['Mon', 'Funday']},
        {'working_days': ['Sunshine']},
        {'working_days': ['Monday-ish', 'Tue']},
        {'appointment_duration_minutes': 0},
        {'appointment_duration_minutes': -15},
        {'appointment_duration_minutes': 'abc'},
        {'start_time': time(18, 0), 'end_time': time(10, 0)},
        {'break_start': time(14, 0), 'break_end': time(13, 0)},
    ],
)
def test_update_settings_rejects_invalid_values(db, doctor, overrides) -> None:
    with pytest.raises(InvalidInput) as exception_info:
        schedule_config.update_settings(db, doctor.id, _settings(**overrides))

    assert exception_info.value.status_code == 400
    assert db.query(ScheduleSettings).count() == 0


def test_normalize_working_days_accepts_codes_and_full_names() -> None:
    assert schedule_config.normalize_working_days([' sat ', 'SUNDAY', 'Mon']) == frozenset({'Sat', 'Sun', 'Mon'})


@pytest.mark.parametrize('day', ['Sunshine', 'Monday-ish', 'Mo', 'Thurs'])
def test_normalize_working_days_rejects_prefix_matches(day) -> None:
    with pytest.raises(InvalidInput) as exception_info:
        schedule_config.normalize_working_days([day])

    assert exception_info.value.detail == f'Unrecognized working day: {day}.'


def test_default_settings_close_only_configured_days() -> None:
    settings = schedule_config.default_settings()

    assert settings.is_closed_on(date(2025, 3, 9))
    assert not settings.is_closed_on(date(2025, 3, 15))
    assert not settings.is_closed_on(date(2025, 3, 10))


def test_saved_settings_close_non_working_days(db, doctor) -> None:
    settings = schedule_config.update_settings(db, doctor.id, _settings())

    assert settings.is_closed_on(date(2025, 3, 14))
    assert not settings.is_closed_on(date(2025, 3, 13))


def test_hours_window_is_half_open() -> None:
    settings = schedule_config.default_settings()

    assert settings.is_within_hours(datetime(2025, 3, 10, 11, 0))
    assert settings.is_within_hours(datetime(2025, 3, 10, 18, 59))
    assert not settings.is_within_hours(datetime(2025, 3, 10, 19, 0))
    assert settings.is_break(datetime(2025, 3, 10, 13, 30))
    assert not settings.is_break(datetime(2025, 3, 10, 14, 0))
