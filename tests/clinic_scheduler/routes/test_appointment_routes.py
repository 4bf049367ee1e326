from datetime import date, datetime

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import OperationalError

from clinic_scheduler.core.errors import StorageFailure
from clinic_scheduler.routes.appointment_routes import (
    BookAppointmentRequest,
    book_appointment,
    cancel_appointment,
    confirm_appointment,
    list_appointments,
    list_open_slots,
)


@pytest.fixture(autouse=True)
def skip_schema_checks(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('clinic_scheduler.routes.appointment_routes.ensure_database_ready', lambda: None)


def test_book_appointment_returns_wire_formatted_appointment(db, patient, reminders) -> None:
    response = book_appointment(
        BookAppointmentRequest(appointment_datetime='2025-03-10T14:00'),
        current_user=patient,
        db=db,
        reminders=reminders,
    )

    assert response.message == 'Appointment booked successfully!'
    assert response.appointment.appointment_datetime == '2025-03-10 14:00:00'
    assert response.appointment.status == 'pending'
    assert response.appointment.patient_name == 'Asha'


def test_book_appointment_reports_conflicts_as_bad_request(db, patient, other_patient, reminders) -> None:
    book_appointment(BookAppointmentRequest(appointment_datetime='2025-03-10 14:00'), patient, db, reminders)

    with pytest.raises(HTTPException) as exception_info:
        book_appointment(BookAppointmentRequest(appointment_datetime='2025-03-10 14:00'), other_patient, db, reminders)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Booking unavailable: This time slot is already booked.'


def test_book_appointment_requires_datetime(db, patient, reminders) -> None:
    with pytest.raises(HTTPException) as exception_info:
        book_appointment(BookAppointmentRequest(), patient, db, reminders)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'appointment_datetime is required.'


def test_book_appointment_hides_storage_errors(db, patient, reminders, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken(*_args, **_kwargs):
        raise OperationalError('INSERT INTO appointments', {}, Exception('disk I/O error'))

    monkeypatch.setattr('clinic_scheduler.routes.appointment_routes.booking.book_appointment', broken)

    with pytest.raises(StorageFailure) as exception_info:
        book_appointment(BookAppointmentRequest(appointment_datetime='2025-03-10 14:00'), patient, db, reminders)

    assert exception_info.value.status_code == 500
    assert exception_info.value.detail == 'An error occurred during the booking process.'
    assert 'disk' not in exception_info.value.detail


def test_list_appointments_is_scoped_by_role(db, doctor, patient, other_patient, reminders) -> None:
    book_appointment(BookAppointmentRequest(appointment_datetime='2025-03-10 15:00'), patient, db, reminders)
    book_appointment(BookAppointmentRequest(appointment_datetime='2025-03-10 12:00'), other_patient, db, reminders)

    doctor_view = list_appointments(current_user=doctor, db=db)
    patient_view = list_appointments(current_user=patient, db=db)

    assert [item.appointment_datetime for item in doctor_view] == ['2025-03-10 12:00:00', '2025-03-10 15:00:00']
    assert [item.patient_id for item in patient_view] == [patient.id]


def test_list_open_slots_formats_slots(db, patient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        'clinic_scheduler.routes.appointment_routes.booking.list_open_slots',
        lambda _db, _day: [datetime(2025, 3, 10, 11, 0)],
    )

    response = list_open_slots(day=date(2025, 3, 10), current_user=patient, db=db)

    assert response.slots == ['2025-03-10 11:00:00']


def test_cancel_appointment_by_other_patient_returns_not_found(db, patient, other_patient, reminders) -> None:
    booked = book_appointment(BookAppointmentRequest(appointment_datetime='2025-03-10 14:00'), patient, db, reminders)

    with pytest.raises(HTTPException) as exception_info:
        cancel_appointment(booked.appointment.id, current_user=other_patient, db=db, reminders=reminders)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Appointment not found or unauthorized.'


def test_cancel_appointment_by_doctor(db, doctor, patient, reminders, fake_scheduler) -> None:
    booked = book_appointment(BookAppointmentRequest(appointment_datetime='2025-03-10 14:00'), patient, db, reminders)

    response = cancel_appointment(booked.appointment.id, current_user=doctor, db=db, reminders=reminders)

    assert response.message == 'Appointment canceled successfully!'
    assert fake_scheduler.jobs == {}


def test_confirm_appointment_twice(db, doctor, patient, reminders) -> None:
    booked = book_appointment(BookAppointmentRequest(appointment_datetime='2025-03-10 14:00'), patient, db, reminders)

    first = confirm_appointment(booked.appointment.id, current_user=doctor, db=db)
    second = confirm_appointment(booked.appointment.id, current_user=doctor, db=db)

    assert first.appointment.status == 'confirmed'
    assert second.appointment.status == 'confirmed'


def test_confirm_missing_appointment(db, doctor) -> None:
    with pytest.raises(HTTPException) as exception_info:
        confirm_appointment(999, current_user=doctor, db=db)

    assert exception_info.value.status_code == 404
