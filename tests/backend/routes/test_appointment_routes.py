from datetime import date, time

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from backend.auth.identity import Actor
from backend.models.appointment import AppointmentStatus
from backend.models.user import Role
from backend.routes.appointment_routes import (
    ChangeStatusRequest,
    CreateAppointmentRequest,
    EditNotesRequest,
    cancel_appointment,
    change_appointment_status,
    edit_appointment_notes,
    get_appointment,
    list_appointments,
    list_pending_appointments,
    request_appointment,
)


@pytest.fixture(autouse=True)
def skip_schema_check(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('backend.routes.appointment_routes.ensure_database_ready', lambda: None)


def _create_request(doctor_id: int, **overrides) -> CreateAppointmentRequest:
    fields = {
        'doctor_id': doctor_id,
        'date': date(2024, 6, 10),
        'time': time(9, 0),
        'appointment_type': 'General Consultation',
        'reason': 'Persistent cough',
    }
    fields.update(overrides)
    return CreateAppointmentRequest(**fields)


def test_create_appointment_request_drops_seconds() -> None:
    request = _create_request(1, time=time(9, 0, 42))

    assert request.time == time(9, 0)


def test_create_appointment_request_requires_fields() -> None:
    with pytest.raises(ValidationError):
        CreateAppointmentRequest(doctor_id=1, date=date(2024, 6, 10), time=time(9, 0))


def test_request_appointment_normalizes_text(service, store, doctor, patient) -> None:
    patient_account, _ = patient

    response = request_appointment(
        data=_create_request(doctor.id, appointment_type='  Follow-up ', notes='   '),
        actor=Actor(patient_account.id, Role.PATIENT),
        service=service,
    )

    stored = store.get_appointment(response.id)
    assert stored.kind == 'Follow-up'
    assert stored.notes is None


@pytest.mark.parametrize(
    ('overrides', 'message'),
    [
        ({'reason': '   '}, 'Reason is required.'),
        ({'appointment_type': ''}, 'Appointment type is required.'),
        ({'notes': 'x' * 5000}, 'Notes must be 600 characters or fewer.'),
    ],
)
def test_request_appointment_invalid_text_maps_to_tagged_400(service, doctor, patient, overrides, message) -> None:
    patient_account, _ = patient

    with pytest.raises(HTTPException) as exception_info:
        request_appointment(
            data=_create_request(doctor.id, **overrides),
            actor=Actor(patient_account.id, Role.PATIENT),
            service=service,
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == {'error': 'validation', 'message': message}


def test_unknown_status_maps_to_tagged_400(service, doctor, patient, make_appointment) -> None:
    _, patient_record = patient
    appointment = make_appointment(patient_record, doctor)

    with pytest.raises(HTTPException) as exception_info:
        change_appointment_status(
            appointment_id=appointment.id,
            data=ChangeStatusRequest(status='archived'),
            actor=Actor(doctor.id, Role.DOCTOR),
            service=service,
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail['error'] == 'validation'


def test_request_appointment_returns_pending(service, doctor, patient) -> None:
    patient_account, _ = patient

    response = request_appointment(
        data=_create_request(doctor.id),
        actor=Actor(patient_account.id, Role.PATIENT),
        service=service,
    )

    assert response.status == AppointmentStatus.PENDING
    assert response.id > 0


def test_request_appointment_conflict_maps_to_409(service, doctor, patient, make_patient) -> None:
    patient_account, _ = patient
    other_account, _ = make_patient('pedro')
    request_appointment(data=_create_request(doctor.id), actor=Actor(patient_account.id, Role.PATIENT), service=service)

    with pytest.raises(HTTPException) as exception_info:
        request_appointment(data=_create_request(doctor.id), actor=Actor(other_account.id, Role.PATIENT), service=service)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail['error'] == 'conflict'


def test_request_appointment_unknown_doctor_maps_to_404(service, patient) -> None:
    patient_account, _ = patient

    with pytest.raises(HTTPException) as exception_info:
        request_appointment(data=_create_request(999), actor=Actor(patient_account.id, Role.PATIENT), service=service)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == {'error': 'not_found', 'message': 'Doctor not found.'}


def test_request_appointment_past_date_maps_to_400(service, doctor, patient) -> None:
    patient_account, _ = patient

    with pytest.raises(HTTPException) as exception_info:
        request_appointment(
            data=_create_request(doctor.id, date=date(2024, 5, 1)),
            actor=Actor(patient_account.id, Role.PATIENT),
            service=service,
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail['error'] == 'validation'


def test_patient_confirm_maps_to_403(service, doctor, patient, make_appointment) -> None:
    patient_account, patient_record = patient
    appointment = make_appointment(patient_record, doctor)

    with pytest.raises(HTTPException) as exception_info:
        change_appointment_status(
            appointment_id=appointment.id,
            data=ChangeStatusRequest(status='confirmada'),
            actor=Actor(patient_account.id, Role.PATIENT),
            service=service,
        )

    assert exception_info.value.status_code == 403
    assert exception_info.value.detail['message'] == 'Patients may only cancel appointments.'


def test_doctor_status_changes_and_invalid_transition(service, doctor, patient, make_appointment) -> None:
    _, patient_record = patient
    appointment = make_appointment(patient_record, doctor)
    actor = Actor(doctor.id, Role.DOCTOR)

    confirmed = change_appointment_status(
        appointment_id=appointment.id,
        data=ChangeStatusRequest(status='confirmada'),
        actor=actor,
        service=service,
    )
    completed = change_appointment_status(
        appointment_id=appointment.id,
        data=ChangeStatusRequest(status='completada'),
        actor=actor,
        service=service,
    )

    assert confirmed.status == AppointmentStatus.CONFIRMED
    assert completed.status == AppointmentStatus.COMPLETED

    with pytest.raises(HTTPException) as exception_info:
        change_appointment_status(
            appointment_id=appointment.id,
            data=ChangeStatusRequest(status='cancelada'),
            actor=actor,
            service=service,
        )

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == {
        'error': 'invalid_transition',
        'message': 'Cannot cancel a completed appointment.',
    }


def test_cancel_appointment_by_owner(service, doctor, patient, make_appointment) -> None:
    patient_account, patient_record = patient
    appointment = make_appointment(patient_record, doctor)

    response = cancel_appointment(
        appointment_id=appointment.id,
        actor=Actor(patient_account.id, Role.PATIENT),
        service=service,
    )

    assert response.status == AppointmentStatus.CANCELLED


def test_cancel_missing_appointment_maps_to_404(service, patient) -> None:
    patient_account, _ = patient

    with pytest.raises(HTTPException) as exception_info:
        cancel_appointment(appointment_id=999, actor=Actor(patient_account.id, Role.PATIENT), service=service)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail['message'] == 'Appointment not found.'


def test_edit_notes(service, doctor, patient, make_appointment) -> None:
    _, patient_record = patient
    appointment = make_appointment(patient_record, doctor)

    response = edit_appointment_notes(
        appointment_id=appointment.id,
        data=EditNotesRequest(notes='Fasting required'),
        actor=Actor(doctor.id, Role.DOCTOR),
        service=service,
    )

    assert response.notes == 'Fasting required'


def test_list_and_get_appointments_respect_roles(service, doctor, nurse, patient, make_patient, make_appointment) -> None:
    patient_account, patient_record = patient
    stranger_account, _ = make_patient('sam')
    appointment = make_appointment(patient_record, doctor)

    assert [item.id for item in list_appointments(status_filter=None, actor=Actor(nurse.id, Role.NURSE), service=service)] == [
        appointment.id,
    ]
    assert list_appointments(
        status_filter=AppointmentStatus.CONFIRMED,
        actor=Actor(patient_account.id, Role.PATIENT),
        service=service,
    ) == []
    assert [item.id for item in list_pending_appointments(actor=Actor(doctor.id, Role.DOCTOR), service=service)] == [
        appointment.id,
    ]

    with pytest.raises(HTTPException) as exception_info:
        get_appointment(appointment_id=appointment.id, actor=Actor(stranger_account.id, Role.PATIENT), service=service)

    assert exception_info.value.status_code == 403
