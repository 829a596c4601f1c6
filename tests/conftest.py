import os
from datetime import date, time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from backend.database import Base  # noqa: E402
from backend.models.appointment import Appointment, AppointmentStatus  # noqa: E402
from backend.models.availability import AvailabilityWindow  # noqa: E402
from backend.models.patient import Patient  # noqa: E402
from backend.models.user import Role, User  # noqa: E402
from backend.services.schedule_store import ScheduleStore  # noqa: E402
from backend.services.scheduling import SchedulingService  # noqa: E402

TODAY = date(2024, 6, 3)


@pytest.fixture
def schedule_db():
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
def store(schedule_db) -> ScheduleStore:
    return ScheduleStore(schedule_db)


@pytest.fixture
def service(store) -> SchedulingService:
    return SchedulingService(store, today=lambda: TODAY)


@pytest.fixture
def make_user(schedule_db):
    def factory(username: str, role: Role) -> User:
        user = User(username=username, hashed_password='', role=role)
        schedule_db.add(user)
        schedule_db.commit()
        schedule_db.refresh(user)
        return user

    return factory


@pytest.fixture
def make_patient(schedule_db, make_user):
    def factory(username: str) -> tuple[User, Patient]:
        account = make_user(username, Role.PATIENT)
        patient = Patient(user_id=account.id, name=username.title())
        schedule_db.add(patient)
        schedule_db.commit()
        schedule_db.refresh(patient)
        return account, patient

    return factory


@pytest.fixture
def doctor(make_user) -> User:
    return make_user('dr_house', Role.DOCTOR)


@pytest.fixture
def nurse(make_user) -> User:
    return make_user('nurse_joy', Role.NURSE)


@pytest.fixture
def patient(make_patient) -> tuple[User, Patient]:
    return make_patient('paula')


@pytest.fixture
def make_appointment(schedule_db):
    def factory(
        patient: Patient,
        doctor: User,
        slot_date: date = date(2024, 6, 10),
        slot_time: time = time(9, 0),
        status: AppointmentStatus = AppointmentStatus.PENDING,
    ) -> Appointment:
        appointment = Appointment(
            patient_id=patient.id,
            doctor_id=doctor.id,
            date=slot_date,
            time=slot_time,
            kind='General Consultation',
            reason='Checkup',
            status=status,
        )
        schedule_db.add(appointment)
        schedule_db.commit()
        schedule_db.refresh(appointment)
        return appointment

    return factory


@pytest.fixture
def make_window(schedule_db):
    def factory(doctor: User, weekday: int, start: time, end: time, slot_duration: int = 30, active: bool = True):
        window = AvailabilityWindow(
            doctor_id=doctor.id,
            weekday=weekday,
            start_time=start,
            end_time=end,
            slot_duration_minutes=slot_duration,
            active=active,
        )
        schedule_db.add(window)
        schedule_db.commit()
        schedule_db.refresh(window)
        return window

    return factory
