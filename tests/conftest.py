import os
import sys
from datetime import date, timedelta
from pathlib import Path

import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Set testing environment before the app reads its settings
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test_appointments.db"

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from appointment_scheduler.main import app
from appointment_scheduler.core.database import get_db, Base
from appointment_scheduler.core.security import UserRole, create_access_token
from appointment_scheduler.models.user import User
from appointment_scheduler.models.doctor import Doctor
from appointment_scheduler.models.appointment import Appointment, AppointmentStatus

# Create test database
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_appointments.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db

# Fixed "today" for service-level tests
TODAY = date(2025, 5, 1)
BOOKING_DATE = date(2025, 6, 1)

@pytest.fixture(scope="function")
def test_db():
    # Create tables
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db_session(test_db):
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture
def client():
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client

@pytest.fixture
def make_user(db_session):
    """Insert a directory user; doctors get a profile with working hours."""
    def _make_user(name, role, work_start="09:00", work_end="17:00", specialization=None, with_profile=True):
        user = User(
            name=name,
            email=f"{name.lower().replace(' ', '.')}@example.com",
            role=role,
            is_active=True
        )
        db_session.add(user)
        db_session.flush()

        if role == UserRole.DOCTOR and with_profile:
            db_session.add(Doctor(
                user_id=user.id,
                specialization=specialization,
                work_start=work_start,
                work_end=work_end
            ))

        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user

@pytest.fixture
def make_appointment(db_session):
    """Insert an appointment directly, bypassing the booking rules."""
    def _make_appointment(patient, doctor, on_date=BOOKING_DATE, time_slot="10:00 AM",
                          status=AppointmentStatus.PENDING):
        appointment = Appointment(
            patient_id=patient.id,
            doctor_id=doctor.id,
            date=on_date,
            time_slot=time_slot,
            status=status
        )
        db_session.add(appointment)
        db_session.commit()
        db_session.refresh(appointment)
        return appointment

    return _make_appointment

@pytest.fixture
def doctor(make_user):
    return make_user("Emily Carter", UserRole.DOCTOR, specialization="Cardiology")

@pytest.fixture
def other_doctor(make_user):
    return make_user("Benjamin Lee", UserRole.DOCTOR, work_start="10:00", work_end="12:00")

@pytest.fixture
def patient(make_user):
    return make_user("Pat Jones", UserRole.PATIENT)

@pytest.fixture
def other_patient(make_user):
    return make_user("Sam Smith", UserRole.PATIENT)

@pytest.fixture
def future_date():
    """A booking date that is never in the past for API tests."""
    return (date.today() + timedelta(days=7)).isoformat()

def auth_headers(user):
    token = create_access_token({"sub": user.id, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
def headers_for():
    return auth_headers
