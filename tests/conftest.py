import os

# Must be set before the application modules read their settings
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"
os.environ["RATE_LIMIT_REQUESTS"] = "1000"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from fastapi.testclient import TestClient

from care_portal.main import app
from care_portal.core.database import Base, SessionLocal, engine, redis_client
from care_portal.services.auth_service import AuthService

PASSWORD = "TestPassword123"
ADMIN_EMAIL = "admin@example.com"


def patient_payload(email="patient@example.com", **overrides):
    data = {
        "email": email,
        "password": PASSWORD,
        "first_name": "Test",
        "last_name": "Patient",
        "patient_profile": {"age": 34, "blood_type": "O+", "allergies": ["penicillin"]},
    }
    data.update(overrides)
    return data


def doctor_payload(email="doctor@example.com", **overrides):
    data = {
        "email": email,
        "password": PASSWORD,
        "first_name": "Test",
        "last_name": "Doctor",
        "doctor_profile": {
            "specialty": "Cardiology",
            "registration_number": "REG-001",
            "years_of_experience": 10,
        },
    }
    data.update(overrides)
    return data


def login(client, email, password=PASSWORD):
    response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    data = response.json()
    return {
        "id": data["user"]["id"],
        "email": email,
        "headers": {"Authorization": f"Bearer {data['access_token']}"},
        "refresh_token": data["refresh_token"],
    }


@pytest.fixture(scope="function")
def test_db():
    Base.metadata.create_all(bind=engine)
    redis_client.flushdb()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(test_db):
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client


@pytest.fixture
def admin(client):
    db = SessionLocal()
    try:
        AuthService(db).create_admin(ADMIN_EMAIL, PASSWORD, "System", "Admin")
    finally:
        db.close()
    return login(client, ADMIN_EMAIL)


@pytest.fixture
def make_patient(client):
    def _make(email="patient@example.com", **overrides):
        response = client.post("/api/v1/auth/register", json=patient_payload(email, **overrides))
        assert response.status_code == 200, response.text
        return login(client, email)
    return _make


@pytest.fixture
def make_doctor(client, admin):
    def _make(email="doctor@example.com", approve=True, **overrides):
        response = client.post("/api/v1/auth/register-doctor", json=doctor_payload(email, **overrides))
        assert response.status_code == 200, response.text
        doctor_id = response.json()["id"]
        if approve:
            approved = client.put(
                f"/api/v1/doctors/{doctor_id}/status",
                json={"status": "approved"},
                headers=admin["headers"],
            )
            assert approved.status_code == 200, approved.text
        return login(client, email)
    return _make


@pytest.fixture
def patient(make_patient):
    return make_patient("patient@example.com")


@pytest.fixture
def other_patient(make_patient):
    return make_patient("other.patient@example.com")


@pytest.fixture
def doctor(make_doctor):
    return make_doctor("doctor@example.com")


@pytest.fixture
def other_doctor(make_doctor):
    return make_doctor("other.doctor@example.com", doctor_profile={
        "specialty": "Dermatology",
        "registration_number": "REG-002",
    })


@pytest.fixture
def book(client):
    """Book an appointment as ``patient`` with ``doctor``; returns the JSON body."""
    def _book(patient, doctor, type="online", date="2025-01-10", time="10:00", **extra):
        payload = {"doctor_id": doctor["id"], "type": type, "date": date, "time": time, **extra}
        response = client.post("/api/v1/appointments", json=payload, headers=patient["headers"])
        assert response.status_code == 201, response.text
        return response.json()
    return _book
