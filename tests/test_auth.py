from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from care_portal.core.config import settings
from care_portal.core.database import SessionLocal
from care_portal.core.security import UserRole, create_access_token
from care_portal.models import User
from care_portal.services.auth_service import AuthService
from tests.conftest import PASSWORD, doctor_payload, login, patient_payload


class TestRegistration:

    def test_register_patient(self, client):
        """Registering returns the account without any credential field."""
        response = client.post("/api/v1/auth/register", json=patient_payload("New.Patient@Example.com"))
        assert response.status_code == 200

        data = response.json()
        assert data["email"] == "new.patient@example.com"
        assert data["role"] == "patient"
        assert data["patient_profile"]["allergies"] == ["penicillin"]
        assert data["doctor_profile"] is None
        assert "password" not in data
        assert "password_hash" not in data

    def test_register_ignores_requested_role(self, client):
        response = client.post("/api/v1/auth/register", json=patient_payload(role="admin"))
        assert response.status_code == 200
        assert response.json()["role"] == "patient"

    @pytest.mark.parametrize("second_email", [
        "patient@example.com",
        "PATIENT@EXAMPLE.COM",
        "  Patient@Example.com ",
    ])
    def test_register_duplicate_email_any_case(self, client, second_email):
        first = client.post("/api/v1/auth/register", json=patient_payload("patient@example.com"))
        assert first.status_code == 200

        response = client.post("/api/v1/auth/register", json=patient_payload(second_email))
        assert response.status_code == 409
        assert response.json()["error"] == "DuplicateEmail"

    def test_email_is_unique_across_roles(self, client):
        client.post("/api/v1/auth/register", json=patient_payload("shared@example.com"))

        response = client.post("/api/v1/auth/register-doctor", json=doctor_payload("Shared@example.com"))
        assert response.status_code == 409
        assert response.json()["error"] == "DuplicateEmail"

    def test_register_invalid_email(self, client):
        response = client.post("/api/v1/auth/register", json=patient_payload("not-an-email"))
        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"

    def test_register_doctor_is_always_pending(self, client):
        """A status in the body never survives doctor registration."""
        payload = doctor_payload(status="approved", role="admin")
        payload["doctor_profile"]["status"] = "approved"

        response = client.post("/api/v1/auth/register-doctor", json=payload)
        assert response.status_code == 200

        data = response.json()
        assert data["role"] == "doctor"
        assert data["doctor_profile"]["status"] == "pending"
        assert data["doctor_profile"]["specialty"] == "Cardiology"
        assert "password_hash" not in data

    def test_other_integrity_errors_are_not_duplicate_email(self, test_db):
        db = SessionLocal()
        try:
            # password_hash is NOT NULL
            user = User(email="broken@example.com", role=UserRole.PATIENT, first_name="No", last_name="Hash")
            with pytest.raises(IntegrityError):
                AuthService(db)._insert_user(user)
        finally:
            db.close()

    def test_register_doctor_requires_profile(self, client):
        payload = doctor_payload()
        del payload["doctor_profile"]

        response = client.post("/api/v1/auth/register-doctor", json=payload)
        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"


class TestAuthentication:

    def test_login_success(self, client):
        client.post("/api/v1/auth/register", json=patient_payload())

        response = client.post("/api/v1/auth/login", json={"email": "patient@example.com", "password": PASSWORD})
        assert response.status_code == 200

        data = response.json()
        assert "access_token" in data
        assert "refresh_token" in data
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == "patient@example.com"
        assert "password_hash" not in data["user"]

    def test_login_normalizes_email(self, client):
        client.post("/api/v1/auth/register", json=patient_payload())

        response = client.post("/api/v1/auth/login", json={"email": " Patient@EXAMPLE.com", "password": PASSWORD})
        assert response.status_code == 200

    def test_wrong_password_and_unknown_email_look_the_same(self, client):
        client.post("/api/v1/auth/register", json=patient_payload())

        wrong_password = client.post(
            "/api/v1/auth/login", json={"email": "patient@example.com", "password": "wrongpassword"}
        )
        unknown_email = client.post(
            "/api/v1/auth/login", json={"email": "nobody@example.com", "password": "wrongpassword"}
        )

        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json()
        assert wrong_password.json()["error"] == "InvalidCredentials"

    def test_get_current_user(self, client, patient):
        response = client.get("/api/v1/auth/me", headers=patient["headers"])
        assert response.status_code == 200
        assert response.json()["email"] == patient["email"]

    def test_get_current_user_invalid_token(self, client, test_db):
        response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer invalid_token"})
        assert response.status_code == 401
        assert response.json()["error"] == "Unauthenticated"

    def test_get_current_user_without_token(self, client):
        response = client.get("/api/v1/auth/me")
        assert response.status_code == 401
        assert response.json()["error"] == "Unauthenticated"

    def test_expired_token_is_rejected(self, client, patient):
        token = create_access_token(
            {"sub": str(patient["id"]), "role": "patient"}, expires_delta=timedelta(minutes=-1)
        )
        response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_refresh_token_cannot_be_used_as_access_token(self, client, patient):
        headers = {"Authorization": f"Bearer {patient['refresh_token']}"}
        response = client.get("/api/v1/auth/me", headers=headers)
        assert response.status_code == 401

    def test_rate_limit_on_login(self, client, monkeypatch):
        monkeypatch.setattr(settings, "RATE_LIMIT_REQUESTS", 2)
        body = {"email": "nobody@example.com", "password": "x"}

        assert client.post("/api/v1/auth/login", json=body).status_code == 401
        assert client.post("/api/v1/auth/login", json=body).status_code == 401
        response = client.post("/api/v1/auth/login", json=body)
        assert response.status_code == 429
        assert response.json()["error"] == "RateLimited"


class TestTokens:

    def test_refresh_token(self, client, patient):
        response = client.post("/api/v1/auth/refresh", json={"refresh_token": patient["refresh_token"]})
        assert response.status_code == 200

        data = response.json()
        assert data["refresh_token"] != patient["refresh_token"]
        me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert me.status_code == 200

    def test_refresh_token_is_single_use(self, client, patient):
        first = client.post("/api/v1/auth/refresh", json={"refresh_token": patient["refresh_token"]})
        assert first.status_code == 200

        replay = client.post("/api/v1/auth/refresh", json={"refresh_token": patient["refresh_token"]})
        assert replay.status_code == 401

    def test_refresh_invalid_token(self, client, test_db):
        response = client.post("/api/v1/auth/refresh", json={"refresh_token": "invalid_token"})
        assert response.status_code == 401

    def test_logout(self, client, patient):
        response = client.post("/api/v1/auth/logout", json={"refresh_token": patient["refresh_token"]})
        assert response.status_code == 200
        assert response.json()["message"] == "Successfully logged out"

        refresh = client.post("/api/v1/auth/refresh", json={"refresh_token": patient["refresh_token"]})
        assert refresh.status_code == 401

    def test_change_password(self, client, patient):
        response = client.post(
            "/api/v1/auth/change-password",
            json={"current_password": PASSWORD, "new_password": "NewPassword123"},
            headers=patient["headers"],
        )
        assert response.status_code == 200

        login(client, patient["email"], "NewPassword123")
        old = client.post("/api/v1/auth/login", json={"email": patient["email"], "password": PASSWORD})
        assert old.status_code == 401

    def test_change_password_wrong_current(self, client, patient):
        response = client.post(
            "/api/v1/auth/change-password",
            json={"current_password": "WrongPassword", "new_password": "NewPassword123"},
            headers=patient["headers"],
        )
        assert response.status_code == 422
        assert response.json()["error"] == "ValidationError"

    def test_verify_token(self, client, patient):
        response = client.post("/api/v1/auth/verify-token", headers=patient["headers"])
        assert response.status_code == 200

        data = response.json()
        assert data["valid"] is True
        assert data["user_id"] == patient["id"]
        assert data["role"] == "patient"


class TestFetchAccount:

    def test_fetch_own_account(self, client, patient):
        response = client.get(f"/api/v1/auth/me/{patient['id']}", headers=patient["headers"])
        assert response.status_code == 200
        assert "password_hash" not in response.json()

    def test_fetch_other_patient_is_forbidden(self, client, patient, other_patient):
        response = client.get(f"/api/v1/auth/me/{other_patient['id']}", headers=patient["headers"])
        assert response.status_code == 403
        assert response.json()["error"] == "Forbidden"

    def test_fetch_missing_account_is_not_found(self, client, patient):
        response = client.get("/api/v1/auth/me/9999", headers=patient["headers"])
        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"

    def test_admin_can_fetch_any_account(self, client, admin, patient):
        response = client.get(f"/api/v1/auth/me/{patient['id']}", headers=admin["headers"])
        assert response.status_code == 200

    def test_patient_can_fetch_approved_doctor(self, client, patient, doctor):
        response = client.get(f"/api/v1/auth/me/{doctor['id']}", headers=patient["headers"])
        assert response.status_code == 200
        assert response.json()["doctor_profile"]["status"] == "approved"
