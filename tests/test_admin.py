from care_portal.core.database import SessionLocal
from care_portal.models import Appointment, DoctorProfile, Notification, RefreshToken, User


class TestAdminListings:

    def test_list_patients(self, client, admin, patient, other_patient, doctor):
        response = client.get("/api/v1/admin/patients", headers=admin["headers"])
        assert response.status_code == 200

        emails = {p["email"] for p in response.json()}
        assert emails == {patient["email"], other_patient["email"]}
        assert all("password_hash" not in p for p in response.json())

    def test_list_users_pages(self, client, admin, patient, doctor):
        everyone = client.get("/api/v1/admin/users", headers=admin["headers"]).json()
        assert len(everyone) == 3

        page = client.get("/api/v1/admin/users", params={"skip": 1, "limit": 1}, headers=admin["headers"])
        assert page.status_code == 200
        assert [u["id"] for u in page.json()] == [everyone[1]["id"]]

    def test_non_admins_are_forbidden(self, client, patient, doctor):
        for actor in (patient, doctor):
            for path in ("/api/v1/admin/patients", "/api/v1/admin/users", "/api/v1/admin/stats"):
                response = client.get(path, headers=actor["headers"])
                assert response.status_code == 403
                assert response.json()["error"] == "Forbidden"


class TestDeleteAccount:

    def test_delete_patient_removes_their_appointments(self, client, admin, patient, doctor, book):
        appointment = book(patient, doctor)

        response = client.delete(f"/api/v1/admin/users/{patient['id']}", headers=admin["headers"])
        assert response.status_code == 204

        assert client.get(f"/api/v1/appointments/{appointment['id']}", headers=admin["headers"]).status_code == 404
        assert client.get(f"/api/v1/appointments/doctor/{doctor['id']}", headers=doctor["headers"]).json() == []
        assert client.get(f"/api/v1/auth/me/{patient['id']}", headers=admin["headers"]).status_code == 404

    def test_deleted_account_token_stops_working(self, client, admin, patient):
        client.delete(f"/api/v1/admin/users/{patient['id']}", headers=admin["headers"])

        me = client.get("/api/v1/auth/me", headers=patient["headers"])
        assert me.status_code == 401

        refresh = client.post("/api/v1/auth/refresh", json={"refresh_token": patient["refresh_token"]})
        assert refresh.status_code == 401

    def test_delete_doctor(self, client, admin, patient, doctor, book):
        book(patient, doctor)

        response = client.delete(f"/api/v1/admin/users/{doctor['id']}", headers=admin["headers"])
        assert response.status_code == 204

        approved = client.get("/api/v1/doctors/approved", headers=patient["headers"]).json()
        assert approved == []
        assert client.get(f"/api/v1/appointments/patient/{patient['id']}", headers=patient["headers"]).json() == []

    def test_delete_removes_dependent_rows(self, client, admin, patient, doctor, book):
        book(patient, doctor)

        db = SessionLocal()
        try:
            assert db.query(Notification).filter(Notification.user_id == doctor["id"]).count() == 2
            assert db.query(RefreshToken).filter(RefreshToken.user_id == doctor["id"]).count() == 1
        finally:
            db.close()

        response = client.delete(f"/api/v1/admin/users/{doctor['id']}", headers=admin["headers"])
        assert response.status_code == 204

        db = SessionLocal()
        try:
            assert db.query(User).filter(User.id == doctor["id"]).count() == 0
            assert db.query(DoctorProfile).filter(DoctorProfile.user_id == doctor["id"]).count() == 0
            assert db.query(Notification).filter(Notification.user_id == doctor["id"]).count() == 0
            assert db.query(RefreshToken).filter(RefreshToken.user_id == doctor["id"]).count() == 0
            assert db.query(Appointment).filter(Appointment.doctor_id == doctor["id"]).count() == 0
            # the patient keeps their own account and tokens
            assert db.query(RefreshToken).filter(RefreshToken.user_id == patient["id"]).count() == 1
        finally:
            db.close()

    def test_delete_missing_account(self, client, admin):
        response = client.delete("/api/v1/admin/users/9999", headers=admin["headers"])
        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"

    def test_admin_cannot_delete_self(self, client, admin):
        response = client.delete(f"/api/v1/admin/users/{admin['id']}", headers=admin["headers"])
        assert response.status_code == 403

    def test_patient_cannot_delete(self, client, patient, other_patient):
        response = client.delete(f"/api/v1/admin/users/{other_patient['id']}", headers=patient["headers"])
        assert response.status_code == 403


def test_stats(client, admin, patient, other_patient, doctor, make_doctor, book):
    make_doctor("pending.doctor@example.com", approve=False)
    book(patient, doctor, type="online")
    book(other_patient, doctor, type="physical")
    book(patient, doctor, type="physical", date="2025-02-01")

    response = client.get("/api/v1/admin/stats", headers=admin["headers"])
    assert response.status_code == 200
    assert response.json() == {
        "total_patients": 2,
        "total_doctors": 1,
        "pending_doctors": 1,
        "total_appointments": 3,
        "online_appointments": 1,
        "physical_appointments": 2,
    }
