from datetime import date, timedelta

from appointment_scheduler.core.security import UserRole, create_access_token
from appointment_scheduler.models.appointment import AppointmentStatus

class TestAvailabilityEndpoint:

    def test_available_slots(self, client, doctor, patient, headers_for, future_date):
        """Test listing slots for a doctor with no bookings."""
        response = client.get(
            f"/api/v1/appointments/slots/{doctor.id}/{future_date}",
            headers=headers_for(patient)
        )
        assert response.status_code == 200

        slots = response.json()
        assert len(slots) == 28
        assert slots[0] == "09:00 AM"

    def test_slots_unknown_doctor(self, client, patient, headers_for, future_date):
        response = client.get(
            f"/api/v1/appointments/slots/9999/{future_date}",
            headers=headers_for(patient)
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Doctor not found. Please select a valid doctor."

    def test_slots_past_date(self, client, doctor, patient, headers_for):
        """Test past dates are refused with a specific message."""
        yesterday = (date.today() - timedelta(days=1)).isoformat()
        response = client.get(
            f"/api/v1/appointments/slots/{doctor.id}/{yesterday}",
            headers=headers_for(patient)
        )
        assert response.status_code == 400

        data = response.json()
        assert data["error"] == "Invalid Input"
        assert "past dates" in data["message"]

class TestBookingEndpoint:

    def test_book_appointment(self, client, doctor, patient, headers_for, future_date):
        """Test a patient books a slot."""
        response = client.post(
            "/api/v1/appointments",
            json={"doctor_id": doctor.id, "date": future_date, "time_slot": "10:00 AM"},
            headers=headers_for(patient)
        )
        assert response.status_code == 201

        data = response.json()
        assert data["status"] == "PENDING"
        assert data["date"] == future_date
        assert data["time_slot"] == "10:00 AM"
        assert data["patient_id"] == patient.id

        slots = client.get(
            f"/api/v1/appointments/slots/{doctor.id}/{future_date}",
            headers=headers_for(patient)
        ).json()
        assert "10:00 AM" not in slots

    def test_book_missing_fields(self, client, doctor, patient, headers_for):
        response = client.post(
            "/api/v1/appointments",
            json={"doctor_id": doctor.id},
            headers=headers_for(patient)
        )
        assert response.status_code == 400
        assert "All fields are required" in response.json()["message"]

    def test_doctor_cannot_book(self, client, doctor, headers_for, future_date):
        response = client.post(
            "/api/v1/appointments",
            json={"doctor_id": doctor.id, "date": future_date, "time_slot": "10:00 AM"},
            headers=headers_for(doctor)
        )
        assert response.status_code == 403
        assert response.json()["error"] == "Forbidden"

    def test_book_approved_slot(self, client, doctor, patient, other_patient, headers_for,
                                make_appointment, future_date):
        """Test booking an approved slot returns a conflict."""
        make_appointment(
            other_patient, doctor,
            on_date=date.fromisoformat(future_date),
            status=AppointmentStatus.APPROVED
        )

        response = client.post(
            "/api/v1/appointments",
            json={"doctor_id": doctor.id, "date": future_date, "time_slot": "10:00 AM"},
            headers=headers_for(patient)
        )
        assert response.status_code == 409
        assert "already approved" in response.json()["message"]

class TestStatusEndpoints:

    def _book(self, client, patient, doctor, headers_for, on_date, slot="10:00 AM"):
        response = client.post(
            "/api/v1/appointments",
            json={"doctor_id": doctor.id, "date": on_date, "time_slot": slot},
            headers=headers_for(patient)
        )
        assert response.status_code == 201
        return response.json()["id"]

    def test_competing_requests_single_approval(self, client, doctor, patient, other_patient,
                                                headers_for, future_date):
        """Test two pending requests, one approval, and a refused second approval."""
        first = self._book(client, patient, doctor, headers_for, future_date)
        second = self._book(client, other_patient, doctor, headers_for, future_date)

        response = client.put(
            f"/api/v1/appointments/{first}/status",
            json={"status": "APPROVED"},
            headers=headers_for(doctor)
        )
        assert response.status_code == 200
        assert response.json()["status"] == "APPROVED"

        response = client.put(
            f"/api/v1/appointments/{second}/status",
            json={"status": "APPROVED"},
            headers=headers_for(doctor)
        )
        assert response.status_code == 409
        assert response.json()["error"] == "Conflict"

    def test_other_doctor_cannot_update(self, client, doctor, other_doctor, patient, headers_for, future_date):
        appointment_id = self._book(client, patient, doctor, headers_for, future_date)

        response = client.put(
            f"/api/v1/appointments/{appointment_id}/status",
            json={"status": "APPROVED"},
            headers=headers_for(other_doctor)
        )
        assert response.status_code == 403

    def test_invalid_status_value(self, client, doctor, patient, headers_for, future_date):
        appointment_id = self._book(client, patient, doctor, headers_for, future_date)

        response = client.put(
            f"/api/v1/appointments/{appointment_id}/status",
            json={"status": "RESCHEDULED"},
            headers=headers_for(doctor)
        )
        assert response.status_code == 422

    def test_patient_cancels_pending(self, client, doctor, patient, headers_for, future_date):
        """Test DELETE cancels and keeps the record."""
        appointment_id = self._book(client, patient, doctor, headers_for, future_date)

        response = client.delete(f"/api/v1/appointments/{appointment_id}", headers=headers_for(patient))
        assert response.status_code == 200

        data = response.json()
        assert data["message"] == "Appointment cancelled successfully."
        assert data["appointment"]["status"] == "CANCELLED"

        response = client.get(f"/api/v1/appointments/{appointment_id}", headers=headers_for(patient))
        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"

    def test_patient_cannot_cancel_approved(self, client, doctor, patient, headers_for, future_date):
        appointment_id = self._book(client, patient, doctor, headers_for, future_date)
        client.put(
            f"/api/v1/appointments/{appointment_id}/status",
            json={"status": "APPROVED"},
            headers=headers_for(doctor)
        )

        response = client.delete(f"/api/v1/appointments/{appointment_id}", headers=headers_for(patient))
        assert response.status_code == 403
        assert "approved" in response.json()["message"]

    def test_cancel_missing_appointment(self, client, patient, headers_for):
        response = client.delete("/api/v1/appointments/9999", headers=headers_for(patient))
        assert response.status_code == 404
        assert response.json()["message"] == "Appointment not found."

class TestListingEndpoints:

    def test_list_appointments(self, client, doctor, patient, other_patient, headers_for, future_date):
        """Test patients see their own bookings with doctor details."""
        for owner, slot in ((patient, "09:00 AM"), (other_patient, "09:15 AM")):
            client.post(
                "/api/v1/appointments",
                json={"doctor_id": doctor.id, "date": future_date, "time_slot": slot},
                headers=headers_for(owner)
            )

        response = client.get("/api/v1/appointments", headers=headers_for(patient))
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["doctor"]["name"] == "Emily Carter"

        response = client.get("/api/v1/appointments", headers=headers_for(doctor))
        assert len(response.json()) == 2

    def test_get_other_patients_appointment(self, client, doctor, patient, other_patient,
                                            headers_for, make_appointment):
        appointment = make_appointment(patient, doctor)

        response = client.get(f"/api/v1/appointments/{appointment.id}", headers=headers_for(other_patient))
        assert response.status_code == 403

    def test_list_doctors(self, client, doctor, patient, headers_for):
        response = client.get("/api/v1/doctors", headers=headers_for(patient))
        assert response.status_code == 200

        data = response.json()
        assert len(data) == 1
        assert data[0]["specialization"] == "Cardiology"
        assert data[0]["work_start"] == "09:00"
        assert data[0]["work_end"] == "17:00"

    def test_list_doctors_hours(self, client, other_doctor, patient, make_user, headers_for):
        """Test listed hours come from the profile, or the defaults when there is none."""
        make_user("Ada Novak", UserRole.DOCTOR, with_profile=False)

        response = client.get("/api/v1/doctors", headers=headers_for(patient))
        assert response.status_code == 200

        hours = {d["name"]: (d["work_start"], d["work_end"], d["specialization"]) for d in response.json()}
        assert hours["Ada Novak"] == ("09:00", "17:00", None)
        assert hours["Benjamin Lee"] == ("10:00", "12:00", None)

class TestAuthentication:

    def test_invalid_token(self, client, test_db):
        response = client.get("/api/v1/appointments", headers={"Authorization": "Bearer invalid_token"})
        assert response.status_code == 401

    def test_missing_token(self, client, test_db):
        response = client.get("/api/v1/appointments")
        assert response.status_code in (401, 403)

    def test_token_without_role(self, client, test_db):
        token = create_access_token({"sub": 1})
        response = client.get("/api/v1/appointments", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
