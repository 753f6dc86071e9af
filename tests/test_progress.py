import pytest
from openstudents.extensions import db
from openstudents.models import Certificate, Enrollment
from conftest import headers_for, make_user


def post_progress(client, headers, enrollment_id, progress):
    return client.post("/progress/", json={"enrollment_id": enrollment_id, "progress": progress}, headers=headers)


def stored(enrollment_id):
    db.session.expire_all()
    return db.session.get(Enrollment, enrollment_id)


class TestProgressEndpoint:

    def test_partial_progress(self, client, auth_headers, paid_enrollment):
        response = post_progress(client, auth_headers, paid_enrollment.id, 40)
        assert response.status_code == 200
        assert response.get_json() == {"success": True, "progress": 40}
        assert stored(paid_enrollment.id).progress == 40
        assert Certificate.query.count() == 0

    @pytest.mark.parametrize("value", [-1, 101, 250, 50.5, "80", True])
    def test_invalid_values_leave_progress_unchanged(self, client, auth_headers, paid_enrollment, value):
        post_progress(client, auth_headers, paid_enrollment.id, 30)
        response = post_progress(client, auth_headers, paid_enrollment.id, value)
        assert response.status_code == 400
        assert stored(paid_enrollment.id).progress == 30

    def test_progress_can_go_down(self, client, auth_headers, paid_enrollment):
        post_progress(client, auth_headers, paid_enrollment.id, 80)
        post_progress(client, auth_headers, paid_enrollment.id, 20)
        assert stored(paid_enrollment.id).progress == 20

    def test_hundred_triggers_completion(self, client, auth_headers, paid_enrollment):
        response = post_progress(client, auth_headers, paid_enrollment.id, 100)
        assert response.status_code == 200
        body = response.get_json()
        assert body["completed"] is True
        assert body["certificate"]["certificate_number"].startswith("TOS-CERT-")
        assert body["certificate"]["email_sent"] is True

        enrollment = stored(paid_enrollment.id)
        assert enrollment.completed is True
        assert enrollment.progress == 100
        assert Certificate.query.filter_by(enrollment_id=enrollment.id).count() == 1

    def test_hundred_again_does_not_issue_second_certificate(self, client, auth_headers, paid_enrollment):
        post_progress(client, auth_headers, paid_enrollment.id, 100)
        post_progress(client, auth_headers, paid_enrollment.id, 60)
        response = post_progress(client, auth_headers, paid_enrollment.id, 100)

        assert response.status_code == 409
        assert response.get_json()["error"] == "Course already completed"
        assert stored(paid_enrollment.id).progress == 100
        assert Certificate.query.count() == 1

    def test_missing_fields(self, client, auth_headers):
        response = client.post("/progress/", json={"progress": 10}, headers=auth_headers)
        assert response.status_code == 400

    def test_unknown_enrollment(self, client, auth_headers):
        response = post_progress(client, auth_headers, 12345, 10)
        assert response.status_code == 404

    def test_other_users_enrollment(self, client, paid_enrollment):
        stranger = make_user(email="stranger@example.com")
        response = post_progress(client, headers_for(stranger), paid_enrollment.id, 10)
        assert response.status_code == 403
        assert stored(paid_enrollment.id).progress == 0

    def test_requires_token(self, client, paid_enrollment):
        response = client.post("/progress/", json={"enrollment_id": paid_enrollment.id, "progress": 10})
        assert response.status_code == 401

    @pytest.mark.parametrize("bad_id", [[1, 2], {"id": 1}, "abc", True, 0, -3])
    def test_malformed_enrollment_id(self, client, auth_headers, paid_enrollment, bad_id):
        response = post_progress(client, auth_headers, bad_id, 10)
        assert response.status_code == 400
        assert response.get_json()["error"] == "Enrollment ID and progress are required"
        assert stored(paid_enrollment.id).progress == 0

    def test_pending_payment_still_completes(self, client, auth_headers, enrollment):
        # completion is gated on ownership, not payment status
        response = post_progress(client, auth_headers, enrollment.id, 100)
        assert response.status_code == 200
        completed = stored(enrollment.id)
        assert completed.completed is True
        assert completed.payment_status == "pending"
