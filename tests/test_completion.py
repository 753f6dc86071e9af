import base64
from datetime import datetime
from smtplib import SMTPException
from unittest.mock import patch
import pytest
from openstudents.extensions import db, mail
from openstudents.models import Certificate, Enrollment
from openstudents.helpers.enrollment import (
    EnrollmentAlreadyCompleted,
    EnrollmentNotFound,
    complete_enrollment,
)
from openstudents.utils.certificates import (
    format_completion_date,
    generate_certificate_number,
    render_certificate_svg,
)
from conftest import headers_for, make_enrollment, make_user


def svg_from(uri):
    assert uri.startswith("data:image/svg+xml;base64,")
    return base64.b64decode(uri.split(",", 1)[1]).decode("utf-8")


class TestCompletionService:

    def test_completes_and_issues_certificate(self, app, paid_enrollment):
        with mail.record_messages() as outbox:
            result = complete_enrollment(paid_enrollment.id)

        db.session.expire_all()
        enrollment = db.session.get(Enrollment, paid_enrollment.id)
        assert enrollment.completed is True
        assert enrollment.progress == 100
        assert enrollment.completed_at is not None
        assert enrollment.certificate_sent is True
        assert enrollment.certificate_sent_at is not None

        certificate = Certificate.query.filter_by(enrollment_id=enrollment.id).one()
        assert certificate.certificate_number == result["certificate_number"]
        assert certificate.certificate_url == result["certificate_url"]
        assert result["email_sent"] is True

        svg = svg_from(result["certificate_url"])
        assert 'width="1200"' in svg and 'height="850"' in svg
        assert "Ada Obi" in svg
        assert "Creative Writing" in svg
        assert result["certificate_number"] in svg

        assert len(outbox) == 1
        assert outbox[0].recipients == ["student@example.com"]
        assert outbox[0].attachments[0].filename == "certificate.svg"

    def test_second_completion_is_rejected(self, app, paid_enrollment):
        complete_enrollment(paid_enrollment.id)
        with pytest.raises(EnrollmentAlreadyCompleted):
            complete_enrollment(paid_enrollment.id)
        assert Certificate.query.count() == 1

    def test_unknown_enrollment(self, app):
        with pytest.raises(EnrollmentNotFound):
            complete_enrollment(4242)

    def test_email_failure_keeps_completion(self, app, paid_enrollment):
        with patch("openstudents.utils.mailer.mail.send", side_effect=SMTPException("relay down")):
            result = complete_enrollment(paid_enrollment.id)

        assert result["email_sent"] is False
        db.session.expire_all()
        enrollment = db.session.get(Enrollment, paid_enrollment.id)
        assert enrollment.completed is True
        assert enrollment.certificate_sent is False
        assert enrollment.certificate_sent_at is None
        assert Certificate.query.count() == 1

    def test_fallback_labels(self, app):
        user = make_user(email="anon@example.com", full_name=" ")
        enrollment = make_enrollment(user, reference="TOS-ANON")
        result = complete_enrollment(enrollment.id)

        svg = svg_from(result["certificate_url"])
        assert ">Student<" in svg
        assert ">Program<" in svg

    def test_certificate_numbers_are_unique(self, app, student, course):
        numbers = set()
        for i in range(5):
            enrollment = make_enrollment(student, course, reference=f"TOS-U{i}")
            numbers.add(complete_enrollment(enrollment.id)["certificate_number"])
        assert len(numbers) == 5

    def test_colliding_number_is_redrawn(self, app, student, course):
        first = make_enrollment(student, course, reference="TOS-C1")
        taken = complete_enrollment(first.id)["certificate_number"]
        second = make_enrollment(student, course, reference="TOS-C2")

        with patch(
            "openstudents.helpers.enrollment.generate_certificate_number",
            side_effect=[taken, "TOS-CERT-1-FRESH1"],
        ):
            result = complete_enrollment(second.id)
        assert result["certificate_number"] == "TOS-CERT-1-FRESH1"


class TestCertificateRendering:

    def test_number_format(self):
        number = generate_certificate_number()
        prefix, cert, millis, suffix = number.split("-")
        assert (prefix, cert) == ("TOS", "CERT")
        assert millis.isdigit()
        assert len(suffix) == 6 and suffix.upper() == suffix

    def test_date_format(self):
        assert format_completion_date(datetime(2025, 3, 5)) == "March 5, 2025"

    def test_names_are_escaped(self, app):
        svg = render_certificate_svg("<Ada & Co>", "Speaking", "March 5, 2025", "TOS-CERT-1-ABCDEF")
        assert "&lt;Ada &amp; Co&gt;" in svg
        assert "<Ada" not in svg


class TestCompleteCourseEndpoint:

    def test_complete(self, client, auth_headers, paid_enrollment):
        response = client.post("/enrollments/complete", json={"enrollment_id": paid_enrollment.id}, headers=auth_headers)
        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["certificate_number"].startswith("TOS-CERT-")
        assert data["certificate_url"].startswith("data:image/svg+xml;base64,")
        assert data["email_sent"] is True

    def test_twice_returns_conflict(self, client, auth_headers, paid_enrollment):
        client.post("/enrollments/complete", json={"enrollment_id": paid_enrollment.id}, headers=auth_headers)
        response = client.post("/enrollments/complete", json={"enrollment_id": paid_enrollment.id}, headers=auth_headers)
        assert response.status_code == 409
        assert response.get_json()["error"] == "Course already completed"
        assert Certificate.query.count() == 1

    def test_missing_id(self, client, auth_headers):
        response = client.post("/enrollments/complete", json={}, headers=auth_headers)
        assert response.status_code == 400

    def test_not_found(self, client, auth_headers):
        response = client.post("/enrollments/complete", json={"enrollment_id": 999}, headers=auth_headers)
        assert response.status_code == 404

    def test_other_users_enrollment(self, client, paid_enrollment):
        stranger = make_user(email="stranger@example.com")
        response = client.post(
            "/enrollments/complete", json={"enrollment_id": paid_enrollment.id}, headers=headers_for(stranger)
        )
        assert response.status_code == 403
        assert Certificate.query.count() == 0

    @pytest.mark.parametrize("bad_id", [[1, 2], {"id": 1}, "abc", False])
    def test_malformed_id(self, client, auth_headers, paid_enrollment, bad_id):
        response = client.post("/enrollments/complete", json={"enrollment_id": bad_id}, headers=auth_headers)
        assert response.status_code == 400
        assert response.get_json()["error"] == "Enrollment ID is required"
        assert Certificate.query.count() == 0
