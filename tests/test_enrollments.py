from decimal import Decimal
from unittest.mock import patch
from openstudents.extensions import db
from openstudents.models import Enrollment
from conftest import headers_for, make_enrollment, make_user


def create(client, headers, **overrides):
    payload = {"course_id": None, "currency": "NGN", "amount": 1, "reference": "TOS-100"}
    payload.update(overrides)
    return client.post("/enrollments/", json=payload, headers=headers)


class TestEnrollmentCreation:

    def test_requires_authentication(self, client, course):
        response = create(client, {}, course_id=course.id)
        assert response.status_code == 401

    def test_course_price_comes_from_catalog(self, client, auth_headers, course):
        response = create(client, auth_headers, course_id=course.id, amount=1)
        assert response.status_code == 201
        body = response.get_json()
        assert body["success"] is True

        db.session.expire_all()
        enrollment = db.session.get(Enrollment, body["data"]["id"])
        assert enrollment.amount_paid == Decimal("5000")
        assert enrollment.currency == "NGN"
        assert enrollment.enrollment_type == "course"
        assert enrollment.payment_status == "pending"

    def test_tour_price_in_usd(self, client, auth_headers, tour):
        response = create(client, auth_headers, tour_id=tour.id, currency="usd", amount=999)
        assert response.status_code == 201

        db.session.expire_all()
        enrollment = db.session.get(Enrollment, response.get_json()["data"]["id"])
        assert enrollment.amount_paid == Decimal("12")
        assert enrollment.currency == "USD"
        assert enrollment.enrollment_type == "tour"

    def test_full_suite_combo_ignores_client_amount(self, client, auth_headers):
        response = create(client, auth_headers, course_id="full-suite", currency="USD", amount=1)
        assert response.status_code == 201

        db.session.expire_all()
        enrollment = db.session.get(Enrollment, response.get_json()["data"]["id"])
        assert enrollment.amount_paid == Decimal("25")
        assert enrollment.enrollment_type == "combo"
        assert enrollment.combo_key == "full-suite"

    def test_prefixed_combo_key(self, client, auth_headers):
        response = create(client, auth_headers, course_id="combo:creative-combo")
        assert response.status_code == 201

        db.session.expire_all()
        enrollment = db.session.get(Enrollment, response.get_json()["data"]["id"])
        assert enrollment.amount_paid == Decimal("12000")

    def test_same_reference_twice_reuses_pending_row(self, client, auth_headers, course):
        first = create(client, auth_headers, course_id=course.id, reference="TOS-DUP")
        second = create(client, auth_headers, course_id=course.id, reference="TOS-DUP")

        assert first.status_code == 201
        assert second.status_code == 200
        assert first.get_json()["data"]["id"] == second.get_json()["data"]["id"]
        assert Enrollment.query.filter_by(payment_reference="TOS-DUP").count() == 1

    def test_settled_reference_cannot_be_reused(self, client, auth_headers, student, course):
        make_enrollment(student, course, reference="TOS-DONE", status="completed")
        response = create(client, auth_headers, course_id=course.id, reference="TOS-DONE")
        assert response.status_code == 409
        assert Enrollment.query.filter_by(payment_reference="TOS-DONE").count() == 1

    def test_other_users_reference_is_rejected(self, client, course):
        owner = make_user(email="owner@example.com")
        make_enrollment(owner, course, reference="TOS-OWNED")
        intruder = make_user(email="intruder@example.com")

        response = create(client, headers_for(intruder), course_id=course.id, reference="TOS-OWNED")
        assert response.status_code == 409

    def test_reference_is_generated_when_missing(self, client, auth_headers, course):
        response = create(client, auth_headers, course_id=course.id, reference=None)
        assert response.status_code == 201
        assert response.get_json()["data"]["reference"].startswith("TOS-")

    def test_unknown_course_is_invalid_price(self, client, auth_headers):
        response = create(client, auth_headers, course_id=9999)
        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid price for selected enrollment"
        assert Enrollment.query.count() == 0

    def test_zero_price_rejected(self, client, auth_headers, course):
        course.price_ngn = Decimal("0")
        db.session.commit()
        response = create(client, auth_headers, course_id=course.id)
        assert response.status_code == 400

    def test_unknown_combo_rejected(self, client, auth_headers):
        response = create(client, auth_headers, course_id="mystery-combo")
        assert response.status_code == 400

    def test_missing_target(self, client, auth_headers):
        response = create(client, auth_headers)
        assert response.status_code == 400
        assert response.get_json()["error"] == "Course or tour is required"

    def test_non_numeric_amount(self, client, auth_headers, course):
        response = create(client, auth_headers, course_id=course.id, amount="5000")
        assert response.status_code == 400

    def test_unsupported_currency(self, client, auth_headers, course):
        response = create(client, auth_headers, course_id=course.id, currency="EUR")
        assert response.status_code == 400

    def test_database_unavailable(self, client, auth_headers, course):
        with patch("openstudents.routes.enrollments.connect_db_with_retry", return_value=False):
            response = create(client, auth_headers, course_id=course.id)
        assert response.status_code == 503
        assert Enrollment.query.count() == 0


class TestEnrollmentListing:

    def test_lists_only_own_enrollments(self, client, auth_headers, student, course):
        make_enrollment(student, course, reference="TOS-MINE")
        other = make_user(email="other@example.com")
        make_enrollment(other, course, reference="TOS-THEIRS")

        response = client.get("/enrollments/", headers=auth_headers)
        references = [e["payment_reference"] for e in response.get_json()["enrollments"]]
        assert references == ["TOS-MINE"]

    def test_get_foreign_enrollment_forbidden(self, client, course):
        owner = make_user(email="owner@example.com")
        enrollment = make_enrollment(owner, course)
        stranger = make_user(email="stranger@example.com")

        response = client.get(f"/enrollments/{enrollment.id}", headers=headers_for(stranger))
        assert response.status_code == 403

    def test_admin_can_read_any_enrollment(self, client, admin_headers, enrollment):
        response = client.get(f"/enrollments/{enrollment.id}", headers=admin_headers)
        assert response.status_code == 200
        assert response.get_json()["enrollment"]["payment_reference"] == "TOS-123"
