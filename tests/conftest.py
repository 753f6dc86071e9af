import json
import pytest
from decimal import Decimal
from flask_jwt_extended import create_access_token
from openstudents import create_app
from openstudents.extensions import db
from openstudents.models import Course, Enrollment, Tour, User
from openstudents.utils.paystack import compute_signature


@pytest.fixture
def app():
    """Create application for testing"""
    app = create_app("testing")

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(email="student@example.com", full_name="Ada Obi", role="student", verified=True, password="password123"):
    user = User(email=email, full_name=full_name, role=role, email_verified=verified)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


def headers_for(user):
    token = create_access_token(identity=str(user.id), additional_claims={"role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def student(app):
    return make_user()


@pytest.fixture
def admin_user(app):
    return make_user(email="admin@example.com", full_name="Site Admin", role="admin")


@pytest.fixture
def auth_headers(student):
    return headers_for(student)


@pytest.fixture
def admin_headers(admin_user):
    return headers_for(admin_user)


@pytest.fixture
def course(app):
    course = Course(
        title="Creative Writing",
        description="Words that move people",
        category="writing",
        price_ngn=Decimal("5000"),
        price_usd=Decimal("4.99"),
    )
    db.session.add(course)
    db.session.commit()
    return course


@pytest.fixture
def tour(app):
    tour = Tour(title="Lagos Heritage Walk", price_ngn=Decimal("15000"), price_usd=Decimal("12"))
    db.session.add(tour)
    db.session.commit()
    return tour


def make_enrollment(user, course=None, reference="TOS-123", amount="5000", currency="NGN", status="pending", **kwargs):
    kwargs.setdefault("enrollment_type", "course" if course else "combo")
    enrollment = Enrollment(
        user_id=user.id,
        course_id=course.id if course else None,
        payment_reference=reference,
        payment_status=status,
        amount_paid=Decimal(amount),
        currency=currency,
        **kwargs,
    )
    db.session.add(enrollment)
    db.session.commit()
    return enrollment


@pytest.fixture
def enrollment(student, course):
    return make_enrollment(student, course)


@pytest.fixture
def paid_enrollment(student, course):
    return make_enrollment(student, course, reference="TOS-PAID", status="completed")


def signed_webhook(client, payload, secret="sk_test_openstudents", signature=None):
    body = json.dumps(payload).encode("utf-8")
    if signature is None:
        signature = compute_signature(body, secret)
    return client.post(
        "/payments/webhook",
        data=body,
        headers={"x-paystack-signature": signature, "Content-Type": "application/json"},
    )
