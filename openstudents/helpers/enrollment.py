"""Payment reconciliation and course completion.

Both payment paths (Paystack webhook and client-triggered verification) call
``reconcile_payment``. It only ever moves a ``pending`` enrollment, so
whichever path arrives first decides the outcome and the other one observes
a settled row.
"""
from datetime import datetime
from flask import current_app
from sqlalchemy.exc import IntegrityError
from openstudents.extensions import db
from openstudents.models import Certificate, Enrollment
from openstudents.models.enrollment import PAYMENT_COMPLETED, PAYMENT_FAILED
from openstudents.helpers.pricing import amounts_match
from openstudents.utils.certificates import (
    format_completion_date,
    generate_certificate_number,
    render_certificate_svg,
    send_certificate_email,
    svg_data_uri,
)

CERTIFICATE_NUMBER_ATTEMPTS = 5


class EnrollmentError(Exception):
    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class EnrollmentNotFound(EnrollmentError):
    status_code = 404

    def __init__(self, message="Enrollment not found"):
        super().__init__(message)


class EnrollmentAlreadyCompleted(EnrollmentError):
    status_code = 409

    def __init__(self, message="Course already completed"):
        super().__init__(message)


def find_by_reference(reference):
    return Enrollment.query.filter_by(payment_reference=reference).first()


def reconcile_payment(enrollment, amount_minor, currency):
    """Settle a pending enrollment against gateway truth.

    Returns True when the gateway amount/currency match what was stored.
    Settled enrollments are left untouched.
    """
    matched = amounts_match(enrollment, amount_minor, currency)

    if not enrollment.is_pending:
        current_app.logger.info(
            f"Enrollment {enrollment.payment_reference} already {enrollment.payment_status}, nothing to reconcile"
        )
        return matched

    enrollment.payment_status = PAYMENT_COMPLETED if matched else PAYMENT_FAILED
    db.session.commit()

    if matched:
        current_app.logger.info(f"Payment {enrollment.payment_reference} confirmed")
    else:
        current_app.logger.warning(
            f"Payment mismatch for {enrollment.payment_reference}: "
            f"got {amount_minor} {currency}, expected {enrollment.amount_paid} {enrollment.currency}"
        )
    return matched


def mark_payment_failed(enrollment):
    if enrollment.is_pending:
        enrollment.payment_status = PAYMENT_FAILED
        db.session.commit()


def _unused_certificate_number():
    for _ in range(CERTIFICATE_NUMBER_ATTEMPTS):
        number = generate_certificate_number()
        if not Certificate.query.filter_by(certificate_number=number).first():
            return number
    raise RuntimeError("Could not generate a unique certificate number")


def complete_enrollment(enrollment_id):
    """Finish an enrollment, issue its certificate and email it.

    Raises EnrollmentNotFound or EnrollmentAlreadyCompleted. Email failure
    leaves the enrollment completed with ``certificate_sent`` false.
    """
    enrollment = db.session.get(Enrollment, enrollment_id)
    if enrollment is None:
        raise EnrollmentNotFound()
    if enrollment.completed:
        raise EnrollmentAlreadyCompleted()

    student = enrollment.student
    student_name = student.display_name if student else "Student"
    program_name = enrollment.program_name

    now = datetime.utcnow()
    enrollment.completed = True
    enrollment.progress = 100
    enrollment.completed_at = now

    certificate_number = _unused_certificate_number()
    svg = render_certificate_svg(
        student_name=student_name,
        program_name=program_name,
        completion_date=format_completion_date(now),
        certificate_number=certificate_number,
    )
    certificate_url = svg_data_uri(svg)

    db.session.add(Certificate(
        enrollment_id=enrollment.id,
        user_id=enrollment.user_id,
        certificate_number=certificate_number,
        certificate_url=certificate_url,
        issued_at=now,
    ))

    try:
        db.session.commit()
    except IntegrityError:
        # a concurrent request issued the certificate first
        db.session.rollback()
        raise EnrollmentAlreadyCompleted()

    current_app.logger.info(f"Issued certificate {certificate_number} for enrollment {enrollment.id}")

    email_sent = send_certificate_email(
        student.email if student else None,
        student_name,
        program_name,
        certificate_url,
    )
    if email_sent:
        enrollment.certificate_sent = True
        enrollment.certificate_sent_at = datetime.utcnow()
        db.session.commit()

    return {
        "certificate_number": certificate_number,
        "certificate_url": certificate_url,
        "email_sent": email_sent,
    }
