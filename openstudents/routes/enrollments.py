from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required
from sqlalchemy.exc import IntegrityError
from openstudents.extensions import db
from openstudents.models import Enrollment
from openstudents.models.enrollment import CURRENCIES, ENROLLMENT_TYPES, PAYMENT_PENDING
from openstudents.helpers.pricing import as_catalog_id, resolve_enrollment_target, is_valid_price
from openstudents.helpers.enrollment import EnrollmentError, complete_enrollment, find_by_reference
from openstudents.utils.auth import current_user, can_access_enrollment
from openstudents.utils.db import connect_db_with_retry
from openstudents.utils.paystack import generate_payment_reference

bp = Blueprint("enrollments", __name__)


def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@bp.route("/", methods=["POST"])
@jwt_required()
def create_enrollment():
    """Create (or reuse) the pending enrollment behind a Paystack checkout."""
    user = current_user()
    if not user:
        return jsonify({"success": False, "error": "Not authenticated"}), 401

    data = request.get_json(silent=True) or {}
    course_id = data.get("course_id")
    tour_id = data.get("tour_id")
    reference = (data.get("reference") or "").strip() or generate_payment_reference()
    currency = str(data.get("currency") or "").strip().upper()
    amount = data.get("amount")

    if not currency or not _is_number(amount) or amount <= 0:
        return jsonify({"success": False, "error": "Missing enrollment details"}), 400

    if currency not in CURRENCIES:
        return jsonify({"success": False, "error": "Unsupported currency"}), 400

    if not course_id and not tour_id:
        return jsonify({"success": False, "error": "Course or tour is required"}), 400

    if not connect_db_with_retry():
        return jsonify({"success": False, "error": "Database unavailable"}), 503

    target = resolve_enrollment_target(course_id, tour_id, currency)
    if not is_valid_price(target["price"]):
        return jsonify({"success": False, "error": "Invalid price for selected enrollment"}), 400

    existing = find_by_reference(reference)
    if existing:
        if existing.payment_status == PAYMENT_PENDING and existing.user_id == user.id:
            return jsonify({"success": True, "data": {"id": existing.id, "reference": reference}}), 200
        return jsonify({"success": False, "error": "Payment reference already used"}), 409

    enrollment_type = data.get("enrollment_type")
    if enrollment_type not in ENROLLMENT_TYPES:
        enrollment_type = target["type"]

    enrollment = Enrollment(
        user_id=user.id,
        course_id=target["course"].id if target["course"] else None,
        tour_id=target["tour"].id if target["tour"] else None,
        combo_key=target["combo_key"],
        payment_reference=reference,
        payment_status=PAYMENT_PENDING,
        amount_paid=target["price"],
        currency=currency,
        enrollment_type=enrollment_type,
    )
    db.session.add(enrollment)

    try:
        db.session.commit()
    except IntegrityError:
        # another request claimed the reference between lookup and insert
        db.session.rollback()
        existing = find_by_reference(reference)
        if existing and existing.payment_status == PAYMENT_PENDING and existing.user_id == user.id:
            return jsonify({"success": True, "data": {"id": existing.id, "reference": reference}}), 200
        return jsonify({"success": False, "error": "Payment reference already used"}), 409

    current_app.logger.info(
        f"Created pending enrollment {enrollment.id} ({reference}) for {enrollment.amount_paid} {currency}"
    )
    return jsonify({"success": True, "data": {"id": enrollment.id, "reference": reference}}), 201


@bp.route("/", methods=["GET"])
@jwt_required()
def list_enrollments():
    user = current_user()
    if not user:
        return jsonify({"success": False, "error": "Not authenticated"}), 401

    enrollments = (
        Enrollment.query.filter_by(user_id=user.id)
        .order_by(Enrollment.created_at.desc())
        .all()
    )
    return jsonify({"success": True, "enrollments": [e.to_dict() for e in enrollments]}), 200


@bp.route("/<int:enrollment_id>", methods=["GET"])
@jwt_required()
def get_enrollment(enrollment_id):
    enrollment = db.session.get(Enrollment, enrollment_id)
    if not enrollment:
        return jsonify({"success": False, "error": "Enrollment not found"}), 404
    if not can_access_enrollment(current_user(), enrollment):
        return jsonify({"success": False, "error": "Unauthorized"}), 403
    return jsonify({"success": True, "enrollment": enrollment.to_dict()}), 200


@bp.route("/complete", methods=["POST"])
@jwt_required()
def complete_course():
    data = request.get_json(silent=True) or {}
    enrollment_id = as_catalog_id(data.get("enrollment_id"))

    if enrollment_id is None:
        return jsonify({"success": False, "error": "Enrollment ID is required"}), 400

    enrollment = db.session.get(Enrollment, enrollment_id)
    if not enrollment:
        return jsonify({"success": False, "error": "Enrollment not found"}), 404
    if not can_access_enrollment(current_user(), enrollment):
        return jsonify({"success": False, "error": "Unauthorized"}), 403

    try:
        result = complete_enrollment(enrollment.id)
    except EnrollmentError as e:
        return jsonify({"success": False, "error": e.message}), e.status_code

    return jsonify({"success": True, "data": result}), 200
