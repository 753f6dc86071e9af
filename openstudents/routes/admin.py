from flask import Blueprint, jsonify, request, current_app
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from openstudents.extensions import db
from openstudents.models import AdminSettings, Certificate, Course, Enrollment, Tour, TripPlan, TripUpdate, User
from openstudents.models.enrollment import PAYMENT_COMPLETED, PAYMENT_STATUSES
from openstudents.helpers.catalog import CatalogValidationError, apply_fields, parse_date
from openstudents.helpers.settings_cache import get_settings_cache
from openstudents.utils.auth import role_required

bp = Blueprint("admin", __name__)


@bp.route("/overview", methods=["GET"])
@role_required("admin")
def analytics_overview():
    """Return analytics summary for admin dashboard"""
    status_counts = dict(
        db.session.query(Enrollment.payment_status, func.count(Enrollment.id))
        .group_by(Enrollment.payment_status)
        .all()
    )

    revenue = (
        db.session.query(Enrollment.currency, func.sum(Enrollment.amount_paid))
        .filter(Enrollment.payment_status == PAYMENT_COMPLETED)
        .group_by(Enrollment.currency)
        .all()
    )

    recent = Enrollment.query.order_by(Enrollment.created_at.desc()).limit(5).all()

    return jsonify({
        "stats": {
            "students": User.query.filter_by(role="student").count(),
            "courses": Course.query.count(),
            "tours": Tour.query.count(),
            "enrollments": sum(status_counts.values()),
            "enrollments_by_status": {s: status_counts.get(s, 0) for s in PAYMENT_STATUSES},
            "completions": Enrollment.query.filter_by(completed=True).count(),
            "certificates": Certificate.query.count(),
        },
        "revenue": {currency: float(total or 0) for currency, total in revenue},
        "recent_activity": [
            {
                "text": f"{e.student.display_name if e.student else 'Someone'} enrolled in {e.program_name}",
                "payment_status": e.payment_status,
                "date": e.created_at.isoformat() if e.created_at else None,
            }
            for e in recent
        ],
    }), 200


@bp.route("/enrollments", methods=["GET"])
@role_required("admin")
def list_enrollments():
    query = Enrollment.query
    status = request.args.get("status")
    if status:
        if status not in PAYMENT_STATUSES:
            return jsonify({"success": False, "error": "Invalid status filter"}), 400
        query = query.filter_by(payment_status=status)

    enrollments = query.order_by(Enrollment.created_at.desc()).all()
    result = []
    for e in enrollments:
        item = e.to_dict()
        item["student_name"] = e.student.display_name if e.student else None
        item["student_email"] = e.student.email if e.student else None
        result.append(item)
    return jsonify({"total": len(result), "enrollments": result}), 200


@bp.route("/students", methods=["GET"])
@role_required("admin")
def list_students():
    students = User.query.filter_by(role="student").order_by(User.created_at.desc()).all()
    result = []
    for s in students:
        item = s.to_dict()
        item["courses_enrolled"] = len(s.enrollments)
        item["program_titles"] = [e.program_name for e in s.enrollments if e.payment_status == PAYMENT_COMPLETED]
        result.append(item)
    return jsonify({"total_students": len(result), "students": result}), 200


@bp.route("/students/<int:student_id>/status", methods=["PATCH"])
@role_required("admin")
def update_student_status(student_id):
    data = request.get_json(silent=True) or {}
    action = (data.get("action") or "").lower()

    if action not in ["activate", "suspend"]:
        return jsonify({"success": False, "error": "Invalid or missing 'action'. Use 'activate' or 'suspend'."}), 400

    student = User.query.filter_by(id=student_id, role="student").first()
    if not student:
        return jsonify({"success": False, "error": "Student not found"}), 404

    student.is_active = action == "activate"
    db.session.commit()
    return jsonify({"success": True, "is_active": student.is_active}), 200


@bp.route("/certificates", methods=["GET"])
@role_required("admin")
def list_certificates():
    certificates = Certificate.query.order_by(Certificate.issued_at.desc()).all()
    result = []
    for c in certificates:
        item = c.to_dict(include_artifact=False)
        item["student_name"] = c.user.display_name if c.user else None
        result.append(item)
    return jsonify({"total": len(result), "certificates": result}), 200


def _environment_defaults():
    return {
        "PAYSTACK_PUBLIC_KEY": current_app.config.get("PAYSTACK_PUBLIC_KEY") or "",
        "PAYSTACK_SECRET_KEY": current_app.config.get("PAYSTACK_SECRET_KEY") or "",
        "SITE_URL": current_app.config.get("SITE_URL") or "",
    }


@bp.route("/settings", methods=["GET"])
@role_required("admin")
def get_settings():
    settings = get_settings_cache().get()
    settings["environment_defaults"] = _environment_defaults()
    return jsonify(settings), 200


@bp.route("/settings", methods=["POST"])
@role_required("admin")
def save_settings():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"success": False, "error": "Invalid or missing JSON body"}), 400

    cache = get_settings_cache()
    try:
        settings = AdminSettings.query.first()
        if not settings:
            settings = AdminSettings()
            db.session.add(settings)
        settings.apply(data)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Settings save error: {e}")
        return jsonify({"success": False, "error": "Failed to save settings"}), 503
    finally:
        cache.invalidate()

    return jsonify(settings.to_dict()), 200


@bp.route("/settings", methods=["DELETE"])
@role_required("admin")
def delete_settings():
    cache = get_settings_cache()
    try:
        AdminSettings.query.delete()
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Settings delete error: {e}")
        return jsonify({"success": False, "error": "Failed to reset settings"}), 503
    finally:
        cache.clear()

    return jsonify({"success": True}), 200


TRIP_SCHEMA = {
    "title": None,
    "description": None,
    "state": None,
    "location": None,
}

TRIP_UPDATE_SCHEMA = {
    "title": None,
    "description": None,
    "image_url": None,
    "image_name": None,
    "date": parse_date,
}


def _add_trip_update(trip, data):
    if not isinstance(data, dict):
        raise CatalogValidationError("Each trip update must be an object")
    update = TripUpdate()
    # updates are free-form log entries, no title required
    apply_fields(update, data, TRIP_UPDATE_SCHEMA)
    trip.updates.append(update)
    return update


@bp.route("/trips", methods=["GET"])
@role_required("admin")
def list_trips():
    trips = TripPlan.query.order_by(TripPlan.created_at.desc()).all()
    return jsonify([t.to_dict() for t in trips]), 200


@bp.route("/trips", methods=["POST"])
@role_required("admin")
def create_trip():
    data = request.get_json(silent=True) or {}
    try:
        trip = apply_fields(TripPlan(), data, TRIP_SCHEMA, creating=True)
        updates = data.get("updates") or []
        if not isinstance(updates, list):
            raise CatalogValidationError("'updates' must be a list")
        for item in updates:
            _add_trip_update(trip, item)
    except CatalogValidationError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    db.session.add(trip)
    db.session.commit()
    return jsonify(trip.to_dict()), 201


@bp.route("/trips/<int:trip_id>", methods=["PUT"])
@role_required("admin")
def update_trip(trip_id):
    trip = db.session.get(TripPlan, trip_id)
    if not trip:
        return jsonify({"success": False, "error": "Trip not found"}), 404

    try:
        apply_fields(trip, request.get_json(silent=True) or {}, TRIP_SCHEMA)
    except CatalogValidationError as e:
        db.session.rollback()
        return jsonify({"success": False, "error": str(e)}), 400

    db.session.commit()
    return jsonify(trip.to_dict()), 200


@bp.route("/trips/<int:trip_id>/updates", methods=["POST"])
@role_required("admin")
def add_trip_update(trip_id):
    trip = db.session.get(TripPlan, trip_id)
    if not trip:
        return jsonify({"success": False, "error": "Trip not found"}), 404

    try:
        _add_trip_update(trip, request.get_json(silent=True))
    except CatalogValidationError as e:
        db.session.rollback()
        return jsonify({"success": False, "error": str(e)}), 400

    db.session.commit()
    return jsonify(trip.to_dict()), 201


@bp.route("/trips/<int:trip_id>", methods=["DELETE"])
@role_required("admin")
def delete_trip(trip_id):
    trip = db.session.get(TripPlan, trip_id)
    if not trip:
        return jsonify({"success": False, "error": "Trip not found"}), 404

    db.session.delete(trip)
    db.session.commit()
    return jsonify({"success": True, "message": "Trip deleted"}), 200
