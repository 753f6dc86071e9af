from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required
from openstudents.extensions import db
from openstudents.models import Enrollment
from openstudents.helpers.enrollment import EnrollmentError, complete_enrollment
from openstudents.helpers.pricing import as_catalog_id
from openstudents.utils.auth import current_user, can_access_enrollment

bp = Blueprint("progress", __name__)


def _valid_progress(value):
    # the literal value sent, no coercion from floats or strings
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 100


@bp.route("/", methods=["POST"])
@jwt_required()
def update_progress():
    data = request.get_json(silent=True) or {}
    enrollment_id = as_catalog_id(data.get("enrollment_id"))
    progress = data.get("progress")

    if enrollment_id is None or progress is None:
        return jsonify({"success": False, "error": "Enrollment ID and progress are required"}), 400

    if not _valid_progress(progress):
        return jsonify({"success": False, "error": "Progress must be an integer between 0 and 100"}), 400

    enrollment = db.session.get(Enrollment, enrollment_id)
    if not enrollment:
        return jsonify({"success": False, "error": "Enrollment not found"}), 404
    if not can_access_enrollment(current_user(), enrollment):
        return jsonify({"success": False, "error": "Unauthorized"}), 403

    enrollment.progress = progress
    db.session.commit()

    if progress != 100:
        return jsonify({"success": True, "progress": progress}), 200

    try:
        certificate = complete_enrollment(enrollment.id)
    except EnrollmentError as e:
        current_app.logger.info(f"Progress 100 on enrollment {enrollment.id}: {e.message}")
        return jsonify({"success": False, "progress": progress, "error": e.message}), e.status_code

    return jsonify({"success": True, "progress": progress, "completed": True, "certificate": certificate}), 200
