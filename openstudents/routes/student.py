from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from openstudents.extensions import db
from openstudents.models import Certificate
from openstudents.utils.auth import current_user

bp = Blueprint("students", __name__)

PROFILE_FIELDS = ("full_name", "phone", "country", "age_range")


@bp.route("/profile", methods=["GET"])
@jwt_required()
def get_profile():
    user = current_user()
    if not user:
        return jsonify({"success": False, "error": "Not authenticated"}), 401
    return jsonify({"success": True, "profile": user.to_dict()}), 200


@bp.route("/profile", methods=["PUT"])
@jwt_required()
def update_profile():
    user = current_user()
    if not user:
        return jsonify({"success": False, "error": "Not authenticated"}), 401

    data = request.get_json(silent=True) or {}
    for field in PROFILE_FIELDS:
        if field in data:
            value = data[field]
            setattr(user, field, value.strip() if isinstance(value, str) else value)

    if not (user.full_name or "").strip():
        db.session.rollback()
        return jsonify({"success": False, "error": "Full name cannot be empty"}), 400

    db.session.commit()
    return jsonify({"success": True, "profile": user.to_dict()}), 200


@bp.route("/certificates", methods=["GET"])
@jwt_required()
def my_certificates():
    user = current_user()
    if not user:
        return jsonify({"success": False, "error": "Not authenticated"}), 401

    certificates = (
        Certificate.query.filter_by(user_id=user.id)
        .order_by(Certificate.issued_at.desc())
        .all()
    )
    return jsonify({"success": True, "certificates": [c.to_dict() for c in certificates]}), 200
