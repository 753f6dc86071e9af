from flask import Blueprint, request, jsonify
from openstudents.extensions import db
from openstudents.models import Course
from openstudents.models.course import COURSE_CATEGORIES
from openstudents.helpers.catalog import (
    CatalogValidationError,
    apply_fields,
    parse_bool,
    parse_int,
    parse_price,
    parse_text,
)
from openstudents.helpers.pricing import COMBO_PRICES
from openstudents.utils.auth import role_required

bp = Blueprint("courses", __name__)


def _parse_category(value, field):
    if value in (None, ""):
        return None
    if value not in COURSE_CATEGORIES:
        raise CatalogValidationError(f"'{field}' must be one of {', '.join(COURSE_CATEGORIES)}")
    return value


COURSE_SCHEMA = {
    "title": None,
    "description": lambda value, field: parse_text(value, field) or "",
    "category": _parse_category,
    "price_ngn": parse_price,
    "price_usd": parse_price,
    "duration_weeks": parse_int,
    "thumbnail_url": None,
    "google_classroom_link": None,
    "is_active": parse_bool,
}


# List all active courses
@bp.route("/", methods=["GET"])
def list_courses():
    query = Course.query.filter_by(is_active=True)
    category = request.args.get("category")
    if category:
        query = query.filter_by(category=category)
    courses = query.order_by(Course.created_at.desc()).all()
    return jsonify([c.to_dict() for c in courses])


@bp.route("/combos", methods=["GET"])
def list_combos():
    return jsonify([
        {
            "key": key,
            "title": key.replace("-", " ").title(),
            "price_ngn": float(prices["NGN"]),
            "price_usd": float(prices["USD"]),
        }
        for key, prices in COMBO_PRICES.items()
    ])


@bp.route("/<int:course_id>", methods=["GET"])
def get_course(course_id):
    course = db.session.get(Course, course_id)
    if not course:
        return jsonify({"success": False, "error": "Course not found"}), 404
    return jsonify(course.to_dict())


@bp.route("/", methods=["POST"])
@role_required("admin")
def create_course():
    data = request.get_json(silent=True) or {}
    try:
        course = apply_fields(Course(description=""), data, COURSE_SCHEMA, creating=True)
    except CatalogValidationError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    db.session.add(course)
    db.session.commit()
    return jsonify(course.to_dict()), 201


@bp.route("/<int:course_id>", methods=["PUT"])
@role_required("admin")
def update_course(course_id):
    course = db.session.get(Course, course_id)
    if not course:
        return jsonify({"success": False, "error": "Course not found"}), 404

    data = request.get_json(silent=True) or {}
    try:
        apply_fields(course, data, COURSE_SCHEMA)
    except CatalogValidationError as e:
        db.session.rollback()
        return jsonify({"success": False, "error": str(e)}), 400

    db.session.commit()
    return jsonify(course.to_dict()), 200


@bp.route("/<int:course_id>", methods=["DELETE"])
@role_required("admin")
def delete_course(course_id):
    course = db.session.get(Course, course_id)
    if not course:
        return jsonify({"success": False, "error": "Course not found"}), 404

    # enrollments keep pointing at the course, so only hide it
    if course.enrollments:
        course.is_active = False
        db.session.commit()
        return jsonify({"success": True, "message": "Course has enrollments and was deactivated"}), 200

    db.session.delete(course)
    db.session.commit()
    return jsonify({"success": True, "message": "Course deleted"}), 200
