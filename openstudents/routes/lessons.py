from datetime import datetime
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required
from sqlalchemy.exc import IntegrityError
from openstudents.extensions import db
from openstudents.models import Course, CourseModule, Enrollment, Lesson, LessonProgress
from openstudents.models.content import LESSON_CONTENT_TYPES
from openstudents.models.enrollment import PAYMENT_COMPLETED
from openstudents.helpers.catalog import CatalogValidationError, apply_fields, parse_choice, parse_int
from openstudents.helpers.pricing import as_catalog_id
from openstudents.utils.auth import current_user, can_access_enrollment, role_required

bp = Blueprint("lessons", __name__)


def _parse_order(value, field):
    return parse_int(value, field) or 0


MODULE_SCHEMA = {
    "title": None,
    "description": None,
    "order_index": _parse_order,
}

LESSON_SCHEMA = {
    "title": None,
    "description": None,
    "content_type": parse_choice(LESSON_CONTENT_TYPES),
    "content": None,
    "content_url": None,
    "duration_minutes": parse_int,
    "order_index": _parse_order,
}


# Admin: full outline of a course
@bp.route("/course/<int:course_id>", methods=["GET"])
@role_required("admin")
def course_outline(course_id):
    course = db.session.get(Course, course_id)
    if not course:
        return jsonify({"success": False, "error": "Course not found"}), 404
    return jsonify({
        "success": True,
        "course": {"id": course.id, "title": course.title},
        "modules": [m.to_dict(include_lessons=True) for m in course.modules],
    }), 200


@bp.route("/modules", methods=["POST"])
@role_required("admin")
def create_module():
    data = request.get_json(silent=True) or {}
    course_id = as_catalog_id(data.get("course_id"))
    if course_id is None:
        return jsonify({"success": False, "error": "Course ID is required"}), 400

    course = db.session.get(Course, course_id)
    if not course:
        return jsonify({"success": False, "error": "Course does not exist"}), 404

    try:
        module = apply_fields(CourseModule(course_id=course.id), data, MODULE_SCHEMA, creating=True)
    except CatalogValidationError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    db.session.add(module)
    db.session.commit()
    return jsonify(module.to_dict()), 201


@bp.route("/modules/<int:module_id>", methods=["PUT"])
@role_required("admin")
def update_module(module_id):
    module = db.session.get(CourseModule, module_id)
    if not module:
        return jsonify({"success": False, "error": "Module not found"}), 404

    try:
        apply_fields(module, request.get_json(silent=True) or {}, MODULE_SCHEMA)
    except CatalogValidationError as e:
        db.session.rollback()
        return jsonify({"success": False, "error": str(e)}), 400

    db.session.commit()
    return jsonify(module.to_dict()), 200


@bp.route("/modules/<int:module_id>", methods=["DELETE"])
@role_required("admin")
def delete_module(module_id):
    module = db.session.get(CourseModule, module_id)
    if not module:
        return jsonify({"success": False, "error": "Module not found"}), 404

    # lessons and their progress go with it
    db.session.delete(module)
    db.session.commit()
    return jsonify({"success": True, "message": "Module deleted"}), 200


@bp.route("/", methods=["POST"])
@role_required("admin")
def create_lesson():
    data = request.get_json(silent=True) or {}
    module_id = as_catalog_id(data.get("module_id"))
    if module_id is None:
        return jsonify({"success": False, "error": "Module ID is required"}), 400

    module = db.session.get(CourseModule, module_id)
    if not module:
        return jsonify({"success": False, "error": "Module does not exist"}), 404

    try:
        lesson = apply_fields(Lesson(module_id=module.id), data, LESSON_SCHEMA, creating=True)
    except CatalogValidationError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    db.session.add(lesson)
    db.session.commit()
    return jsonify(lesson.to_dict()), 201


@bp.route("/<int:lesson_id>", methods=["PUT"])
@role_required("admin")
def update_lesson(lesson_id):
    lesson = db.session.get(Lesson, lesson_id)
    if not lesson:
        return jsonify({"success": False, "error": "Lesson not found"}), 404

    try:
        apply_fields(lesson, request.get_json(silent=True) or {}, LESSON_SCHEMA)
    except CatalogValidationError as e:
        db.session.rollback()
        return jsonify({"success": False, "error": str(e)}), 400

    db.session.commit()
    return jsonify(lesson.to_dict()), 200


@bp.route("/<int:lesson_id>", methods=["DELETE"])
@role_required("admin")
def delete_lesson(lesson_id):
    lesson = db.session.get(Lesson, lesson_id)
    if not lesson:
        return jsonify({"success": False, "error": "Lesson not found"}), 404

    db.session.delete(lesson)
    db.session.commit()
    return jsonify({"success": True, "message": "Lesson deleted"}), 200


def _learning_enrollment(enrollment_id):
    """Resolve an enrollment whose course content the caller may open.

    Returns ``(enrollment, None)`` or ``(None, error_response)``.
    """
    enrollment = db.session.get(Enrollment, enrollment_id)
    if not enrollment:
        return None, (jsonify({"success": False, "error": "Enrollment not found"}), 404)

    user = current_user()
    if not can_access_enrollment(user, enrollment):
        return None, (jsonify({"success": False, "error": "Unauthorized"}), 403)
    if enrollment.course is None:
        return None, (jsonify({"success": False, "error": "Enrollment has no course content"}), 400)
    if user.role != "admin" and enrollment.payment_status != PAYMENT_COMPLETED:
        return None, (jsonify({"success": False, "error": "Payment not completed"}), 403)
    return enrollment, None


# Learner: modules and lessons of an enrolled course, with completion marks
@bp.route("/enrollment/<int:enrollment_id>", methods=["GET"])
@jwt_required()
def enrollment_lessons(enrollment_id):
    enrollment, error = _learning_enrollment(enrollment_id)
    if error:
        return error

    course = enrollment.course
    done = {
        p.lesson_id
        for p in LessonProgress.query.filter_by(
            user_id=enrollment.user_id, course_id=course.id, is_completed=True
        ).all()
    }

    modules = []
    total = completed = 0
    for module in course.modules:
        item = module.to_dict()
        item["lessons"] = []
        for lesson in module.lessons:
            lesson_data = lesson.to_dict()
            lesson_data["completed"] = lesson.id in done
            item["lessons"].append(lesson_data)
            total += 1
            completed += lesson_data["completed"]
        modules.append(item)

    return jsonify({
        "success": True,
        "course": {"id": course.id, "title": course.title},
        "progress": enrollment.progress,
        "completed_lessons": completed,
        "total_lessons": total,
        "modules": modules,
    }), 200


def _lesson_for(enrollment, lesson_id):
    lesson = db.session.get(Lesson, lesson_id)
    if not lesson or lesson.module.course_id != enrollment.course_id:
        return None
    return lesson


@bp.route("/<int:lesson_id>/complete", methods=["POST"])
@jwt_required()
def mark_complete(lesson_id):
    data = request.get_json(silent=True) or {}
    enrollment_id = as_catalog_id(data.get("enrollment_id"))
    if enrollment_id is None:
        return jsonify({"success": False, "error": "Enrollment ID is required"}), 400

    enrollment, error = _learning_enrollment(enrollment_id)
    if error:
        return error

    lesson = _lesson_for(enrollment, lesson_id)
    if not lesson:
        return jsonify({"success": False, "error": "Lesson not found"}), 404

    progress = LessonProgress.query.filter_by(user_id=enrollment.user_id, lesson_id=lesson.id).first()
    if progress and progress.is_completed:
        return jsonify({"success": True, "message": "Lesson already marked as complete"}), 200

    if not progress:
        progress = LessonProgress(user_id=enrollment.user_id, lesson_id=lesson.id)
        db.session.add(progress)
    progress.course_id = enrollment.course_id
    progress.is_completed = True
    progress.completed_at = datetime.utcnow()

    try:
        db.session.commit()
    except IntegrityError:
        # a concurrent request recorded it first
        db.session.rollback()
        current_app.logger.info(f"Lesson {lesson.id} already recorded for user {enrollment.user_id}")

    return jsonify({"success": True, "message": "Lesson marked as complete"}), 200


@bp.route("/<int:lesson_id>/uncomplete", methods=["POST"])
@jwt_required()
def uncomplete_lesson(lesson_id):
    data = request.get_json(silent=True) or {}
    enrollment_id = as_catalog_id(data.get("enrollment_id"))
    if enrollment_id is None:
        return jsonify({"success": False, "error": "Enrollment ID is required"}), 400

    enrollment, error = _learning_enrollment(enrollment_id)
    if error:
        return error

    lesson = _lesson_for(enrollment, lesson_id)
    if not lesson:
        return jsonify({"success": False, "error": "Lesson not found"}), 404

    progress = LessonProgress.query.filter_by(user_id=enrollment.user_id, lesson_id=lesson.id).first()
    if not progress:
        return jsonify({"success": False, "error": "Progress record not found"}), 404

    progress.is_completed = False
    progress.completed_at = None
    db.session.commit()
    return jsonify({"success": True, "message": "Lesson marked as incomplete"}), 200
