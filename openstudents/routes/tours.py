from flask import Blueprint, request, jsonify
from openstudents.extensions import db
from openstudents.models import Tour
from openstudents.helpers.catalog import (
    CatalogValidationError,
    apply_fields,
    parse_bool,
    parse_date,
    parse_int,
    parse_price,
)
from openstudents.utils.auth import role_required

bp = Blueprint("tours", __name__)

TOUR_SCHEMA = {
    "title": None,
    "description": None,
    "location": None,
    "state": None,
    "date": parse_date,
    "price_ngn": parse_price,
    "price_usd": parse_price,
    "max_participants": parse_int,
    "thumbnail_url": None,
    "is_active": parse_bool,
}


@bp.route("/", methods=["GET"])
def list_tours():
    tours = Tour.query.filter_by(is_active=True).order_by(Tour.date.asc()).all()
    return jsonify([t.to_dict() for t in tours])


@bp.route("/<int:tour_id>", methods=["GET"])
def get_tour(tour_id):
    tour = db.session.get(Tour, tour_id)
    if not tour:
        return jsonify({"success": False, "error": "Tour not found"}), 404
    return jsonify(tour.to_dict())


@bp.route("/", methods=["POST"])
@role_required("admin")
def create_tour():
    data = request.get_json(silent=True) or {}
    try:
        tour = apply_fields(Tour(), data, TOUR_SCHEMA, creating=True)
    except CatalogValidationError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    db.session.add(tour)
    db.session.commit()
    return jsonify(tour.to_dict()), 201


@bp.route("/<int:tour_id>", methods=["PUT"])
@role_required("admin")
def update_tour(tour_id):
    tour = db.session.get(Tour, tour_id)
    if not tour:
        return jsonify({"success": False, "error": "Tour not found"}), 404

    data = request.get_json(silent=True) or {}
    try:
        apply_fields(tour, data, TOUR_SCHEMA)
    except CatalogValidationError as e:
        db.session.rollback()
        return jsonify({"success": False, "error": str(e)}), 400

    db.session.commit()
    return jsonify(tour.to_dict()), 200


@bp.route("/<int:tour_id>", methods=["DELETE"])
@role_required("admin")
def delete_tour(tour_id):
    tour = db.session.get(Tour, tour_id)
    if not tour:
        return jsonify({"success": False, "error": "Tour not found"}), 404

    if tour.enrollments:
        tour.is_active = False
        db.session.commit()
        return jsonify({"success": True, "message": "Tour has enrollments and was deactivated"}), 200

    db.session.delete(tour)
    db.session.commit()
    return jsonify({"success": True, "message": "Tour deleted"}), 200
