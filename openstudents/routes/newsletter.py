from flask import Blueprint, request, jsonify
from openstudents.extensions import db
from openstudents.models import Subscriber
from openstudents.utils.db import connect_db_with_retry

bp = Blueprint("newsletter", __name__)


@bp.route("/", methods=["POST"])
def subscribe():
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    if not email or not isinstance(email, str):
        return jsonify({"success": False, "error": "Email is required"}), 400

    if not connect_db_with_retry():
        return jsonify({"success": False, "error": "Database unavailable"}), 503

    email = email.strip().lower()
    subscriber = Subscriber.query.filter_by(email=email).first()
    if subscriber:
        subscriber.name = data.get("name") or subscriber.name
        subscriber.location = data.get("location") or subscriber.location
    else:
        db.session.add(Subscriber(name=data.get("name"), email=email, location=data.get("location")))

    db.session.commit()
    return jsonify({"success": True}), 200
