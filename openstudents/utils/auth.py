from functools import wraps
from flask import jsonify
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from openstudents.extensions import db
from openstudents.models import User


def current_user():
    """Return the User behind the request's JWT, or None."""
    identity = get_jwt_identity()
    if identity is None:
        return None
    try:
        return db.session.get(User, int(identity))
    except (TypeError, ValueError):
        return None


def role_required(*roles):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            user = current_user()
            if not user or not user.is_active:
                return jsonify({"success": False, "error": "Not authenticated"}), 401
            if user.role not in roles:
                return jsonify({"success": False, "error": "Unauthorized"}), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def can_access_enrollment(user, enrollment):
    return user is not None and (user.role == "admin" or enrollment.user_id == user.id)
