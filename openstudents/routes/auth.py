from urllib.parse import urlencode
from flask import Blueprint, request, jsonify, render_template, current_app
from flask_jwt_extended import create_access_token
from openstudents.extensions import db
from openstudents.models import User
from openstudents.helpers.settings_cache import get_env_override
from openstudents.utils.mailer import send_email

bp = Blueprint("auth", __name__)


def _send_verification_email(user, token):
    site_url = get_env_override("SITE_URL") or current_app.config.get("SITE_URL")
    query = urlencode({"email": user.email, "token": token})
    verification_link = f"{site_url.rstrip('/')}/auth/verify-email?{query}"

    context = {"full_name": user.display_name, "verification_link": verification_link}
    send_email(
        to=user.email,
        subject="Verify Your Email - The OPEN Students",
        body=render_template("emails/verify_email.txt", **context),
        html=render_template("emails/verify_email.html", **context),
    )


@bp.route("/register", methods=["POST"])
def register():
    data = request.get_json(silent=True) or {}
    full_name = (data.get("full_name") or "").strip()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password")

    if not all([full_name, email, password]):
        return jsonify({"success": False, "error": "Email, password, and full name required"}), 400

    if User.query.filter_by(email=email).first():
        return jsonify({"success": False, "error": "User already exists"}), 409

    user = User(
        full_name=full_name,
        email=email,
        phone=data.get("phone"),
        country=data.get("country"),
        age_range=data.get("age_range"),
        role="student",
    )
    user.set_password(password)
    token = user.issue_verification_token()
    db.session.add(user)
    db.session.flush()

    try:
        _send_verification_email(user, token)
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Verification email failed for {email}: {e}")
        return jsonify({"success": False, "error": "Unable to send verification email"}), 500

    db.session.commit()
    return jsonify({
        "success": True,
        "message": "Registration successful. Please check your email to verify your account.",
        "user": user.to_dict(),
    }), 201


@bp.route("/verify-email", methods=["GET"])
def verify_email():
    email = (request.args.get("email") or "").strip().lower()
    token = request.args.get("token")

    if not email or not token:
        return jsonify({"success": False, "error": "Email and verification token are required", "verified": False}), 400

    user = User.query.filter_by(email=email).first()
    if not user:
        return jsonify({"success": False, "error": "User not found", "verified": False}), 400

    if user.email_verified:
        return jsonify({"success": True, "verified": True, "message": "Email already verified"}), 200

    ok, error = user.confirm_verification_token(token)
    if not ok:
        return jsonify({"success": False, "error": error, "verified": False}), 400

    db.session.commit()
    return jsonify({"success": True, "verified": True, "email": email}), 200


@bp.route("/resend-verification", methods=["POST"])
def resend_verification():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()

    if not email:
        return jsonify({"success": False, "error": "Email is required"}), 400

    user = User.query.filter_by(email=email).first()
    if not user:
        return jsonify({"success": False, "error": "User not found"}), 404

    if user.email_verified:
        return jsonify({"success": False, "error": "Email already verified"}), 400

    token = user.issue_verification_token()
    db.session.commit()

    try:
        _send_verification_email(user, token)
    except Exception as e:
        current_app.logger.error(f"Resend verification email failed for {email}: {e}")
        return jsonify({"success": False, "error": "Failed to send verification email"}), 500

    return jsonify({"success": True, "message": "Verification email sent. Please check your inbox."}), 200


@bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"success": False, "error": "Missing JSON data"}), 400

    email = (data.get("email") or "").strip().lower()
    password = data.get("password")

    if not email or not password:
        return jsonify({"success": False, "error": "Email and password required"}), 400

    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        return jsonify({"success": False, "error": "Invalid credentials"}), 401

    if not user.email_verified:
        return jsonify({
            "success": False,
            "error": "Please verify your email before logging in",
            "email_not_verified": True,
            "email": email,
        }), 403

    if not user.is_active:
        return jsonify({"success": False, "error": "Account suspended"}), 403

    access_token = create_access_token(identity=str(user.id), additional_claims={"role": user.role})
    return jsonify({"success": True, "access_token": access_token, "user": user.to_dict()}), 200
