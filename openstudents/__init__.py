from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix
from .config import config_by_name
from .extensions import db, migrate, jwt, mail
from .helpers.settings_cache import SettingsCache
from .routes import admin, auth, courses, enrollments, lessons, newsletter, payment, progress, student, tours


def register_error_handlers(app):
    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({"success": False, "error": error.description}), error.code

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.exception("Unhandled error")
        return jsonify({"success": False, "error": "Internal server error"}), 500


def register_jwt_handlers():
    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify({"success": False, "error": "Not authenticated"}), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return jsonify({"success": False, "error": "Not authenticated"}), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({"success": False, "error": "Session expired"}), 401


def create_app(config_name="development"):
    app = Flask(__name__)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)
    CORS(app, resources={r"/*": {"origins": "*"}})
    app.config.from_object(config_by_name.get(config_name, config_by_name["development"]))
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    mail.init_app(app)
    SettingsCache().init_app(app)

    register_jwt_handlers()
    register_error_handlers(app)

    # Register blueprints
    app.register_blueprint(auth.bp, url_prefix="/auth")
    app.register_blueprint(student.bp, url_prefix="/students")
    app.register_blueprint(courses.bp, url_prefix="/courses")
    app.register_blueprint(tours.bp, url_prefix="/tours")
    app.register_blueprint(lessons.bp, url_prefix="/lessons")
    app.register_blueprint(enrollments.bp, url_prefix="/enrollments")
    app.register_blueprint(progress.bp, url_prefix="/progress")
    app.register_blueprint(payment.bp, url_prefix="/payments")
    app.register_blueprint(admin.bp, url_prefix="/admin")
    app.register_blueprint(newsletter.bp, url_prefix="/newsletter")

    return app
