import time
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from openstudents.extensions import db
from openstudents.models import AdminSettings

DEFAULT_SETTINGS = {
    "logo_url": None,
    "logo_name": None,
    "homepage_slider": [],
    "site_settings": {},
    "environment_variables": {},
    "updated_at": None,
}


class SettingsCache:
    """Read-through cache for the single AdminSettings row.

    Entries expire after ``ttl`` seconds and writers call ``invalidate``.
    When the database cannot be read, the last value read is served if there
    is one, otherwise ``DEFAULT_SETTINGS``.
    """

    def __init__(self, ttl=60, clock=time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._value = None
        self._loaded_at = None

    def init_app(self, app):
        self.ttl = app.config.get("SETTINGS_CACHE_TTL", self.ttl)
        app.extensions["settings_cache"] = self

    def _fresh(self):
        return self._loaded_at is not None and (self._clock() - self._loaded_at) < self.ttl

    def get(self):
        if self._fresh():
            return dict(self._value)

        try:
            row = AdminSettings.query.first()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Settings fetch error, serving fallback: {e}")
            return dict(self._value if self._value is not None else DEFAULT_SETTINGS)

        self._value = row.to_dict() if row else dict(DEFAULT_SETTINGS)
        self._loaded_at = self._clock()
        return dict(self._value)

    def invalidate(self):
        self._loaded_at = None

    def clear(self):
        self._value = None
        self._loaded_at = None


def get_settings_cache():
    return current_app.extensions["settings_cache"]


def get_env_override(key):
    value = (get_settings_cache().get().get("environment_variables") or {}).get(key)
    return value if isinstance(value, str) and value else None


def get_paystack_secret():
    """Admin-configured secret first, then the environment."""
    return get_env_override("PAYSTACK_SECRET_KEY") or current_app.config.get("PAYSTACK_SECRET_KEY") or ""
