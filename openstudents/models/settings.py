from sqlalchemy.ext.mutable import MutableDict, MutableList
from openstudents.extensions import db
from datetime import datetime

# Keys an admin may override at runtime instead of redeploying
OVERRIDABLE_ENV_KEYS = ("PAYSTACK_PUBLIC_KEY", "PAYSTACK_SECRET_KEY", "SITE_URL")


class AdminSettings(db.Model):
    __tablename__ = "admin_settings"

    id = db.Column(db.Integer, primary_key=True)
    logo_url = db.Column(db.String(255))
    logo_name = db.Column(db.String(120))
    homepage_slider = db.Column(MutableList.as_mutable(db.JSON), default=list)
    site_settings = db.Column(MutableDict.as_mutable(db.JSON), default=dict)
    environment_variables = db.Column(MutableDict.as_mutable(db.JSON), default=dict)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def apply(self, data):
        """Merge a partial settings payload into this row."""
        if "logo_url" in data:
            self.logo_url = data["logo_url"]
        if "logo_name" in data:
            self.logo_name = data["logo_name"]
        if isinstance(data.get("homepage_slider"), list):
            self.homepage_slider = [
                {"image_url": s.get("image_url"), "caption": s.get("caption")}
                for s in data["homepage_slider"]
                if isinstance(s, dict)
            ]
        if isinstance(data.get("site_settings"), dict):
            merged = dict(self.site_settings or {})
            merged.update(data["site_settings"])
            self.site_settings = merged
        if isinstance(data.get("environment_variables"), dict):
            merged = dict(self.environment_variables or {})
            for key, value in data["environment_variables"].items():
                if key in OVERRIDABLE_ENV_KEYS:
                    merged[key] = value
            self.environment_variables = merged

    def to_dict(self):
        return {
            "logo_url": self.logo_url,
            "logo_name": self.logo_name,
            "homepage_slider": list(self.homepage_slider or []),
            "site_settings": dict(self.site_settings or {}),
            "environment_variables": dict(self.environment_variables or {}),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class Subscriber(db.Model):
    __tablename__ = "subscriber"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120))
    email = db.Column(db.String(120), unique=True, nullable=False)
    location = db.Column(db.String(120))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
