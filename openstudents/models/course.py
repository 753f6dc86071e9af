from decimal import Decimal
from openstudents.extensions import db
from datetime import datetime

COURSE_CATEGORIES = ("writing", "graphics", "video", "speaking", "leadership", "storytelling")


class PricedMixin:
    """Catalog rows carry one price per supported currency."""

    def price_for(self, currency):
        if currency == "NGN":
            value = self.price_ngn
        elif currency == "USD":
            value = self.price_usd
        else:
            return None
        if value is None:
            return None
        return Decimal(str(value))


class Course(PricedMixin, db.Model):
    __tablename__ = "course"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(160), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    category = db.Column(db.Enum(*COURSE_CATEGORIES, name="course_category"), nullable=True)
    price_ngn = db.Column(db.Numeric(12, 2), nullable=True)
    price_usd = db.Column(db.Numeric(12, 2), nullable=True)
    duration_weeks = db.Column(db.Integer, nullable=True)
    thumbnail_url = db.Column(db.String(255))
    google_classroom_link = db.Column(db.String(255))
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    enrollments = db.relationship("Enrollment", back_populates="course")
    modules = db.relationship(
        "CourseModule",
        back_populates="course",
        order_by="CourseModule.order_index",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "price_ngn": float(self.price_ngn) if self.price_ngn is not None else None,
            "price_usd": float(self.price_usd) if self.price_usd is not None else None,
            "duration_weeks": self.duration_weeks,
            "thumbnail_url": self.thumbnail_url,
            "google_classroom_link": self.google_classroom_link,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Tour(PricedMixin, db.Model):
    __tablename__ = "tour"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(160), nullable=False)
    description = db.Column(db.Text)
    location = db.Column(db.String(160))
    state = db.Column(db.String(80))
    date = db.Column(db.DateTime, nullable=True)
    price_ngn = db.Column(db.Numeric(12, 2), nullable=True)
    price_usd = db.Column(db.Numeric(12, 2), nullable=True)
    max_participants = db.Column(db.Integer, nullable=True)
    current_participants = db.Column(db.Integer, default=0)
    thumbnail_url = db.Column(db.String(255))
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    enrollments = db.relationship("Enrollment", back_populates="tour")

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "state": self.state,
            "date": self.date.isoformat() if self.date else None,
            "price_ngn": float(self.price_ngn) if self.price_ngn is not None else None,
            "price_usd": float(self.price_usd) if self.price_usd is not None else None,
            "max_participants": self.max_participants,
            "current_participants": self.current_participants,
            "thumbnail_url": self.thumbnail_url,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
