from openstudents.extensions import db
from datetime import datetime


class TripPlan(db.Model):
    """Upcoming trip an admin is planning, with a running log of updates."""
    __tablename__ = "trip_plan"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(160), nullable=False)
    description = db.Column(db.Text)
    state = db.Column(db.String(80))
    location = db.Column(db.String(160))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    updates = db.relationship(
        "TripUpdate",
        back_populates="trip",
        order_by=lambda: (TripUpdate.created_at, TripUpdate.id),
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "state": self.state,
            "location": self.location,
            "updates": [u.to_dict() for u in self.updates],
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class TripUpdate(db.Model):
    __tablename__ = "trip_update"

    id = db.Column(db.Integer, primary_key=True)
    trip_id = db.Column(db.Integer, db.ForeignKey("trip_plan.id"), nullable=False)
    title = db.Column(db.String(160))
    description = db.Column(db.Text)
    image_url = db.Column(db.String(500))
    image_name = db.Column(db.String(160))
    date = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    trip = db.relationship("TripPlan", back_populates="updates")

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "image_url": self.image_url,
            "image_name": self.image_name,
            "date": self.date.isoformat() if self.date else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
