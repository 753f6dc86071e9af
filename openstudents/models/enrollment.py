from openstudents.extensions import db
from datetime import datetime

PAYMENT_PENDING = "pending"
PAYMENT_COMPLETED = "completed"
PAYMENT_FAILED = "failed"

PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_COMPLETED, PAYMENT_FAILED)
CURRENCIES = ("NGN", "USD")
ENROLLMENT_TYPES = ("course", "tour", "combo")


class Enrollment(db.Model):
    __tablename__ = "enrollment"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    course_id = db.Column(db.Integer, db.ForeignKey("course.id"), nullable=True)
    tour_id = db.Column(db.Integer, db.ForeignKey("tour.id"), nullable=True)
    combo_key = db.Column(db.String(60), nullable=True)

    # idempotency key shared with Paystack
    payment_reference = db.Column(db.String(120), unique=True, nullable=False)
    payment_status = db.Column(
        db.Enum(*PAYMENT_STATUSES, name="payment_status"),
        nullable=False,
        default=PAYMENT_PENDING,
    )
    amount_paid = db.Column(db.Numeric(12, 2), nullable=False)
    currency = db.Column(db.Enum(*CURRENCIES, name="currency"), nullable=False)
    enrollment_type = db.Column(db.Enum(*ENROLLMENT_TYPES, name="enrollment_type"), nullable=False)

    progress = db.Column(db.Integer, nullable=False, default=0)
    completed = db.Column(db.Boolean, nullable=False, default=False)
    completed_at = db.Column(db.DateTime, nullable=True)
    certificate_sent = db.Column(db.Boolean, nullable=False, default=False)
    certificate_sent_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint("progress >= 0 AND progress <= 100", name="ck_enrollment_progress_range"),
    )

    student = db.relationship("User", back_populates="enrollments")
    course = db.relationship("Course", back_populates="enrollments")
    tour = db.relationship("Tour", back_populates="enrollments")
    certificate = db.relationship("Certificate", back_populates="enrollment", uselist=False)

    @property
    def is_pending(self):
        return self.payment_status == PAYMENT_PENDING

    @property
    def program_name(self):
        if self.course is not None:
            return self.course.title
        if self.tour is not None:
            return self.tour.title
        if self.combo_key:
            return self.combo_key.replace("-", " ").title()
        return "Program"

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "course_id": self.course_id,
            "tour_id": self.tour_id,
            "combo_key": self.combo_key,
            "program_name": self.program_name,
            "payment_reference": self.payment_reference,
            "payment_status": self.payment_status,
            "amount_paid": float(self.amount_paid) if self.amount_paid is not None else None,
            "currency": self.currency,
            "enrollment_type": self.enrollment_type,
            "progress": self.progress,
            "completed": self.completed,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "certificate_sent": self.certificate_sent,
            "certificate_sent_at": self.certificate_sent_at.isoformat() if self.certificate_sent_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Enrollment {self.payment_reference} {self.payment_status}>"
