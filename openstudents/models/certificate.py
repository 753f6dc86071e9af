from openstudents.extensions import db
from datetime import datetime


class Certificate(db.Model):
    __tablename__ = "certificate"

    id = db.Column(db.Integer, primary_key=True)
    # one certificate per enrollment
    enrollment_id = db.Column(db.Integer, db.ForeignKey("enrollment.id"), unique=True, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    certificate_number = db.Column(db.String(60), unique=True, nullable=False)
    certificate_url = db.Column(db.Text, nullable=False)
    issued_at = db.Column(db.DateTime, default=datetime.utcnow)

    enrollment = db.relationship("Enrollment", back_populates="certificate")
    user = db.relationship("User", back_populates="certificates")

    def to_dict(self, include_artifact=True):
        data = {
            "id": self.id,
            "enrollment_id": self.enrollment_id,
            "user_id": self.user_id,
            "certificate_number": self.certificate_number,
            "program_name": self.enrollment.program_name if self.enrollment else None,
            "issued_at": self.issued_at.isoformat() if self.issued_at else None,
        }
        if include_artifact:
            data["certificate_url"] = self.certificate_url
        return data

    def __repr__(self):
        return f"<Certificate {self.certificate_number}>"
