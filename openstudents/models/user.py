import secrets
from datetime import datetime, timedelta
from werkzeug.security import generate_password_hash, check_password_hash
from openstudents.extensions import db

VERIFICATION_TOKEN_TTL = timedelta(hours=24)


class User(db.Model):
    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=True)
    role = db.Column(db.Enum("student", "admin", name="user_role"), nullable=False, default="student")
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Profile fields
    phone = db.Column(db.String(50), nullable=True)
    country = db.Column(db.String(80), nullable=True)
    age_range = db.Column(db.String(20), nullable=True)

    email_verified = db.Column(db.Boolean, default=False, nullable=False)
    verification_token = db.Column(db.String(64), nullable=True)
    verification_token_expires_at = db.Column(db.DateTime, nullable=True)

    enrollments = db.relationship("Enrollment", back_populates="student")
    certificates = db.relationship("Certificate", back_populates="user")
    lesson_progress = db.relationship("LessonProgress", back_populates="student")

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        if not self.password_hash or not password:
            return False
        return check_password_hash(self.password_hash, password)

    def issue_verification_token(self):
        """Generate a fresh email verification token valid for 24 hours."""
        self.verification_token = secrets.token_hex(32)
        self.verification_token_expires_at = datetime.utcnow() + VERIFICATION_TOKEN_TTL
        return self.verification_token

    def confirm_verification_token(self, token):
        if not self.verification_token or not token:
            return False, "Invalid verification token"
        if not secrets.compare_digest(self.verification_token, token):
            return False, "Invalid verification token"
        if not self.verification_token_expires_at or self.verification_token_expires_at < datetime.utcnow():
            return False, "Verification token has expired"

        self.email_verified = True
        self.verification_token = None
        self.verification_token_expires_at = None
        return True, None

    @property
    def display_name(self):
        return (self.full_name or "").strip() or "Student"

    def to_dict(self):
        return {
            "id": self.id,
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "country": self.country,
            "age_range": self.age_range,
            "role": self.role,
            "is_active": self.is_active,
            "email_verified": self.email_verified,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<User {self.email}>"
