from openstudents.extensions import db
from datetime import datetime

LESSON_CONTENT_TYPES = ("video", "text", "quiz", "assignment")


class CourseModule(db.Model):
    __tablename__ = "course_module"

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey("course.id"), nullable=False)
    title = db.Column(db.String(160), nullable=False)
    description = db.Column(db.Text)
    order_index = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    course = db.relationship("Course", back_populates="modules")
    lessons = db.relationship(
        "Lesson",
        back_populates="module",
        order_by=lambda: (Lesson.order_index, Lesson.id),
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_lessons=False):
        data = {
            "id": self.id,
            "course_id": self.course_id,
            "title": self.title,
            "description": self.description,
            "order_index": self.order_index,
        }
        if include_lessons:
            data["lessons"] = [lesson.to_dict() for lesson in self.lessons]
        return data


class Lesson(db.Model):
    __tablename__ = "lesson"

    id = db.Column(db.Integer, primary_key=True)
    module_id = db.Column(db.Integer, db.ForeignKey("course_module.id"), nullable=False)
    title = db.Column(db.String(160), nullable=False)
    description = db.Column(db.Text)
    content_type = db.Column(db.Enum(*LESSON_CONTENT_TYPES, name="lesson_content_type"), nullable=False, default="text")
    content = db.Column(db.Text)
    content_url = db.Column(db.String(500))
    duration_minutes = db.Column(db.Integer, nullable=True)
    order_index = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    module = db.relationship("CourseModule", back_populates="lessons")
    progress = db.relationship("LessonProgress", back_populates="lesson", cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "module_id": self.module_id,
            "title": self.title,
            "description": self.description,
            "content_type": self.content_type,
            "content": self.content,
            "content_url": self.content_url,
            "duration_minutes": self.duration_minutes,
            "order_index": self.order_index,
        }


class LessonProgress(db.Model):
    __tablename__ = "lesson_progress"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    course_id = db.Column(db.Integer, db.ForeignKey("course.id"), nullable=True)
    lesson_id = db.Column(db.Integer, db.ForeignKey("lesson.id"), nullable=False)
    is_completed = db.Column(db.Boolean, nullable=False, default=False)
    completed_at = db.Column(db.DateTime)

    __table_args__ = (
        db.UniqueConstraint("user_id", "lesson_id", name="uq_lesson_progress_user_lesson"),
    )

    student = db.relationship("User", back_populates="lesson_progress")
    lesson = db.relationship("Lesson", back_populates="progress")
