from .user import User
from .course import Course, Tour
from .enrollment import Enrollment
from .certificate import Certificate
from .settings import AdminSettings, Subscriber
from .content import CourseModule, Lesson, LessonProgress
from .trip import TripPlan, TripUpdate
