"""
Models package initialization
"""

from .course import Course
from .lesson import Lesson
from .user_course_access import UserCourseAccess
from .user_role import UserRole

# Make models available at package level
__all__ = [
    "Course",
    "Lesson",
    "UserCourseAccess",
    "UserRole",
]
