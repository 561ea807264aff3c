# app/services/course.py
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.decorator import db_exception
from app.models.course import Course
from app.models.user_course_access import UserCourseAccess
from app.schemas.course import CourseCreate, CourseUpdate
from app.services.checkout import is_valid_course_id


class CourseService:
    def __init__(self, db: Session):
        self.db = db

    # ==================== Catalog ====================

    def list_published_courses(self) -> List[Course]:
        """Published courses in catalog order"""
        return (
            self.db.query(Course)
            .filter(Course.is_published.is_(True))
            .order_by(Course.order_index.asc(), Course.created_at.asc())
            .all()
        )

    def get_course(self, course_id: str) -> Optional[Course]:
        """Get a course by ID, published or not"""
        if not is_valid_course_id(course_id):
            return None
        return self.db.query(Course).filter(Course.id == course_id).first()

    def get_published_course(self, course_id: str) -> Course:
        course = self.get_course(course_id)
        if not course or not course.is_published:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Course not found",
            )
        return course

    def list_owned_courses(self, user_id: str) -> List[Course]:
        """Courses the user holds access to"""
        return (
            self.db.query(Course)
            .join(UserCourseAccess, UserCourseAccess.course_id == Course.id)
            .filter(UserCourseAccess.user_id == user_id)
            .order_by(Course.order_index.asc(), Course.created_at.asc())
            .all()
        )

    # ==================== Administration ====================

    def list_all_courses(self) -> List[Course]:
        return (
            self.db.query(Course)
            .order_by(Course.order_index.asc(), Course.created_at.asc())
            .all()
        )

    @db_exception
    def create_course(self, course_in: CourseCreate) -> Course:
        """Create a new course (admin only); new courses start unpublished"""
        course = Course(
            **course_in.model_dump(),
            is_published=False,
            order_index=self._next_order_index(),
        )

        self.db.add(course)
        self.db.commit()
        self.db.refresh(course)

        return course

    @db_exception
    def update_course(self, course_id: str, course_in: CourseUpdate) -> Optional[Course]:
        """Update a course (admin only)"""
        course = self.get_course(course_id)
        if not course:
            return None

        # Update fields
        for field, value in course_in.model_dump(exclude_unset=True).items():
            if field == "title" and value is None:
                continue
            setattr(course, field, value)

        self.db.commit()
        self.db.refresh(course)

        return course

    @db_exception
    def toggle_publish(self, course_id: str) -> Optional[Course]:
        course = self.get_course(course_id)
        if not course:
            return None

        course.is_published = not course.is_published
        self.db.commit()
        self.db.refresh(course)

        return course

    @db_exception
    def delete_course(self, course_id: str) -> bool:
        """Delete a course and its lessons (admin only)"""
        course = self.get_course(course_id)
        if not course:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Course not found",
            )

        # Purchased courses stay: access rows are never removed
        sold = (
            self.db.query(UserCourseAccess.id)
            .filter(UserCourseAccess.course_id == course.id)
            .first()
        )
        if sold:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Course has been purchased and cannot be deleted; unpublish it instead",
            )

        self.db.delete(course)
        self.db.commit()

        return True

    def _next_order_index(self) -> int:
        current = self.db.query(func.max(Course.order_index)).scalar()
        return 0 if current is None else current + 1
