# app/services/lesson.py
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.decorator import db_exception
from app.models.lesson import Lesson
from app.schemas.auth import Principal
from app.schemas.lesson import (
    CourseLessonsResponse,
    LessonCreate,
    LessonUpdate,
    LessonViewerResponse,
)
from app.services.course import CourseService
from app.services.entitlement import EntitlementService


class LessonService:
    def __init__(self, db: Session):
        self.db = db
        self.courses = CourseService(db)

    def get_lessons(self, course_id: str) -> List[Lesson]:
        """Get all lessons for a course ordered by position"""
        return (
            self.db.query(Lesson)
            .filter(Lesson.course_id == course_id)
            .order_by(Lesson.order_index.asc())
            .all()
        )

    def get_lesson(self, lesson_id: str, course_id: str) -> Optional[Lesson]:
        return (
            self.db.query(Lesson)
            .filter(Lesson.id == lesson_id, Lesson.course_id == course_id)
            .first()
        )

    def get_lessons_for_viewer(
        self, course_id: str, principal: Optional[Principal]
    ) -> CourseLessonsResponse:
        """
        Lessons of a published course as a learner sees them.

        Content and video of non-preview lessons are withheld unless the
        principal holds access to the course.
        """
        course = self.courses.get_published_course(course_id)

        has_access = False
        if principal:
            has_access = EntitlementService(self.db).has_access(
                principal.id, course.id
            )

        lessons = []
        for lesson in self.get_lessons(course.id):
            unlocked = has_access or lesson.is_preview
            lessons.append(
                LessonViewerResponse(
                    id=lesson.id,
                    title=lesson.title,
                    is_preview=lesson.is_preview,
                    order_index=lesson.order_index,
                    locked=not unlocked,
                    content=lesson.content if unlocked else None,
                    video_url=lesson.video_url if unlocked else None,
                )
            )

        return CourseLessonsResponse(
            course_id=course.id, has_access=has_access, lessons=lessons
        )

    # ==================== Administration ====================

    @db_exception
    def create_lesson(self, course_id: str, lesson_in: LessonCreate) -> Lesson:
        """Append a new lesson to a course"""
        course = self.courses.get_course(course_id)
        if not course:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Course not found",
            )

        lesson = Lesson(
            course_id=course.id,
            order_index=self._next_order_index(course.id),
            **lesson_in.model_dump(),
        )

        self.db.add(lesson)
        self.db.commit()
        self.db.refresh(lesson)

        return lesson

    @db_exception
    def update_lesson(
        self, lesson_id: str, course_id: str, lesson_in: LessonUpdate
    ) -> Optional[Lesson]:
        lesson = self.get_lesson(lesson_id, course_id)
        if not lesson:
            return None

        for field, value in lesson_in.model_dump(exclude_unset=True).items():
            if field in ("title", "is_preview") and value is None:
                continue
            setattr(lesson, field, value)

        self.db.commit()
        self.db.refresh(lesson)

        return lesson

    @db_exception
    def delete_lesson(self, lesson_id: str, course_id: str) -> bool:
        lesson = self.get_lesson(lesson_id, course_id)
        if not lesson:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Lesson not found",
            )

        self.db.delete(lesson)
        self.db.commit()

        return True

    def _next_order_index(self, course_id: str) -> int:
        current = (
            self.db.query(func.max(Lesson.order_index))
            .filter(Lesson.course_id == course_id)
            .scalar()
        )
        return 0 if current is None else current + 1
