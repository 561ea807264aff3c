# app/routers/admin.py

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import get_current_admin
from app.schemas.auth import Principal
from app.schemas.course import (
    CourseCreate,
    CourseListResponse,
    CourseResponse,
    CourseUpdate,
)
from app.schemas.lesson import (
    LessonCreate,
    LessonListResponse,
    LessonResponse,
    LessonUpdate,
)
from app.services.course import CourseService
from app.services.lesson import LessonService

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    responses={404: {"description": "Not found"}},
)


# ==================== Course Endpoints ====================


@router.get("/courses", response_model=CourseListResponse)
def list_all_courses(
    db: Session = Depends(get_db),
    current_admin: Principal = Depends(get_current_admin),
):
    """Get every course, published or draft"""
    courses = CourseService(db).list_all_courses()
    return {"courses": courses, "total": len(courses)}


@router.post("/courses", response_model=CourseResponse, status_code=201)
def create_course(
    course_in: CourseCreate,
    db: Session = Depends(get_db),
    current_admin: Principal = Depends(get_current_admin),
):
    """
    Create a new course.
    New courses are drafts until published.
    """
    return CourseService(db).create_course(course_in)


@router.patch("/courses/{course_id}", response_model=CourseResponse)
def update_course(
    course_id: str,
    course_in: CourseUpdate,
    db: Session = Depends(get_db),
    current_admin: Principal = Depends(get_current_admin),
):
    course = CourseService(db).update_course(course_id, course_in)

    if not course:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Course not found",
        )

    return course


@router.post("/courses/{course_id}/toggle-publish", response_model=CourseResponse)
def toggle_publish(
    course_id: str,
    db: Session = Depends(get_db),
    current_admin: Principal = Depends(get_current_admin),
):
    """Publish a draft course or hide a published one"""
    course = CourseService(db).toggle_publish(course_id)

    if not course:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Course not found",
        )

    return course


@router.delete("/courses/{course_id}", status_code=204)
def delete_course(
    course_id: str,
    db: Session = Depends(get_db),
    current_admin: Principal = Depends(get_current_admin),
):
    CourseService(db).delete_course(course_id)
    return None


# ==================== Lesson Endpoints ====================


@router.get("/courses/{course_id}/lessons", response_model=LessonListResponse)
def list_lessons(
    course_id: str,
    db: Session = Depends(get_db),
    current_admin: Principal = Depends(get_current_admin),
):
    """Get all lessons of a course, content included"""
    service = LessonService(db)
    if not service.courses.get_course(course_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Course not found",
        )

    lessons = service.get_lessons(course_id)
    return {"lessons": lessons, "total": len(lessons)}


@router.post(
    "/courses/{course_id}/lessons", response_model=LessonResponse, status_code=201
)
def create_lesson(
    course_id: str,
    lesson_in: LessonCreate,
    db: Session = Depends(get_db),
    current_admin: Principal = Depends(get_current_admin),
):
    """Append a lesson at the end of a course"""
    return LessonService(db).create_lesson(course_id, lesson_in)


@router.patch(
    "/courses/{course_id}/lessons/{lesson_id}", response_model=LessonResponse
)
def update_lesson(
    course_id: str,
    lesson_id: str,
    lesson_in: LessonUpdate,
    db: Session = Depends(get_db),
    current_admin: Principal = Depends(get_current_admin),
):
    lesson = LessonService(db).update_lesson(lesson_id, course_id, lesson_in)

    if not lesson:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Lesson not found",
        )

    return lesson


@router.delete("/courses/{course_id}/lessons/{lesson_id}", status_code=204)
def delete_lesson(
    course_id: str,
    lesson_id: str,
    db: Session = Depends(get_db),
    current_admin: Principal = Depends(get_current_admin),
):
    LessonService(db).delete_lesson(lesson_id, course_id)
    return None
