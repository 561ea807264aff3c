# app/routers/course.py
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import get_current_principal, get_optional_principal
from app.schemas.auth import Principal
from app.schemas.course import (
    CourseListResponse,
    CourseResponse,
    OwnedCoursesResponse,
)
from app.schemas.lesson import CourseLessonsResponse
from app.services.course import CourseService
from app.services.entitlement import EntitlementService
from app.services.lesson import LessonService

router = APIRouter(
    prefix="/courses",
    tags=["Courses"],
    responses={404: {"description": "Not found"}},
)


@router.get("/", response_model=CourseListResponse)
def list_courses(db: Session = Depends(get_db)):
    """
    Get published courses in catalog order.
    Available to all users (authenticated or not).
    """
    courses = CourseService(db).list_published_courses()
    return {"courses": courses, "total": len(courses)}


@router.get("/owned", response_model=OwnedCoursesResponse)
def list_owned_course_ids(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Ids of the courses the current user has purchased"""
    return {"course_ids": EntitlementService(db).get_owned_course_ids(principal.id)}


@router.get("/mine", response_model=CourseListResponse)
def list_my_courses(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Courses the current user has access to"""
    courses = CourseService(db).list_owned_courses(principal.id)
    return {"courses": courses, "total": len(courses)}


@router.get("/{course_id}", response_model=CourseResponse)
def get_course(course_id: str, db: Session = Depends(get_db)):
    """Get a published course by ID"""
    return CourseService(db).get_published_course(course_id)


@router.get("/{course_id}/lessons", response_model=CourseLessonsResponse)
def list_course_lessons(
    course_id: str,
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal),
):
    """
    Get the lessons of a published course.
    Preview lessons are always readable; the rest require a purchase.
    """
    return LessonService(db).get_lessons_for_viewer(course_id, principal)
