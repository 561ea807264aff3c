"""
Tests for the course administration endpoints
"""

import uuid

from app.models.course import Course
from app.models.lesson import Lesson
from conftest import (
    ADMIN_EMAIL,
    ADMIN_ID,
    auth_headers,
    grant,
    make_course,
    make_lesson,
)


def admin_headers():
    return auth_headers(user_id=ADMIN_ID, email=ADMIN_EMAIL)


# ==================== Access control ====================


def test_admin_requires_token(client, db_session, admin):
    response = client.get("/admin/courses")

    assert response.status_code == 401


def test_admin_requires_role(client, db_session, admin):
    """A regular learner cannot reach the admin panel"""
    response = client.get("/admin/courses", headers=auth_headers())

    assert response.status_code == 403
    assert response.json()["detail"] == "Admin access required"


def test_admin_lists_drafts(client, db_session, admin):
    make_course(db_session, title="Live")
    make_course(db_session, title="Draft", is_published=False, order_index=1)

    response = client.get("/admin/courses", headers=admin_headers())

    assert response.status_code == 200
    assert [c["title"] for c in response.json()["courses"]] == ["Live", "Draft"]


# ==================== Courses ====================


def test_create_course(client, db_session, admin):
    response = client.post(
        "/admin/courses",
        json={
            "title": "  Data Engineering  ",
            "description": "",
            "price_cents": 4900,
            "stripe_price_id": "price_de",
        },
        headers=admin_headers(),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "Data Engineering"
    assert data["description"] is None
    assert data["is_published"] is False
    assert data["order_index"] == 0
    uuid.UUID(data["id"])


def test_create_course_appends_to_catalog(client, db_session, admin):
    make_course(db_session, order_index=4)

    response = client.post(
        "/admin/courses", json={"title": "Next"}, headers=admin_headers()
    )

    assert response.json()["order_index"] == 5


def test_create_course_validation(client, db_session, admin):
    too_long = client.post(
        "/admin/courses", json={"title": "x" * 201}, headers=admin_headers()
    )
    negative = client.post(
        "/admin/courses",
        json={"title": "Free money", "price_cents": -1},
        headers=admin_headers(),
    )
    blank = client.post("/admin/courses", json={"title": "   "}, headers=admin_headers())

    assert too_long.status_code == 422
    assert negative.status_code == 422
    assert blank.status_code == 422
    assert db_session.query(Course).count() == 0


def test_update_course(client, db_session, admin):
    course = make_course(db_session)

    response = client.patch(
        f"/admin/courses/{course.id}",
        json={"price_cents": 12900, "stripe_price_id": "price_c1_v2"},
        headers=admin_headers(),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["price_cents"] == 12900
    assert data["stripe_price_id"] == "price_c1_v2"
    assert data["title"] == "Python for Analysts"


def test_update_missing_course(client, db_session, admin):
    response = client.patch(
        f"/admin/courses/{uuid.uuid4()}", json={"title": "Ghost"}, headers=admin_headers()
    )

    assert response.status_code == 404


def test_toggle_publish(client, db_session, admin):
    course = make_course(db_session, is_published=False)

    published = client.post(
        f"/admin/courses/{course.id}/toggle-publish", headers=admin_headers()
    )
    assert published.json()["is_published"] is True
    assert client.get(f"/courses/{course.id}").status_code == 200

    hidden = client.post(
        f"/admin/courses/{course.id}/toggle-publish", headers=admin_headers()
    )
    assert hidden.json()["is_published"] is False
    assert client.get(f"/courses/{course.id}").status_code == 404


def test_delete_course_removes_lessons(client, db_session, admin):
    course = make_course(db_session)
    make_lesson(db_session, course)
    course_id = course.id

    response = client.delete(f"/admin/courses/{course_id}", headers=admin_headers())

    assert response.status_code == 204
    db_session.expire_all()
    assert db_session.query(Course).filter(Course.id == course_id).first() is None
    assert db_session.query(Lesson).filter(Lesson.course_id == course_id).count() == 0


def test_delete_purchased_course_is_refused(client, db_session, admin):
    course = make_course(db_session)
    grant(db_session, course)

    response = client.delete(f"/admin/courses/{course.id}", headers=admin_headers())

    assert response.status_code == 409
    assert db_session.query(Course).count() == 1


def test_delete_missing_course(client, db_session, admin):
    response = client.delete(f"/admin/courses/{uuid.uuid4()}", headers=admin_headers())

    assert response.status_code == 404


# ==================== Lessons ====================


def test_create_lessons_in_order(client, db_session, admin):
    course = make_course(db_session)
    url = f"/admin/courses/{course.id}/lessons"

    first = client.post(url, json={"title": "One", "is_preview": True}, headers=admin_headers())
    second = client.post(
        url,
        json={"title": "Two", "video_url": "https://videos.example.com/two.mp4"},
        headers=admin_headers(),
    )

    assert first.status_code == 201
    assert second.status_code == 201
    assert first.json()["order_index"] == 0
    assert second.json()["order_index"] == 1

    listed = client.get(url, headers=admin_headers()).json()
    assert listed["total"] == 2
    assert [lesson["title"] for lesson in listed["lessons"]] == ["One", "Two"]


def test_new_lesson_goes_after_the_last_one(client, db_session, admin):
    """Deleting an earlier lesson does not reuse its position"""
    course = make_course(db_session)
    first = make_lesson(db_session, course, title="One", order_index=0)
    make_lesson(db_session, course, title="Two", order_index=1)
    url = f"/admin/courses/{course.id}/lessons"

    deleted = client.delete(f"{url}/{first.id}", headers=admin_headers())
    created = client.post(url, json={"title": "Three"}, headers=admin_headers())

    assert deleted.status_code == 204
    assert created.status_code == 201
    assert created.json()["order_index"] == 2


def test_create_lesson_rejects_bad_video_url(client, db_session, admin):
    course = make_course(db_session)

    response = client.post(
        f"/admin/courses/{course.id}/lessons",
        json={"title": "Broken", "video_url": "not a url"},
        headers=admin_headers(),
    )

    assert response.status_code == 422
    assert db_session.query(Lesson).count() == 0


def test_create_lesson_for_missing_course(client, db_session, admin):
    response = client.post(
        f"/admin/courses/{uuid.uuid4()}/lessons",
        json={"title": "Orphan"},
        headers=admin_headers(),
    )

    assert response.status_code == 404


def test_update_lesson(client, db_session, admin):
    course = make_course(db_session)
    lesson = make_lesson(db_session, course)

    response = client.patch(
        f"/admin/courses/{course.id}/lessons/{lesson.id}",
        json={"is_preview": True, "content": "Updated"},
        headers=admin_headers(),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["is_preview"] is True
    assert data["content"] == "Updated"
    assert data["title"] == "Introduction"


def test_lesson_belongs_to_course(client, db_session, admin):
    course = make_course(db_session)
    other = make_course(db_session, title="Other", stripe_price_id="price_c2")
    lesson = make_lesson(db_session, course)

    response = client.patch(
        f"/admin/courses/{other.id}/lessons/{lesson.id}",
        json={"title": "Moved"},
        headers=admin_headers(),
    )

    assert response.status_code == 404


def test_lesson_requires_admin(client, db_session, admin):
    course = make_course(db_session)

    response = client.post(
        f"/admin/courses/{course.id}/lessons",
        json={"title": "Sneaky"},
        headers=auth_headers(),
    )

    assert response.status_code == 403
