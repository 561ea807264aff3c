"""
Shared fixtures for the API tests.

Settings are read at import time, so the environment is prepared before
anything from ``app`` or ``main`` is imported.
"""

import hashlib
import hmac
import json
import os
import time
import uuid

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DEBUG"] = "false"
os.environ["LOG_FILE"] = "logs/test.log"
os.environ["AUTH_JWT_SECRET"] = "test-jwt-secret"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CORS_ALLOWED_ORIGINS"] = "https://courses.example.com,https://admin.example.com"
os.environ["ADMIN_USER_IDS"] = ""

import pytest
from fastapi.testclient import TestClient

from app.core.database import Base, SessionLocal, engine
from app.core.security import token_verifier
from app.models.course import Course
from app.models.lesson import Lesson
from app.models.user_course_access import UserCourseAccess
from app.models.user_role import UserRole
from app.utils.stripe_service import StripeService, get_stripe_service
from main import app

WEBHOOK_SECRET = "whsec_test_secret"
DEFAULT_ORIGIN = "https://courses.example.com"
HOSTED_URL = "https://checkout.stripe.test/c/pay/cs_test_123"

USER_ID = "0b7f3c52-5d0e-4a53-9d8e-6f1c2a4b8e01"
USER_EMAIL = "learner@example.com"
ADMIN_ID = "9a1d2e3f-4b5c-4d6e-8f70-8192a3b4c5d6"
ADMIN_EMAIL = "admin@example.com"


class FakeStripeService(StripeService):
    """Records outgoing Stripe calls instead of performing them"""

    def __init__(self, webhook_secret: str = WEBHOOK_SECRET):
        super().__init__(secret_key="sk_test_dummy", webhook_secret=webhook_secret)
        self.customers = {}
        self.customer_lookups = []
        self.sessions = []
        self.error = None

    def find_customer_id(self, email):
        self.customer_lookups.append(email)
        if self.error:
            raise self.error
        return self.customers.get(email)

    def create_checkout_session(self, **kwargs):
        if self.error:
            raise self.error
        self.sessions.append(kwargs)
        return HOSTED_URL


@pytest.fixture()
def db_session():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def fake_stripe():
    return FakeStripeService()


@pytest.fixture()
def client(db_session, fake_stripe):
    app.dependency_overrides[get_stripe_service] = lambda: fake_stripe
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def admin(db_session):
    db_session.add(UserRole(user_id=ADMIN_ID, role="admin"))
    db_session.commit()
    return ADMIN_ID


# ==================== Helpers ====================


def auth_headers(user_id: str = USER_ID, email: str = USER_EMAIL) -> dict:
    token = token_verifier.create_access_token(user_id, email=email)
    return {"Authorization": f"Bearer {token}"}


def make_course(db, **overrides) -> Course:
    values = {
        "title": "Python for Analysts",
        "description": "Pandas, plots and practical statistics",
        "price_cents": 9900,
        "stripe_price_id": "price_c1",
        "is_published": True,
        "order_index": 0,
    }
    values.update(overrides)
    course = Course(**values)
    db.add(course)
    db.commit()
    db.refresh(course)
    return course


def make_lesson(db, course: Course, **overrides) -> Lesson:
    values = {
        "course_id": course.id,
        "title": "Introduction",
        "content": "Welcome to the course",
        "video_url": "https://videos.example.com/intro.mp4",
        "is_preview": False,
        "order_index": 0,
    }
    values.update(overrides)
    lesson = Lesson(**values)
    db.add(lesson)
    db.commit()
    db.refresh(lesson)
    return lesson


def grant(db, course: Course, user_id: str = USER_ID, payment_id: str = "pi_seed"):
    access = UserCourseAccess(
        user_id=user_id, course_id=course.id, stripe_payment_id=payment_id
    )
    db.add(access)
    db.commit()
    return access


def count_access(db, user_id: str, course_id: str) -> int:
    return (
        db.query(UserCourseAccess)
        .filter(
            UserCourseAccess.user_id == user_id,
            UserCourseAccess.course_id == course_id,
        )
        .count()
    )


def checkout_completed_event(
    user_id=USER_ID, course_id=None, payment_intent="pi_1", event_type=None
) -> dict:
    metadata = {}
    if user_id is not None:
        metadata["userId"] = user_id
    if course_id is not None:
        metadata["courseId"] = course_id
    return {
        "id": f"evt_{uuid.uuid4().hex[:16]}",
        "object": "event",
        "type": event_type or "checkout.session.completed",
        "data": {
            "object": {
                "id": "cs_test_123",
                "object": "checkout.session",
                "mode": "payment",
                "payment_status": "paid",
                "payment_intent": payment_intent,
                "metadata": metadata,
            }
        },
    }


def sign(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Build a ``Stripe-Signature`` header the way Stripe does"""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed_payload = f"{timestamp}.{payload}"
    signature = hmac.new(
        secret.encode("utf-8"), signed_payload.encode("utf-8"), hashlib.sha256
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def post_webhook(client, event: dict, signature: str = None):
    payload = json.dumps(event)
    headers = {"Content-Type": "application/json"}
    headers["Stripe-Signature"] = signature if signature is not None else sign(payload)
    return client.post("/stripe-webhook", content=payload, headers=headers)
