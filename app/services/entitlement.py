# app/services/entitlement.py
import logging
from enum import Enum
from typing import List, Optional

import stripe
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    InvalidSignature,
    MalformedEvent,
    MissingMetadata,
    MissingSignature,
    StorageFailure,
)
from app.models.course import Course
from app.models.user_course_access import UserCourseAccess
from app.schemas.stripe_event import (
    CHECKOUT_SESSION_COMPLETED,
    CheckoutSession,
    CheckoutSessionCompletedEvent,
    StripeEventEnvelope,
    UnhandledEvent,
    WebhookEvent,
)
from app.services.checkout import is_valid_course_id
from app.utils.stripe_service import StripeService

logger = logging.getLogger(__name__)


class GrantOutcome(str, Enum):
    GRANTED = "granted"
    ALREADY_EXISTS = "already_exists"
    IGNORED = "ignored"


class EntitlementService:
    """
    Turns verified ``checkout.session.completed`` events into access rows.

    Safe under at-least-once delivery: the existence check skips the write
    for replays, and a unique-constraint violation on insert (two deliveries
    racing past the check) is reported as already granted.
    """

    def __init__(self, db: Session, stripe_service: Optional[StripeService] = None):
        self.db = db
        self.stripe = stripe_service

    # ==================== Webhook Handling ====================

    def handle_webhook(self, payload: bytes, signature: Optional[str]) -> GrantOutcome:
        event = self.verify_event(payload, signature)

        if isinstance(event, UnhandledEvent):
            logger.info(f"Ignoring Stripe event type: {event.type} (id={event.event_id})")
            return GrantOutcome.IGNORED

        return self.grant_from_session(event.session)

    def verify_event(self, payload: bytes, signature: Optional[str]) -> WebhookEvent:
        """
        Authenticate a delivery and parse it into a typed event.
        The body is only parsed once its signature has been verified.
        """
        if not signature or not self.stripe.webhook_secret:
            logger.error("Missing signature or webhook secret")
            raise MissingSignature("Missing signature or webhook secret")

        try:
            body = payload.decode("utf-8")
            self.stripe.verify_signature(body, signature)
        except (UnicodeDecodeError, stripe.SignatureVerificationError) as e:
            logger.warning(f"Webhook signature verification failed: {e}")
            raise InvalidSignature(f"Webhook Error: {e}")

        return self.parse_event(body)

    @staticmethod
    def parse_event(body: str) -> WebhookEvent:
        try:
            envelope = StripeEventEnvelope.model_validate_json(body)
        except ValidationError as e:
            logger.warning(f"Malformed Stripe event: {e.error_count()} error(s)")
            raise MalformedEvent("Webhook Error: malformed event payload")

        logger.info(f"Received Stripe event: {envelope.type} (id={envelope.id})")

        if envelope.type != CHECKOUT_SESSION_COMPLETED:
            return UnhandledEvent(type=envelope.type, event_id=envelope.id)

        try:
            session = CheckoutSession.model_validate(envelope.data.object)
        except ValidationError:
            raise MalformedEvent("Webhook Error: malformed checkout session")

        return CheckoutSessionCompletedEvent(event_id=envelope.id, session=session)

    # ==================== Granting ====================

    def grant_from_session(self, session: CheckoutSession) -> GrantOutcome:
        metadata = session.metadata
        user_id = metadata.userId if metadata else None
        course_id = metadata.courseId if metadata else None
        payment_id = session.payment_intent_id

        logger.info(
            f"Processing payment: user={user_id} course={course_id} "
            f"payment={payment_id} status={session.payment_status}"
        )

        if not user_id or not course_id:
            logger.error("Missing userId or courseId in session metadata")
            raise MissingMetadata("Missing metadata")

        if not is_valid_course_id(course_id):
            logger.error(f"Malformed courseId in session metadata: {course_id!r}")
            raise MissingMetadata("Invalid metadata")

        if not payment_id:
            logger.warning(f"Checkout session {session.id} has no payment intent")

        if session.payment_status not in (None, "paid", "no_payment_required"):
            logger.warning(
                f"Checkout session {session.id} completed with payment_status="
                f"{session.payment_status}"
            )

        return self.grant_access(
            user_id, course_id, payment_id=payment_id, session_id=session.id
        )

    def grant_access(
        self,
        user_id: str,
        course_id: str,
        payment_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> GrantOutcome:
        """
        Idempotently insert the (user, course) access row.

        Raises:
            MissingMetadata: the course no longer exists; redelivery
                cannot succeed, so the caller answers 400
            StorageFailure: the store could not be read or written; the
                caller must answer 500 so the processor redelivers
        """
        try:
            if self.has_access(user_id, course_id):
                logger.info(
                    f"Access already exists for user: {user_id} course: {course_id}"
                )
                return GrantOutcome.ALREADY_EXISTS
            course_known = self.course_exists(course_id)
        except SQLAlchemyError as e:
            logger.error(f"Error checking existing access: {e}", exc_info=True)
            raise StorageFailure("Failed to verify existing access")

        if not course_known:
            logger.error(
                f"Paid checkout references unknown course {course_id} (user {user_id})"
            )
            raise MissingMetadata("Unknown course")

        access = UserCourseAccess(
            user_id=user_id,
            course_id=course_id,
            stripe_payment_id=payment_id,
            stripe_session_id=session_id,
        )

        try:
            self.db.add(access)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            # A concurrent delivery won the race: the row now exists
            if self._exists_after_conflict(user_id, course_id):
                logger.info(
                    f"Concurrent grant detected for user: {user_id} course: {course_id}"
                )
                return GrantOutcome.ALREADY_EXISTS
            logger.error(f"Error granting access: {e.orig}", exc_info=True)
            raise StorageFailure("Failed to grant course access")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error granting access: {e}", exc_info=True)
            raise StorageFailure("Failed to grant course access")

        logger.info(f"Access granted successfully for user: {user_id} course: {course_id}")
        return GrantOutcome.GRANTED

    def _exists_after_conflict(self, user_id: str, course_id: str) -> bool:
        try:
            return self.has_access(user_id, course_id)
        except SQLAlchemyError:
            logger.error("Error re-reading access after conflict", exc_info=True)
            return False

    # ==================== Queries ====================

    def has_access(self, user_id: str, course_id: str) -> bool:
        return (
            self.db.query(UserCourseAccess.id)
            .filter(
                UserCourseAccess.user_id == user_id,
                UserCourseAccess.course_id == course_id,
            )
            .first()
            is not None
        )

    def course_exists(self, course_id: str) -> bool:
        return (
            self.db.query(Course.id).filter(Course.id == course_id).first() is not None
        )

    def get_owned_course_ids(self, user_id: str) -> List[str]:
        rows = (
            self.db.query(UserCourseAccess.course_id)
            .filter(UserCourseAccess.user_id == user_id)
            .all()
        )
        return [row[0] for row in rows]
