# app/services/checkout.py
import logging
import re

import stripe
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    AlreadyEntitled,
    CheckoutError,
    CourseUnavailable,
    InvalidPrincipal,
    MalformedRequest,
    PaymentProviderError,
    PriceMismatch,
)
from app.models.course import Course
from app.models.user_course_access import UserCourseAccess
from app.schemas.auth import Principal
from app.schemas.checkout import CheckoutRequest
from app.utils.stripe_service import StripeService

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)


def is_valid_course_id(value: str) -> bool:
    return bool(UUID_PATTERN.match(value))


class CheckoutService:
    """
    Opens hosted Stripe checkout sessions for course purchases.

    Nothing is written locally. The session carries ``{userId, courseId}``
    in its metadata; the webhook handler reads them back when the payment
    completes.
    """

    def __init__(self, db: Session, stripe_service: StripeService):
        self.db = db
        self.stripe = stripe_service

    def create_checkout(
        self, principal: Principal, request: CheckoutRequest, origin: str
    ) -> str:
        """
        Validate a purchase request and return the hosted payment page URL.

        Args:
            principal: authenticated buyer
            request: client-claimed ``priceId`` and ``courseId``
            origin: allow-listed frontend origin used for redirect URLs

        Raises:
            CheckoutError: one of its subclasses, message is user-facing
        """
        if not principal.email:
            raise InvalidPrincipal("User is not logged in")

        price_id = request.priceId
        course_id = request.courseId

        if not price_id or not course_id:
            raise MalformedRequest("Missing required parameters")

        # Only canonical ids ever reach the query layer
        if not is_valid_course_id(course_id):
            raise MalformedRequest("Invalid course ID format")

        course = self._get_published_course(course_id)
        if not course:
            raise CourseUnavailable("Course does not exist or is not available")

        if not course.stripe_price_id:
            logger.warning(f"Course {course.id} has no Stripe price configured")
            raise CourseUnavailable("Course is not available for purchase")

        if course.stripe_price_id != price_id:
            logger.warning(
                f"Price mismatch for course {course.id} by user {principal.id}"
            )
            raise PriceMismatch("Invalid price identifier for this course")

        if self._has_access(principal.id, course.id):
            raise AlreadyEntitled("You already have access to this course")

        try:
            customer_id = self.stripe.find_customer_id(principal.email)
            url = self.stripe.create_checkout_session(
                price_id=course.stripe_price_id,
                customer_id=customer_id,
                customer_email=principal.email,
                success_url=f"{origin}/course/{course.id}?success=true",
                cancel_url=f"{origin}/course/{course.id}",
                metadata={"userId": principal.id, "courseId": course.id},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error during checkout for course {course.id}: {e}")
            raise PaymentProviderError(str(e) or "Payment provider error")

        logger.info(
            f"Checkout session created for course: {course.title} (user {principal.id})"
        )
        return url

    def _get_published_course(self, course_id: str):
        try:
            return (
                self.db.query(Course)
                .filter(Course.id == course_id, Course.is_published.is_(True))
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Database error while verifying course: {e}")
            raise CheckoutError("Course verification failed")

    def _has_access(self, user_id: str, course_id: str) -> bool:
        try:
            return (
                self.db.query(UserCourseAccess.id)
                .filter(
                    UserCourseAccess.user_id == user_id,
                    UserCourseAccess.course_id == course_id,
                )
                .first()
                is not None
            )
        except SQLAlchemyError as e:
            logger.error(f"Database error while checking access: {e}")
            raise CheckoutError("Access verification failed")
