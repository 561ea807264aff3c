# app/utils/stripe_service.py
import logging
from typing import Dict, Optional

import stripe

from app.core.config import settings

logger = logging.getLogger(__name__)


class StripeService:
    """Thin wrapper around the Stripe SDK for hosted checkout and webhooks"""

    def __init__(
        self,
        secret_key: str,
        webhook_secret: str,
        api_version: Optional[str] = None,
        webhook_tolerance: int = 300,
    ):
        """
        Args:
            secret_key: Stripe secret API key
            webhook_secret: signing secret of the webhook endpoint
            api_version: pinned Stripe API version for outgoing calls
            webhook_tolerance: max age in seconds of a signed delivery
        """
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.api_version = api_version
        self.webhook_tolerance = webhook_tolerance

    def find_customer_id(self, email: str) -> Optional[str]:
        """Return the first customer registered under ``email``, if any"""
        customers = stripe.Customer.list(
            email=email,
            limit=1,
            api_key=self.secret_key,
            stripe_version=self.api_version,
        )
        if customers.data:
            return customers.data[0].id
        return None

    def create_checkout_session(
        self,
        *,
        price_id: str,
        customer_id: Optional[str],
        customer_email: Optional[str],
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
    ) -> str:
        """Open a one-time payment session and return its hosted page URL"""
        session = stripe.checkout.Session.create(
            mode="payment",
            customer=customer_id,
            customer_email=None if customer_id else customer_email,
            line_items=[{"price": price_id, "quantity": 1}],
            success_url=success_url,
            cancel_url=cancel_url,
            metadata=metadata,
            api_key=self.secret_key,
            stripe_version=self.api_version,
        )
        logger.info(f"Stripe checkout session created: {session.id}")
        return session.url

    def verify_signature(self, payload: str, signature: str) -> None:
        """
        Check ``signature`` over the exact raw ``payload``.

        Raises:
            stripe.SignatureVerificationError: signature does not match or
                the delivery is older than the tolerance window
        """
        stripe.WebhookSignature.verify_header(
            payload,
            signature,
            self.webhook_secret,
            tolerance=self.webhook_tolerance,
        )


# Create a singleton instance
stripe_service = StripeService(
    secret_key=settings.stripe_secret_key,
    webhook_secret=settings.stripe_webhook_secret,
    api_version=settings.stripe_api_version,
    webhook_tolerance=settings.stripe_webhook_tolerance,
)


def get_stripe_service() -> StripeService:
    """FastAPI dependency returning the process-wide Stripe client"""
    return stripe_service
