# app/schemas/stripe_event.py
"""
Narrow models of the Stripe webhook envelope.

Only the fields the entitlement flow consumes are modelled. Every other
field of the event is ignored; a payload missing the envelope shape itself
is rejected.
"""

from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict

CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"


class StripeEventData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    object: Dict[str, Any]


class StripeEventEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    type: str
    data: StripeEventData


class CheckoutSessionMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore")

    userId: Optional[str] = None
    courseId: Optional[str] = None


class CheckoutSession(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    # A string id, or the full object when the event was sent expanded
    payment_intent: Optional[Union[str, Dict[str, Any]]] = None
    payment_status: Optional[str] = None
    metadata: Optional[CheckoutSessionMetadata] = None

    @property
    def payment_intent_id(self) -> Optional[str]:
        if isinstance(self.payment_intent, dict):
            return self.payment_intent.get("id")
        return self.payment_intent


class CheckoutSessionCompletedEvent(BaseModel):
    type: Literal["checkout.session.completed"] = CHECKOUT_SESSION_COMPLETED
    event_id: str
    session: CheckoutSession


class UnhandledEvent(BaseModel):
    type: str
    event_id: str


WebhookEvent = Union[CheckoutSessionCompletedEvent, UnhandledEvent]


class WebhookAck(BaseModel):
    received: bool = True
    status: Optional[str] = None
