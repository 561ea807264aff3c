# app/routers/stripe_webhook.py
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.database import get_db
from app.schemas.stripe_event import WebhookAck
from app.services.entitlement import EntitlementService, GrantOutcome
from app.utils.stripe_service import StripeService, get_stripe_service

router = APIRouter(
    tags=["Stripe Webhook"],
    responses={
        400: {"description": "Missing or invalid signature, or bad metadata"},
        500: {"description": "Storage failure, Stripe will redeliver"},
    },
)


@router.post(
    "/stripe-webhook", response_model=WebhookAck, response_model_exclude_none=True
)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
):
    """
    Receive Stripe events and grant course access on completed checkouts.

    The raw body is handed over untouched; it is parsed only after its
    signature has been verified. Events other than
    ``checkout.session.completed`` are acknowledged and ignored.
    """
    payload = await request.body()

    service = EntitlementService(db, stripe_service)
    outcome = await run_in_threadpool(service.handle_webhook, payload, stripe_signature)

    if outcome == GrantOutcome.ALREADY_EXISTS:
        return WebhookAck(status="already_exists")
    return WebhookAck()
