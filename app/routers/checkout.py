# app/routers/checkout.py

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.cors import resolve_origin
from app.core.database import get_db
from app.core.dependencies import get_checkout_principal
from app.core.exceptions import MalformedRequest
from app.core.limiter import limiter
from app.schemas.auth import Principal
from app.schemas.checkout import (
    CheckoutErrorResponse,
    CheckoutRequest,
    CheckoutResponse,
)
from app.services.checkout import CheckoutService
from app.utils.stripe_service import StripeService, get_stripe_service

router = APIRouter(
    tags=["Checkout"],
    responses={
        401: {"model": CheckoutErrorResponse, "description": "Not authenticated"},
        500: {"model": CheckoutErrorResponse, "description": "Checkout rejected"},
    },
)


@router.post("/create-checkout", response_model=CheckoutResponse)
@limiter.limit(settings.checkout_rate_limit)
async def create_checkout(
    request: Request,
    principal: Principal = Depends(get_checkout_principal),
    db: Session = Depends(get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
):
    """
    Start a course purchase.

    Body: ``{"priceId": "...", "courseId": "..."}``. Returns the URL of the
    hosted Stripe payment page. Every business rejection answers 500 with
    ``{"error": message}``.
    """
    try:
        body = await request.json()
    except ValueError:
        raise MalformedRequest("Invalid request body")

    if not isinstance(body, dict):
        raise MalformedRequest("Invalid request body")

    try:
        checkout_in = CheckoutRequest.model_validate(body)
    except ValidationError:
        raise MalformedRequest("Invalid request parameters")

    origin = resolve_origin(request.headers.get("origin"))
    service = CheckoutService(db, stripe_service)
    url = await run_in_threadpool(
        service.create_checkout, principal, checkout_in, origin
    )
    return {"url": url}
