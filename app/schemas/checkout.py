# app/schemas/checkout.py
from typing import Optional

from pydantic import BaseModel, ConfigDict, StrictStr


class CheckoutRequest(BaseModel):
    """
    Body of ``POST /create-checkout``.

    Both fields are optional at the schema level so that a missing value is
    reported through the checkout error contract rather than a 422.
    """

    model_config = ConfigDict(extra="ignore")

    priceId: Optional[StrictStr] = None
    courseId: Optional[StrictStr] = None


class CheckoutResponse(BaseModel):
    url: str


class CheckoutErrorResponse(BaseModel):
    error: str
