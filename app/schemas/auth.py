# app/schemas/auth.py
from typing import Optional

from pydantic import BaseModel


class Principal(BaseModel):
    """Identity resolved from an access token issued by the auth provider."""

    id: str
    email: Optional[str] = None
