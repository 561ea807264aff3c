import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.exceptions import Unauthenticated
from app.core.security import token_verifier
from app.models.user_role import UserRole
from app.schemas.auth import Principal

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


async def get_checkout_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
) -> Principal:
    """
    Resolve the purchasing principal for the checkout endpoint.
    Failures are raised as ``Unauthenticated`` so they share the checkout
    error body ``{"error": ...}``.
    """
    if not credentials:
        raise Unauthenticated("Missing authorization header")

    return token_verifier.verify_token(credentials.credentials)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
) -> Principal:
    """
    Dependency that requires a valid Bearer token and returns the principal.
    Raises 401 Unauthorized if the token is missing or invalid.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return token_verifier.verify_token(credentials.credentials)
    except Unauthenticated as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
) -> Optional[Principal]:
    """
    Dependency that returns a principal if a valid token is provided, or None otherwise.
    Invalid tokens are treated as anonymous access.
    """
    if not credentials:
        return None

    try:
        return token_verifier.verify_token(credentials.credentials)
    except Unauthenticated:
        return None


async def get_current_admin(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db),
) -> Principal:
    """Dependency requiring the ``admin`` role in ``user_roles``"""
    is_admin = (
        db.query(UserRole)
        .filter(UserRole.user_id == principal.id, UserRole.role == "admin")
        .first()
        is not None
    )

    if not is_admin:
        logger.warning(f"Admin access denied for user {principal.id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required"
        )

    return principal
