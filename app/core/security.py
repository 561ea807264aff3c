# core/security.py
import logging
import time
from datetime import timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from app.core.config import settings
from app.core.exceptions import Unauthenticated
from app.schemas.auth import Principal

logger = logging.getLogger(__name__)


class TokenVerifier:
    """Verifies access tokens issued by the external identity provider"""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        audience: Optional[str] = None,
    ):
        self.secret_key = secret_key or settings.auth_jwt_secret
        self.algorithm = algorithm or settings.auth_jwt_algorithm
        self.audience = audience or settings.auth_jwt_audience

    def decode(self, token: str) -> Dict[str, Any]:
        """
        Verify signature, expiry and audience of a token.

        Raises:
            Unauthenticated: token is malformed, expired or not ours
        """
        try:
            return jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                options={"verify_exp": True},
            )
        except JWTError as e:
            logger.warning(f"JWT verification failed: {e}")
            raise Unauthenticated("Invalid token")

    def verify_token(self, token: str) -> Principal:
        """Exchange a bearer token for the principal it identifies"""
        payload = self.decode(token)

        user_id = payload.get("sub")
        if not user_id:
            logger.warning("Token accepted but carries no subject")
            raise Unauthenticated("Invalid token")

        return Principal(
            id=str(user_id),
            email=payload.get("email") or None,
        )

    def create_access_token(
        self,
        user_id: str,
        email: Optional[str] = None,
        expires_in: timedelta = timedelta(hours=1),
    ) -> str:
        """
        Mint a token in the provider's format.

        Only used by local tooling and tests; production tokens come from
        the identity provider itself.
        """
        now = int(time.time())
        payload = {
            "sub": user_id,
            "aud": self.audience,
            "role": "authenticated",
            "iat": now,
            "exp": now + int(expires_in.total_seconds()),
        }
        if email is not None:
            payload["email"] = email
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)


# Global instances
token_verifier = TokenVerifier()
