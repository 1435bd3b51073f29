"""Bearer token authentication."""

from logging import getLogger
from typing import Optional

import jwt
from pydantic import BaseModel

from creditline.config import settings
from creditline.utils.errors import AuthenticationError

logger = getLogger(__name__)


class AuthenticatedUser(BaseModel):
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None


class BearerAuthenticator:
    """Maps a signed bearer token to a stable user id (the ``sub`` claim)."""

    def __init__(self, secret: str, algorithm: str = "HS256", audience: Optional[str] = None):
        self.secret = secret
        self.algorithm = algorithm
        self.audience = audience

    @classmethod
    def from_settings(cls) -> "BearerAuthenticator":
        return cls(
            secret=settings.auth.secret_key.get_secret_value(),
            algorithm=settings.auth.algorithm,
            audience=settings.auth.audience,
        )

    def authenticate(self, token: str) -> AuthenticatedUser:
        if not self.secret:
            logger.error("AUTH_SECRET_KEY is not set; rejecting all bearer tokens")
            raise AuthenticationError("Authentication is not configured")
        try:
            claims = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                audience=self.audience,
                options={"require": ["sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token expired. Please login again.")
        except jwt.InvalidTokenError as e:
            logger.info(f"Rejected bearer token: {e}")
            raise AuthenticationError("Invalid authentication token")

        return AuthenticatedUser(user_id=str(claims["sub"]), email=claims.get("email"), name=claims.get("name"))
