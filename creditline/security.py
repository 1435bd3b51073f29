import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer

from creditline.auth import AuthenticatedUser, BearerAuthenticator
from creditline.config import settings
from creditline.dependencies import get_authenticator
from creditline.utils.errors import AuthenticationError

logger = logging.getLogger(__name__)


API_KEY_NAME = "X-Key"
api_key_header = APIKeyHeader(name=API_KEY_NAME, auto_error=False)

bearer_scheme = HTTPBearer(auto_error=False)


async def verify_security_api_key(
    api_key: Optional[str] = Depends(api_key_header),
):
    """Verifies that the request is properly authenticated with the admin API key."""
    expected = settings.api.api_key.get_secret_value()
    if not expected:
        raise HTTPException(status_code=403, detail="Admin API key is not configured")
    if api_key is None:
        raise HTTPException(status_code=403, detail="No API key supplied")
    if api_key != expected:
        logger.warning("Admin request with an invalid API key")
        raise HTTPException(status_code=403, detail="Invalid API key")


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    authenticator: BearerAuthenticator = Depends(get_authenticator),
) -> AuthenticatedUser:
    """Resolves the bearer token to the calling user."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("No authentication token provided")
    return authenticator.authenticate(credentials.credentials)
