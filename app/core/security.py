"""
Bearer-token authentication.

Tokens are issued elsewhere; this service only verifies them and
resolves the caller to an identity and a role.
"""
import logging
from typing import Optional

import jwt
from fastapi import Depends, Header

from app.core.config import Settings, get_settings
from app.core.errors import AuthenticationError, ForbiddenError
from app.models.identity import CurrentUser, Role

logger = logging.getLogger(__name__)


def decode_token(token: str, settings: Settings) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError as e:
        logger.warning(f"Rejected bearer token: {e}")
        return None


def get_current_user(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> CurrentUser:
    """Resolve the bearer token on the request to a CurrentUser."""
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationError("Not authorized")

    payload = decode_token(authorization.split(" ", 1)[1], settings)
    if not payload:
        raise AuthenticationError("Token invalid")

    user_id = payload.get("id") or payload.get("_id") or payload.get("sub")
    if not user_id:
        raise AuthenticationError("Token invalid")

    role = Role.ADMIN if payload.get("role") == Role.ADMIN.value else Role.AGENT
    return CurrentUser(id=str(user_id), role=role)


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user


def require_api_key(
    x_api_key: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    """Guard for machine-to-machine endpoints keyed on ADMIN_API_KEY."""
    if not settings.admin_api_key or x_api_key != settings.admin_api_key:
        raise AuthenticationError("Unauthorized")
