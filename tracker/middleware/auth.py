"""Bearer token authentication dependency."""

import logging
from typing import Optional

from fastapi import Header, HTTPException, Request, status
from pydantic import BaseModel

from tracker.services.auth_service import AuthService

logger = logging.getLogger(__name__)


class CurrentUser(BaseModel):
    """Identity decoded from the access token."""

    id: int
    email: str
    organization_id: int


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> CurrentUser:
    """
    Resolve the caller from the Authorization header.

    The decoded user is also stored on request.state so the rate limiter and
    error handlers can key on the organization.

    Raises:
        HTTPException: 401 if the header is missing or the token is invalid
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise _unauthorized("Missing authentication. Provide a Bearer token in the Authorization header")

    token = authorization[len("Bearer "):].strip()
    payload = AuthService.verify_access_token(token)
    if not payload:
        logger.warning(f"Rejected token on {request.method} {request.url.path}")
        raise _unauthorized("Invalid or expired token")

    try:
        user = CurrentUser(
            id=payload["id"],
            email=payload["email"],
            organization_id=payload["organization_id"],
        )
    except ValueError:
        raise _unauthorized("Invalid or expired token")

    request.state.current_user = user
    return user
