"""Rate limiting middleware and utilities."""

import logging

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from tracker.core.config import settings

logger = logging.getLogger(__name__)


def get_job_trigger_limit() -> str:
    """
    Limit applied to job trigger endpoints.

    Read on every request so the setting can change without rebuilding routes.
    """
    return settings.job_trigger_rate_limit


def get_organization_key(request: Request) -> str:
    """
    Generate rate limit key based on the caller's organization.

    Falls back to IP address if no user is authenticated.
    """
    user = getattr(request.state, "current_user", None)

    if user:
        return f"org:{user.organization_id}"

    return f"ip:{get_remote_address(request)}"


# Initialize limiter with organization-based key function
limiter = Limiter(key_func=get_organization_key)
