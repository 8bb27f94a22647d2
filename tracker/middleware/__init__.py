"""Middleware package."""

from tracker.middleware.auth import CurrentUser, get_current_user
from tracker.middleware.rate_limit import limiter

__all__ = ["CurrentUser", "get_current_user", "limiter"]
