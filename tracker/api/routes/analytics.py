"""Project analytics API routes."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DBSession

from tracker.db.session import get_db
from tracker.middleware.auth import CurrentUser, get_current_user
from tracker.models.project import (
    AnalyticsDashboardResponse,
    CompletionTimeResponse,
    DetailedAnalytics,
    ProjectStats,
)
from tracker.services.analytics_service import ProjectAnalyticsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analytics", tags=["analytics"])


def _completion_time(db: DBSession, organization_id: int) -> CompletionTimeResponse:
    days = ProjectAnalyticsService.get_average_completion_time(db, organization_id)
    if days is None:
        return CompletionTimeResponse()
    return CompletionTimeResponse(
        average_completion_days=round(days, 2),
        average_completion_hours=f"{days * 24:.1f}",
    )


@router.get("/dashboard", response_model=AnalyticsDashboardResponse)
async def get_dashboard(
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db)
) -> AnalyticsDashboardResponse:
    """Organization and user counts, completion time and detailed analytics in one call."""
    return AnalyticsDashboardResponse(
        organization_stats=ProjectAnalyticsService.get_stats_by_organization(db, user.organization_id),
        user_stats=ProjectAnalyticsService.get_stats_by_user(db, user.id, user.organization_id),
        average_completion_time=_completion_time(db, user.organization_id),
        detailed_analytics=ProjectAnalyticsService.get_detailed_analytics(db, user.organization_id),
    )


@router.get("/organization", response_model=ProjectStats)
async def get_organization_stats(
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db)
) -> ProjectStats:
    return ProjectStats(**ProjectAnalyticsService.get_stats_by_organization(db, user.organization_id))


@router.get("/user", response_model=ProjectStats)
async def get_user_stats(
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db)
) -> ProjectStats:
    return ProjectStats(**ProjectAnalyticsService.get_stats_by_user(db, user.id, user.organization_id))


@router.get("/completion-time", response_model=CompletionTimeResponse)
async def get_completion_time(
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db)
) -> CompletionTimeResponse:
    """Average time from creation to completion, or nulls if nothing is completed."""
    return _completion_time(db, user.organization_id)


@router.get("/detailed", response_model=DetailedAnalytics)
async def get_detailed(
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db)
) -> DetailedAnalytics:
    return DetailedAnalytics(**ProjectAnalyticsService.get_detailed_analytics(db, user.organization_id))
