"""Project and analytics models."""

from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class ProjectStatus(str, Enum):
    """Project status."""

    ACTIVE = "active"
    COMPLETED = "completed"


class ProjectStats(BaseModel):
    """Project counts by status."""

    total: int = 0
    active: int = 0
    completed: int = 0


class AnalyticsOverview(BaseModel):
    total_projects: int
    active_projects: int
    completed_projects: int
    total_contributors: int
    avg_completion_days: Optional[str] = None
    completion_rate: str


class ContributorStats(BaseModel):
    user_id: int
    project_count: int
    completed_count: int


class DailyActivity(BaseModel):
    date: date
    projects_created: int


class DetailedAnalytics(BaseModel):
    """Organization-wide project analytics."""

    overview: AnalyticsOverview
    top_contributors: List[ContributorStats]
    recent_activity: List[DailyActivity]


class CompletionTimeResponse(BaseModel):
    average_completion_days: Optional[float] = None
    average_completion_hours: Optional[str] = None


class AnalyticsDashboardResponse(BaseModel):
    """Everything the analytics dashboard renders in one call."""

    organization_stats: ProjectStats
    user_stats: ProjectStats
    average_completion_time: CompletionTimeResponse
    detailed_analytics: DetailedAnalytics
