"""Project analytics aggregations."""

from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from tracker.db.models import Project
from tracker.models.project import ProjectStatus


SECONDS_PER_DAY = 86400
TOP_CONTRIBUTORS_LIMIT = 10
RECENT_ACTIVITY_DAYS = 30


class ProjectAnalyticsService:
    """Read-only analytics over an organization's projects."""

    @staticmethod
    def _status_counts(query) -> Dict[str, int]:
        rows = query.with_entities(Project.status, func.count(Project.id)).group_by(Project.status).all()

        stats = {project_status.value: 0 for project_status in ProjectStatus}
        for project_status, count in rows:
            stats[ProjectStatus(project_status).value] = int(count)

        return {"total": sum(stats.values()), **stats}

    @staticmethod
    def get_stats_by_organization(db: Session, organization_id: int) -> Dict[str, int]:
        """Project counts (total, active, completed) for an organization."""
        query = db.query(Project).filter(Project.organization_id == organization_id)
        return ProjectAnalyticsService._status_counts(query)

    @staticmethod
    def get_stats_by_user(db: Session, user_id: int, organization_id: int) -> Dict[str, int]:
        """Project counts (total, active, completed) for one user."""
        query = db.query(Project).filter(
            Project.user_id == user_id,
            Project.organization_id == organization_id
        )
        return ProjectAnalyticsService._status_counts(query)

    @staticmethod
    def get_average_completion_time(db: Session, organization_id: int) -> Optional[float]:
        """
        Average number of days between creation and completion.

        Only completed projects with a completion timestamp are counted.

        Returns:
            Average in days, or None if no project has been completed
        """
        rows = db.query(Project.created_at, Project.completed_at).filter(
            Project.organization_id == organization_id,
            Project.status == ProjectStatus.COMPLETED,
            Project.completed_at.isnot(None)
        ).all()

        if not rows:
            return None

        total_seconds = sum((completed_at - created_at).total_seconds() for created_at, completed_at in rows)
        return total_seconds / len(rows) / SECONDS_PER_DAY

    @staticmethod
    def get_detailed_analytics(db: Session, organization_id: int) -> Dict[str, Any]:
        """
        Organization overview, top contributors and recent activity.

        The result only holds JSON-native values so it can be stored as a job result.
        """
        base = db.query(Project).filter(Project.organization_id == organization_id)

        counts = ProjectAnalyticsService._status_counts(base)
        total_contributors = base.with_entities(func.count(func.distinct(Project.user_id))).scalar() or 0

        durations = [
            (completed_at - created_at).total_seconds()
            for created_at, completed_at in base.with_entities(Project.created_at, Project.completed_at).filter(
                Project.completed_at.isnot(None)
            ).all()
        ]
        avg_completion_days = (
            f"{sum(durations) / len(durations) / SECONDS_PER_DAY:.1f}" if durations else None
        )
        completion_rate = (
            f"{counts['completed'] / counts['total'] * 100:.1f}" if counts["total"] > 0 else "0"
        )

        project_count = func.count(Project.id)
        contributor_rows = base.with_entities(
            Project.user_id,
            project_count,
            func.sum(case((Project.status == ProjectStatus.COMPLETED, 1), else_=0)),
        ).group_by(Project.user_id).order_by(project_count.desc(), Project.user_id).limit(
            TOP_CONTRIBUTORS_LIMIT
        ).all()

        since = datetime.utcnow() - timedelta(days=RECENT_ACTIVITY_DAYS)
        created_days = Counter(
            created_at.date()
            for (created_at,) in base.with_entities(Project.created_at).filter(Project.created_at >= since).all()
        )

        return {
            "overview": {
                "total_projects": counts["total"],
                "active_projects": counts["active"],
                "completed_projects": counts["completed"],
                "total_contributors": int(total_contributors),
                "avg_completion_days": avg_completion_days,
                "completion_rate": completion_rate,
            },
            "top_contributors": [
                {
                    "user_id": user_id,
                    "project_count": int(count),
                    "completed_count": int(completed or 0),
                }
                for user_id, count, completed in contributor_rows
            ],
            "recent_activity": [
                {"date": day.isoformat(), "projects_created": created}
                for day, created in sorted(created_days.items(), reverse=True)
            ],
        }
