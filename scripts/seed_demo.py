#!/usr/bin/env python3
"""Seed a demo organization, user and projects, then print an access token.

Usage:
    python scripts/seed_demo.py [--email EMAIL] [--projects N]

Options:
    --email: Email of the demo user (default: demo@example.com)
    --projects: Number of projects to create (default: 12)
"""

import argparse
import logging
import random
import sys
from datetime import datetime, timedelta
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from tracker.db import SessionLocal, init_db  # noqa: E402
from tracker.db.models import Organization, Project, User  # noqa: E402
from tracker.models.project import ProjectStatus  # noqa: E402
from tracker.services.auth_service import AuthService  # noqa: E402

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def seed(email: str, project_count: int) -> str:
    """Create the demo rows if missing and return a token for the demo user."""
    init_db()
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == email).first()
        if user:
            logger.info(f"User {email} already exists (organization {user.organization_id})")
        else:
            organization = Organization(name="Demo Organization", description="Seeded for local testing")
            db.add(organization)
            db.flush()

            user = User(email=email, first_name="Demo", last_name="User", organization_id=organization.id)
            db.add(user)
            db.flush()

            rng = random.Random(42)
            now = datetime.utcnow()
            for index in range(project_count):
                created_at = now - timedelta(days=rng.randint(1, 180))
                completed = index % 3 != 0
                completed_at = None
                if completed:
                    completed_at = min(now, created_at + timedelta(days=rng.randint(1, 60)))
                db.add(Project(
                    title=f"Demo project {index + 1}",
                    status=ProjectStatus.COMPLETED if completed else ProjectStatus.ACTIVE,
                    user_id=user.id,
                    organization_id=organization.id,
                    created_at=created_at,
                    completed_at=completed_at,
                ))

            db.commit()
            logger.info(f"Created organization {organization.id} with user {email} and {project_count} projects")

        return AuthService.create_user_token(user.id, user.email, user.organization_id)
    finally:
        db.close()


def main():
    """Seed demo data."""
    parser = argparse.ArgumentParser(description="Seed demo data for the project tracker")
    parser.add_argument(
        "--email",
        type=str,
        default="demo@example.com",
        help="Email of the demo user (default: demo@example.com)"
    )
    parser.add_argument(
        "--projects",
        type=int,
        default=12,
        help="Number of projects to create (default: 12)"
    )
    args = parser.parse_args()

    try:
        token = seed(args.email, args.projects)
    except Exception as e:
        logger.error(f"Seeding failed: {e}", exc_info=True)
        sys.exit(1)

    print(f"Authorization: Bearer {token}")


if __name__ == "__main__":
    main()
