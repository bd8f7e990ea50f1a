"""Profile lookups and company association."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from autocrm.db.enums import UserRole
from autocrm.db.models import Company, Profile

logger = logging.getLogger(__name__)


def get_profile_by_email(db: Session, email: str) -> Profile | None:
    return db.scalar(select(Profile).where(Profile.email == email.strip().lower()))


def create_profile(
    db: Session,
    *,
    name: str,
    email: str,
    role: UserRole = UserRole.CUSTOMER,
    company_id: UUID | None = None,
    user_id: UUID | None = None,
) -> Profile:
    """Create a profile. Email must be unique (case-insensitive)."""
    normalized = email.strip().lower()
    if get_profile_by_email(db, normalized):
        raise ValueError(f"Profile already exists for {normalized}")
    profile = Profile(name=name.strip(), email=normalized, role=role, company_id=company_id)
    if user_id:
        profile.id = user_id
    db.add(profile)
    db.commit()
    db.refresh(profile)
    logger.info(f"Created {role.value} profile {profile.id}")
    return profile


def list_company_agents(db: Session, company_id: UUID) -> list[Profile]:
    """Agents of a company, by name."""
    return list(
        db.scalars(
            select(Profile)
            .where(Profile.company_id == company_id, Profile.role == UserRole.AGENT)
            .order_by(Profile.name)
        )
    )


def is_company_agent(db: Session, user_id: UUID, company_id: UUID | None) -> bool:
    if company_id is None:
        return False
    profile = db.get(Profile, user_id)
    return bool(
        profile and profile.role == UserRole.AGENT and profile.company_id == company_id
    )


def assign_company(db: Session, profile: Profile, company: Company) -> Profile:
    """Associate a profile with a company."""
    profile.company_id = company.id
    db.commit()
    db.refresh(profile)
    logger.info(f"Assigned profile {profile.id} to company {company.id}")
    return profile
