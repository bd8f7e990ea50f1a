"""Company (tenant) management."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from autocrm.db.models import Company

logger = logging.getLogger(__name__)


def create_company(db: Session, name: str) -> Company:
    """Create a company. Names are unique."""
    cleaned = name.strip()
    if not cleaned:
        raise ValueError("Company name is required")
    if get_company_by_name(db, cleaned):
        raise ValueError(f"Company '{cleaned}' already exists")
    company = Company(name=cleaned)
    db.add(company)
    db.commit()
    db.refresh(company)
    logger.info(f"Created company {company.id}")
    return company


def get_company_by_name(db: Session, name: str) -> Company | None:
    return db.scalar(select(Company).where(Company.name == name))


def get_company(db: Session, company_id: UUID) -> Company:
    company = db.get(Company, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


def list_companies(db: Session) -> list[Company]:
    return list(db.scalars(select(Company).order_by(Company.name)))
