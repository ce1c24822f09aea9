"""Organization repository: tenant records."""
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db import errors
from db.models import Organization
from schemas.tenancy import OrganizationCreate

logger = logging.getLogger(__name__)


async def create_organization(session: AsyncSession, attrs: dict) -> Organization:
    """Create a tenant.

    attrs keys: name, shortcode (both required, shortcode unique), email, is_active
    """
    data = errors.validate(OrganizationCreate, attrs)
    org = Organization(**data.model_dump())
    async with errors.savepoint(session):
        session.add(org)
    logger.info("Created organization %s (%s)", org.shortcode, org.id)
    return org


async def get_organization(session: AsyncSession, organization_id: UUID) -> Organization:
    """Return the Organization with this id. Raises NotFound."""
    org = await session.get(Organization, organization_id)
    if org is None:
        raise errors.NotFound("Organization", organization_id)
    return org


async def get_by_shortcode(session: AsyncSession, shortcode: str) -> Optional[Organization]:
    """Return the Organization with this shortcode, or None."""
    result = await session.execute(
        select(Organization).where(Organization.shortcode == shortcode)
    )
    return result.scalar_one_or_none()
