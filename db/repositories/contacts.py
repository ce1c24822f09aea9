"""Contact repository: dedup by phone within a tenant."""
import logging
import uuid
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from db import errors
from db.models import Contact
from schemas.tenancy import ContactUpsert

logger = logging.getLogger(__name__)


async def get_contact(
    session: AsyncSession, contact_id: UUID, organization_id: Optional[UUID] = None
) -> Contact:
    """Return the Contact with this id. Raises NotFound."""
    stmt = select(Contact).where(Contact.id == contact_id)
    if organization_id is not None:
        stmt = stmt.where(Contact.organization_id == organization_id)
    result = await session.execute(stmt)
    contact = result.scalar_one_or_none()
    if contact is None:
        raise errors.NotFound("Contact", contact_id)
    return contact


async def get_by_phone(
    session: AsyncSession, organization_id: UUID, phone: str
) -> Optional[Contact]:
    """Return the tenant's Contact with this phone, or None."""
    result = await session.execute(
        select(Contact)
        .where(Contact.organization_id == organization_id)
        .where(Contact.phone == phone.strip())
    )
    return result.scalar_one_or_none()


async def upsert(session: AsyncSession, data: dict) -> Contact:
    """Insert or update a contact by (organization_id, phone) (dedup key).

    data dict keys: organization_id, phone, name, status, language_id
    """
    values = errors.validate(ContactUpsert, data).model_dump()
    stmt = (
        pg_insert(Contact)
        .values(id=uuid.uuid4(), **values)
        .on_conflict_do_update(
            constraint="uq_contact_org_phone",
            set_={k: v for k, v in values.items() if k not in ("organization_id", "phone")},
        )
        .returning(Contact)
    )
    async with errors.savepoint(session):
        result = await session.execute(
            stmt, execution_options={"populate_existing": True}
        )
    contact = result.scalar_one()
    return contact


async def list_contacts(
    session: AsyncSession,
    organization_id: UUID,
    *,
    name: Optional[str] = None,
    status: Optional[str] = None,
) -> list[Contact]:
    """Return the tenant's contacts ordered by name, with optional filters."""
    stmt = select(Contact).where(Contact.organization_id == organization_id)
    if name is not None:
        stmt = stmt.where(Contact.name.ilike(f"%{name}%"))
    if status is not None:
        stmt = stmt.where(Contact.status == status)
    result = await session.execute(stmt.order_by(Contact.name, Contact.id))
    return list(result.scalars().all())
