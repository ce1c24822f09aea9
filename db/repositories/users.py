"""User repository: tenant staff accounts."""
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db import errors
from db.models import User
from schemas.tenancy import UserCreate

logger = logging.getLogger(__name__)


async def create_user(session: AsyncSession, attrs: dict) -> User:
    """Create a user.

    attrs keys: organization_id, name, phone (required; phone unique per
    tenant), email, roles, is_restricted
    """
    data = errors.validate(UserCreate, attrs)
    user = User(**data.model_dump())
    async with errors.savepoint(session):
        session.add(user)
    return user


async def get_user(
    session: AsyncSession, user_id: UUID, organization_id: Optional[UUID] = None
) -> User:
    """Return the User with this id. Raises NotFound."""
    stmt = select(User).where(User.id == user_id)
    if organization_id is not None:
        stmt = stmt.where(User.organization_id == organization_id)
    result = await session.execute(stmt)
    user = result.scalar_one_or_none()
    if user is None:
        raise errors.NotFound("User", user_id)
    return user


async def list_users(
    session: AsyncSession, organization_id: UUID, *, name: Optional[str] = None
) -> list[User]:
    """Return the tenant's users ordered by name, optionally name-filtered."""
    stmt = select(User).where(User.organization_id == organization_id)
    if name is not None:
        stmt = stmt.where(User.name.ilike(f"%{name}%"))
    result = await session.execute(stmt.order_by(User.name, User.id))
    return list(result.scalars().all())


async def delete_user(session: AsyncSession, user: User) -> User:
    """Delete a user; group memberships are removed by ON DELETE CASCADE."""
    await session.delete(user)
    await session.flush()
    logger.info("Deleted user %s", user.id)
    return user
