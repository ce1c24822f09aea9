"""Session template repository: reusable message bodies and their translations."""
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db import errors
from db.models import SessionTemplate
from schemas.templates import SessionTemplateCreate, SessionTemplateUpdate

logger = logging.getLogger(__name__)


async def create_session_template(session: AsyncSession, attrs: dict) -> SessionTemplate:
    """Create a session template.

    attrs keys: organization_id, label, body, language_id (required),
    shortcode, is_source, is_active, is_reserved, parent_id

    An unknown language_id or parent_id raises ConstraintViolation on that field.
    """
    data = errors.validate(SessionTemplateCreate, attrs)
    template = SessionTemplate(**data.model_dump())
    async with errors.savepoint(session):
        session.add(template)
    return template


async def get_session_template(
    session: AsyncSession, template_id: UUID, organization_id: Optional[UUID] = None
) -> SessionTemplate:
    """Return the SessionTemplate with this id. Raises NotFound."""
    stmt = select(SessionTemplate).where(SessionTemplate.id == template_id)
    if organization_id is not None:
        stmt = stmt.where(SessionTemplate.organization_id == organization_id)
    result = await session.execute(stmt)
    template = result.scalar_one_or_none()
    if template is None:
        raise errors.NotFound("SessionTemplate", template_id)
    return template


async def list_session_templates(
    session: AsyncSession,
    organization_id: UUID,
    *,
    label: Optional[str] = None,
    is_active: Optional[bool] = None,
    language_id: Optional[UUID] = None,
) -> list[SessionTemplate]:
    """Return the tenant's templates ordered by label."""
    stmt = select(SessionTemplate).where(SessionTemplate.organization_id == organization_id)
    if label is not None:
        stmt = stmt.where(SessionTemplate.label.ilike(f"%{label}%"))
    if is_active is not None:
        stmt = stmt.where(SessionTemplate.is_active == is_active)
    if language_id is not None:
        stmt = stmt.where(SessionTemplate.language_id == language_id)
    result = await session.execute(stmt.order_by(SessionTemplate.label, SessionTemplate.id))
    return list(result.scalars().all())


async def list_child_templates(session: AsyncSession, parent_id: UUID) -> list[SessionTemplate]:
    """Return the translations derived from a source template."""
    result = await session.execute(
        select(SessionTemplate)
        .where(SessionTemplate.parent_id == parent_id)
        .order_by(SessionTemplate.inserted_at, SessionTemplate.id)
    )
    return list(result.scalars().all())


async def update_session_template(
    session: AsyncSession, template: SessionTemplate, attrs: dict
) -> SessionTemplate:
    """Apply the keys present in attrs to template."""
    changes = errors.validate(SessionTemplateUpdate, attrs).model_dump(exclude_unset=True)
    async with errors.savepoint(session):
        for key, value in changes.items():
            setattr(template, key, value)
    return template


async def delete_session_template(
    session: AsyncSession, template: SessionTemplate
) -> SessionTemplate:
    """Delete a template. Its translations stay, with parent_id set to NULL."""
    await session.delete(template)
    await session.flush()
    return template
