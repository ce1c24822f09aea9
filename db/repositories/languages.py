"""Language repository: shared reference data."""
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from db import errors
from db.models import Language
from schemas.tenancy import LanguageCreate


async def get_by_locale(session: AsyncSession, locale: str) -> Optional[Language]:
    """Return the Language with this locale, or None."""
    result = await session.execute(select(Language).where(Language.locale == locale))
    return result.scalar_one_or_none()


async def get_or_create_language(session: AsyncSession, label: str, locale: str) -> Language:
    """Return the language for locale, creating it if missing. Idempotent: safe to call twice."""
    data = errors.validate(LanguageCreate, {"label": label, "locale": locale})
    stmt = (
        pg_insert(Language)
        .values(id=uuid.uuid4(), **data.model_dump())
        .on_conflict_do_nothing(constraint="uq_language_locale")
        .returning(Language)
    )
    async with errors.savepoint(session):
        result = await session.execute(stmt)
    language = result.scalar_one_or_none()
    if language is None:
        language = await get_by_locale(session, data.locale)
    return language
