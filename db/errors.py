"""Typed repository errors and IntegrityError translation.

Repositories raise these instead of leaking SQLAlchemy or pydantic
exceptions, so callers only need to handle three cases:

- NotFound: a lookup by id matched no row
- ValidationError: input attrs failed validation (field -> messages)
- ConstraintViolation: the database rejected a write on a FK/unique constraint
"""
import logging
import re
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import pydantic
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# Constraint name -> the input field it is reported against.
CONSTRAINT_FIELDS = {
    "uq_organization_shortcode": "shortcode",
    "uq_language_locale": "locale",
    "uq_user_org_phone": "phone",
    "uq_contact_org_phone": "phone",
    "uq_group_org_label": "label",
    "uq_user_group": "user_id",
    "uq_contact_group": "contact_id",
    "fk_user_org": "organization_id",
    "fk_contact_org": "organization_id",
    "fk_contact_language": "language_id",
    "fk_group_org": "organization_id",
    "fk_user_group_user": "user_id",
    "fk_user_group_group": "group_id",
    "fk_user_group_org": "organization_id",
    "fk_contact_group_contact": "contact_id",
    "fk_contact_group_group": "group_id",
    "fk_contact_group_org": "organization_id",
    "fk_session_template_org": "organization_id",
    "fk_session_template_language": "language_id",
    "fk_session_template_parent": "parent_id",
}

_CONSTRAINT_RE = re.compile(r'constraint "(?P<name>[^"]+)"')


class RepositoryError(Exception):
    """Base class for errors raised by the repository layer."""


class NotFound(RepositoryError):
    """Raised when a lookup by id finds no row."""

    def __init__(self, entity: str, id_: Any):
        super().__init__(f"{entity} {id_} not found")
        self.entity = entity
        self.id = id_


class ValidationError(RepositoryError):
    """Raised when input attrs are invalid.

    errors maps a field name to a list of human-readable messages, e.g.
    {"label": ["Field required"]}.
    """

    def __init__(self, errors: dict[str, list[str]]):
        self.errors = errors
        detail = "; ".join(f"{field}: {', '.join(msgs)}" for field, msgs in errors.items())
        super().__init__(f"validation failed ({detail})")

    @classmethod
    def from_pydantic(cls, exc: pydantic.ValidationError) -> "ValidationError":
        errors: dict[str, list[str]] = {}
        for err in exc.errors():
            field = ".".join(str(part) for part in err["loc"]) or "__root__"
            errors.setdefault(field, []).append(err["msg"])
        return cls(errors)


class ConstraintViolation(ValidationError):
    """Raised when a write violates a foreign-key or uniqueness constraint."""

    def __init__(self, field: str, message: str, constraint: Optional[str] = None):
        super().__init__({field: [message]})
        self.field = field
        self.constraint = constraint


def constraint_name(exc: IntegrityError) -> Optional[str]:
    """Return the violated constraint name from an IntegrityError, if known.

    asyncpg exposes it as ``constraint_name`` on the driver exception, which
    SQLAlchemy chains as the cause of ``exc.orig``.
    """
    for candidate in (exc.orig, getattr(exc.orig, "__cause__", None)):
        name = getattr(candidate, "constraint_name", None)
        if name:
            return name
    match = _CONSTRAINT_RE.search(str(exc.orig))
    return match.group("name") if match else None


def from_integrity_error(exc: IntegrityError) -> ConstraintViolation:
    """Translate an IntegrityError into a ConstraintViolation naming the field."""
    name = constraint_name(exc)
    field = CONSTRAINT_FIELDS.get(name or "", "__all__")
    message = str(exc.orig).lower()
    if "foreign key" in message:
        text = "does not exist"
    elif "unique" in message or "duplicate" in message:
        text = "has already been taken"
    else:
        text = "is invalid"
    logger.warning("Constraint %s rejected write on %s: %s", name, field, text)
    return ConstraintViolation(field, text, constraint=name)


def validate(schema: type[pydantic.BaseModel], attrs: dict) -> pydantic.BaseModel:
    """Validate attrs against a pydantic schema, raising ValidationError."""
    try:
        return schema.model_validate(attrs)
    except pydantic.ValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc


@asynccontextmanager
async def savepoint(session: AsyncSession) -> AsyncIterator[None]:
    """Run the block's writes inside a SAVEPOINT and flush them.

    On an IntegrityError the savepoint is rolled back, the outer transaction
    stays usable, and a ConstraintViolation is raised instead.

    Usage:
        async with savepoint(session):
            session.add(group)
    """
    try:
        async with session.begin_nested():
            yield
            await session.flush()
    except IntegrityError as exc:
        raise from_integrity_error(exc) from exc
