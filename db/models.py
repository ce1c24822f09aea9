"""SQLAlchemy 2.0 ORM models for the Parley CRM data layer.

Covers 8 tables in the crm schema:
  organizations (tenants), languages, users, contacts, groups,
  users_groups, contacts_groups, session_templates

Every tenant-owned row carries organization_id; uniqueness constraints are
scoped per tenant.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    UUID,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


# ---------------------------------------------------------------------------
# Shared base
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    # Fetch server defaults with RETURNING at flush; lazy refresh is not
    # available under AsyncSession.
    __mapper_args__ = {"eager_defaults": True}


_CONTACT_STATUSES = ("valid", "invalid", "blocked")

_CONTACT_STATUS_CHECK = (
    "status IN (" + ", ".join(f"'{s}'" for s in _CONTACT_STATUSES) + ")"
)


def _org_fk(name: str) -> ForeignKey:
    return ForeignKey("crm.organizations.id", name=name, ondelete="CASCADE")


# ===========================================================================
# Tenancy and reference data
# ===========================================================================


class Organization(Base):
    """crm.organizations: a tenant; every other row is scoped to one."""

    __tablename__ = "organizations"
    __table_args__ = (
        UniqueConstraint("shortcode", name="uq_organization_shortcode"),
        {"schema": "crm"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    shortcode: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, server_default="true", nullable=False)
    inserted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class Language(Base):
    """crm.languages: shared across tenants."""

    __tablename__ = "languages"
    __table_args__ = (
        UniqueConstraint("locale", name="uq_language_locale"),
        {"schema": "crm"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    label: Mapped[str] = mapped_column(Text, nullable=False)
    locale: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, server_default="true", nullable=False)


# ===========================================================================
# People
# ===========================================================================


class User(Base):
    """crm.users: staff accounts of a tenant."""

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("organization_id", "phone", name="uq_user_org_phone"),
        {"schema": "crm"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), _org_fk("fk_user_org"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    roles: Mapped[list[str]] = mapped_column(
        ARRAY(Text), server_default=text("ARRAY['none']::text[]"), nullable=False
    )
    is_restricted: Mapped[bool] = mapped_column(
        Boolean, server_default="false", nullable=False
    )
    inserted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    groups: Mapped[list["Group"]] = relationship(
        "Group", secondary="crm.users_groups", viewonly=True
    )


class Contact(Base):
    """crm.contacts: people the tenant messages."""

    __tablename__ = "contacts"
    __table_args__ = (
        CheckConstraint(_CONTACT_STATUS_CHECK, name="ck_contact_status"),
        UniqueConstraint("organization_id", "phone", name="uq_contact_org_phone"),
        {"schema": "crm"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), _org_fk("fk_contact_org"), nullable=False, index=True
    )
    name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, server_default="valid")
    language_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("crm.languages.id", name="fk_contact_language", ondelete="SET NULL"),
        nullable=True,
    )
    inserted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    groups: Mapped[list["Group"]] = relationship(
        "Group", secondary="crm.contacts_groups", viewonly=True
    )


# ===========================================================================
# Groups and memberships
# ===========================================================================


class Group(Base):
    """crm.groups: named collection of users and contacts within a tenant."""

    __tablename__ = "groups"
    __table_args__ = (
        UniqueConstraint("organization_id", "label", name="uq_group_org_label"),
        {"schema": "crm"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), _org_fk("fk_group_org"), nullable=False, index=True
    )
    label: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_restricted: Mapped[bool] = mapped_column(
        Boolean, server_default="false", nullable=False
    )
    inserted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    users: Mapped[list["User"]] = relationship(
        "User", secondary="crm.users_groups", viewonly=True
    )
    contacts: Mapped[list["Contact"]] = relationship(
        "Contact", secondary="crm.contacts_groups", viewonly=True
    )


class UserGroup(Base):
    """crm.users_groups: membership of a user in a group.

    inserted_at uses clock_timestamp() so rows written in one transaction
    still read back in insertion order.
    """

    __tablename__ = "users_groups"
    __table_args__ = (
        UniqueConstraint("user_id", "group_id", "organization_id", name="uq_user_group"),
        {"schema": "crm"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("crm.users.id", name="fk_user_group_user", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    group_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("crm.groups.id", name="fk_user_group_group", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), _org_fk("fk_user_group_org"), nullable=False
    )
    inserted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("clock_timestamp()"), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=text("clock_timestamp()"),
        onupdate=func.now(),
        nullable=False,
    )


class ContactGroup(Base):
    """crm.contacts_groups: membership of a contact in a group."""

    __tablename__ = "contacts_groups"
    __table_args__ = (
        UniqueConstraint(
            "contact_id", "group_id", "organization_id", name="uq_contact_group"
        ),
        {"schema": "crm"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    contact_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("crm.contacts.id", name="fk_contact_group_contact", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    group_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("crm.groups.id", name="fk_contact_group_group", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), _org_fk("fk_contact_group_org"), nullable=False
    )
    inserted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("clock_timestamp()"), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=text("clock_timestamp()"),
        onupdate=func.now(),
        nullable=False,
    )


# ===========================================================================
# Messaging
# ===========================================================================


class SessionTemplate(Base):
    """crm.session_templates: reusable message bodies, optionally translated.

    A translation points at its source template through parent_id.
    """

    __tablename__ = "session_templates"
    __table_args__ = {"schema": "crm"}

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), _org_fk("fk_session_template_org"), nullable=False, index=True
    )
    label: Mapped[str] = mapped_column(Text, nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    shortcode: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_source: Mapped[bool] = mapped_column(Boolean, server_default="false", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, server_default="false", nullable=False)
    is_reserved: Mapped[bool] = mapped_column(Boolean, server_default="false", nullable=False)
    language_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("crm.languages.id", name="fk_session_template_language"),
        nullable=False,
    )
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey(
            "crm.session_templates.id",
            name="fk_session_template_parent",
            ondelete="SET NULL",
        ),
        nullable=True,
    )
    inserted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    language: Mapped["Language"] = relationship("Language")
    parent: Mapped[Optional["SessionTemplate"]] = relationship(
        "SessionTemplate", remote_side=[id], back_populates="children"
    )
    children: Mapped[list["SessionTemplate"]] = relationship(
        "SessionTemplate", back_populates="parent", passive_deletes=True
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    "Base",
    "Organization",
    "Language",
    "User",
    "Contact",
    "Group",
    "UserGroup",
    "ContactGroup",
    "SessionTemplate",
]
