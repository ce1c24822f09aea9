"""Initial schema: crm tenants, people, groups, memberships, templates.

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(default: str = "now()") -> list:
    return [
        sa.Column("inserted_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text(default)),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text(default)),
    ]


def _org_fk(name: str) -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(
        ["organization_id"], ["crm.organizations.id"], name=name, ondelete="CASCADE"
    )


def upgrade() -> None:
    op.execute("CREATE SCHEMA IF NOT EXISTS crm")

    # ─── Tenancy and reference data ──────────────────────────────────────────

    op.create_table(
        "organizations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("shortcode", sa.Text, nullable=False),
        sa.Column("email", sa.Text, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        *_timestamps(),
        sa.UniqueConstraint("shortcode", name="uq_organization_shortcode"),
        schema="crm",
    )

    op.create_table(
        "languages",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("label", sa.Text, nullable=False),
        sa.Column("locale", sa.Text, nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.UniqueConstraint("locale", name="uq_language_locale"),
        schema="crm",
    )

    # ─── People ──────────────────────────────────────────────────────────────

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("phone", sa.Text, nullable=False),
        sa.Column("email", sa.Text, nullable=True),
        sa.Column(
            "roles",
            postgresql.ARRAY(sa.Text),
            nullable=False,
            server_default=sa.text("ARRAY['none']::text[]"),
        ),
        sa.Column("is_restricted", sa.Boolean, nullable=False, server_default="false"),
        *_timestamps(),
        sa.UniqueConstraint("organization_id", "phone", name="uq_user_org_phone"),
        _org_fk("fk_user_org"),
        schema="crm",
    )
    op.create_index("ix_users_organization_id", "users", ["organization_id"], schema="crm")

    op.create_table(
        "contacts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.Text, nullable=True),
        sa.Column("phone", sa.Text, nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default="valid"),
        sa.Column("language_id", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("status IN ('valid', 'invalid', 'blocked')", name="ck_contact_status"),
        sa.UniqueConstraint("organization_id", "phone", name="uq_contact_org_phone"),
        _org_fk("fk_contact_org"),
        sa.ForeignKeyConstraint(
            ["language_id"], ["crm.languages.id"], name="fk_contact_language", ondelete="SET NULL"
        ),
        schema="crm",
    )
    op.create_index("ix_contacts_organization_id", "contacts", ["organization_id"], schema="crm")

    # ─── Groups and memberships ──────────────────────────────────────────────

    op.create_table(
        "groups",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("label", sa.Text, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("is_restricted", sa.Boolean, nullable=False, server_default="false"),
        *_timestamps(),
        sa.UniqueConstraint("organization_id", "label", name="uq_group_org_label"),
        _org_fk("fk_group_org"),
        schema="crm",
    )
    op.create_index("ix_groups_organization_id", "groups", ["organization_id"], schema="crm")

    op.create_table(
        "users_groups",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("group_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps("clock_timestamp()"),
        sa.UniqueConstraint("user_id", "group_id", "organization_id", name="uq_user_group"),
        sa.ForeignKeyConstraint(["user_id"], ["crm.users.id"], name="fk_user_group_user", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["group_id"], ["crm.groups.id"], name="fk_user_group_group", ondelete="CASCADE"),
        _org_fk("fk_user_group_org"),
        schema="crm",
    )
    op.create_index("ix_users_groups_user_id", "users_groups", ["user_id"], schema="crm")
    op.create_index("ix_users_groups_group_id", "users_groups", ["group_id"], schema="crm")

    op.create_table(
        "contacts_groups",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("contact_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("group_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        *_timestamps("clock_timestamp()"),
        sa.UniqueConstraint("contact_id", "group_id", "organization_id", name="uq_contact_group"),
        sa.ForeignKeyConstraint(
            ["contact_id"], ["crm.contacts.id"], name="fk_contact_group_contact", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["group_id"], ["crm.groups.id"], name="fk_contact_group_group", ondelete="CASCADE"
        ),
        _org_fk("fk_contact_group_org"),
        schema="crm",
    )
    op.create_index("ix_contacts_groups_contact_id", "contacts_groups", ["contact_id"], schema="crm")
    op.create_index("ix_contacts_groups_group_id", "contacts_groups", ["group_id"], schema="crm")

    # ─── Messaging ───────────────────────────────────────────────────────────

    op.create_table(
        "session_templates",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("label", sa.Text, nullable=False),
        sa.Column("body", sa.Text, nullable=False),
        sa.Column("shortcode", sa.Text, nullable=True),
        sa.Column("is_source", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("is_reserved", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("language_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("parent_id", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        _org_fk("fk_session_template_org"),
        sa.ForeignKeyConstraint(
            ["language_id"], ["crm.languages.id"], name="fk_session_template_language"
        ),
        sa.ForeignKeyConstraint(
            ["parent_id"], ["crm.session_templates.id"],
            name="fk_session_template_parent", ondelete="SET NULL",
        ),
        schema="crm",
    )
    op.create_index(
        "ix_session_templates_organization_id", "session_templates", ["organization_id"], schema="crm"
    )


def downgrade() -> None:
    op.drop_index("ix_session_templates_organization_id", table_name="session_templates", schema="crm")
    op.drop_index("ix_contacts_groups_group_id", table_name="contacts_groups", schema="crm")
    op.drop_index("ix_contacts_groups_contact_id", table_name="contacts_groups", schema="crm")
    op.drop_index("ix_users_groups_group_id", table_name="users_groups", schema="crm")
    op.drop_index("ix_users_groups_user_id", table_name="users_groups", schema="crm")
    op.drop_index("ix_groups_organization_id", table_name="groups", schema="crm")
    op.drop_index("ix_contacts_organization_id", table_name="contacts", schema="crm")
    op.drop_index("ix_users_organization_id", table_name="users", schema="crm")
    # Drop in reverse dependency order
    op.drop_table("session_templates", schema="crm")
    op.drop_table("contacts_groups", schema="crm")
    op.drop_table("users_groups", schema="crm")
    op.drop_table("groups", schema="crm")
    op.drop_table("contacts", schema="crm")
    op.drop_table("users", schema="crm")
    op.drop_table("languages", schema="crm")
    op.drop_table("organizations", schema="crm")
