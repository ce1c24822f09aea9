"""Group repository: CRUD, memberships, and user-group reconciliation.

Two membership creation policies live side by side:
- create_user_group: strict, a duplicate (user, group) pair is an error
- get_or_create_user_group / create_contact_group: forgiving, a duplicate
  pair returns the existing row
"""
import logging
import uuid
from typing import Iterable, Optional, Union
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from db import errors
from db.models import Contact, ContactGroup, Group, User, UserGroup
from schemas.groups import (
    ContactGroupCreate,
    GroupCreate,
    GroupUpdate,
    UserGroupCreate,
    UserGroupsUpdate,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


def _filter_groups(stmt, organization_id: UUID, label: Optional[str], is_restricted: Optional[bool]):
    stmt = stmt.where(Group.organization_id == organization_id)
    if label is not None:
        stmt = stmt.where(Group.label.ilike(f"%{label}%"))
    if is_restricted is not None:
        stmt = stmt.where(Group.is_restricted == is_restricted)
    return stmt


async def list_groups(
    session: AsyncSession,
    organization_id: UUID,
    *,
    label: Optional[str] = None,
    is_restricted: Optional[bool] = None,
    order: str = "asc",
    limit: Optional[int] = None,
    offset: int = 0,
) -> list[Group]:
    """Return the tenant's groups, label-filtered (substring, case-insensitive) and ordered by label."""
    if order not in ("asc", "desc"):
        raise errors.ValidationError({"order": ["must be 'asc' or 'desc'"]})
    label_order = Group.label.asc() if order == "asc" else Group.label.desc()
    stmt = (
        _filter_groups(select(Group), organization_id, label, is_restricted)
        .order_by(label_order, Group.id)
        .offset(offset)
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def count_groups(
    session: AsyncSession,
    organization_id: UUID,
    *,
    label: Optional[str] = None,
    is_restricted: Optional[bool] = None,
) -> int:
    """Return the number of groups list_groups would return without paging."""
    stmt = _filter_groups(select(func.count(Group.id)), organization_id, label, is_restricted)
    result = await session.execute(stmt)
    return result.scalar_one()


async def get_group(
    session: AsyncSession, group_id: UUID, organization_id: Optional[UUID] = None
) -> Group:
    """Return the Group with this id. Raises NotFound."""
    stmt = select(Group).where(Group.id == group_id)
    if organization_id is not None:
        stmt = stmt.where(Group.organization_id == organization_id)
    result = await session.execute(stmt)
    group = result.scalar_one_or_none()
    if group is None:
        raise errors.NotFound("Group", group_id)
    return group


async def create_group(session: AsyncSession, attrs: dict) -> Group:
    """Create a group.

    attrs keys: organization_id, label (required), description, is_restricted.
    A label already used in the tenant raises ConstraintViolation on label.
    """
    data = errors.validate(GroupCreate, attrs)
    group = Group(**data.model_dump())
    async with errors.savepoint(session):
        session.add(group)
    return group


async def update_group(session: AsyncSession, group: Group, attrs: dict) -> Group:
    """Apply the keys present in attrs to group. Invalid attrs leave it untouched."""
    changes = errors.validate(GroupUpdate, attrs).model_dump(exclude_unset=True)
    async with errors.savepoint(session):
        for key, value in changes.items():
            setattr(group, key, value)
    return group


async def delete_group(session: AsyncSession, group: Group) -> Group:
    """Delete a group. Its user and contact memberships go with it (ON DELETE CASCADE)."""
    await session.delete(group)
    await session.flush()
    logger.info("Deleted group %s (%s)", group.id, group.label)
    return group


async def get_or_create_group_by_label(
    session: AsyncSession, label: str, organization_id: UUID
) -> Group:
    """Return the tenant's group with this label, creating it if missing. Idempotent."""
    data = errors.validate(GroupCreate, {"label": label, "organization_id": organization_id})
    stmt = (
        pg_insert(Group)
        .values(id=uuid.uuid4(), **data.model_dump())
        .on_conflict_do_nothing(constraint="uq_group_org_label")
        .returning(Group)
    )
    async with errors.savepoint(session):
        result = await session.execute(stmt)
    group = result.scalar_one_or_none()
    if group is None:
        existing = await session.execute(
            select(Group)
            .where(Group.organization_id == data.organization_id)
            .where(Group.label == data.label)
        )
        group = existing.scalar_one()
    return group


async def load_group_by_label(
    session: AsyncSession, labels: Iterable[str], organization_id: UUID
) -> list[Group]:
    """Return the tenant's groups whose label is one of labels (exact match)."""
    labels = list(labels)
    if not labels:
        return []
    result = await session.execute(
        select(Group)
        .where(Group.organization_id == organization_id)
        .where(Group.label.in_(labels))
        .order_by(Group.label)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Memberships
# ---------------------------------------------------------------------------


async def _membership_tenant(
    session: AsyncSession,
    model,
    owner: str,
    owner_id: UUID,
    group_id: UUID,
    organization_id: Optional[UUID],
) -> UUID:
    """Return the owner's organization once group_id is known to belong to it.

    owner is "user" or "contact". A given organization_id must be the
    owner's own; a membership never spans two tenants.
    """
    result = await session.execute(select(model.organization_id).where(model.id == owner_id))
    owner_organization = result.scalar_one_or_none()
    if owner_organization is None:
        raise errors.ConstraintViolation(
            f"{owner}_id", "does not exist", constraint=f"fk_{owner}_group_{owner}"
        )
    if organization_id is not None and organization_id != owner_organization:
        raise errors.ConstraintViolation(
            "organization_id",
            f"does not match the {owner}'s organization",
            constraint=f"fk_{owner}_group_org",
        )

    found = await session.execute(
        select(Group.id)
        .where(Group.id == group_id)
        .where(Group.organization_id == owner_organization)
    )
    if found.scalar_one_or_none() is None:
        raise errors.ConstraintViolation(
            "group_id", "does not exist", constraint=f"fk_{owner}_group_group"
        )
    return owner_organization


async def _get_or_create_membership(
    session: AsyncSession,
    model,
    owner_field: str,
    owner_id: UUID,
    group_id: UUID,
    organization_id: UUID,
    constraint: str,
):
    owner_col = getattr(model, owner_field)
    stmt = (
        pg_insert(model)
        .values(
            id=uuid.uuid4(),
            group_id=group_id,
            organization_id=organization_id,
            **{owner_field: owner_id},
        )
        .on_conflict_do_nothing(constraint=constraint)
        .returning(model)
    )
    async with errors.savepoint(session):
        result = await session.execute(stmt)
    row = result.scalar_one_or_none()
    if row is None:
        # Already a member; fetch the existing row
        existing = await session.execute(
            select(model)
            .where(owner_col == owner_id)
            .where(model.group_id == group_id)
            .where(model.organization_id == organization_id)
        )
        row = existing.scalar_one()
    return row


async def create_user_group(session: AsyncSession, attrs: dict) -> UserGroup:
    """Add a user to a group, strictly.

    attrs keys: user_id, group_id, organization_id (optional, must be the
    user's). Raises ConstraintViolation on user_id when the pair already
    exists, and on group_id when the group is not in the user's tenant.
    """
    data = errors.validate(UserGroupCreate, attrs)
    organization_id = await _membership_tenant(
        session, User, "user", data.user_id, data.group_id, data.organization_id
    )
    membership = UserGroup(
        user_id=data.user_id, group_id=data.group_id, organization_id=organization_id
    )
    async with errors.savepoint(session):
        session.add(membership)
    return membership


async def get_or_create_user_group(session: AsyncSession, attrs: dict) -> UserGroup:
    """Add a user to a group, returning the existing membership if there is one."""
    data = errors.validate(UserGroupCreate, attrs)
    organization_id = await _membership_tenant(
        session, User, "user", data.user_id, data.group_id, data.organization_id
    )
    return await _get_or_create_membership(
        session, UserGroup, "user_id", data.user_id, data.group_id, organization_id, "uq_user_group"
    )


async def create_contact_group(session: AsyncSession, attrs: dict) -> ContactGroup:
    """Add a contact to a group. Adding the same pair twice returns the same row."""
    data = errors.validate(ContactGroupCreate, attrs)
    organization_id = await _membership_tenant(
        session, Contact, "contact", data.contact_id, data.group_id, data.organization_id
    )
    return await _get_or_create_membership(
        session,
        ContactGroup,
        "contact_id",
        data.contact_id,
        data.group_id,
        organization_id,
        "uq_contact_group",
    )


async def list_user_group_ids(session: AsyncSession, user_id: UUID) -> list[UUID]:
    """Return the user's group ids in insertion order."""
    result = await session.execute(
        select(UserGroup.group_id)
        .where(UserGroup.user_id == user_id)
        .order_by(UserGroup.inserted_at, UserGroup.id)
    )
    return list(result.scalars().all())


async def list_contact_group_ids(session: AsyncSession, contact_id: UUID) -> list[UUID]:
    """Return the contact's group ids in insertion order."""
    result = await session.execute(
        select(ContactGroup.group_id)
        .where(ContactGroup.contact_id == contact_id)
        .order_by(ContactGroup.inserted_at, ContactGroup.id)
    )
    return list(result.scalars().all())


def membership_delta(current: Iterable[UUID], desired: Iterable[UUID]) -> tuple[list[UUID], list[UUID]]:
    """Return (to_add, to_remove) turning current into desired.

    to_add keeps the order of desired with duplicates dropped; to_remove is
    sorted so deletes are issued in a stable order.
    """
    current = set(current)
    desired = list(dict.fromkeys(desired))
    wanted = set(desired)
    to_add = [group_id for group_id in desired if group_id not in current]
    to_remove = sorted(current - wanted, key=str)
    return to_add, to_remove


async def update_user_groups(
    session: AsyncSession,
    user_id: Union[UUID, str],
    group_ids: Iterable[Union[UUID, str]],
    organization_id: Union[UUID, str],
) -> None:
    """Make the user's group memberships exactly group_ids.

    The user row is locked FOR UPDATE first, so concurrent reconciliations of
    the same user run one after the other while other users are unaffected.
    Inserts and deletes share one savepoint: either both apply or neither.
    An empty group_ids removes every membership of the user.

    Raises ValidationError for unparseable ids and ConstraintViolation when
    the user or any group is not in the tenant.
    """
    params = errors.validate(
        UserGroupsUpdate,
        {"user_id": user_id, "organization_id": organization_id, "group_ids": list(group_ids)},
    )

    locked = await session.execute(
        select(User.id)
        .where(User.id == params.user_id)
        .where(User.organization_id == params.organization_id)
        .with_for_update()
    )
    if locked.scalar_one_or_none() is None:
        raise errors.ConstraintViolation("user_id", "does not exist", constraint="fk_user_group_user")

    if params.group_ids:
        found = await session.execute(
            select(Group.id)
            .where(Group.id.in_(params.group_ids))
            .where(Group.organization_id == params.organization_id)
        )
        unknown = set(params.group_ids) - set(found.scalars().all())
        if unknown:
            raise errors.ConstraintViolation(
                "group_id",
                "does not exist: " + ", ".join(sorted(str(g) for g in unknown)),
                constraint="fk_user_group_group",
            )

    current = await session.execute(
        select(UserGroup.group_id)
        .where(UserGroup.user_id == params.user_id)
        .where(UserGroup.organization_id == params.organization_id)
    )
    to_add, to_remove = membership_delta(current.scalars().all(), params.group_ids)
    if not to_add and not to_remove:
        return

    async with errors.savepoint(session):
        if to_add:
            await session.execute(
                pg_insert(UserGroup)
                .values(
                    [
                        {
                            "id": uuid.uuid4(),
                            "user_id": params.user_id,
                            "group_id": group_id,
                            "organization_id": params.organization_id,
                        }
                        for group_id in to_add
                    ]
                )
                .on_conflict_do_nothing(constraint="uq_user_group")
            )
        if to_remove:
            await session.execute(
                delete(UserGroup)
                .where(UserGroup.user_id == params.user_id)
                .where(UserGroup.organization_id == params.organization_id)
                .where(UserGroup.group_id.in_(to_remove))
            )

    logger.info(
        "Reconciled groups for user %s: %d added, %d removed",
        params.user_id, len(to_add), len(to_remove),
    )
