"""Integration tests for group CRUD and lookups."""
import uuid

import pytest

from db import get_db
from db.errors import ConstraintViolation, NotFound, ValidationError
from db.repositories import groups as groups_repo

pytestmark = [pytest.mark.integration, pytest.mark.asyncio(loop_scope="session")]

VALID_ATTRS = {"label": "some group", "is_restricted": False}
VALID_OTHER_ATTRS = {"label": "some other group", "is_restricted": True}
UPDATE_ATTRS = {"label": "updated group", "is_restricted": False}


async def group_fixture(tenant, **attrs):
    async with get_db() as session:
        return await groups_repo.create_group(
            session, {**VALID_ATTRS, "organization_id": tenant.id, **attrs}
        )


async def test_create_group_with_valid_data(tenant):
    group = await group_fixture(tenant)
    assert group.label == "some group"
    assert group.is_restricted is False
    assert group.organization_id == tenant.id
    assert group.inserted_at is not None


async def test_create_group_without_label_is_invalid(tenant):
    with pytest.raises(ValidationError) as excinfo:
        async with get_db() as session:
            await groups_repo.create_group(session, {"label": None, "organization_id": tenant.id})
    assert "label" in excinfo.value.errors


async def test_create_group_with_duplicate_label(tenant):
    await group_fixture(tenant)
    with pytest.raises(ConstraintViolation) as excinfo:
        await group_fixture(tenant)
    assert excinfo.value.field == "label"


async def test_same_label_allowed_in_another_tenant(tenant, other_tenant):
    mine = await group_fixture(tenant)
    theirs = await group_fixture(other_tenant)
    assert mine.id != theirs.id


async def test_get_group_returns_the_group(tenant):
    group = await group_fixture(tenant)
    async with get_db() as session:
        fetched = await groups_repo.get_group(session, group.id)
    assert fetched.id == group.id
    assert fetched.label == group.label


async def test_get_group_is_tenant_scoped(tenant, other_tenant):
    group = await group_fixture(tenant)
    with pytest.raises(NotFound):
        async with get_db() as session:
            await groups_repo.get_group(session, group.id, other_tenant.id)


async def test_update_group_with_valid_data(tenant):
    group = await group_fixture(tenant)
    async with get_db() as session:
        group = await groups_repo.get_group(session, group.id)
        group = await groups_repo.update_group(session, group, UPDATE_ATTRS)
    assert group.label == "updated group"
    assert group.is_restricted is False


async def test_update_group_with_invalid_data_leaves_it_unchanged(tenant):
    group = await group_fixture(tenant)
    with pytest.raises(ValidationError):
        async with get_db() as session:
            loaded = await groups_repo.get_group(session, group.id)
            await groups_repo.update_group(session, loaded, {"label": None})

    async with get_db() as session:
        fetched = await groups_repo.get_group(session, group.id)
    assert fetched.label == "some group"


async def test_update_group_to_taken_label(tenant):
    await group_fixture(tenant)
    other = await group_fixture(tenant, **VALID_OTHER_ATTRS)
    with pytest.raises(ConstraintViolation) as excinfo:
        async with get_db() as session:
            loaded = await groups_repo.get_group(session, other.id)
            await groups_repo.update_group(session, loaded, {"label": "some group"})
    assert excinfo.value.field == "label"


async def test_delete_group(tenant, user):
    """Deleting a group removes it and its memberships."""
    group = await group_fixture(tenant)
    async with get_db() as session:
        await groups_repo.update_user_groups(session, user.id, [group.id], tenant.id)

    async with get_db() as session:
        loaded = await groups_repo.get_group(session, group.id)
        await groups_repo.delete_group(session, loaded)

    with pytest.raises(NotFound):
        async with get_db() as session:
            await groups_repo.get_group(session, group.id)
    async with get_db() as session:
        assert await groups_repo.list_user_group_ids(session, user.id) == []


async def test_list_groups_filtered_by_label(tenant):
    group = await group_fixture(tenant)
    async with get_db() as session:
        groups = await groups_repo.list_groups(session, tenant.id, label=group.label)
    assert [g.id for g in groups] == [group.id]


async def test_list_groups_sorted(tenant):
    group1 = await group_fixture(tenant)
    group2 = await group_fixture(tenant, **VALID_OTHER_ATTRS)
    async with get_db() as session:
        ascending = await groups_repo.list_groups(session, tenant.id, label="some", order="asc")
        descending = await groups_repo.list_groups(session, tenant.id, label="some", order="desc")
    assert [g.id for g in ascending] == [group1.id, group2.id]
    assert [g.id for g in descending] == [group2.id, group1.id]


async def test_list_groups_exact_label_and_restricted_filter(tenant):
    await group_fixture(tenant)
    group2 = await group_fixture(tenant, **VALID_OTHER_ATTRS)
    async with get_db() as session:
        by_label = await groups_repo.list_groups(session, tenant.id, label="some other group")
        restricted = await groups_repo.list_groups(session, tenant.id, is_restricted=True)
    assert [g.id for g in by_label] == [group2.id]
    assert [g.id for g in restricted] == [group2.id]


async def test_list_groups_paging(tenant):
    for label in ("a", "b", "c"):
        await group_fixture(tenant, label=label)
    async with get_db() as session:
        page = await groups_repo.list_groups(session, tenant.id, limit=2, offset=1)
    assert [g.label for g in page] == ["b", "c"]


async def test_list_groups_rejects_unknown_order(tenant):
    with pytest.raises(ValidationError):
        async with get_db() as session:
            await groups_repo.list_groups(session, tenant.id, order="sideways")


async def test_list_groups_excludes_other_tenants(tenant, other_tenant):
    await group_fixture(other_tenant)
    async with get_db() as session:
        assert await groups_repo.list_groups(session, tenant.id) == []


async def test_count_groups(tenant):
    await group_fixture(tenant)
    async with get_db() as session:
        assert await groups_repo.count_groups(session, tenant.id) == 1

    await group_fixture(tenant, **VALID_OTHER_ATTRS)
    async with get_db() as session:
        assert await groups_repo.count_groups(session, tenant.id) == 2
        assert await groups_repo.count_groups(session, tenant.id, label="other group") == 1


async def test_get_or_create_group_by_label_creates(tenant):
    async with get_db() as session:
        assert await groups_repo.count_groups(session, tenant.id, label="Group") == 0
        group = await groups_repo.get_or_create_group_by_label(session, "Group", tenant.id)
    async with get_db() as session:
        assert await groups_repo.count_groups(session, tenant.id, label="Group") == 1
    assert group.label == "Group"


async def test_get_or_create_group_by_label_retrieves_existing(tenant):
    existing = await group_fixture(tenant, label="Group")
    async with get_db() as session:
        group = await groups_repo.get_or_create_group_by_label(session, "Group", tenant.id)
    assert group.id == existing.id


async def test_get_or_create_group_by_label_with_unknown_organization(tenant):
    """An unknown tenant is a constraint violation and leaves the session usable."""
    async with get_db() as session:
        with pytest.raises(ConstraintViolation) as excinfo:
            await groups_repo.get_or_create_group_by_label(session, "Group", uuid.uuid4())
        group = await groups_repo.get_or_create_group_by_label(session, "Group", tenant.id)

    assert excinfo.value.field == "organization_id"
    assert excinfo.value.constraint == "fk_group_org"
    assert group.organization_id == tenant.id


async def test_load_group_by_label(tenant):
    group1 = await group_fixture(tenant)
    group2 = await group_fixture(tenant, **VALID_OTHER_ATTRS)
    async with get_db() as session:
        result = await groups_repo.load_group_by_label(
            session, ["some group", "some other group", "missing"], tenant.id
        )
    assert {g.id for g in result} == {group1.id, group2.id}
