"""Integration tests for session templates."""
import uuid

import pytest

from db import get_db
from db.errors import ConstraintViolation, NotFound, ValidationError
from db.repositories import session_templates as templates_repo

pytestmark = [pytest.mark.integration, pytest.mark.asyncio(loop_scope="session")]


async def template_fixture(tenant, language, **attrs):
    async with get_db() as session:
        return await templates_repo.create_session_template(session, {
            "organization_id": tenant.id,
            "label": "Welcome",
            "body": "Hi {{1}}, welcome aboard.",
            "language_id": language.id,
            **attrs,
        })


async def test_create_session_template_with_valid_data(tenant, language):
    template = await template_fixture(tenant, language, shortcode="welcome")
    assert template.label == "Welcome"
    assert template.shortcode == "welcome"
    assert template.is_active is False
    assert template.is_source is False
    assert template.parent_id is None


async def test_create_session_template_requires_label_body_language(tenant):
    with pytest.raises(ValidationError) as excinfo:
        async with get_db() as session:
            await templates_repo.create_session_template(session, {"organization_id": tenant.id})
    assert {"label", "body", "language_id"} <= set(excinfo.value.errors)


async def test_create_session_template_with_unknown_language(tenant, language):
    with pytest.raises(ConstraintViolation) as excinfo:
        await template_fixture(tenant, language, language_id=uuid.uuid4())
    assert excinfo.value.field == "language_id"


async def test_create_session_template_with_unknown_parent(tenant, language):
    with pytest.raises(ConstraintViolation) as excinfo:
        await template_fixture(tenant, language, parent_id=uuid.uuid4())
    assert excinfo.value.field == "parent_id"


async def test_translations_and_parent_deletion(tenant, language):
    """Deleting a source template keeps its translations, detached."""
    source = await template_fixture(tenant, language, is_source=True)
    child = await template_fixture(tenant, language, label="Bienvenida", parent_id=source.id)

    async with get_db() as session:
        children = await templates_repo.list_child_templates(session, source.id)
    assert [t.id for t in children] == [child.id]

    async with get_db() as session:
        loaded = await templates_repo.get_session_template(session, source.id)
        await templates_repo.delete_session_template(session, loaded)

    async with get_db() as session:
        orphan = await templates_repo.get_session_template(session, child.id)
        assert orphan.parent_id is None
        with pytest.raises(NotFound):
            await templates_repo.get_session_template(session, source.id)


async def test_update_and_list_session_templates(tenant, language):
    template = await template_fixture(tenant, language)
    await template_fixture(tenant, language, label="Goodbye", is_active=True)

    async with get_db() as session:
        loaded = await templates_repo.get_session_template(session, template.id, tenant.id)
        updated = await templates_repo.update_session_template(
            session, loaded, {"body": "Hello again", "is_active": True}
        )
    assert updated.body == "Hello again"

    async with get_db() as session:
        active = await templates_repo.list_session_templates(session, tenant.id, is_active=True)
        welcome = await templates_repo.list_session_templates(session, tenant.id, label="welc")
    assert [t.label for t in active] == ["Goodbye", "Welcome"]
    assert [t.id for t in welcome] == [template.id]


async def test_update_session_template_rejects_blank_body(tenant, language):
    template = await template_fixture(tenant, language)
    with pytest.raises(ValidationError) as excinfo:
        async with get_db() as session:
            loaded = await templates_repo.get_session_template(session, template.id)
            await templates_repo.update_session_template(session, loaded, {"body": None})
    assert "body" in excinfo.value.errors
