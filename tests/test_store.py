"""SqlAlchemyRbacStore queries and unit-of-work flag."""

import pytest
from sqlalchemy.exc import InvalidRequestError

from rbac_core.models import UserRoleAssignment
from rbac_core.services import catalog_service

pytestmark = pytest.mark.usefixtures("catalog")


async def test_find_by_code(store):
    role = await store.find_role_by_code("ROLE_EDITOR")
    assert role is not None and role.name == "Editor"
    assert await store.find_role_by_code("ROLE_MISSING") is None

    locked = await store.find_role_by_code("ROLE_EDITOR", lock=True)
    assert locked is role

    permission = await store.find_permission_by_code("PERMISSION_ARTICLE_VIEW")
    assert permission is not None and permission.name == "View articles"


async def test_assignment_lookups(manager, store):
    await manager.assign_role_to_user("u1", "ROLE_EDITOR")
    await manager.assign_role_to_user("u2", "ROLE_EDITOR")
    await manager.assign_role_to_user("u2", "ROLE_REVIEWER")

    assignment = await store.find_assignment("u2", "ROLE_REVIEWER")
    assert assignment is not None
    assert assignment.role.code == "ROLE_REVIEWER"
    assert str(assignment) == "User u2 has role ROLE_REVIEWER"
    assert assignment.assign_time is not None

    assert await store.find_assignment("u1", "ROLE_REVIEWER") is None
    assert await store.count_assignments_for_role("ROLE_EDITOR") == 2
    assert await store.list_assigned_user_ids_for_role("ROLE_EDITOR") == ["u1", "u2"]
    assert [a.user_id for a in await store.find_assignments_for_role("ROLE_EDITOR")] == ["u2", "u1"]
    assert len(await store.find_recent_assignments(limit=2)) == 2


async def test_assignment_back_view_is_query_only(manager, store):
    await manager.assign_role_to_user("u1", "ROLE_EDITOR")
    await manager.assign_role_to_user("u1", "ROLE_EDITOR")

    # The guards count through Role.user_assignments...
    assert await store.count_assignments_for_role("ROLE_EDITOR") == 1
    assert await store.count_assignments_for_role("ROLE_EMPTY") == 0
    assert await store.list_assigned_user_ids_for_role("ROLE_EMPTY") == []

    # ...but the collection itself is never loaded.
    role = await store.find_role_by_code("ROLE_EDITOR")
    with pytest.raises(InvalidRequestError):
        role.user_assignments


async def test_permission_codes_for_user(manager, store):
    await manager.assign_role_to_user("u1", "ROLE_EDITOR")

    assert await store.list_permission_codes_for_user("u1") == {
        "PERMISSION_ARTICLE_EDIT",
        "PERMISSION_ARTICLE_VIEW",
    }


async def test_permission_catalog_queries(store):
    assert [p.code for p in await store.find_permissions_for_role("ROLE_EDITOR")] == [
        "PERMISSION_ARTICLE_EDIT",
        "PERMISSION_ARTICLE_VIEW",
    ]
    assert [p.code for p in await store.find_unassigned_permissions()] == ["PERMISSION_UNUSED"]
    assert await store.list_blocking_role_codes_for_permission("PERMISSION_ARTICLE_VIEW") == [
        "ROLE_EDITOR",
        "ROLE_REVIEWER",
    ]

    counts = {p.code: n for p, n in await store.permissions_with_role_count()}
    assert counts["PERMISSION_ARTICLE_VIEW"] == 2
    assert counts["PERMISSION_UNUSED"] == 0


async def test_search(store):
    assert [r.code for r in await store.search_roles("edit")] == ["ROLE_EDITOR"]
    assert [r.code for r in await store.search_roles("ROLE_", limit=2)] == ["ROLE_EDITOR", "ROLE_EMPTY"]
    assert [p.code for p in await store.search_permissions("publish")] == ["PERMISSION_ARTICLE_PUBLISH"]


async def test_roles_with_user_count(manager, store):
    await manager.assign_role_to_user("u1", "ROLE_REVIEWER")

    counts = {r.code: n for r, n in await store.roles_with_user_count()}
    assert counts == {"ROLE_EDITOR": 0, "ROLE_EMPTY": 0, "ROLE_REVIEWER": 1}


async def test_hierarchy_fields_are_stored_only(store, session):
    parent = await catalog_service.create_role(store, "ROLE_PARENT", "Parent", hierarchy_level=0)
    await catalog_service.create_role(
        store, "ROLE_CHILD", "Child", parent_role_id=parent.id, hierarchy_level=1
    )
    await session.commit()

    children = await store.find_roles_by_parent(parent.id)
    assert [r.code for r in children] == ["ROLE_CHILD"]
    assert "ROLE_CHILD" not in [r.code for r in await store.find_root_roles()]
    # No inheritance: the child does not pick up the parent's grants.
    assert children[0].permissions == []


async def test_unit_of_work_flag(store):
    assert store.in_transaction() is False

    await store.begin()
    assert store.in_transaction() is True
    with pytest.raises(RuntimeError):
        await store.begin()

    await store.commit()
    assert store.in_transaction() is False

    await store.begin()
    await store.rollback()
    assert store.in_transaction() is False


async def test_savepoint_rolls_back_only_its_own_writes(store):
    role = await store.find_role_by_code("ROLE_EMPTY")
    await store.begin()
    await store.lock_roles(["ROLE_EDITOR", "ROLE_EMPTY"])
    await store.lock_roles([])

    async with store.savepoint():
        await store.save(UserRoleAssignment(user_id="kept", role=role))
    with pytest.raises(RuntimeError):
        async with store.savepoint():
            await store.save(UserRoleAssignment(user_id="dropped", role=role))
            raise RuntimeError("abort item")

    assert store.in_transaction() is True
    await store.commit()

    assert await store.list_assigned_user_ids_for_role("ROLE_EMPTY") == ["kept"]
