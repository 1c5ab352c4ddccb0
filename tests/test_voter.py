import pytest

from rbac_core.rbac.principal import Principal
from rbac_core.rbac.voter import PermissionVoter, Vote

pytestmark = pytest.mark.usefixtures("catalog")


@pytest.fixture
def voter(manager) -> PermissionVoter:
    return PermissionVoter(manager)


def test_supports_only_permission_attributes():
    assert PermissionVoter.supports("PERMISSION_ARTICLE_EDIT") is True
    assert PermissionVoter.supports("ROLE_ADMIN") is False
    assert PermissionVoter.supports("permission_article_edit") is False


async def test_abstains_on_foreign_attributes(voter):
    assert await voter.decide("ROLE_ADMIN", Principal(user_id="alice")) is Vote.ABSTAIN
    assert await voter.decide("IS_AUTHENTICATED", None) is Vote.ABSTAIN


async def test_denies_anonymous(voter):
    assert await voter.decide("PERMISSION_ARTICLE_EDIT", None) is Vote.DENIED
    assert await voter.decide("PERMISSION_ARTICLE_EDIT", Principal(user_id="")) is Vote.DENIED


async def test_grants_only_held_permissions(voter, manager):
    await manager.assign_role_to_user("alice", "ROLE_EDITOR")
    alice = Principal(user_id="alice")

    assert await voter.decide("PERMISSION_ARTICLE_EDIT", alice) is Vote.GRANTED
    assert await voter.decide("PERMISSION_ARTICLE_PUBLISH", alice) is Vote.DENIED


async def test_subject_does_not_change_the_decision(voter, manager):
    await manager.assign_role_to_user("alice", "ROLE_EDITOR")
    alice = Principal(user_id="alice")

    assert await voter.decide("PERMISSION_ARTICLE_EDIT", alice, subject={"id": 7}) is Vote.GRANTED


async def test_accepts_bare_user_ids(voter, manager):
    await manager.assign_role_to_user("alice", "ROLE_EDITOR")

    assert await voter.decide("PERMISSION_ARTICLE_EDIT", "alice") is Vote.GRANTED
    assert await voter.decide("PERMISSION_ARTICLE_PUBLISH", "alice") is Vote.DENIED
    assert await voter.decide("PERMISSION_ARTICLE_EDIT", "") is Vote.DENIED
