"""
Unit tests for organization invitations over the in-memory repository.
"""

import pytest

from checklist.core import config
from checklist.core.errors import AuthorizationError, InvitationExpiredError, NotFoundError, ValidationError
from checklist.features.organizations.schemas import InvitationCreate, MemberAdd
from checklist.features.permissions.schemas import Role
from tests.factories import ADMIN, MEMBER, OUTSIDER, OWNER

NEW_HIRE = "user-new-hire"


@pytest.fixture
def expired_invitations(monkeypatch):
    """Make every invitation created from here on already expired."""
    monkeypatch.setattr(config, "INVITATION_TTL_DAYS", -1)


async def _invite(service, organization, user_id=NEW_HIRE, actor=ADMIN, role=Role.MEMBER):
    return await service.create_invitation(organization.id, actor, InvitationCreate(user_id=user_id, role=role))


class TestCreateInvitation:
    async def test_invitation_carries_token_and_organization(self, organization_service, organization):
        created = await _invite(organization_service, organization, role=Role.VIEWER)

        assert created.user_id == NEW_HIRE
        assert created.role == Role.VIEWER
        assert created.invited_by == ADMIN
        assert created.organization_name == "Sunrise Installers"
        assert len(created.token) == 64
        assert created.expires_at > created.created_at

    async def test_member_cannot_invite(self, organization_service, organization):
        with pytest.raises(AuthorizationError):
            await _invite(organization_service, organization, actor=MEMBER)

    async def test_outsider_gets_not_found(self, organization_service, organization):
        with pytest.raises(NotFoundError):
            await _invite(organization_service, organization, actor=OUTSIDER)

    async def test_cannot_invite_owner_or_member(self, organization_service, organization):
        with pytest.raises(ValidationError):
            await _invite(organization_service, organization, role=Role.OWNER)
        with pytest.raises(ValidationError) as excinfo:
            await _invite(organization_service, organization, user_id=MEMBER)
        assert excinfo.value.errors == {"user_id": "Already a member"}

    async def test_pending_invitation_blocks_another(self, organization_service, organization):
        await _invite(organization_service, organization)
        with pytest.raises(ValidationError) as excinfo:
            await _invite(organization_service, organization, actor=OWNER)
        assert excinfo.value.errors == {"user_id": "Invitation pending"}

    async def test_expired_invitation_is_replaced(
        self, organization_service, organization, repository, monkeypatch
    ):
        monkeypatch.setattr(config, "INVITATION_TTL_DAYS", -1)
        stale = await _invite(organization_service, organization)
        monkeypatch.setattr(config, "INVITATION_TTL_DAYS", 7)

        fresh = await _invite(organization_service, organization)

        assert fresh.id != stale.id
        assert await repository.get_invitation(stale.id) is None
        assert [i.id for i in await repository.list_invitations(organization.id)] == [fresh.id]


class TestListInvitations:
    async def test_organization_list_hides_expired_and_tokens(
        self, organization_service, organization, monkeypatch
    ):
        monkeypatch.setattr(config, "INVITATION_TTL_DAYS", -1)
        await _invite(organization_service, organization, user_id="user-late")
        monkeypatch.setattr(config, "INVITATION_TTL_DAYS", 7)
        pending = await _invite(organization_service, organization)

        listed = await organization_service.list_invitations(organization.id, OWNER)
        assert [i.id for i in listed] == [pending.id]
        assert not hasattr(listed[0], "token")

    async def test_member_cannot_list_organization_invitations(self, organization_service, organization):
        with pytest.raises(AuthorizationError):
            await organization_service.list_invitations(organization.id, MEMBER)

    async def test_invitee_sees_own_invitations(self, organization_service, organization):
        created = await _invite(organization_service, organization)
        elsewhere = await organization_service.create_invitation(
            organization.other_id, OUTSIDER, InvitationCreate(user_id=NEW_HIRE)
        )

        mine = await organization_service.list_my_invitations(NEW_HIRE)
        assert {i.id for i in mine} == {created.id, elsewhere.id}
        assert {i.organization_name for i in mine} == {"Sunrise Installers", "Other Co"}
        assert await organization_service.list_my_invitations(MEMBER) == []


class TestAcceptInvitation:
    async def test_accept_joins_with_invited_role(self, organization_service, organization, repository):
        created = await _invite(organization_service, organization, role=Role.ADMIN)

        membership = await organization_service.accept_invitation(created.id, NEW_HIRE)

        assert membership.role == Role.ADMIN
        assert membership.organization_id == organization.id
        assert (await organization_service.get_membership(organization.id, NEW_HIRE)).role == Role.ADMIN
        assert await repository.get_invitation(created.id) is None

    async def test_someone_elses_invitation_looks_missing(self, organization_service, organization, repository):
        created = await _invite(organization_service, organization)

        with pytest.raises(NotFoundError):
            await organization_service.accept_invitation(created.id, OUTSIDER)
        with pytest.raises(NotFoundError):
            await organization_service.decline_invitation(created.id, OUTSIDER)
        assert await repository.get_invitation(created.id) is not None

    async def test_unknown_invitation(self, organization_service):
        with pytest.raises(NotFoundError):
            await organization_service.accept_invitation("missing", NEW_HIRE)

    async def test_expired_invitation_is_dropped(
        self, organization_service, organization, repository, expired_invitations
    ):
        created = await _invite(organization_service, organization)

        with pytest.raises(InvitationExpiredError) as excinfo:
            await organization_service.accept_invitation(created.id, NEW_HIRE)
        assert excinfo.value.status_code == 410
        assert await repository.get_invitation(created.id) is None
        assert await repository.get_membership(organization.id, NEW_HIRE) is None

    async def test_already_a_member(self, organization_service, organization, repository):
        created = await _invite(organization_service, organization, role=Role.ADMIN)
        await organization_service.add_member(organization.id, OWNER, MemberAdd(user_id=NEW_HIRE, role=Role.VIEWER))

        with pytest.raises(ValidationError):
            await organization_service.accept_invitation(created.id, NEW_HIRE)
        assert await repository.get_invitation(created.id) is None
        assert (await repository.get_membership(organization.id, NEW_HIRE)).role == Role.VIEWER

    async def test_failed_accept_keeps_invitation(
        self, organization_service, organization, repository, monkeypatch
    ):
        created = await _invite(organization_service, organization)

        async def broken_delete(invitation_id):
            raise RuntimeError("storage went away")

        monkeypatch.setattr(repository, "delete_invitation", broken_delete)
        with pytest.raises(RuntimeError):
            await organization_service.accept_invitation(created.id, NEW_HIRE)

        assert await repository.get_membership(organization.id, NEW_HIRE) is None
        assert await repository.get_invitation(created.id) is not None


class TestDeclineAndRevoke:
    async def test_decline_deletes(self, organization_service, organization, repository):
        created = await _invite(organization_service, organization)
        await organization_service.decline_invitation(created.id, NEW_HIRE)

        assert await repository.get_invitation(created.id) is None
        assert await repository.get_membership(organization.id, NEW_HIRE) is None

    async def test_admin_revokes(self, organization_service, organization, repository):
        created = await _invite(organization_service, organization, actor=OWNER)
        await organization_service.revoke_invitation(organization.id, ADMIN, created.id)
        assert await repository.get_invitation(created.id) is None

    async def test_revoke_is_scoped_to_the_organization(self, organization_service, organization):
        created = await _invite(organization_service, organization)
        with pytest.raises(NotFoundError):
            await organization_service.revoke_invitation(organization.other_id, OUTSIDER, created.id)
        with pytest.raises(AuthorizationError):
            await organization_service.revoke_invitation(organization.id, MEMBER, created.id)

    async def test_organization_delete_removes_invitations(self, organization_service, organization, repository):
        created = await _invite(organization_service, organization)
        await organization_service.delete_organization(organization.id, OWNER)
        assert await repository.get_invitation(created.id) is None
        assert await organization_service.list_my_invitations(NEW_HIRE) == []


class TestInvitationByToken:
    async def test_lookup(self, organization_service, organization):
        created = await _invite(organization_service, organization)
        found = await organization_service.get_invitation_by_token(created.token)
        assert found.id == created.id
        assert found.organization_name == "Sunrise Installers"

    async def test_unknown_token(self, organization_service):
        with pytest.raises(NotFoundError):
            await organization_service.get_invitation_by_token("0" * 64)

    async def test_expired_token(self, organization_service, organization, expired_invitations):
        created = await _invite(organization_service, organization)
        with pytest.raises(InvitationExpiredError):
            await organization_service.get_invitation_by_token(created.token)
