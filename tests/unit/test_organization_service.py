"""
Unit tests for OrganizationService and member management rules.
"""

import pytest

from checklist.core.errors import AuthorizationError, NotFoundError, ValidationError
from checklist.features.organizations.schemas import MemberAdd, MemberUpdate, OrganizationCreate
from checklist.features.permissions.schemas import CustomPermissions, Role
from tests.factories import ADMIN, DELETER, MEMBER, OUTSIDER, OWNER, VIEWER, template_payload


class TestOrganizations:
    async def test_creator_becomes_owner(self, organization_service):
        created = await organization_service.create_organization("founder", "Acme Gas & Solar")
        assert created.slug == "acme-gas-solar"
        assert created.role == Role.OWNER
        assert created.member_count == 1

        membership = await organization_service.get_membership(created.id, "founder")
        assert membership.role == Role.OWNER

    async def test_get_membership_of_non_member(self, organization_service, organization):
        with pytest.raises(NotFoundError):
            await organization_service.get_membership(organization.id, OUTSIDER)

    def test_name_needs_a_slug(self):
        with pytest.raises(ValueError):
            OrganizationCreate(name="!!!")

    async def test_service_rejects_name_without_slug(self, organization_service, repository):
        with pytest.raises(ValidationError) as excinfo:
            await organization_service.create_organization("founder", "!!!")
        assert excinfo.value.status_code == 400
        assert "name" in excinfo.value.errors
        assert await repository.list_organizations_for_user("founder") == []

    async def test_rename_without_slug(self, organization_service, organization):
        with pytest.raises(ValidationError):
            await organization_service.update_organization(organization.id, OWNER, "  --  ")

    async def test_list_shows_role(self, organization_service, organization):
        listed = await organization_service.list_organizations(VIEWER)
        assert [(o.id, o.role) for o in listed] == [(organization.id, Role.VIEWER)]

    async def test_get_requires_membership(self, organization_service, organization):
        fetched = await organization_service.get_organization(organization.id, MEMBER)
        assert fetched.member_count == 5
        with pytest.raises(NotFoundError):
            await organization_service.get_organization(organization.id, OUTSIDER)

    async def test_rename(self, organization_service, organization):
        renamed = await organization_service.update_organization(organization.id, ADMIN, "Sunset Installers")
        assert renamed.slug == "sunset-installers"
        with pytest.raises(AuthorizationError):
            await organization_service.update_organization(organization.id, MEMBER, "Nope")

    async def test_only_owner_deletes(self, organization_service, template_service, submission_service, organization, repository):
        template = await template_service.create_template(OWNER, organization.id, template_payload(organization.id))
        submission = await submission_service.create_submission(
            template.id, {"fld_name": "x", "fld_agree": True}, MEMBER, organization.id
        )

        with pytest.raises(AuthorizationError):
            await organization_service.delete_organization(organization.id, ADMIN)

        await organization_service.delete_organization(organization.id, OWNER)
        assert await repository.get_organization(organization.id) is None
        assert await repository.get_membership(organization.id, MEMBER) is None
        assert await repository.get_template(template.id) is None
        assert await repository.get_submission(submission.id) is None
        assert await repository.get_organization(organization.other_id) is not None


class TestMembers:
    async def test_list_members(self, organization_service, organization):
        members = await organization_service.list_members(organization.id, VIEWER)
        assert {m.user_id for m in members} == {OWNER, ADMIN, MEMBER, DELETER, VIEWER}

    async def test_add_member(self, organization_service, organization):
        added = await organization_service.add_member(organization.id, ADMIN, MemberAdd(user_id="new-hire"))
        assert added.role == Role.MEMBER
        assert added.custom_permissions.can_delete_submissions is False

    async def test_member_cannot_invite(self, organization_service, organization):
        with pytest.raises(AuthorizationError):
            await organization_service.add_member(organization.id, MEMBER, MemberAdd(user_id="friend"))

    async def test_cannot_add_owner_or_duplicate(self, organization_service, organization):
        with pytest.raises(ValidationError):
            await organization_service.add_member(organization.id, OWNER, MemberAdd(user_id="x", role=Role.OWNER))
        with pytest.raises(ValidationError):
            await organization_service.add_member(organization.id, OWNER, MemberAdd(user_id=MEMBER))

    async def test_update_role_and_overlay(self, organization_service, organization):
        updated = await organization_service.update_member(
            organization.id, ADMIN, MEMBER,
            MemberUpdate(custom_permissions=CustomPermissions(can_delete_submissions=True)),
        )
        assert updated.role == Role.MEMBER
        assert updated.custom_permissions.can_delete_submissions is True

        promoted = await organization_service.update_member(organization.id, OWNER, MEMBER, MemberUpdate(role=Role.ADMIN))
        assert promoted.role == Role.ADMIN
        assert promoted.custom_permissions.can_delete_submissions is True

    async def test_owner_membership_is_protected(self, organization_service, organization):
        with pytest.raises(AuthorizationError):
            await organization_service.update_member(organization.id, ADMIN, OWNER, MemberUpdate(role=Role.VIEWER))
        with pytest.raises(ValidationError):
            await organization_service.update_member(organization.id, OWNER, ADMIN, MemberUpdate(role=Role.OWNER))
        with pytest.raises(AuthorizationError):
            await organization_service.remove_member(organization.id, ADMIN, OWNER)

    async def test_remove_member(self, organization_service, organization):
        await organization_service.remove_member(organization.id, ADMIN, VIEWER)
        with pytest.raises(NotFoundError):
            await organization_service.get_membership(organization.id, VIEWER)
        with pytest.raises(NotFoundError):
            await organization_service.remove_member(organization.id, ADMIN, VIEWER)

    async def test_member_cannot_remove(self, organization_service, organization):
        with pytest.raises(AuthorizationError):
            await organization_service.remove_member(organization.id, MEMBER, VIEWER)

    async def test_update_unknown_member(self, organization_service, organization):
        with pytest.raises(NotFoundError):
            await organization_service.update_member(organization.id, OWNER, "ghost", MemberUpdate(role=Role.ADMIN))


class TestTransferOwnership:
    async def test_previous_owner_becomes_admin(self, organization_service, organization):
        new_owner = await organization_service.transfer_ownership(organization.id, OWNER, MEMBER)
        assert new_owner.role == Role.OWNER
        assert (await organization_service.get_membership(organization.id, OWNER)).role == Role.ADMIN

    async def test_only_owner_transfers(self, organization_service, organization):
        with pytest.raises(AuthorizationError):
            await organization_service.transfer_ownership(organization.id, ADMIN, MEMBER)

    async def test_target_must_be_a_member(self, organization_service, organization):
        with pytest.raises(NotFoundError):
            await organization_service.transfer_ownership(organization.id, OWNER, OUTSIDER)
        with pytest.raises(ValidationError):
            await organization_service.transfer_ownership(organization.id, OWNER, OWNER)
