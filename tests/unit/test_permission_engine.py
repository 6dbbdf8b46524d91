"""
Unit tests for the role table and authorization decisions.
"""

from types import SimpleNamespace

import pytest

from checklist.features.permissions.engine import (
    ROLE_PERMISSIONS,
    authorize,
    authorize_membership,
    can_delete_submission,
    effective_permissions,
    get_role_description,
    get_role_permissions,
    has_permission,
    required_permission,
)
from checklist.features.permissions.schemas import (
    Action,
    CustomPermissions,
    Permission,
    ResourceKind,
    Role,
)


def _membership(role: Role, **overlay) -> SimpleNamespace:
    return SimpleNamespace(role=role, custom_permissions=overlay or None)


class TestRoleTable:
    """Tests for the fixed role -> permission table."""

    def test_exact_permission_counts(self):
        assert len(get_role_permissions(Role.OWNER)) == 15
        assert len(get_role_permissions(Role.ADMIN)) == 14
        assert len(get_role_permissions(Role.MEMBER)) == 5
        assert len(get_role_permissions(Role.VIEWER)) == 2

    def test_roles_are_nested(self):
        viewer, member, admin, owner = (
            ROLE_PERMISSIONS[Role.VIEWER],
            ROLE_PERMISSIONS[Role.MEMBER],
            ROLE_PERMISSIONS[Role.ADMIN],
            ROLE_PERMISSIONS[Role.OWNER],
        )
        assert viewer <= member <= admin <= owner

    def test_delete_organization_is_owner_only(self):
        assert owner_only() == {Permission.DELETE_ORGANIZATION}

    def test_member_permissions(self):
        assert get_role_permissions(Role.MEMBER) == {
            Permission.VIEW_SUBMISSIONS,
            Permission.CREATE_SUBMISSIONS,
            Permission.EDIT_OWN_SUBMISSIONS,
            Permission.DELETE_OWN_SUBMISSIONS,
            Permission.VIEW_TEMPLATES,
        }

    def test_has_permission_accepts_strings(self):
        assert has_permission("admin", "edit_templates")
        assert not has_permission("viewer", "create_submissions")

    def test_unknown_role_or_permission_is_denied(self):
        assert get_role_permissions("superuser") == frozenset()
        assert not has_permission("superuser", Permission.VIEW_TEMPLATES)
        assert not has_permission(Role.OWNER, "launch_rockets")

    def test_every_role_has_a_description(self):
        for role in Role:
            assert get_role_description(role)
        assert get_role_description("nobody") == ""


def owner_only() -> set:
    return set(ROLE_PERMISSIONS[Role.OWNER] - ROLE_PERMISSIONS[Role.ADMIN])


class TestAuthorize:
    """Tests for authorize(role, action, resource, is_owner)."""

    def test_member_edits_own_submission(self):
        assert authorize(Role.MEMBER, Action.EDIT, ResourceKind.SUBMISSION, is_owner=True)

    def test_member_cannot_edit_someone_elses_submission(self):
        assert not authorize(Role.MEMBER, Action.EDIT, ResourceKind.SUBMISSION, is_owner=False)

    def test_admin_edits_any_submission(self):
        assert authorize(Role.ADMIN, Action.EDIT, ResourceKind.SUBMISSION, is_owner=False)

    def test_ownership_selects_permission(self):
        assert required_permission(Action.DELETE, ResourceKind.SUBMISSION, True) == Permission.DELETE_OWN_SUBMISSIONS
        assert required_permission(Action.DELETE, ResourceKind.SUBMISSION, False) == Permission.DELETE_ALL_SUBMISSIONS

    @pytest.mark.parametrize(
        "action, resource, permission",
        [
            (Action.CREATE, ResourceKind.MEMBER, Permission.INVITE_MEMBERS),
            (Action.DELETE, ResourceKind.MEMBER, Permission.REMOVE_MEMBERS),
            (Action.EDIT, ResourceKind.MEMBER, Permission.CHANGE_MEMBER_ROLES),
            (Action.EDIT, ResourceKind.ORGANIZATION, Permission.MANAGE_ORGANIZATION),
            (Action.DELETE, ResourceKind.ORGANIZATION, Permission.DELETE_ORGANIZATION),
        ],
    )
    def test_single_permission_pairs(self, action, resource, permission):
        assert required_permission(action, resource) == permission

    def test_unmapped_pairs_are_denied(self):
        assert required_permission(Action.VIEW, ResourceKind.MEMBER) is None
        assert not authorize(Role.OWNER, Action.VIEW, ResourceKind.MEMBER)
        assert not authorize(Role.OWNER, "archive", ResourceKind.TEMPLATE)

    def test_viewer_cannot_create_submissions(self):
        assert authorize(Role.VIEWER, Action.VIEW, ResourceKind.SUBMISSION)
        assert not authorize(Role.VIEWER, Action.CREATE, ResourceKind.SUBMISSION)

    def test_only_owner_deletes_organization(self):
        assert authorize(Role.OWNER, Action.DELETE, ResourceKind.ORGANIZATION)
        assert not authorize(Role.ADMIN, Action.DELETE, ResourceKind.ORGANIZATION)


class TestOverlay:
    """Tests for custom_permissions on top of a role."""

    def test_overlay_grants_delete_all_to_member(self):
        membership = _membership(Role.MEMBER, canDeleteSubmissions=True)
        assert Permission.DELETE_ALL_SUBMISSIONS in effective_permissions(membership)
        assert authorize_membership(membership, Action.DELETE, ResourceKind.SUBMISSION, is_owner=False)

    def test_overlay_does_not_grant_edit(self):
        membership = _membership(Role.MEMBER, canDeleteSubmissions=True)
        assert not authorize_membership(membership, Action.EDIT, ResourceKind.SUBMISSION, is_owner=False)

    def test_overlay_ignored_for_viewer(self):
        membership = _membership(Role.VIEWER, canDeleteSubmissions=True)
        assert effective_permissions(membership) == get_role_permissions(Role.VIEWER)

    def test_unknown_overlay_keys_are_ignored(self):
        membership = _membership(Role.MEMBER, canEditEverything=True)
        assert effective_permissions(membership) == get_role_permissions(Role.MEMBER)

    def test_false_overlay_never_removes_permissions(self):
        membership = _membership(Role.MEMBER, canDeleteSubmissions=False)
        assert effective_permissions(membership) == get_role_permissions(Role.MEMBER)

    def test_overlay_model_is_accepted(self):
        membership = SimpleNamespace(
            role=Role.MEMBER,
            custom_permissions=CustomPermissions(can_delete_submissions=True),
        )
        assert Permission.DELETE_ALL_SUBMISSIONS in effective_permissions(membership)


class TestCanDeleteSubmission:
    """Tests for can_delete_submission(membership, is_owner)."""

    @pytest.mark.parametrize("role", [Role.OWNER, Role.ADMIN])
    def test_owner_and_admin_always_pass(self, role):
        assert can_delete_submission(_membership(role))

    def test_member_needs_overlay_for_other_submissions(self):
        assert not can_delete_submission(_membership(Role.MEMBER))
        assert can_delete_submission(_membership(Role.MEMBER, canDeleteSubmissions=True))

    def test_member_deletes_own_submission(self):
        assert can_delete_submission(_membership(Role.MEMBER), is_owner=True)

    def test_viewer_never_deletes(self):
        assert not can_delete_submission(_membership(Role.VIEWER), is_owner=True)
        assert not can_delete_submission(_membership(Role.VIEWER, canDeleteSubmissions=True))

    def test_no_membership(self):
        assert not can_delete_submission(None)


class TestCustomPermissionsSchema:
    def test_unknown_keys_rejected_on_write(self):
        with pytest.raises(ValueError):
            CustomPermissions.model_validate({"canDeleteSubmissions": True, "canDoAnything": True})

    def test_unknown_keys_dropped_on_read(self):
        overlay = CustomPermissions.from_stored({"canDeleteSubmissions": True, "legacyFlag": True})
        assert overlay.can_delete_submissions is True
        assert overlay.to_stored() == {"canDeleteSubmissions": True}

    def test_empty_stored_overlay(self):
        assert CustomPermissions.from_stored(None).can_delete_submissions is False
