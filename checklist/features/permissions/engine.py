"""
Role-based permission decisions for organization members.

Implements:
- The fixed role -> permission table (owner ⊇ admin ⊇ member ⊇ viewer)
- Action/resource authorization with submission ownership
- The per-membership overlay (``custom_permissions``) on top of a role
"""
from typing import Any, Dict, FrozenSet, Mapping, Optional, Protocol, Union

from checklist.features.permissions.schemas import (
    Action,
    CustomPermissions,
    Permission,
    ResourceKind,
    Role,
)
from checklist.utils import get_logger


log = get_logger(__name__)


class MembershipLike(Protocol):
    role: Union[Role, str]
    custom_permissions: Any


# ============================================================================
# Role Table
# ============================================================================

_VIEWER = frozenset({
    Permission.VIEW_SUBMISSIONS,
    Permission.VIEW_TEMPLATES,
})

_MEMBER = _VIEWER | {
    Permission.CREATE_SUBMISSIONS,
    Permission.EDIT_OWN_SUBMISSIONS,
    Permission.DELETE_OWN_SUBMISSIONS,
}

_ADMIN = _MEMBER | {
    Permission.EDIT_ALL_SUBMISSIONS,
    Permission.DELETE_ALL_SUBMISSIONS,
    Permission.CREATE_TEMPLATES,
    Permission.EDIT_TEMPLATES,
    Permission.DELETE_TEMPLATES,
    Permission.INVITE_MEMBERS,
    Permission.REMOVE_MEMBERS,
    Permission.CHANGE_MEMBER_ROLES,
    Permission.MANAGE_ORGANIZATION,
}

# delete_organization is the only owner-exclusive permission
_OWNER = _ADMIN | {Permission.DELETE_ORGANIZATION}

ROLE_PERMISSIONS: Dict[Role, FrozenSet[Permission]] = {
    Role.OWNER: frozenset(_OWNER),
    Role.ADMIN: frozenset(_ADMIN),
    Role.MEMBER: frozenset(_MEMBER),
    Role.VIEWER: _VIEWER,
}

ROLE_DESCRIPTIONS: Dict[Role, str] = {
    Role.OWNER: "Full access to everything, including organization management and deletion",
    Role.ADMIN: "Can manage team members, create/edit/delete templates and submissions",
    Role.MEMBER: "Can create and edit own submissions, view templates",
    Role.VIEWER: "Read-only access to submissions and templates",
}

# (action, resource) pairs that map onto exactly one permission.
# Submission edit/delete are resolved separately because they depend on ownership.
ACTION_PERMISSIONS: Dict[tuple[Action, ResourceKind], Permission] = {
    (Action.VIEW, ResourceKind.SUBMISSION): Permission.VIEW_SUBMISSIONS,
    (Action.CREATE, ResourceKind.SUBMISSION): Permission.CREATE_SUBMISSIONS,
    (Action.VIEW, ResourceKind.TEMPLATE): Permission.VIEW_TEMPLATES,
    (Action.CREATE, ResourceKind.TEMPLATE): Permission.CREATE_TEMPLATES,
    (Action.EDIT, ResourceKind.TEMPLATE): Permission.EDIT_TEMPLATES,
    (Action.DELETE, ResourceKind.TEMPLATE): Permission.DELETE_TEMPLATES,
    (Action.CREATE, ResourceKind.MEMBER): Permission.INVITE_MEMBERS,
    (Action.DELETE, ResourceKind.MEMBER): Permission.REMOVE_MEMBERS,
    (Action.EDIT, ResourceKind.MEMBER): Permission.CHANGE_MEMBER_ROLES,
    (Action.EDIT, ResourceKind.ORGANIZATION): Permission.MANAGE_ORGANIZATION,
    (Action.DELETE, ResourceKind.ORGANIZATION): Permission.DELETE_ORGANIZATION,
}

_OWNERSHIP_PERMISSIONS: Dict[Action, tuple[Permission, Permission]] = {
    # action: (own, all)
    Action.EDIT: (Permission.EDIT_OWN_SUBMISSIONS, Permission.EDIT_ALL_SUBMISSIONS),
    Action.DELETE: (Permission.DELETE_OWN_SUBMISSIONS, Permission.DELETE_ALL_SUBMISSIONS),
}

# Overlay key -> permissions it adds. Keys are the stored (camelCase) names.
OVERLAY_GRANTS: Dict[str, FrozenSet[Permission]] = {
    "canDeleteSubmissions": frozenset({Permission.DELETE_ALL_SUBMISSIONS}),
}

# Roles whose permissions an overlay can extend
OVERLAY_ROLES: FrozenSet[Role] = frozenset({Role.MEMBER})


def _coerce(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


# ============================================================================
# Role Checks
# ============================================================================

def get_role_permissions(role: Union[Role, str]) -> FrozenSet[Permission]:
    """Get all permissions granted by a role; empty for unknown roles."""
    role = _coerce(Role, role)
    if role is None:
        return frozenset()
    return ROLE_PERMISSIONS[role]


def get_role_description(role: Union[Role, str]) -> str:
    role = _coerce(Role, role)
    return ROLE_DESCRIPTIONS.get(role, "") if role else ""


def has_permission(role: Union[Role, str], permission: Union[Permission, str]) -> bool:
    """Check if a role has a specific permission."""
    permission = _coerce(Permission, permission)
    if permission is None:
        return False
    return permission in get_role_permissions(role)


def required_permission(
    action: Union[Action, str],
    resource: Union[ResourceKind, str],
    is_owner: bool = False,
) -> Optional[Permission]:
    """
    Resolve the single permission an action on a resource needs.

    Returns None when the pair is not something any role may do
    (e.g. viewing members through this engine).
    """
    action = _coerce(Action, action)
    resource = _coerce(ResourceKind, resource)
    if action is None or resource is None:
        return None

    if resource == ResourceKind.SUBMISSION and action in _OWNERSHIP_PERMISSIONS:
        own, everyone = _OWNERSHIP_PERMISSIONS[action]
        return own if is_owner else everyone

    return ACTION_PERMISSIONS.get((action, resource))


def authorize(
    role: Union[Role, str],
    action: Union[Action, str],
    resource: Union[ResourceKind, str],
    is_owner: bool = False,
) -> bool:
    """
    Check if a role can perform an action on a resource kind.

    Submission edit/delete use the ``*_own_submissions`` permission when the
    actor created the submission and ``*_all_submissions`` otherwise.
    """
    permission = required_permission(action, resource, is_owner)
    allowed = permission is not None and has_permission(role, permission)
    log.debug(
        "authorize role=%s action=%s resource=%s is_owner=%s -> %s",
        getattr(role, "value", role), getattr(action, "value", action),
        getattr(resource, "value", resource), is_owner, allowed,
    )
    return allowed


# ============================================================================
# Membership Overlay
# ============================================================================

def overlay_keys(custom_permissions: Any) -> Mapping[str, Any]:
    """Normalize a stored overlay (model, dict or None) to a plain mapping."""
    if custom_permissions is None:
        return {}
    if isinstance(custom_permissions, CustomPermissions):
        return custom_permissions.model_dump(by_alias=True)
    if isinstance(custom_permissions, Mapping):
        return custom_permissions
    return {}


def overlay_permissions(membership: MembershipLike) -> FrozenSet[Permission]:
    """
    Permissions added by a membership's overlay.

    Only allowlisted keys set to exactly ``True`` count, and only for roles
    in OVERLAY_ROLES. Unknown keys are ignored.
    """
    role = _coerce(Role, membership.role)
    if role not in OVERLAY_ROLES:
        return frozenset()

    granted: set[Permission] = set()
    for key, value in overlay_keys(membership.custom_permissions).items():
        if key not in OVERLAY_GRANTS:
            log.warning("Ignoring unknown custom permission key %r", key)
            continue
        if value is True:
            granted |= OVERLAY_GRANTS[key]
    return frozenset(granted)


def effective_permissions(membership: MembershipLike) -> FrozenSet[Permission]:
    """permissions(role) ∪ overlay(membership); overlays never remove anything."""
    return get_role_permissions(membership.role) | overlay_permissions(membership)


def authorize_membership(
    membership: MembershipLike,
    action: Union[Action, str],
    resource: Union[ResourceKind, str],
    is_owner: bool = False,
) -> bool:
    """Same decision as ``authorize`` but over the membership's effective permissions."""
    permission = required_permission(action, resource, is_owner)
    return permission is not None and permission in effective_permissions(membership)


def can_delete_submission(membership: Optional[MembershipLike], is_owner: bool = False) -> bool:
    """
    Decide whether a membership may delete a submission.

    Owners and admins always may. A member may delete any submission in the
    organization when their overlay sets ``canDeleteSubmissions``, and their
    own submissions through the role's ``delete_own_submissions``.
    """
    if membership is None:
        return False
    allowed = authorize_membership(membership, Action.DELETE, ResourceKind.SUBMISSION, is_owner)
    log.debug(
        "can_delete_submission role=%s is_owner=%s -> %s",
        getattr(membership.role, "value", membership.role), is_owner, allowed,
    )
    return allowed
