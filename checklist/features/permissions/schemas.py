"""
Pydantic schemas and enums for the permission engine.
"""
import enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Role(str, enum.Enum):
    """Organization roles, strongest first."""
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


class Permission(str, enum.Enum):
    VIEW_SUBMISSIONS = "view_submissions"
    CREATE_SUBMISSIONS = "create_submissions"
    EDIT_OWN_SUBMISSIONS = "edit_own_submissions"
    EDIT_ALL_SUBMISSIONS = "edit_all_submissions"
    DELETE_OWN_SUBMISSIONS = "delete_own_submissions"
    DELETE_ALL_SUBMISSIONS = "delete_all_submissions"
    VIEW_TEMPLATES = "view_templates"
    CREATE_TEMPLATES = "create_templates"
    EDIT_TEMPLATES = "edit_templates"
    DELETE_TEMPLATES = "delete_templates"
    INVITE_MEMBERS = "invite_members"
    REMOVE_MEMBERS = "remove_members"
    CHANGE_MEMBER_ROLES = "change_member_roles"
    MANAGE_ORGANIZATION = "manage_organization"
    DELETE_ORGANIZATION = "delete_organization"


class Action(str, enum.Enum):
    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"


class ResourceKind(str, enum.Enum):
    SUBMISSION = "submission"
    TEMPLATE = "template"
    MEMBER = "member"
    ORGANIZATION = "organization"


class CustomPermissions(BaseModel):
    """
    Per-membership overlay on top of the role's permissions.

    Only the keys declared here are accepted; anything else is rejected on
    write so stored overlays cannot grow new privileges.
    """
    can_delete_submissions: bool = Field(
        False,
        alias="canDeleteSubmissions",
        description="Let a member delete any submission in the organization",
    )

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    @classmethod
    def from_stored(cls, data: Optional[Dict[str, Any]]) -> "CustomPermissions":
        """Load a stored overlay, dropping keys that are no longer recognized."""
        if not data:
            return cls()
        known = {field.alias or name for name, field in cls.model_fields.items()}
        return cls.model_validate({k: v for k, v in data.items() if k in known})

    def to_stored(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


# ============================================================================
# API schemas
# ============================================================================

class RolePermissionsResponse(BaseModel):
    """Permissions granted by a role."""
    role: Role
    description: str
    permissions: List[Permission]


class PermissionCheckResponse(BaseModel):
    """Schema for permission check response."""
    organization_id: str
    role: Role
    action: Action
    resource: ResourceKind
    is_owner: bool
    has_permission: bool
    reason: Optional[str] = None


class EffectivePermissionsResponse(BaseModel):
    """Permissions the current user holds in one organization."""
    organization_id: str
    user_id: str
    role: Role
    custom_permissions: CustomPermissions
    permissions: List[Permission]
