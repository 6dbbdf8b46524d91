"""
Permission API routes.

Exposes the fixed role table and lets clients ask what the current user
may do, so UIs can hide controls the services would refuse anyway.
"""
from typing import Annotated, List

from fastapi import APIRouter, Depends, Query

from checklist.features.organizations.dependencies import get_organization_service
from checklist.features.organizations.service import OrganizationService
from checklist.features.permissions.engine import (
    authorize_membership,
    effective_permissions,
    get_role_description,
    get_role_permissions,
    required_permission,
)
from checklist.features.permissions.schemas import (
    Action,
    EffectivePermissionsResponse,
    PermissionCheckResponse,
    ResourceKind,
    Role,
    RolePermissionsResponse,
)
from checklist.features.users.dependencies import get_current_actor
from checklist.utils import get_logger


log = get_logger(__name__)
router = APIRouter(tags=["permissions"])


@router.get("/roles", response_model=List[RolePermissionsResponse])
async def list_roles():
    """List every role with its description and permissions."""
    return [
        RolePermissionsResponse(
            role=role,
            description=get_role_description(role),
            permissions=sorted(get_role_permissions(role), key=lambda p: p.value),
        )
        for role in Role
    ]


@router.get("/check", response_model=PermissionCheckResponse)
async def check_permission(
    actor: Annotated[str, Depends(get_current_actor)],
    service: Annotated[OrganizationService, Depends(get_organization_service)],
    organization_id: str = Query(...),
    action: Action = Query(...),
    resource: ResourceKind = Query(...),
    is_owner: bool = Query(False, description="Whether the caller created the resource"),
):
    """Check whether the current user may perform an action in an organization."""
    membership = await service.get_membership(organization_id, actor)
    allowed = authorize_membership(membership, action, resource, is_owner)

    reason = None
    if not allowed:
        permission = required_permission(action, resource, is_owner)
        reason = f"Requires {permission.value}" if permission else "Action is not available for this resource"

    return PermissionCheckResponse(
        organization_id=organization_id,
        role=membership.role,
        action=action,
        resource=resource,
        is_owner=is_owner,
        has_permission=allowed,
        reason=reason,
    )


@router.get("/me", response_model=EffectivePermissionsResponse)
async def get_my_permissions(
    actor: Annotated[str, Depends(get_current_actor)],
    service: Annotated[OrganizationService, Depends(get_organization_service)],
    organization_id: str = Query(...),
):
    """Role, overlay and resulting permissions of the current user."""
    membership = await service.get_membership(organization_id, actor)
    return EffectivePermissionsResponse(
        organization_id=organization_id,
        user_id=actor,
        role=membership.role,
        custom_permissions=membership.custom_permissions,
        permissions=sorted(effective_permissions(membership), key=lambda p: p.value),
    )
