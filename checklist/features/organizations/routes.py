"""
Organization feature routes.

``router`` is mounted under /organizations; ``invitation_router`` under
/invitations serves the invitee side of an invitation.
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from checklist.features.organizations.dependencies import get_organization_service
from checklist.features.organizations.schemas import (
    InvitationCreate,
    InvitationCreated,
    InvitationResponse,
    MemberAdd,
    Membership,
    MemberUpdate,
    OrganizationCreate,
    OrganizationResponse,
    OrganizationUpdate,
    TransferOwnershipRequest,
)
from checklist.features.organizations.service import OrganizationService
from checklist.features.users.dependencies import get_current_actor


router = APIRouter(tags=["organizations"])
invitation_router = APIRouter(tags=["invitations"])

Service = Annotated[OrganizationService, Depends(get_organization_service)]
Actor = Annotated[str, Depends(get_current_actor)]


# Organization CRUD endpoints
@router.post("/", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
async def create_organization(org_data: OrganizationCreate, actor: Actor, service: Service):
    """Create a new organization; the caller becomes its owner."""
    return await service.create_organization(actor, org_data.name)


@router.get("/", response_model=list[OrganizationResponse])
async def list_my_organizations(actor: Actor, service: Service):
    """List the organizations the caller belongs to, with their role in each."""
    return await service.list_organizations(actor)


@router.get("/{organization_id}", response_model=OrganizationResponse)
async def get_organization(organization_id: str, actor: Actor, service: Service):
    return await service.get_organization(organization_id, actor)


@router.patch("/{organization_id}", response_model=OrganizationResponse)
async def update_organization(organization_id: str, org_data: OrganizationUpdate, actor: Actor, service: Service):
    """Rename an organization (requires manage_organization)."""
    return await service.update_organization(organization_id, actor, org_data.name)


@router.delete("/{organization_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_organization(organization_id: str, actor: Actor, service: Service):
    """Delete an organization and everything in it (owner only)."""
    await service.delete_organization(organization_id, actor)


# Member endpoints
@router.get("/{organization_id}/members", response_model=list[Membership])
async def list_members(organization_id: str, actor: Actor, service: Service):
    return await service.list_members(organization_id, actor)


@router.post("/{organization_id}/members", response_model=Membership, status_code=status.HTTP_201_CREATED)
async def add_member(organization_id: str, member_data: MemberAdd, actor: Actor, service: Service):
    """Add a user to the organization (requires invite_members)."""
    return await service.add_member(organization_id, actor, member_data)


@router.patch("/{organization_id}/members/{user_id}", response_model=Membership)
async def update_member(
    organization_id: str,
    user_id: str,
    member_data: MemberUpdate,
    actor: Actor,
    service: Service,
):
    """Change a member's role or custom permissions (requires change_member_roles)."""
    return await service.update_member(organization_id, actor, user_id, member_data)


@router.delete("/{organization_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(organization_id: str, user_id: str, actor: Actor, service: Service):
    await service.remove_member(organization_id, actor, user_id)


@router.post("/{organization_id}/transfer-ownership", response_model=Membership)
async def transfer_ownership(
    organization_id: str,
    request: TransferOwnershipRequest,
    actor: Actor,
    service: Service,
):
    """Hand ownership to another member; the caller becomes an admin."""
    return await service.transfer_ownership(organization_id, actor, request.new_owner_user_id)


# Invitation endpoints (organization side)
@router.post(
    "/{organization_id}/invitations",
    response_model=InvitationCreated,
    status_code=status.HTTP_201_CREATED,
)
async def create_invitation(organization_id: str, invitation_data: InvitationCreate, actor: Actor, service: Service):
    """Invite a user to join (requires invite_members). The token is only returned here."""
    return await service.create_invitation(organization_id, actor, invitation_data)


@router.get("/{organization_id}/invitations", response_model=list[InvitationResponse])
async def list_invitations(organization_id: str, actor: Actor, service: Service):
    return await service.list_invitations(organization_id, actor)


@router.delete("/{organization_id}/invitations/{invitation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_invitation(organization_id: str, invitation_id: str, actor: Actor, service: Service):
    await service.revoke_invitation(organization_id, actor, invitation_id)


# Invitation endpoints (invitee side)
@invitation_router.get("/", response_model=list[InvitationResponse])
async def list_my_invitations(actor: Actor, service: Service):
    """Pending invitations addressed to the caller."""
    return await service.list_my_invitations(actor)


@invitation_router.get("/by-token", response_model=InvitationResponse)
async def get_invitation_by_token(service: Service, token: str = Query(..., min_length=1)):
    """Public lookup behind an acceptance link."""
    return await service.get_invitation_by_token(token)


@invitation_router.post("/{invitation_id}/accept", response_model=Membership)
async def accept_invitation(invitation_id: str, actor: Actor, service: Service):
    return await service.accept_invitation(invitation_id, actor)


@invitation_router.post("/{invitation_id}/decline", status_code=status.HTTP_204_NO_CONTENT)
async def decline_invitation(invitation_id: str, actor: Actor, service: Service):
    await service.decline_invitation(invitation_id, actor)
