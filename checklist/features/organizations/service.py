"""
Organization, membership and invitation operations.

Every other service resolves the actor's role through ``require_membership``:
users who are not members of an organization get a NotFoundError, so the
existence of other tenants is never revealed.
"""
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from checklist.core import config
from checklist.core.errors import AuthorizationError, InvitationExpiredError, NotFoundError, ValidationError
from checklist.features.organizations.schemas import (
    Invitation,
    InvitationCreate,
    InvitationCreated,
    InvitationResponse,
    MemberAdd,
    MemberUpdate,
    Membership,
    Organization,
    OrganizationResponse,
    slugify,
)
from checklist.features.permissions.engine import authorize_membership
from checklist.features.permissions.schemas import Action, CustomPermissions, ResourceKind, Role
from checklist.repository.base import Repository
from checklist.utils import get_logger


log = get_logger(__name__)


async def require_membership(repository: Repository, organization_id: str, user_id: str) -> Membership:
    """Membership of ``user_id`` in the organization, or NotFoundError."""
    membership = await repository.get_membership(organization_id, user_id)
    if membership is None:
        log.info(f"User {user_id} is not a member of organization {organization_id}")
        raise NotFoundError("Organization")
    return membership


def require_permission(
    membership: Membership,
    action: Action,
    resource: ResourceKind,
    is_owner: bool = False,
    message: Optional[str] = None,
) -> None:
    """Raise AuthorizationError unless the membership may perform the action."""
    if not authorize_membership(membership, action, resource, is_owner):
        log.info(
            f"Denied {action.value} {resource.value} for user {membership.user_id} "
            f"(role={membership.role.value}) in organization {membership.organization_id}"
        )
        raise AuthorizationError(message)


def _slug_for(name: str) -> str:
    slug = slugify(name)
    if not slug:
        raise ValidationError(
            "Organization name must contain at least one letter or digit",
            errors={"name": "Organization name must contain at least one letter or digit"},
        )
    return slug


class OrganizationService:
    """Onboarding, organization settings, member management and invitations."""

    def __init__(self, repository: Repository):
        self.repository = repository

    async def _response(self, organization: Organization, role: Optional[Role]) -> OrganizationResponse:
        members = await self.repository.list_memberships(organization.id)
        return OrganizationResponse(
            **organization.model_dump(),
            role=role,
            member_count=len(members),
        )

    async def get_membership(self, organization_id: str, user_id: str) -> Membership:
        return await require_membership(self.repository, organization_id, user_id)

    # ------------------------------------------------------------------ #
    # Organizations
    # ------------------------------------------------------------------ #

    async def create_organization(self, actor: str, name: str) -> OrganizationResponse:
        """Create an organization; the creator becomes its owner."""
        organization = Organization(name=name.strip(), slug=_slug_for(name))
        async with self.repository.transaction():
            organization = await self.repository.add_organization(organization)
            await self.repository.save_membership(
                Membership(organization_id=organization.id, user_id=actor, role=Role.OWNER)
            )
        log.info(f"Created organization {organization.id} ({organization.name!r}) owned by {actor}")
        return await self._response(organization, Role.OWNER)

    async def list_organizations(self, actor: str) -> list[OrganizationResponse]:
        organizations = await self.repository.list_organizations_for_user(actor)
        responses = []
        for organization in organizations:
            membership = await self.repository.get_membership(organization.id, actor)
            responses.append(await self._response(organization, membership.role if membership else None))
        return responses

    async def get_organization(self, organization_id: str, actor: str) -> OrganizationResponse:
        membership = await require_membership(self.repository, organization_id, actor)
        organization = await self.repository.get_organization(organization_id)
        if organization is None:
            raise NotFoundError("Organization")
        return await self._response(organization, membership.role)

    async def update_organization(self, organization_id: str, actor: str, name: str) -> OrganizationResponse:
        membership = await require_membership(self.repository, organization_id, actor)
        require_permission(membership, Action.EDIT, ResourceKind.ORGANIZATION)

        organization = await self.repository.get_organization(organization_id)
        if organization is None:
            raise NotFoundError("Organization")
        slug = _slug_for(name)

        async with self.repository.transaction():
            organization = await self.repository.update_organization(
                organization.model_copy(update={"name": name.strip(), "slug": slug})
            )
        log.info(f"Renamed organization {organization_id} to {organization.name!r}")
        return await self._response(organization, membership.role)

    async def delete_organization(self, organization_id: str, actor: str) -> None:
        """Delete the organization with its members, invitations, templates and submissions (owner only)."""
        membership = await require_membership(self.repository, organization_id, actor)
        require_permission(
            membership, Action.DELETE, ResourceKind.ORGANIZATION,
            message="Only the owner can delete an organization",
        )
        async with self.repository.transaction():
            await self.repository.delete_organization(organization_id)
        log.info(f"Deleted organization {organization_id} (by {actor})")

    # ------------------------------------------------------------------ #
    # Members
    # ------------------------------------------------------------------ #

    async def list_members(self, organization_id: str, actor: str) -> list[Membership]:
        await require_membership(self.repository, organization_id, actor)
        return await self.repository.list_memberships(organization_id)

    async def add_member(self, organization_id: str, actor: str, payload: MemberAdd) -> Membership:
        membership = await require_membership(self.repository, organization_id, actor)
        require_permission(membership, Action.CREATE, ResourceKind.MEMBER)

        if payload.role == Role.OWNER:
            raise ValidationError(
                "Use an ownership transfer to make someone the owner",
                errors={"role": "Owner cannot be assigned directly"},
            )
        if await self.repository.get_membership(organization_id, payload.user_id) is not None:
            raise ValidationError(
                "User is already a member of this organization",
                errors={"user_id": "Already a member"},
            )

        new_member = Membership(
            organization_id=organization_id,
            user_id=payload.user_id,
            role=payload.role,
            custom_permissions=payload.custom_permissions or CustomPermissions(),
        )
        async with self.repository.transaction():
            new_member = await self.repository.save_membership(new_member)
        log.info(f"Added {payload.user_id} to organization {organization_id} as {payload.role.value}")
        return new_member

    async def update_member(
        self,
        organization_id: str,
        actor: str,
        user_id: str,
        payload: MemberUpdate,
    ) -> Membership:
        """Change a member's role and/or overlay. The owner's membership is off limits."""
        membership = await require_membership(self.repository, organization_id, actor)
        require_permission(membership, Action.EDIT, ResourceKind.MEMBER)

        target = await self.repository.get_membership(organization_id, user_id)
        if target is None:
            raise NotFoundError("Member")
        if target.role == Role.OWNER:
            raise AuthorizationError("The owner's membership cannot be changed")
        if payload.role == Role.OWNER:
            raise ValidationError(
                "Use an ownership transfer to make someone the owner",
                errors={"role": "Owner cannot be assigned directly"},
            )

        updates = {}
        if payload.role is not None:
            updates["role"] = payload.role
        if payload.custom_permissions is not None:
            updates["custom_permissions"] = payload.custom_permissions
        target = target.model_copy(update=updates)

        async with self.repository.transaction():
            target = await self.repository.save_membership(target)
        log.info(
            f"Updated member {user_id} in organization {organization_id}: "
            f"role={target.role.value} overlay={target.custom_permissions.to_stored()}"
        )
        return target

    async def remove_member(self, organization_id: str, actor: str, user_id: str) -> None:
        membership = await require_membership(self.repository, organization_id, actor)
        require_permission(membership, Action.DELETE, ResourceKind.MEMBER)

        target = await self.repository.get_membership(organization_id, user_id)
        if target is None:
            raise NotFoundError("Member")
        if target.role == Role.OWNER:
            raise AuthorizationError("The owner cannot be removed from the organization")

        async with self.repository.transaction():
            await self.repository.delete_membership(organization_id, user_id)
        log.info(f"Removed {user_id} from organization {organization_id} (by {actor})")

    async def transfer_ownership(self, organization_id: str, actor: str, new_owner_user_id: str) -> Membership:
        """Make another member the owner; the previous owner becomes an admin."""
        membership = await require_membership(self.repository, organization_id, actor)
        if membership.role != Role.OWNER:
            raise AuthorizationError("Only the owner can transfer ownership")
        if new_owner_user_id == actor:
            raise ValidationError(
                "You already own this organization",
                errors={"new_owner_user_id": "Must be a different member"},
            )

        target = await self.repository.get_membership(organization_id, new_owner_user_id)
        if target is None:
            raise NotFoundError("Member")

        async with self.repository.transaction():
            new_owner = await self.repository.save_membership(target.model_copy(update={"role": Role.OWNER}))
            await self.repository.save_membership(membership.model_copy(update={"role": Role.ADMIN}))
        log.info(f"Transferred ownership of {organization_id} from {actor} to {new_owner_user_id}")
        return new_owner

    # ------------------------------------------------------------------ #
    # Invitations
    # ------------------------------------------------------------------ #

    async def _invitation_response(self, invitation: Invitation, with_token: bool = False) -> InvitationResponse:
        organization = await self.repository.get_organization(invitation.organization_id)
        data = invitation.model_dump(exclude={"token", "updated_at"})
        data["organization_name"] = organization.name if organization else None
        if with_token:
            return InvitationCreated(**data, token=invitation.token)
        return InvitationResponse(**data)

    async def _addressed_to(self, invitation_id: str, actor: str) -> Invitation:
        """Load an invitation meant for the actor; anyone else's is reported as missing."""
        invitation = await self.repository.get_invitation(invitation_id)
        if invitation is None or invitation.user_id != actor:
            raise NotFoundError("Invitation")
        return invitation

    async def create_invitation(self, organization_id: str, actor: str, payload: InvitationCreate) -> InvitationCreated:
        """
        Invite a user into the organization (requires invite_members).

        The token is returned once so it can be shared with the invitee. A
        pending invitation for the same user blocks a new one until it expires;
        an expired one is replaced.
        """
        membership = await require_membership(self.repository, organization_id, actor)
        require_permission(membership, Action.CREATE, ResourceKind.MEMBER)

        if payload.role == Role.OWNER:
            raise ValidationError(
                "Use an ownership transfer to make someone the owner",
                errors={"role": "Owner cannot be assigned by invitation"},
            )
        if await self.repository.get_membership(organization_id, payload.user_id) is not None:
            raise ValidationError(
                "User is already a member of this organization",
                errors={"user_id": "Already a member"},
            )

        now = datetime.now(timezone.utc)
        stale = []
        for pending in await self.repository.list_invitations(organization_id):
            if pending.user_id != payload.user_id:
                continue
            if not pending.is_expired(now):
                raise ValidationError(
                    "An invitation has already been sent to this user",
                    errors={"user_id": "Invitation pending"},
                )
            stale.append(pending.id)

        invitation = Invitation(
            organization_id=organization_id,
            user_id=payload.user_id,
            role=payload.role,
            invited_by=actor,
            token=secrets.token_hex(32),
            expires_at=now + timedelta(days=config.INVITATION_TTL_DAYS),
        )
        async with self.repository.transaction():
            for invitation_id in stale:
                await self.repository.delete_invitation(invitation_id)
            invitation = await self.repository.save_invitation(invitation)
        log.info(
            f"Invited {payload.user_id} to organization {organization_id} as {payload.role.value} "
            f"(by {actor}, expires {invitation.expires_at.isoformat()})"
        )
        return await self._invitation_response(invitation, with_token=True)

    async def list_invitations(self, organization_id: str, actor: str) -> list[InvitationResponse]:
        """Unexpired invitations of one organization, newest first."""
        membership = await require_membership(self.repository, organization_id, actor)
        require_permission(membership, Action.CREATE, ResourceKind.MEMBER)
        now = datetime.now(timezone.utc)
        return [
            await self._invitation_response(i)
            for i in await self.repository.list_invitations(organization_id)
            if not i.is_expired(now)
        ]

    async def revoke_invitation(self, organization_id: str, actor: str, invitation_id: str) -> None:
        membership = await require_membership(self.repository, organization_id, actor)
        require_permission(membership, Action.CREATE, ResourceKind.MEMBER)

        invitation = await self.repository.get_invitation(invitation_id)
        if invitation is None or invitation.organization_id != organization_id:
            raise NotFoundError("Invitation")
        async with self.repository.transaction():
            await self.repository.delete_invitation(invitation_id)
        log.info(f"Revoked invitation {invitation_id} for {invitation.user_id} in {organization_id} (by {actor})")

    async def list_my_invitations(self, actor: str) -> list[InvitationResponse]:
        """Unexpired invitations addressed to the actor, newest first."""
        now = datetime.now(timezone.utc)
        return [
            await self._invitation_response(i)
            for i in await self.repository.list_invitations_for_user(actor)
            if not i.is_expired(now)
        ]

    async def get_invitation_by_token(self, token: str) -> InvitationResponse:
        """Public lookup used by acceptance links; expired invitations answer 410."""
        invitation = await self.repository.get_invitation_by_token(token)
        if invitation is None:
            raise NotFoundError("Invitation")
        if invitation.is_expired():
            raise InvitationExpiredError()
        return await self._invitation_response(invitation)

    async def accept_invitation(self, invitation_id: str, actor: str) -> Membership:
        """
        Join the organization with the invited role.

        Expired invitations and invitations for organizations the actor
        already belongs to are deleted on the way out.
        """
        invitation = await self._addressed_to(invitation_id, actor)

        if invitation.is_expired():
            async with self.repository.transaction():
                await self.repository.delete_invitation(invitation_id)
            log.info(f"Dropped expired invitation {invitation_id} on accept by {actor}")
            raise InvitationExpiredError()

        if await self.repository.get_membership(invitation.organization_id, actor) is not None:
            async with self.repository.transaction():
                await self.repository.delete_invitation(invitation_id)
            raise ValidationError(
                "You are already a member of this organization",
                errors={"organization_id": "Already a member"},
            )

        async with self.repository.transaction():
            membership = await self.repository.save_membership(
                Membership(organization_id=invitation.organization_id, user_id=actor, role=invitation.role)
            )
            await self.repository.delete_invitation(invitation_id)
        log.info(f"User {actor} joined organization {invitation.organization_id} as {invitation.role.value}")
        return membership

    async def decline_invitation(self, invitation_id: str, actor: str) -> None:
        await self._addressed_to(invitation_id, actor)
        async with self.repository.transaction():
            await self.repository.delete_invitation(invitation_id)
        log.info(f"User {actor} declined invitation {invitation_id}")
