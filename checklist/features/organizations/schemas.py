"""
Pydantic schemas for organizations and their memberships.
"""
import re
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from checklist.core.database.base import generate_ulid
from checklist.features.permissions.schemas import CustomPermissions, Role


def slugify(name: str) -> str:
    """Lowercase the name and collapse anything non-alphanumeric into dashes."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


# Organization Schemas
class Organization(BaseModel):
    """Tenancy boundary owning templates and submissions."""
    id: str = Field(default_factory=generate_ulid)
    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=255)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OrganizationCreate(BaseModel):
    """Schema for creating an organization; the caller becomes its owner."""
    name: str = Field(..., min_length=1, max_length=255)

    @field_validator("name")
    @classmethod
    def name_has_slug(cls, v: str) -> str:
        if not slugify(v):
            raise ValueError("Organization name must contain at least one letter or digit")
        return v.strip()


class OrganizationUpdate(BaseModel):
    """Schema for renaming an organization."""
    name: str = Field(..., min_length=1, max_length=255)


class OrganizationResponse(Organization):
    """Organization with the caller's role in it."""
    role: Optional[Role] = None
    member_count: int = 0


# Membership Schemas
class Membership(BaseModel):
    """A user's role (and optional overlay) within one organization."""
    id: str = Field(default_factory=generate_ulid)
    organization_id: str
    user_id: str
    role: Role
    custom_permissions: CustomPermissions = Field(default_factory=CustomPermissions)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MemberAdd(BaseModel):
    """Schema for adding a user to an organization."""
    user_id: str = Field(..., min_length=1, max_length=255)
    role: Role = Role.MEMBER
    custom_permissions: Optional[CustomPermissions] = None


class MemberUpdate(BaseModel):
    """Schema for changing a member's role and/or overlay."""
    role: Optional[Role] = None
    custom_permissions: Optional[CustomPermissions] = None


class TransferOwnershipRequest(BaseModel):
    """Hand the owner role to another existing member."""
    new_owner_user_id: str = Field(..., min_length=1)


# Invitation Schemas
class Invitation(BaseModel):
    """A pending offer for a user to join an organization with a given role."""
    id: str = Field(default_factory=generate_ulid)
    organization_id: str
    user_id: str
    role: Role = Role.MEMBER
    invited_by: str
    token: str
    expires_at: datetime
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at <= (now or datetime.now(timezone.utc))


class InvitationCreate(BaseModel):
    """Schema for inviting a user; owners are made by transfer, never by invitation."""
    user_id: str = Field(..., min_length=1, max_length=255)
    role: Role = Role.MEMBER

    @field_validator("user_id")
    @classmethod
    def strip_user_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("User id must not be blank")
        return v


class InvitationResponse(BaseModel):
    """Invitation as shown to the invitee and to organization admins; the token is withheld."""
    id: str
    organization_id: str
    organization_name: Optional[str] = None
    user_id: str
    role: Role
    invited_by: str
    expires_at: datetime
    created_at: Optional[datetime] = None


class InvitationCreated(InvitationResponse):
    """Returned once, to the inviter, so the acceptance link can be shared."""
    token: str
