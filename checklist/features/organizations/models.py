"""
Organization, membership and invitation models.

Organizations are the tenancy boundary: templates and submissions belong to
exactly one of them. Users join organizations through memberships that carry
a role and an optional permission overlay, either added directly or by
accepting an invitation.
"""
from datetime import datetime
from typing import Any, Dict
from sqlalchemy import DateTime, String, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from checklist.core.database.base import Base, TimestampMixin, generate_ulid


class Organization(Base, TimestampMixin):
    """
    Organization model.

    Created at onboarding (the creator becomes the owner) and deleted only by
    its owner; deleting it removes memberships, templates and submissions.
    """
    __tablename__ = "organizations"
    
    # Primary key using ULID
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    
    # Relationships
    memberships: Mapped[list["Membership"]] = relationship(
        "Membership",
        back_populates="organization",
        cascade="all, delete-orphan",
    )
    
    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name!r})>"


class Membership(Base, TimestampMixin):
    """
    A user's role within an organization.

    ``custom_permissions`` stores the overlay as JSON, e.g.
    {"canDeleteSubmissions": true}.
    """
    __tablename__ = "memberships"
    
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    
    organization_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="member")  # owner, admin, member, viewer
    custom_permissions: Mapped[Dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    
    organization: Mapped["Organization"] = relationship("Organization", back_populates="memberships")
    
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_memberships_org_user"),
    )
    
    def __repr__(self) -> str:
        return f"<Membership(id={self.id}, org_id={self.organization_id}, user_id={self.user_id}, role={self.role})>"


class Invitation(Base, TimestampMixin):
    """
    Pending invitation of a user into an organization.

    Deleted once accepted or declined; an expired row is dropped the next
    time someone tries to use it.
    """
    __tablename__ = "invitations"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    organization_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="member")
    invited_by: Mapped[str] = mapped_column(String(255), nullable=False)

    token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<Invitation(id={self.id}, org_id={self.organization_id}, user_id={self.user_id}, role={self.role})>"
