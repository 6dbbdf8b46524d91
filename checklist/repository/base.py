"""Persistence port used by the checklist services.

Services never touch a database session directly; they receive an object
implementing ``Repository``. ``InMemoryRepository`` backs the tests and
``SqlRepository`` backs the API.

All reads that return templates or submissions accept an organization scope.
Saves are upserts keyed by id so retried writes overwrite instead of
duplicating.
"""

from __future__ import annotations

from typing import AsyncContextManager, Optional, Protocol, Sequence, runtime_checkable

from checklist.features.organizations.schemas import Invitation, Membership, Organization
from checklist.features.submissions.schemas import Answer, Submission, SubmissionStatus
from checklist.features.templates.schemas import Template


@runtime_checkable
class Repository(Protocol):
    """Protocol for checklist storage adapters."""

    def transaction(self) -> AsyncContextManager["Repository"]:
        """Group writes so they all apply or none do.

        Nested calls join the outermost transaction.
        """
        ...

    # Organizations

    async def add_organization(self, organization: Organization) -> Organization:
        ...

    async def get_organization(self, organization_id: str) -> Optional[Organization]:
        ...

    async def list_organizations_for_user(self, user_id: str) -> list[Organization]:
        ...

    async def update_organization(self, organization: Organization) -> Organization:
        ...

    async def delete_organization(self, organization_id: str) -> None:
        """Delete an organization with its memberships, invitations, templates and submissions."""
        ...

    # Memberships

    async def get_membership(self, organization_id: str, user_id: str) -> Optional[Membership]:
        ...

    async def list_memberships(self, organization_id: str) -> list[Membership]:
        ...

    async def save_membership(self, membership: Membership) -> Membership:
        """Insert or update the membership for (organization_id, user_id)."""
        ...

    async def delete_membership(self, organization_id: str, user_id: str) -> None:
        ...

    # Invitations

    async def save_invitation(self, invitation: Invitation) -> Invitation:
        """Insert or update an invitation keyed by id."""
        ...

    async def get_invitation(self, invitation_id: str) -> Optional[Invitation]:
        ...

    async def get_invitation_by_token(self, token: str) -> Optional[Invitation]:
        ...

    async def list_invitations(self, organization_id: str) -> list[Invitation]:
        """Invitations of one organization, newest first."""
        ...

    async def list_invitations_for_user(self, user_id: str) -> list[Invitation]:
        """Invitations addressed to one user across organizations, newest first."""
        ...

    async def delete_invitation(self, invitation_id: str) -> None:
        ...

    # Templates

    async def get_template(self, template_id: str) -> Optional[Template]:
        ...

    async def list_templates(
        self,
        organization_id: str,
        include_shared: bool = True,
        category: Optional[str] = None,
    ) -> list[Template]:
        """Templates owned by the organization.

        With ``include_shared`` also system templates and public templates
        of other organizations.
        """
        ...

    async def save_template(self, template: Template) -> Template:
        """Insert or replace a template with its whole section/field tree."""
        ...

    async def delete_template(self, template_id: str) -> None:
        ...

    # Submissions

    async def get_submission(self, submission_id: str) -> Optional[Submission]:
        ...

    async def list_submissions(
        self,
        organization_id: str,
        template_id: Optional[str] = None,
        status: Optional[SubmissionStatus] = None,
    ) -> list[Submission]:
        """Submissions of one organization, newest first."""
        ...

    async def save_submission(self, submission: Submission) -> Submission:
        """Insert or update the submission header (not its answers)."""
        ...

    async def delete_answers(self, submission_id: str) -> None:
        ...

    async def add_answers(self, submission_id: str, answers: Sequence[Answer]) -> None:
        ...

    async def delete_submission(self, submission_id: str) -> None:
        """Delete a submission and its answers."""
        ...
