"""In-process ``Repository`` adapter.

Keeps deep copies of everything it stores so callers can never mutate
persisted state by holding on to a returned object. ``transaction()``
snapshots the whole store and restores it if the block raises.
"""

from __future__ import annotations

import copy
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional, Sequence

from checklist.features.organizations.schemas import Invitation, Membership, Organization
from checklist.features.submissions.schemas import Answer, Submission, SubmissionStatus
from checklist.features.templates.schemas import Template
from checklist.utils import get_logger


log = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryRepository:
    """Dictionary-backed storage for tests and local experiments.

    One depth counter is shared by every caller, so a coroutine that opens a
    transaction while another one is already open on the same instance joins
    that outer snapshot instead of getting its own. A rollback of the outer
    block therefore also discards the inner coroutine's writes. Give each
    concurrent unit of work its own instance, or use ``SqlRepository``.
    """

    def __init__(self) -> None:
        self._organizations: dict[str, Organization] = {}
        self._memberships: dict[tuple[str, str], Membership] = {}
        self._invitations: dict[str, Invitation] = {}
        self._templates: dict[str, Template] = {}
        self._submissions: dict[str, Submission] = {}
        self._answers: dict[str, list[Answer]] = {}
        self._depth = 0

    # ------------------------------------------------------------------ #
    # Transactions
    # ------------------------------------------------------------------ #

    def _state(self) -> tuple:
        return (
            self._organizations,
            self._memberships,
            self._invitations,
            self._templates,
            self._submissions,
            self._answers,
        )

    def _restore(self, state: tuple) -> None:
        (
            self._organizations,
            self._memberships,
            self._invitations,
            self._templates,
            self._submissions,
            self._answers,
        ) = state

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["InMemoryRepository"]:
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        snapshot = copy.deepcopy(self._state())
        self._depth = 1
        try:
            yield self
        except BaseException:
            log.debug("Rolling back in-memory transaction")
            self._restore(snapshot)
            raise
        finally:
            self._depth = 0

    # ------------------------------------------------------------------ #
    # Organizations
    # ------------------------------------------------------------------ #

    async def add_organization(self, organization: Organization) -> Organization:
        stored = organization.model_copy(deep=True)
        stored.created_at = stored.created_at or _now()
        stored.updated_at = stored.created_at
        self._organizations[stored.id] = stored
        return stored.model_copy(deep=True)

    async def get_organization(self, organization_id: str) -> Optional[Organization]:
        organization = self._organizations.get(organization_id)
        return organization.model_copy(deep=True) if organization else None

    async def list_organizations_for_user(self, user_id: str) -> list[Organization]:
        ids = [org_id for (org_id, member_id) in self._memberships if member_id == user_id]
        return [self._organizations[i].model_copy(deep=True) for i in ids if i in self._organizations]

    async def update_organization(self, organization: Organization) -> Organization:
        stored = organization.model_copy(deep=True)
        stored.updated_at = _now()
        self._organizations[stored.id] = stored
        return stored.model_copy(deep=True)

    async def delete_organization(self, organization_id: str) -> None:
        self._organizations.pop(organization_id, None)
        for key in [k for k in self._memberships if k[0] == organization_id]:
            del self._memberships[key]
        for invitation_id in [i.id for i in self._invitations.values() if i.organization_id == organization_id]:
            del self._invitations[invitation_id]
        for template_id in [t.id for t in self._templates.values() if t.organization_id == organization_id]:
            del self._templates[template_id]
        for submission_id in [s.id for s in self._submissions.values() if s.organization_id == organization_id]:
            del self._submissions[submission_id]
            self._answers.pop(submission_id, None)

    # ------------------------------------------------------------------ #
    # Memberships
    # ------------------------------------------------------------------ #

    async def get_membership(self, organization_id: str, user_id: str) -> Optional[Membership]:
        membership = self._memberships.get((organization_id, user_id))
        return membership.model_copy(deep=True) if membership else None

    async def list_memberships(self, organization_id: str) -> list[Membership]:
        return [
            m.model_copy(deep=True)
            for (org_id, _), m in self._memberships.items()
            if org_id == organization_id
        ]

    async def save_membership(self, membership: Membership) -> Membership:
        key = (membership.organization_id, membership.user_id)
        stored = membership.model_copy(deep=True)
        existing = self._memberships.get(key)
        if existing is not None:
            stored.id = existing.id
            stored.created_at = existing.created_at
        else:
            stored.created_at = stored.created_at or _now()
        stored.updated_at = _now()
        self._memberships[key] = stored
        return stored.model_copy(deep=True)

    async def delete_membership(self, organization_id: str, user_id: str) -> None:
        self._memberships.pop((organization_id, user_id), None)

    # ------------------------------------------------------------------ #
    # Invitations
    # ------------------------------------------------------------------ #

    def _newest_first(self, invitations) -> list[Invitation]:
        ordered = sorted(invitations, key=lambda i: (i.created_at or _now(), i.id), reverse=True)
        return [i.model_copy(deep=True) for i in ordered]

    async def save_invitation(self, invitation: Invitation) -> Invitation:
        stored = invitation.model_copy(deep=True)
        existing = self._invitations.get(stored.id)
        stored.created_at = existing.created_at if existing else (stored.created_at or _now())
        stored.updated_at = _now()
        self._invitations[stored.id] = stored
        return stored.model_copy(deep=True)

    async def get_invitation(self, invitation_id: str) -> Optional[Invitation]:
        invitation = self._invitations.get(invitation_id)
        return invitation.model_copy(deep=True) if invitation else None

    async def get_invitation_by_token(self, token: str) -> Optional[Invitation]:
        for invitation in self._invitations.values():
            if invitation.token == token:
                return invitation.model_copy(deep=True)
        return None

    async def list_invitations(self, organization_id: str) -> list[Invitation]:
        return self._newest_first(i for i in self._invitations.values() if i.organization_id == organization_id)

    async def list_invitations_for_user(self, user_id: str) -> list[Invitation]:
        return self._newest_first(i for i in self._invitations.values() if i.user_id == user_id)

    async def delete_invitation(self, invitation_id: str) -> None:
        self._invitations.pop(invitation_id, None)

    # ------------------------------------------------------------------ #
    # Templates
    # ------------------------------------------------------------------ #

    async def get_template(self, template_id: str) -> Optional[Template]:
        template = self._templates.get(template_id)
        return template.model_copy(deep=True) if template else None

    async def list_templates(
        self,
        organization_id: str,
        include_shared: bool = True,
        category: Optional[str] = None,
    ) -> list[Template]:
        def visible(template: Template) -> bool:
            if template.organization_id == organization_id:
                return True
            return include_shared and (template.organization_id is None or template.is_public)

        templates = [
            t for t in self._templates.values()
            if visible(t) and (category is None or t.category == category)
        ]
        templates.sort(key=lambda t: t.created_at or _now(), reverse=True)
        return [t.model_copy(deep=True) for t in templates]

    async def save_template(self, template: Template) -> Template:
        stored = template.model_copy(deep=True)
        existing = self._templates.get(stored.id)
        stored.created_at = existing.created_at if existing else (stored.created_at or _now())
        stored.updated_at = _now()
        self._templates[stored.id] = stored
        return stored.model_copy(deep=True)

    async def delete_template(self, template_id: str) -> None:
        self._templates.pop(template_id, None)

    # ------------------------------------------------------------------ #
    # Submissions
    # ------------------------------------------------------------------ #

    def _assemble(self, header: Submission) -> Submission:
        submission = header.model_copy(deep=True)
        submission.answers = copy.deepcopy(self._answers.get(header.id, []))
        return submission

    async def get_submission(self, submission_id: str) -> Optional[Submission]:
        header = self._submissions.get(submission_id)
        return self._assemble(header) if header else None

    async def list_submissions(
        self,
        organization_id: str,
        template_id: Optional[str] = None,
        status: Optional[SubmissionStatus] = None,
    ) -> list[Submission]:
        headers = [
            s for s in self._submissions.values()
            if s.organization_id == organization_id
            and (template_id is None or s.template_id == template_id)
            and (status is None or s.status == status)
        ]
        headers.sort(key=lambda s: s.submitted_at, reverse=True)
        return [self._assemble(h) for h in headers]

    async def save_submission(self, submission: Submission) -> Submission:
        stored = submission.model_copy(deep=True, update={"answers": []})
        stored.updated_at = _now()
        self._submissions[stored.id] = stored
        self._answers.setdefault(stored.id, [])
        return self._assemble(stored)

    async def delete_answers(self, submission_id: str) -> None:
        self._answers[submission_id] = []

    async def add_answers(self, submission_id: str, answers: Sequence[Answer]) -> None:
        self._answers.setdefault(submission_id, []).extend(copy.deepcopy(list(answers)))

    async def delete_submission(self, submission_id: str) -> None:
        self._submissions.pop(submission_id, None)
        self._answers.pop(submission_id, None)
