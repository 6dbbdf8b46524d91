"""SQLAlchemy ``Repository`` adapter.

Rows are converted to the pydantic schemas on the way out and detached from
the session, so the services only ever see plain schema objects. Any
``SQLAlchemyError`` surfaces as ``PersistenceError``.
"""

from __future__ import annotations

import functools
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional, Sequence

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from checklist.core.errors import PersistenceError
from checklist.features.organizations import models as org_models
from checklist.features.organizations.schemas import Invitation, Membership, Organization
from checklist.features.permissions.schemas import CustomPermissions
from checklist.features.submissions import models as submission_models
from checklist.features.submissions.schemas import Answer, Submission, SubmissionStatus
from checklist.features.templates import models as template_models
from checklist.features.templates.schemas import Template
from checklist.utils import get_logger


log = get_logger(__name__)


def translate_errors(method):
    """Turn driver/ORM failures into an opaque PersistenceError."""

    @functools.wraps(method)
    async def wrapper(self: "SqlRepository", *args, **kwargs):
        try:
            return await method(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            log.exception("Database error in %s", method.__name__)
            raise PersistenceError() from exc

    return wrapper


# ============================================================================
# Row <-> schema conversion
# ============================================================================

def _organization_from_row(row: org_models.Organization) -> Organization:
    return Organization(
        id=row.id,
        name=row.name,
        slug=row.slug,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _membership_from_row(row: org_models.Membership) -> Membership:
    return Membership(
        id=row.id,
        organization_id=row.organization_id,
        user_id=row.user_id,
        role=row.role,
        custom_permissions=CustomPermissions.from_stored(row.custom_permissions),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops the offset of timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _invitation_from_row(row: org_models.Invitation) -> Invitation:
    return Invitation(
        id=row.id,
        organization_id=row.organization_id,
        user_id=row.user_id,
        role=row.role,
        invited_by=row.invited_by,
        token=row.token,
        expires_at=_as_utc(row.expires_at),
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )


def _template_from_row(row: template_models.Template) -> Template:
    return Template.model_validate({
        "id": row.id,
        "organization_id": row.organization_id,
        "name": row.name,
        "category": row.category,
        "description": row.description or "",
        "icon": row.icon,
        "is_public": row.is_public,
        "created_by": row.created_by,
        "version": row.version,
        "created_at": row.created_at,
        "updated_at": row.updated_at,
        "sections": [
            {
                "id": section.id,
                "title": section.title,
                "description": section.description,
                "order": section.order,
                "fields": [
                    {
                        "id": field.id,
                        "type": field.type,
                        "label": field.label,
                        "placeholder": field.placeholder,
                        "help_text": field.help_text,
                        "required": field.required,
                        "order": field.order,
                        "config": field.config or {},
                    }
                    for field in section.fields
                ],
            }
            for section in row.sections
        ],
    })


def _section_rows(template: Template) -> list[template_models.TemplateSection]:
    return [
        template_models.TemplateSection(
            id=section.id,
            title=section.title,
            description=section.description,
            order=section.order,
            fields=[
                template_models.TemplateField(
                    id=field.id,
                    type=field.type,
                    label=field.label,
                    placeholder=field.placeholder,
                    help_text=field.help_text,
                    required=field.required,
                    order=field.order,
                    config=field.config.model_dump(exclude_none=True),
                )
                for field in section.fields
            ],
        )
        for section in template.sections
    ]


def _answer_from_row(row: submission_models.SubmissionAnswer) -> Answer:
    return Answer(
        field_id=row.field_id,
        field_label=row.field_label,
        field_type=row.field_type,
        section_title=row.section_title,
        value=row.value,
        photo_urls=row.photo_urls or [],
    )


def _submission_from_row(
    row: submission_models.Submission,
    answers: Sequence[submission_models.SubmissionAnswer],
) -> Submission:
    return Submission(
        id=row.id,
        template_id=row.template_id,
        template_name=row.template_name,
        category=row.category,
        organization_id=row.organization_id,
        submitted_at=row.submitted_at,
        submitted_by=row.submitted_by,
        status=row.status,
        metadata=row.extra,
        updated_at=row.updated_at,
        answers=[_answer_from_row(a) for a in answers],
    )


# ============================================================================
# Adapter
# ============================================================================

class SqlRepository:
    """Checklist storage backed by an ``AsyncSession``."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._depth = 0

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["SqlRepository"]:
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield self
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            log.exception("Transaction rolled back")
            raise PersistenceError() from exc
        except BaseException:
            await self._session.rollback()
            raise
        finally:
            self._depth = 0

    def _detach(self, *rows) -> None:
        for row in rows:
            self._session.expunge(row)

    # ------------------------------------------------------------------ #
    # Organizations
    # ------------------------------------------------------------------ #

    @translate_errors
    async def add_organization(self, organization: Organization) -> Organization:
        row = org_models.Organization(id=organization.id, name=organization.name, slug=organization.slug)
        self._session.add(row)
        await self._session.flush()
        await self._session.refresh(row)
        result = _organization_from_row(row)
        self._detach(row)
        return result

    @translate_errors
    async def get_organization(self, organization_id: str) -> Optional[Organization]:
        row = await self._session.scalar(
            select(org_models.Organization).where(org_models.Organization.id == organization_id)
        )
        if row is None:
            return None
        result = _organization_from_row(row)
        self._detach(row)
        return result

    @translate_errors
    async def list_organizations_for_user(self, user_id: str) -> list[Organization]:
        result = await self._session.execute(
            select(org_models.Organization)
            .join(org_models.Membership, org_models.Membership.organization_id == org_models.Organization.id)
            .where(org_models.Membership.user_id == user_id)
            .order_by(org_models.Organization.created_at)
        )
        rows = result.scalars().all()
        organizations = [_organization_from_row(r) for r in rows]
        self._detach(*rows)
        return organizations

    @translate_errors
    async def update_organization(self, organization: Organization) -> Organization:
        row = await self._session.get(org_models.Organization, organization.id)
        if row is None:
            raise PersistenceError(f"Organization {organization.id} disappeared during update")
        row.name = organization.name
        row.slug = organization.slug
        await self._session.flush()
        await self._session.refresh(row)
        result = _organization_from_row(row)
        self._detach(row)
        return result

    @translate_errors
    async def delete_organization(self, organization_id: str) -> None:
        submission_ids = select(submission_models.Submission.id).where(
            submission_models.Submission.organization_id == organization_id
        )
        await self._session.execute(
            delete(submission_models.SubmissionAnswer)
            .where(submission_models.SubmissionAnswer.submission_id.in_(submission_ids))
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(
            delete(submission_models.Submission)
            .where(submission_models.Submission.organization_id == organization_id)
            .execution_options(synchronize_session=False)
        )

        templates = await self._session.scalars(
            select(template_models.Template).where(template_models.Template.organization_id == organization_id)
        )
        for template in templates.all():
            await self._session.delete(template)

        await self._session.execute(
            delete(org_models.Invitation)
            .where(org_models.Invitation.organization_id == organization_id)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(
            delete(org_models.Membership)
            .where(org_models.Membership.organization_id == organization_id)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(
            delete(org_models.Organization)
            .where(org_models.Organization.id == organization_id)
            .execution_options(synchronize_session=False)
        )
        await self._session.flush()

    # ------------------------------------------------------------------ #
    # Memberships
    # ------------------------------------------------------------------ #

    async def _membership_row(self, organization_id: str, user_id: str) -> Optional[org_models.Membership]:
        return await self._session.scalar(
            select(org_models.Membership).where(
                and_(
                    org_models.Membership.organization_id == organization_id,
                    org_models.Membership.user_id == user_id,
                )
            )
        )

    @translate_errors
    async def get_membership(self, organization_id: str, user_id: str) -> Optional[Membership]:
        row = await self._membership_row(organization_id, user_id)
        if row is None:
            return None
        result = _membership_from_row(row)
        self._detach(row)
        return result

    @translate_errors
    async def list_memberships(self, organization_id: str) -> list[Membership]:
        rows = (await self._session.scalars(
            select(org_models.Membership)
            .where(org_models.Membership.organization_id == organization_id)
            .order_by(org_models.Membership.created_at)
        )).all()
        memberships = [_membership_from_row(r) for r in rows]
        self._detach(*rows)
        return memberships

    @translate_errors
    async def save_membership(self, membership: Membership) -> Membership:
        row = await self._membership_row(membership.organization_id, membership.user_id)
        if row is None:
            row = org_models.Membership(
                id=membership.id,
                organization_id=membership.organization_id,
                user_id=membership.user_id,
            )
            self._session.add(row)
        row.role = membership.role.value
        row.custom_permissions = membership.custom_permissions.to_stored()
        await self._session.flush()
        await self._session.refresh(row)
        result = _membership_from_row(row)
        self._detach(row)
        return result

    @translate_errors
    async def delete_membership(self, organization_id: str, user_id: str) -> None:
        await self._session.execute(
            delete(org_models.Membership)
            .where(
                and_(
                    org_models.Membership.organization_id == organization_id,
                    org_models.Membership.user_id == user_id,
                )
            )
            .execution_options(synchronize_session=False)
        )
        await self._session.flush()

    # ------------------------------------------------------------------ #
    # Invitations
    # ------------------------------------------------------------------ #

    async def _invitation_list(self, *criteria) -> list[Invitation]:
        Row = org_models.Invitation
        rows = (await self._session.scalars(
            select(Row).where(*criteria).order_by(Row.created_at.desc(), Row.id.desc())
        )).all()
        invitations = [_invitation_from_row(r) for r in rows]
        self._detach(*rows)
        return invitations

    @translate_errors
    async def save_invitation(self, invitation: Invitation) -> Invitation:
        row = await self._session.get(org_models.Invitation, invitation.id)
        if row is None:
            row = org_models.Invitation(id=invitation.id)
            self._session.add(row)
        row.organization_id = invitation.organization_id
        row.user_id = invitation.user_id
        row.role = invitation.role.value
        row.invited_by = invitation.invited_by
        row.token = invitation.token
        row.expires_at = invitation.expires_at
        await self._session.flush()
        await self._session.refresh(row)
        result = _invitation_from_row(row)
        self._detach(row)
        return result

    @translate_errors
    async def get_invitation(self, invitation_id: str) -> Optional[Invitation]:
        row = await self._session.get(org_models.Invitation, invitation_id)
        if row is None:
            return None
        result = _invitation_from_row(row)
        self._detach(row)
        return result

    @translate_errors
    async def get_invitation_by_token(self, token: str) -> Optional[Invitation]:
        row = await self._session.scalar(
            select(org_models.Invitation).where(org_models.Invitation.token == token)
        )
        if row is None:
            return None
        result = _invitation_from_row(row)
        self._detach(row)
        return result

    @translate_errors
    async def list_invitations(self, organization_id: str) -> list[Invitation]:
        return await self._invitation_list(org_models.Invitation.organization_id == organization_id)

    @translate_errors
    async def list_invitations_for_user(self, user_id: str) -> list[Invitation]:
        return await self._invitation_list(org_models.Invitation.user_id == user_id)

    @translate_errors
    async def delete_invitation(self, invitation_id: str) -> None:
        await self._session.execute(
            delete(org_models.Invitation)
            .where(org_models.Invitation.id == invitation_id)
            .execution_options(synchronize_session=False)
        )
        await self._session.flush()

    # ------------------------------------------------------------------ #
    # Templates
    # ------------------------------------------------------------------ #

    @translate_errors
    async def get_template(self, template_id: str) -> Optional[Template]:
        row = await self._session.scalar(
            select(template_models.Template).where(template_models.Template.id == template_id)
        )
        if row is None:
            return None
        result = _template_from_row(row)
        self._detach(row)
        return result

    @translate_errors
    async def list_templates(
        self,
        organization_id: str,
        include_shared: bool = True,
        category: Optional[str] = None,
    ) -> list[Template]:
        Row = template_models.Template
        scope = Row.organization_id == organization_id
        if include_shared:
            scope = or_(scope, Row.organization_id.is_(None), Row.is_public.is_(True))

        stmt = select(Row).where(scope)
        if category:
            stmt = stmt.where(Row.category == category)
        stmt = stmt.order_by(Row.created_at.desc())

        rows = (await self._session.scalars(stmt)).all()
        templates = [_template_from_row(r) for r in rows]
        self._detach(*rows)
        return templates

    @translate_errors
    async def save_template(self, template: Template) -> Template:
        row = await self._session.get(template_models.Template, template.id)
        if row is None:
            row = template_models.Template(id=template.id, sections=[])
            self._session.add(row)
        else:
            # drop the old tree first so (template_id, id) stays unique
            row.sections.clear()
            await self._session.flush()

        row.organization_id = template.organization_id
        row.name = template.name
        row.category = template.category
        row.description = template.description
        row.icon = template.icon
        row.is_public = template.is_public
        row.created_by = template.created_by
        row.version = template.version
        row.sections.extend(_section_rows(template))

        await self._session.flush()
        await self._session.refresh(row)
        result = _template_from_row(row)
        self._detach(row)
        return result

    @translate_errors
    async def delete_template(self, template_id: str) -> None:
        row = await self._session.get(template_models.Template, template_id)
        if row is not None:
            await self._session.delete(row)
            await self._session.flush()

    # ------------------------------------------------------------------ #
    # Submissions
    # ------------------------------------------------------------------ #

    async def _answer_rows(self, submission_id: str) -> list[submission_models.SubmissionAnswer]:
        rows = (await self._session.scalars(
            select(submission_models.SubmissionAnswer)
            .where(submission_models.SubmissionAnswer.submission_id == submission_id)
            .order_by(submission_models.SubmissionAnswer.position)
        )).all()
        return list(rows)

    async def _assemble(self, row: submission_models.Submission) -> Submission:
        answers = await self._answer_rows(row.id)
        result = _submission_from_row(row, answers)
        self._detach(row, *answers)
        return result

    @translate_errors
    async def get_submission(self, submission_id: str) -> Optional[Submission]:
        row = await self._session.scalar(
            select(submission_models.Submission).where(submission_models.Submission.id == submission_id)
        )
        if row is None:
            return None
        return await self._assemble(row)

    @translate_errors
    async def list_submissions(
        self,
        organization_id: str,
        template_id: Optional[str] = None,
        status: Optional[SubmissionStatus] = None,
    ) -> list[Submission]:
        Row = submission_models.Submission
        stmt = select(Row).where(Row.organization_id == organization_id)
        if template_id:
            stmt = stmt.where(Row.template_id == template_id)
        if status:
            stmt = stmt.where(Row.status == SubmissionStatus(status).value)
        stmt = stmt.order_by(Row.submitted_at.desc())

        rows = (await self._session.scalars(stmt)).all()
        return [await self._assemble(r) for r in rows]

    @translate_errors
    async def save_submission(self, submission: Submission) -> Submission:
        row = await self._session.get(submission_models.Submission, submission.id)
        if row is None:
            row = submission_models.Submission(id=submission.id)
            self._session.add(row)
        row.template_id = submission.template_id
        row.template_name = submission.template_name
        row.category = submission.category
        row.organization_id = submission.organization_id
        row.submitted_at = submission.submitted_at
        row.submitted_by = submission.submitted_by
        row.status = SubmissionStatus(submission.status).value
        row.extra = submission.metadata
        await self._session.flush()
        await self._session.refresh(row)
        return await self._assemble(row)

    @translate_errors
    async def delete_answers(self, submission_id: str) -> None:
        await self._session.execute(
            delete(submission_models.SubmissionAnswer)
            .where(submission_models.SubmissionAnswer.submission_id == submission_id)
            .execution_options(synchronize_session=False)
        )
        await self._session.flush()

    @translate_errors
    async def add_answers(self, submission_id: str, answers: Sequence[Answer]) -> None:
        start = len(await self._answer_rows(submission_id))
        rows = [
            submission_models.SubmissionAnswer(
                submission_id=submission_id,
                position=start + index,
                field_id=answer.field_id,
                field_label=answer.field_label,
                field_type=answer.field_type,
                section_title=answer.section_title,
                value=answer.value,
                photo_urls=list(answer.photo_urls),
            )
            for index, answer in enumerate(answers)
        ]
        self._session.add_all(rows)
        await self._session.flush()
        self._detach(*rows)

    @translate_errors
    async def delete_submission(self, submission_id: str) -> None:
        await self.delete_answers(submission_id)
        await self._session.execute(
            delete(submission_models.Submission)
            .where(submission_models.Submission.id == submission_id)
            .execution_options(synchronize_session=False)
        )
        await self._session.flush()
