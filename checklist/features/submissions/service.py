"""
Submission lifecycle: create, edit, delete and read.

Checks always run in the same order: visibility and authorization first,
then answer validation, then persistence. Answers are written as snapshots
of the template at write time; reads never consult the live template.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from checklist.core.database.base import generate_ulid
from checklist.core.errors import AuthorizationError, NotFoundError, ValidationError
from checklist.features.organizations.schemas import Membership
from checklist.features.organizations.service import require_membership, require_permission
from checklist.features.permissions.engine import can_delete_submission
from checklist.features.permissions.schemas import Action, ResourceKind
from checklist.features.submissions.schemas import (
    Answer,
    Submission,
    SubmissionStatus,
    SubmissionSummary,
)
from checklist.features.submissions.validator import completion_percentage, first_error, validate
from checklist.features.templates.schemas import Template
from checklist.repository.base import Repository
from checklist.utils import get_logger


log = get_logger(__name__)


def snapshot_answers(
    template: Template,
    answers: Mapping[str, Any],
    photo_urls: Optional[Mapping[str, List[str]]] = None,
) -> List[Answer]:
    """
    Build one Answer per template field, in schema order.

    Missing values fall back to the field type's default; keys that are not
    fields of the template are dropped.
    """
    photo_urls = photo_urls or {}
    built = []
    for section, field in template.iter_fields():
        value = answers.get(field.id)
        if value is None:
            value = field.capability.default()
        built.append(Answer(
            field_id=field.id,
            field_label=field.label,
            field_type=field.type,
            section_title=section.title,
            value=value,
            photo_urls=list(photo_urls.get(field.id, [])),
        ))

    known = {answer.field_id for answer in built}
    unknown = [key for key in answers if key not in known]
    if unknown:
        log.debug(f"Ignoring answers for unknown fields {unknown} of template {template.id}")
    return built


def summarize(submission: Submission) -> SubmissionSummary:
    return SubmissionSummary(
        id=submission.id,
        template_id=submission.template_id,
        template_name=submission.template_name,
        category=submission.category,
        organization_id=submission.organization_id,
        submitted_at=submission.submitted_at,
        submitted_by=submission.submitted_by,
        status=submission.status,
        completion_percentage=completion_percentage(submission.answers),
    )


def _raise_if_invalid(errors: Dict[str, str]) -> None:
    if errors:
        field_id, message = first_error(errors)
        raise ValidationError(f"{message} ({field_id})", errors=errors)


class SubmissionService:
    def __init__(self, repository: Repository):
        self.repository = repository

    async def _visible(self, submission_id: str, actor: str) -> tuple[Submission, Membership]:
        """Load a submission from one of the actor's organizations."""
        submission = await self.repository.get_submission(submission_id)
        if submission is None:
            raise NotFoundError("Submission")
        membership = await self.repository.get_membership(submission.organization_id, actor)
        if membership is None:
            log.info(f"User {actor} asked for submission {submission_id} outside their organizations")
            raise NotFoundError("Submission")
        return submission, membership

    async def _template_for(self, template_id: str, organization_id: str) -> Template:
        template = await self.repository.get_template(template_id)
        visible = template is not None and (
            template.is_system or template.is_public or template.organization_id == organization_id
        )
        if not visible:
            raise NotFoundError("Template")
        return template

    async def _write(self, header: Submission, answers: List[Answer]) -> Submission:
        """Save the header and replace every answer in one transaction."""
        async with self.repository.transaction():
            await self.repository.save_submission(header)
            await self.repository.delete_answers(header.id)
            await self.repository.add_answers(header.id, answers)
        return await self.repository.get_submission(header.id)

    async def create_submission(
        self,
        template_id: str,
        answers: Mapping[str, Any],
        actor: str,
        organization_id: str,
        submission_id: Optional[str] = None,
        status: SubmissionStatus = SubmissionStatus.COMPLETED,
        photo_urls: Optional[Mapping[str, List[str]]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Submission:
        """
        Validate answers against the template and store a new submission.

        A client-generated ``submission_id`` makes the call idempotent: a retry
        by the same submitter in the same organization overwrites the first
        attempt instead of creating a duplicate.
        """
        membership = await require_membership(self.repository, organization_id, actor)
        require_permission(membership, Action.CREATE, ResourceKind.SUBMISSION)

        template = await self._template_for(template_id, organization_id)
        if not template.is_usable():
            raise ValidationError("Template has no sections and cannot accept submissions")

        existing = None
        if submission_id:
            existing = await self.repository.get_submission(submission_id)
            if existing is not None:
                if existing.organization_id != organization_id:
                    log.info(f"User {actor} sent submission id {submission_id} from another organization")
                    raise NotFoundError("Submission")
                if existing.submitted_by != actor:
                    log.warning(f"User {actor} reused submission id {submission_id} owned by someone else")
                    raise AuthorizationError("Submission id is already in use")
                if existing.template_id != template_id:
                    raise ValidationError(
                        "Submission id is already used for a different template",
                        errors={"template_id": "Does not match the existing submission"},
                    )

        _raise_if_invalid(validate(template, answers))

        header = Submission(
            id=submission_id or generate_ulid(),
            template_id=template.id,
            template_name=template.name,
            category=template.category,
            organization_id=organization_id,
            submitted_at=existing.submitted_at if existing else datetime.now(timezone.utc),
            submitted_by=actor,
            status=status,
            metadata=metadata,
        )
        submission = await self._write(header, snapshot_answers(template, answers, photo_urls))
        if existing:
            log.info(f"Overwrote submission {submission.id} on retry by {actor}")
        else:
            log.info(f"Created submission {submission.id} for template {template.id} by {actor}")
        return submission

    async def update_submission(
        self,
        submission_id: str,
        answers: Mapping[str, Any],
        actor: str,
        status: Optional[SubmissionStatus] = None,
        photo_urls: Optional[Mapping[str, List[str]]] = None,
    ) -> Submission:
        """
        Replace a submission's answers.

        Template, organization, submitter and submission time never change.
        """
        submission, membership = await self._visible(submission_id, actor)
        is_owner = submission.submitted_by == actor
        require_permission(membership, Action.EDIT, ResourceKind.SUBMISSION, is_owner=is_owner)

        template = await self._template_for(submission.template_id, submission.organization_id)
        _raise_if_invalid(validate(template, answers))

        header = submission.model_copy(update={"status": status or submission.status, "answers": []})
        updated = await self._write(header, snapshot_answers(template, answers, photo_urls))
        log.info(f"Updated submission {submission_id} by {actor}")
        return updated

    async def delete_submission(self, submission_id: str, actor: str) -> None:
        submission, membership = await self._visible(submission_id, actor)
        is_owner = submission.submitted_by == actor
        if not can_delete_submission(membership, is_owner=is_owner):
            log.info(f"Denied deletion of submission {submission_id} for {actor} (role={membership.role.value})")
            raise AuthorizationError("You do not have permission to delete this submission")

        async with self.repository.transaction():
            await self.repository.delete_submission(submission_id)
        log.info(f"Deleted submission {submission_id} (by {actor})")

    async def get_submission(self, submission_id: str, actor: str) -> Submission:
        submission, membership = await self._visible(submission_id, actor)
        require_permission(membership, Action.VIEW, ResourceKind.SUBMISSION)
        return submission

    async def list_submissions(
        self,
        actor: str,
        organization_id: str,
        template_id: Optional[str] = None,
        status: Optional[SubmissionStatus] = None,
    ) -> list[Submission]:
        """Submissions of one organization, newest first."""
        membership = await require_membership(self.repository, organization_id, actor)
        require_permission(membership, Action.VIEW, ResourceKind.SUBMISSION)
        return await self.repository.list_submissions(organization_id, template_id=template_id, status=status)
