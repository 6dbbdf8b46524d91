"""
Submission feature routes.
"""
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from checklist.features.submissions.dependencies import get_submission_service
from checklist.features.submissions.schemas import (
    Submission,
    SubmissionCreate,
    SubmissionStatus,
    SubmissionSummary,
    SubmissionUpdate,
)
from checklist.features.submissions.service import SubmissionService, summarize
from checklist.features.users.dependencies import get_current_actor


router = APIRouter(tags=["submissions"])

Service = Annotated[SubmissionService, Depends(get_submission_service)]
Actor = Annotated[str, Depends(get_current_actor)]


@router.post("/", response_model=Submission, status_code=status.HTTP_201_CREATED)
async def create_submission(submission_data: SubmissionCreate, actor: Actor, service: Service):
    """
    Submit answers for a template.

    Sending the same client-generated ``id`` again overwrites the earlier
    attempt instead of creating a duplicate.
    """
    return await service.create_submission(
        template_id=submission_data.template_id,
        answers=submission_data.answers,
        actor=actor,
        organization_id=submission_data.organization_id,
        submission_id=submission_data.id,
        status=submission_data.status,
        photo_urls=submission_data.photo_urls,
        metadata=submission_data.metadata,
    )


@router.get("/", response_model=list[SubmissionSummary])
async def list_submissions(
    actor: Actor,
    service: Service,
    organization_id: str = Query(...),
    template_id: Optional[str] = Query(None),
    submission_status: Optional[SubmissionStatus] = Query(None, alias="status"),
):
    """List an organization's submissions, newest first."""
    submissions = await service.list_submissions(
        actor, organization_id, template_id=template_id, status=submission_status
    )
    return [summarize(submission) for submission in submissions]


@router.get("/{submission_id}", response_model=Submission)
async def get_submission(submission_id: str, actor: Actor, service: Service):
    return await service.get_submission(submission_id, actor)


@router.put("/{submission_id}", response_model=Submission)
async def update_submission(submission_id: str, submission_data: SubmissionUpdate, actor: Actor, service: Service):
    """Replace all answers of a submission."""
    return await service.update_submission(
        submission_id,
        submission_data.answers,
        actor,
        status=submission_data.status,
        photo_urls=submission_data.photo_urls,
    )


@router.delete("/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_submission(submission_id: str, actor: Actor, service: Service):
    await service.delete_submission(submission_id, actor)
