"""
Submission feature dependencies.
"""
from typing import Annotated

from fastapi import Depends

from checklist.features.submissions.service import SubmissionService
from checklist.repository.base import Repository
from checklist.repository.dependencies import get_repository


def get_submission_service(repository: Annotated[Repository, Depends(get_repository)]) -> SubmissionService:
    return SubmissionService(repository)
