"""
Organization feature dependencies.
"""
from typing import Annotated

from fastapi import Depends

from checklist.features.organizations.service import OrganizationService
from checklist.repository.base import Repository
from checklist.repository.dependencies import get_repository


def get_organization_service(repository: Annotated[Repository, Depends(get_repository)]) -> OrganizationService:
    return OrganizationService(repository)
