"""
Template feature dependencies.
"""
from typing import Annotated

from fastapi import Depends

from checklist.features.templates.service import TemplateService
from checklist.repository.base import Repository
from checklist.repository.dependencies import get_repository


def get_template_service(repository: Annotated[Repository, Depends(get_repository)]) -> TemplateService:
    return TemplateService(repository)
