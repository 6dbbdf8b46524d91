"""
Template feature routes.
"""
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, Query, status

from checklist.features.templates.dependencies import get_template_service
from checklist.features.templates.fields import FIELD_CAPABILITIES
from checklist.features.templates.schemas import (
    SwapOrderRequest,
    Template,
    TemplateCreate,
    TemplateSummary,
    TemplateUpdate,
)
from checklist.features.templates.service import TemplateService
from checklist.features.users.dependencies import get_current_actor


router = APIRouter(tags=["templates"])

Service = Annotated[TemplateService, Depends(get_template_service)]
Actor = Annotated[str, Depends(get_current_actor)]


@router.get("/field-types")
async def list_field_types() -> list[dict[str, Any]]:
    """Describe every field type: value shape, default value and config options."""
    return [capability.describe() for capability in FIELD_CAPABILITIES.values()]


@router.post("/", response_model=Template, status_code=status.HTTP_201_CREATED)
async def create_template(template_data: TemplateCreate, actor: Actor, service: Service):
    """Create a template in an organization (requires create_templates)."""
    return await service.create_template(actor, template_data.organization_id, template_data)


@router.get("/", response_model=list[TemplateSummary])
async def list_templates(
    actor: Actor,
    service: Service,
    organization_id: str = Query(..., description="Organization whose templates to list"),
    category: Optional[str] = Query(None, description="Filter by category"),
):
    """List the organization's templates plus system and public ones."""
    templates = await service.list_templates(actor, organization_id, category=category)
    return [template.summary() for template in templates]


@router.get("/{template_id}", response_model=Template)
async def get_template(template_id: str, actor: Actor, service: Service):
    return await service.get_template(template_id, actor)


@router.patch("/{template_id}", response_model=Template)
async def update_template(template_id: str, template_data: TemplateUpdate, actor: Actor, service: Service):
    """Update a template; a new sections list replaces the existing one."""
    return await service.update_template(template_id, actor, template_data)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(template_id: str, actor: Actor, service: Service):
    await service.delete_template(template_id, actor)


@router.post("/{template_id}/sections/swap", response_model=Template)
async def swap_sections(template_id: str, request: SwapOrderRequest, actor: Actor, service: Service):
    """Swap the display order of two sections."""
    return await service.swap_sections(template_id, actor, request.first_id, request.second_id)


@router.post("/{template_id}/sections/{section_id}/fields/swap", response_model=Template)
async def swap_fields(
    template_id: str,
    section_id: str,
    request: SwapOrderRequest,
    actor: Actor,
    service: Service,
):
    """Swap the display order of two fields within a section."""
    return await service.swap_fields(template_id, actor, section_id, request.first_id, request.second_id)
