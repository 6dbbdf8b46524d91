"""
Template management with visibility and role checks.

Visibility: system templates and public templates are readable by everyone,
everything else only by members of the owning organization. System templates
are never modified through this service.
"""
from typing import Optional

from checklist.core.errors import AuthorizationError, NotFoundError, ValidationError
from checklist.features.organizations.schemas import Membership
from checklist.features.organizations.service import require_membership, require_permission
from checklist.features.permissions.schemas import Action, ResourceKind
from checklist.features.templates.schemas import (
    Template,
    TemplateCreate,
    TemplateUpdate,
    swap_order,
)
from checklist.repository.base import Repository
from checklist.utils import get_logger


log = get_logger(__name__)


class TemplateService:
    def __init__(self, repository: Repository):
        self.repository = repository

    async def _visible(self, template_id: str, actor: str) -> Template:
        template = await self.repository.get_template(template_id)
        if template is None:
            raise NotFoundError("Template")
        if template.is_system or template.is_public:
            return template
        if await self.repository.get_membership(template.organization_id, actor) is None:
            raise NotFoundError("Template")
        return template

    async def _managed(self, template_id: str, actor: str, action: Action) -> tuple[Template, Membership]:
        """Load a template the actor may modify with ``action``."""
        template = await self._visible(template_id, actor)
        if template.is_system:
            raise AuthorizationError("System templates cannot be modified")

        membership = await self.repository.get_membership(template.organization_id, actor)
        if membership is None:
            # public template of another organization
            raise AuthorizationError("Only members of the owning organization can modify this template")
        require_permission(membership, action, ResourceKind.TEMPLATE)
        return template, membership

    async def _save(self, template: Template) -> Template:
        async with self.repository.transaction():
            return await self.repository.save_template(template)

    async def create_template(self, actor: str, organization_id: str, payload: TemplateCreate) -> Template:
        membership = await require_membership(self.repository, organization_id, actor)
        require_permission(membership, Action.CREATE, ResourceKind.TEMPLATE)

        template = Template(
            organization_id=organization_id,
            created_by=actor,
            name=payload.name,
            category=payload.category,
            description=payload.description,
            icon=payload.icon,
            is_public=payload.is_public,
            sections=payload.sections,
        )
        template = await self._save(template)
        log.info(f"Created template {template.id} ({template.name!r}) in organization {organization_id}")
        return template

    async def update_template(self, template_id: str, actor: str, payload: TemplateUpdate) -> Template:
        """Apply the given attributes; ``sections`` replaces the whole tree."""
        template, _ = await self._managed(template_id, actor, Action.EDIT)

        updates = payload.model_dump(exclude_unset=True, exclude={"sections"})
        updates = {key: value for key, value in updates.items() if value is not None or key == "icon"}
        template = template.model_copy(update=updates)
        if payload.sections is not None:
            template.sections = payload.sections
        template.version += 1

        template = await self._save(template)
        log.info(f"Updated template {template_id} to version {template.version}")
        return template

    async def delete_template(self, template_id: str, actor: str) -> None:
        """Delete a template. Existing submissions keep their own snapshot."""
        await self._managed(template_id, actor, Action.DELETE)
        async with self.repository.transaction():
            await self.repository.delete_template(template_id)
        log.info(f"Deleted template {template_id} (by {actor})")

    async def swap_sections(self, template_id: str, actor: str, first_id: str, second_id: str) -> Template:
        template, _ = await self._managed(template_id, actor, Action.EDIT)
        if first_id == second_id:
            raise ValidationError("Cannot swap a section with itself")

        first = template.find_section(first_id)
        second = template.find_section(second_id)
        if first is None or second is None:
            raise NotFoundError("Section")

        swap_order(first, second)
        template.version += 1
        return await self._save(template)

    async def swap_fields(
        self,
        template_id: str,
        actor: str,
        section_id: str,
        first_id: str,
        second_id: str,
    ) -> Template:
        template, _ = await self._managed(template_id, actor, Action.EDIT)
        if first_id == second_id:
            raise ValidationError("Cannot swap a field with itself")

        section = template.find_section(section_id)
        if section is None:
            raise NotFoundError("Section")
        fields = {field.id: field for field in section.fields}
        if first_id not in fields or second_id not in fields:
            raise NotFoundError("Field")

        swap_order(fields[first_id], fields[second_id])
        template.version += 1
        return await self._save(template)

    async def get_template(self, template_id: str, actor: str) -> Template:
        return await self._visible(template_id, actor)

    async def list_templates(
        self,
        actor: str,
        organization_id: str,
        category: Optional[str] = None,
    ) -> list[Template]:
        """Own templates plus system templates and public templates of other organizations."""
        membership = await require_membership(self.repository, organization_id, actor)
        require_permission(membership, Action.VIEW, ResourceKind.TEMPLATE)
        return await self.repository.list_templates(organization_id, include_shared=True, category=category)
