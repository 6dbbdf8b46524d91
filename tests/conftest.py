"""
Pytest fixtures for backend testing.
Provides repositories, services, a seeded organization and API clients.
"""

import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("RATE_LIMIT", "10000/minute")

from collections.abc import AsyncGenerator
from dataclasses import dataclass

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from checklist.features.organizations.schemas import MemberAdd
from checklist.features.organizations.service import OrganizationService
from checklist.features.permissions.schemas import CustomPermissions, Role
from checklist.features.submissions.service import SubmissionService
from checklist.features.templates.schemas import Template
from checklist.features.templates.service import TemplateService
from checklist.features.users.auth import create_access_token
from checklist.repository.memory import InMemoryRepository
from tests.factories import ADMIN, DELETER, MEMBER, OUTSIDER, OWNER, VIEWER, template_payload

@dataclass
class SeededOrganization:
    id: str
    other_id: str


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def organization_service(repository) -> OrganizationService:
    return OrganizationService(repository)


@pytest.fixture
def template_service(repository) -> TemplateService:
    return TemplateService(repository)


@pytest.fixture
def submission_service(repository) -> SubmissionService:
    return SubmissionService(repository)


@pytest_asyncio.fixture
async def organization(organization_service) -> SeededOrganization:
    """
    One organization with every role plus a member holding the delete overlay,
    and a second organization the outsider owns.
    """
    org = await organization_service.create_organization(OWNER, "Sunrise Installers")
    await organization_service.add_member(org.id, OWNER, MemberAdd(user_id=ADMIN, role=Role.ADMIN))
    await organization_service.add_member(org.id, OWNER, MemberAdd(user_id=MEMBER, role=Role.MEMBER))
    await organization_service.add_member(
        org.id,
        OWNER,
        MemberAdd(
            user_id=DELETER,
            role=Role.MEMBER,
            custom_permissions=CustomPermissions(can_delete_submissions=True),
        ),
    )
    await organization_service.add_member(org.id, OWNER, MemberAdd(user_id=VIEWER, role=Role.VIEWER))

    other = await organization_service.create_organization(OUTSIDER, "Other Co")
    return SeededOrganization(id=org.id, other_id=other.id)


@pytest_asyncio.fixture
async def template(template_service, organization) -> Template:
    return await template_service.create_template(OWNER, organization.id, template_payload(organization.id))


@pytest.fixture
def auth_headers():
    """Build bearer headers for a user id."""

    def _headers(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers


@pytest_asyncio.fixture
async def api_client(repository) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client whose routes use the in-memory repository."""
    from checklist.main import app
    from checklist.repository.dependencies import get_repository

    app.dependency_overrides[get_repository] = lambda: repository
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
