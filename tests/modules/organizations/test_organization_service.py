# tests/modules/organizations/test_organization_service.py
import pytest
from bson import ObjectId
from fastapi import HTTPException

from agencyos.modules.organizations.models import OrganizationUpdateAPI, RegistrationAPI
from agencyos.modules.organizations.repository import OrganizationRepository
from agencyos.modules.organizations.services import OrganizationService, slugify
from agencyos.modules.people.repository import UserRepository
from agencyos.modules.people.services import UserService

pytestmark = pytest.mark.asyncio


@pytest.fixture
def service(db_client) -> OrganizationService:
    return OrganizationService(OrganizationRepository(db_client), UserService(UserRepository(db_client)))


async def test_get_current(service, organization):
    current = await service.get_current(organization.id)

    assert current.id == organization.id
    assert current.slug == "test-agency"


async def test_get_current_unknown_is_404(service):
    with pytest.raises(HTTPException) as exc_info:
        await service.get_current(str(ObjectId()))
    assert exc_info.value.status_code == 404


async def test_update_changes_only_given_fields(service, organization):
    updated = await service.update(organization.id, OrganizationUpdateAPI(industry="Marketing", logo_url="https://cdn/logo.png"))

    assert updated.industry == "Marketing"
    assert updated.logo_url == "https://cdn/logo.png"
    assert updated.name == "Test Agency"
    assert updated.timezone == "Asia/Almaty"


async def test_register_with_taken_slug_gets_a_suffix(service, organization):
    org, user = await service.register(RegistrationAPI(
        organization_name="Test Agency", name="Second", email="second@agency.kz", password="long-enough-pw",
    ))

    assert org.slug.startswith("test-agency-")
    assert org.owner_id == user.id


async def test_register_rolls_back_organization_when_email_is_taken(service, db_client, admin_user):
    with pytest.raises(HTTPException) as exc_info:
        await service.register(RegistrationAPI(
            organization_name="Copycat", name="Dup", email=admin_user.email, password="long-enough-pw",
        ))

    assert exc_info.value.status_code == 409
    assert await db_client["organizations"].find_one({"name": "Copycat"}) is None


def test_slugify():
    assert slugify("  Nomad Media & Co! ") == "nomad-media-co"
    assert slugify("Қазақ") == "org"
