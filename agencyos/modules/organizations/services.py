# agencyos/modules/organizations/services.py
import re
import uuid

from fastapi import Depends, HTTPException, status
from loguru import logger

from agencyos.modules.people.models import UserCreateAPI, UserInDB
from agencyos.modules.people.services import UserService, get_user_service
from .models import OrganizationInDB, OrganizationUpdateAPI, RegistrationAPI
from .repository import OrganizationRepository, get_organization_repository


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "org"


class OrganizationService:
    def __init__(self, org_repo: OrganizationRepository, user_service: UserService):
        self.org_repo = org_repo
        self.user_service = user_service

    async def get_current(self, organization_id: str) -> OrganizationInDB:
        org = await self.org_repo.get_by_id(organization_id)
        if not org:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found.")
        return org

    async def update(self, organization_id: str, org_in: OrganizationUpdateAPI) -> OrganizationInDB:
        org = await self.org_repo.update(organization_id, org_in)
        if not org:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found.")
        return org

    async def register(self, payload: RegistrationAPI) -> tuple[OrganizationInDB, UserInDB]:
        """Creates an organization and its first admin user."""
        log = logger.bind(service="OrganizationService", email=payload.email)
        slug = slugify(payload.organization_name)
        if await self.org_repo.get_by_slug(slug):
            slug = f"{slug}-{uuid.uuid4().hex[:6]}"

        org = await self.org_repo.create({
            "name": payload.organization_name,
            "slug": slug,
            "industry": payload.industry,
            "timezone": "Asia/Almaty",
            "is_blocked": False,
            "balance": 0.0,
            "ai_credit_balance": 0.0,
            "is_ai_enabled": False,
        })
        try:
            user = await self.user_service.create_user(
                org.id,
                UserCreateAPI(
                    name=payload.name,
                    email=payload.email,
                    password=payload.password,
                    system_role="admin",
                    job_title=payload.job_title,
                ),
            )
        except HTTPException:
            # Roll back the orphan organization
            await self.org_repo.delete(org.id)
            raise

        org = await self.org_repo.update(org.id, {"owner_id": user.id})
        log.success(f"Organization '{org.name}' registered with owner {user.id}")
        return org, user


async def get_organization_service(
    org_repo: OrganizationRepository = Depends(get_organization_repository),
    user_service: UserService = Depends(get_user_service),
) -> OrganizationService:
    return OrganizationService(org_repo, user_service)
