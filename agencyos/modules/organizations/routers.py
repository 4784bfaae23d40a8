# agencyos/modules/organizations/routers.py
from fastapi import APIRouter, Depends

from agencyos.core.security import CurrentUser, require_role
from .models import OrganizationAPI, OrganizationUpdateAPI
from .services import OrganizationService, get_organization_service

organizations_router = APIRouter()


@organizations_router.get("/current", response_model=OrganizationAPI, summary="The caller's organization")
async def get_current_organization(
    current_user: CurrentUser,
    org_service: OrganizationService = Depends(get_organization_service),
):
    return OrganizationAPI.model_validate(await org_service.get_current(current_user.organization_id))


@organizations_router.patch("/current", response_model=OrganizationAPI, summary="Update organization profile")
async def update_current_organization(
    org_in: OrganizationUpdateAPI,
    current_user=Depends(require_role(["admin"])),
    org_service: OrganizationService = Depends(get_organization_service),
):
    return OrganizationAPI.model_validate(await org_service.update(current_user.organization_id, org_in))
