# agencyos/modules/people/routers.py
from typing import List

from fastapi import APIRouter, Depends, status

from agencyos.core.security import CurrentUser, require_role
from .models import UserAPI, UserCreateAPI, UserUpdateAPI
from .services import UserService, get_user_service

people_router = APIRouter()


@people_router.get("/me", response_model=UserAPI, summary="Current user profile")
async def read_me(current_user: CurrentUser):
    return UserAPI.model_validate(current_user)


@people_router.get("/", response_model=List[UserAPI], summary="List the organization's team")
async def list_users(current_user: CurrentUser, user_service: UserService = Depends(get_user_service)):
    users = await user_service.list_users(current_user.organization_id)
    return [UserAPI.model_validate(u) for u in users]


@people_router.post(
    "/",
    response_model=UserAPI,
    status_code=status.HTTP_201_CREATED,
    summary="Add a team member",
)
async def create_user(
    user_in: UserCreateAPI,
    current_user=Depends(require_role(["admin"])),
    user_service: UserService = Depends(get_user_service),
):
    user = await user_service.create_user(current_user.organization_id, user_in)
    return UserAPI.model_validate(user)


@people_router.patch("/{user_id}", response_model=UserAPI, summary="Update a team member")
async def update_user(
    user_id: str,
    user_in: UserUpdateAPI,
    current_user=Depends(require_role(["admin"])),
    user_service: UserService = Depends(get_user_service),
):
    user = await user_service.update_user(current_user.organization_id, user_id, user_in)
    return UserAPI.model_validate(user)
