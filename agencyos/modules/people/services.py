# agencyos/modules/people/services.py
from typing import List, Optional

from fastapi import Depends, HTTPException, status
from loguru import logger

from agencyos.core import security
from .models import UserCreateAPI, UserCreateInternal, UserInDB, UserUpdateAPI, UserUpdateInternal
from .repository import UserRepository, get_user_repository


class UserService:
    def __init__(self, user_repo: UserRepository):
        self.user_repo = user_repo

    async def authenticate(self, email: str, password: str) -> Optional[UserInDB]:
        user = await self.user_repo.get_by_email(email)
        if not user or not security.verify_password(password, user.hashed_password):
            return None
        if not user.is_active:
            logger.bind(service="UserService", email=email).warning("Login attempt for inactive user.")
            return None
        return user

    async def list_users(self, organization_id: str) -> List[UserInDB]:
        return await self.user_repo.list_for_org(organization_id, limit=0, sort=[("name", 1)])

    async def get_user(self, organization_id: str, user_id: str) -> UserInDB:
        user = await self.user_repo.get_for_org(organization_id, user_id)
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
        return user

    async def create_user(self, organization_id: Optional[str], user_in: UserCreateAPI) -> UserInDB:
        log = logger.bind(service="UserService", organization_id=organization_id, email=user_in.email)
        if await self.user_repo.get_by_email(user_in.email):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered.")

        internal = UserCreateInternal(
            organization_id=organization_id,
            hashed_password=security.get_password_hash(user_in.password),
            **user_in.model_dump(exclude={"password", "email"}),
            email=user_in.email.lower(),
        )
        try:
            user = await self.user_repo.create(internal)
        except ValueError:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered.")
        log.success(f"User created: {user.id}")
        return user

    async def update_user(self, organization_id: str, user_id: str, user_in: UserUpdateAPI) -> UserInDB:
        update = UserUpdateInternal(**user_in.model_dump(exclude_unset=True, exclude={"password"}))
        if user_in.password:
            update.hashed_password = security.get_password_hash(user_in.password)
        user = await self.user_repo.update_for_org(organization_id, user_id, update)
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
        return user


async def get_user_service(user_repo: UserRepository = Depends(get_user_repository)) -> UserService:
    return UserService(user_repo)
