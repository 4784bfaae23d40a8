# agencyos/api/endpoints/auth.py
from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from loguru import logger

from agencyos.core import security
from agencyos.core.config import settings
from agencyos.core.logging_config import trace_id_var
from agencyos.core.rate_limit import limiter
from agencyos.modules.organizations.models import RegistrationAPI
from agencyos.modules.organizations.services import OrganizationService, get_organization_service
from agencyos.modules.people.models import Token
from agencyos.modules.people.services import UserService, get_user_service

router = APIRouter()


def _issue_token(email: str, user_id: str) -> Token:
    access_token = security.create_access_token(
        data={"sub": email, "uid": str(user_id)},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return Token(access_token=access_token, token_type="bearer")


@router.post("/login", response_model=Token, tags=["Authentication"])
@limiter.limit(settings.RATE_LIMIT_LOGIN)
async def login_for_access_token(
    request: Request,
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    user_service: Annotated[UserService, Depends(get_user_service)],
):
    """Authenticates using username (email) & password form data and returns a JWT."""
    username = form_data.username
    log = logger.bind(trace_id=trace_id_var.get(), api_endpoint="/auth/login", username=username)
    log.info("Login attempt received.")

    user = await user_service.authenticate(email=username.lower(), password=form_data.password)
    if not user:
        log.warning("Authentication failed: incorrect email or password.")
        raise security.CredentialsException

    log.success(f"Authentication successful for user: {username} (ID: {user.id})")
    return _issue_token(user.email, user.id)


@router.post(
    "/register",
    response_model=Token,
    status_code=status.HTTP_201_CREATED,
    tags=["Authentication"],
    summary="Create an organization with its first admin and sign in",
)
@limiter.limit(settings.RATE_LIMIT_LOGIN)
async def register(
    request: Request,
    payload: RegistrationAPI,
    service: Annotated[OrganizationService, Depends(get_organization_service)],
):
    org, user = await service.register(payload)
    logger.bind(api_endpoint="/auth/register", organization_id=org.id).info(
        f"Organization '{org.name}' signed up."
    )
    return _issue_token(user.email, user.id)
