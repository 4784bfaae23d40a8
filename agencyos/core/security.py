# agencyos/core/security.py

from datetime import datetime, timedelta, timezone
from typing import Annotated, Any, Dict, List, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError, jwt
from loguru import logger
from passlib.context import CryptContext
from pydantic import BaseModel

from agencyos.core.config import settings
from agencyos.modules.organizations.repository import OrganizationRepository, get_organization_repository
from agencyos.modules.people.models import UserInDB
from agencyos.modules.people.repository import UserRepository, get_user_repository

SUPER_ADMIN = "super_admin"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")

CredentialsException = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)
ExpiredTokenException = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Token has expired",
    headers={"WWW-Authenticate": 'Bearer error="invalid_token"'},
)
InactiveUserException = HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
PermissionException = HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Operation not permitted")
NoOrganizationException = HTTPException(
    status_code=status.HTTP_403_FORBIDDEN, detail="User is not attached to an organization"
)
BlockedOrganizationException = HTTPException(
    status_code=status.HTTP_403_FORBIDDEN, detail="Organization is blocked"
)


class TokenClaims(BaseModel):
    sub: str
    uid: Optional[str] = None


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as e:
        # Unknown or corrupt hash format
        logger.error(f"Password hash could not be verified: {e}")
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Signs a JWT for `data["sub"]` (the user's email); `uid` is carried along when given."""
    if not data.get("sub"):
        raise ValueError("Missing 'sub' claim in token data for JWT creation")
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {**data, "iat": issued_at, "nbf": issued_at, "exp": issued_at + lifetime}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> TokenClaims:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        raise ExpiredTokenException
    except JWTError as e:
        logger.bind(service="Auth").warning(f"Rejected JWT: {e}")
        raise CredentialsException from e
    if not payload.get("sub"):
        raise CredentialsException
    return TokenClaims(sub=payload["sub"], uid=payload.get("uid"))


async def get_token_claims(token: Annotated[str, Depends(oauth2_scheme)]) -> TokenClaims:
    return decode_access_token(token)


async def get_current_active_user(
    claims: Annotated[TokenClaims, Depends(get_token_claims)],
    user_repo: Annotated[UserRepository, Depends(get_user_repository)],
    org_repo: Annotated[OrganizationRepository, Depends(get_organization_repository)],
) -> UserInDB:
    """The caller, active and inside an organization that is not blocked. Their organization is the tenant."""
    log = logger.bind(service="Auth", username=claims.sub)
    try:
        user = await user_repo.get_by_id(claims.uid) if claims.uid else None
        if user is None or user.email != claims.sub.lower():
            user = await user_repo.get_by_email(claims.sub)
    except RuntimeError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="User lookup failed.")

    if user is None:
        log.warning("Token subject no longer exists.")
        raise CredentialsException
    if not user.is_active:
        raise InactiveUserException
    if user.system_role == SUPER_ADMIN:
        return user
    if not user.organization_id:
        raise NoOrganizationException

    organization = await org_repo.get_by_id(user.organization_id)
    if organization is None or organization.is_blocked:
        log.warning(f"Access denied: organization {user.organization_id} is missing or blocked.")
        raise BlockedOrganizationException
    return user


CurrentUser = Annotated[UserInDB, Depends(get_current_active_user)]


def require_role(roles: List[str]):
    """Dependency allowing only the given system roles (super admins always pass)."""
    async def _checker(current_user: CurrentUser) -> UserInDB:
        if current_user.system_role == SUPER_ADMIN or current_user.system_role in roles:
            return current_user
        logger.bind(user_id=current_user.id).warning(
            f"Role '{current_user.system_role}' denied; needs one of {roles}"
        )
        raise PermissionException
    return _checker
