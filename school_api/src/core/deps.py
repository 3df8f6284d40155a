from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncGenerator, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Path, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.roles import SUPERADMIN
from src.core.security import decode_token
from src.db.session import get_central_sessionmaker
from src.db.tenant_manager import get_tenant_manager

logger = logging.getLogger(__name__)

# OAuth2 bearer (used by docs); login endpoint path referenced here
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


@dataclass(frozen=True)
class Principal:
    """The authenticated caller as described by the access-token claims."""

    id: str
    role: str
    school_code: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None

    @property
    def is_superadmin(self) -> bool:
        return self.role == SUPERADMIN

    @property
    def tenant_user_id(self) -> Optional[UUID]:
        """Id of the acting tenant user; None for super-admins, who have no row in the school database."""
        if self.is_superadmin:
            return None
        return UUID(self.id)

    def belongs_to(self, school_code: str) -> bool:
        return (self.school_code or "").lower() == (school_code or "").strip().lower()


def principal_from_claims(claims: dict) -> Principal:
    """Build a Principal from decoded access-token claims; 401 when they are incomplete."""
    if claims.get("type") != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token type")
    sub = claims.get("sub")
    role = claims.get("role")
    if not sub or not role:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return Principal(
        id=str(sub),
        role=str(role),
        school_code=claims.get("school_code"),
        email=claims.get("email"),
        name=claims.get("name"),
    )


# PUBLIC_INTERFACE
async def get_current_principal(token: str = Depends(oauth2_scheme)) -> Principal:
    """
    Resolve the caller from the Authorization bearer token.

    Raises:
        HTTPException: 401 when the token is missing, invalid, expired or a refresh token.
    """
    try:
        claims = decode_token(token)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return principal_from_claims(claims)


# PUBLIC_INTERFACE
async def get_optional_principal(token: Optional[str] = Depends(optional_oauth2_scheme)) -> Optional[Principal]:
    """Like get_current_principal, but anonymous callers (or bad tokens) yield None."""
    if not token:
        return None
    try:
        return principal_from_claims(decode_token(token))
    except (JWTError, HTTPException):
        return None


# PUBLIC_INTERFACE
def require_roles(*roles: str, allow_superadmin: bool = True):
    """
    Create a dependency that requires the caller to hold one of the given roles.

    Super-admins pass whenever allow_superadmin is set. Everyone else must also
    belong to the school named by the `school_code` path parameter (case-insensitive).

    Returns:
        A dependency resolving to the Principal.
    """
    allowed = set(roles)

    async def _dep(
        school_code: str = Path(..., description="School code"),
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        if principal.is_superadmin:
            if allow_superadmin:
                return principal
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        if principal.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        if not principal.belongs_to(school_code):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized for this school")
        return principal

    return _dep


# PUBLIC_INTERFACE
async def require_superadmin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Allow only platform super-admins."""
    if not principal.is_superadmin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Super-admin access required")
    return principal


# PUBLIC_INTERFACE
async def get_tenant_session(
    school_code: str = Path(..., description="School code"),
) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a session bound to the school's own database.

    Unknown schools raise TenantNotFoundError, which the API maps to 404.
    """
    async with get_tenant_manager().get_session(school_code) as session:
        yield session


# PUBLIC_INTERFACE
async def get_central_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session on the central (super-admin) database."""
    async with get_central_sessionmaker()() as session:
        yield session
