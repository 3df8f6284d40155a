from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import HTTPException, status
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.roles import SUPERADMIN
from src.core.security import create_access_token, create_refresh_token, decode_token, verify_password
from src.db.tenant_manager import TenantDatabaseManager, get_tenant_manager, normalize_school_code
from src.repositories.schools import SuperAdminRepository
from src.repositories.users import UserRepository
from src.schemas.auth import TokenPair
from src.services.audit import AuditService
from src.services.base import BaseService

logger = logging.getLogger(__name__)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# PUBLIC_INTERFACE
def issue_tokens(
    subject: str, role: str, school_code: Optional[str], *, email: Optional[str], name: Optional[str]
) -> TokenPair:
    """Sign an access/refresh pair; email and name ride along as extra access claims."""
    access = create_access_token(
        subject=subject, role=role, school_code=school_code, extra={"email": email, "name": name}
    )
    refresh = create_refresh_token(subject=subject, role=role, school_code=school_code)
    return TokenPair(access_token=access, refresh_token=refresh, role=role, school_code=school_code)


class AuthService(BaseService):
    """
    Password login and token refresh for super-admins (central database) and
    school users (each school's own database).
    """

    def __init__(self, session: AsyncSession, tenants: Optional[TenantDatabaseManager] = None) -> None:
        super().__init__(session)
        self.admins = SuperAdminRepository(session)
        self.tenants = tenants or get_tenant_manager()

    # PUBLIC_INTERFACE
    async def login(
        self,
        username: str,
        password: str,
        school_code: Optional[str] = None,
        *,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> TokenPair:
        """
        Authenticate and issue tokens.

        Without a school code the credentials are checked against super-admins;
        with one, against the school's users by username or email.

        Raises:
            HTTPException: 401 for bad credentials, 403 for inactive accounts.
            TenantNotFoundError: the school code does not resolve.
        """
        if not school_code or not school_code.strip():
            return await self._login_superadmin(username, password)
        return await self._login_school_user(
            normalize_school_code(school_code), username, password, ip_address=ip_address, user_agent=user_agent
        )

    async def _login_superadmin(self, email: str, password: str) -> TokenPair:
        admin = await self.admins.get_by_email(email)
        if admin is None or not verify_password(password, admin.password_hash):
            logger.warning("Failed super-admin login for %s", email)
            raise _unauthorized("Invalid credentials")
        if not admin.is_active:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is inactive")
        admin.last_login = datetime.now(timezone.utc)
        await self.session.commit()
        logger.info("Super-admin %s logged in", admin.email)
        return issue_tokens(str(admin.id), SUPERADMIN, None, email=admin.email, name=admin.name)

    async def _login_school_user(
        self,
        code: str,
        identifier: str,
        password: str,
        *,
        ip_address: Optional[str],
        user_agent: Optional[str],
    ) -> TokenPair:
        async with self.tenants.get_session(code) as session:
            users = UserRepository(session)
            audit = AuditService(session)
            user = await users.get_user_by_login(identifier)
            if user is None or not verify_password(password, user.password_hash):
                await audit.log(
                    "LOGIN_FAIL",
                    "User",
                    user_id=user.id if user else None,
                    username=identifier,
                    details="Invalid credentials",
                    ip_address=ip_address,
                    user_agent=user_agent,
                )
                await session.commit()
                logger.warning("Failed login for %s", identifier)
                raise _unauthorized("Invalid credentials")
            if not user.is_active:
                raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is inactive")

            user.last_login = datetime.now(timezone.utc)
            await audit.log(
                "LOGIN_SUCCESS",
                "User",
                user_id=user.id,
                username=user.username,
                entity_id=user.id,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            await session.commit()
            logger.info("User %s (%s) logged in", user.username, user.role)
            return issue_tokens(str(user.id), user.role, code, email=user.email, name=user.full_name)

    # PUBLIC_INTERFACE
    async def refresh(self, refresh_token: str) -> TokenPair:
        """Exchange a refresh token for a new pair, re-checking that the account is still active."""
        try:
            claims: Dict[str, Any] = decode_token(refresh_token)
        except JWTError:
            raise _unauthorized("Invalid refresh token")
        if claims.get("type") != "refresh" or not claims.get("sub"):
            raise _unauthorized("Invalid token type")

        try:
            subject = UUID(str(claims["sub"]))
        except ValueError:
            raise _unauthorized("Invalid refresh token")

        school_code = claims.get("school_code")
        if not school_code:
            admin = await self.admins.get_by_id(subject)
            if admin is None or not admin.is_active:
                raise _unauthorized("User not found or inactive")
            return issue_tokens(str(admin.id), SUPERADMIN, None, email=admin.email, name=admin.name)

        async with self.tenants.get_session(school_code) as session:
            user = await UserRepository(session).get_user_by_id(subject)
            if user is None or not user.is_active:
                raise _unauthorized("User not found or inactive")
            return issue_tokens(str(user.id), user.role, school_code, email=user.email, name=user.full_name)
