from __future__ import annotations

import logging
import re
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import Principal
from src.core.errors import BadRequestError, ConflictError, NotFoundError
from src.core.roles import ADMIN
from src.core.security import get_password_hash
from src.db.models.central import School, SuperAdminUser
from src.db.tenant_manager import TenantDatabaseManager, get_tenant_manager
from src.repositories.schools import SchoolRepository, SuperAdminRepository
from src.repositories.users import UserRepository
from src.schemas.schools import SchoolAdminSeed, SchoolCreate, SchoolUpdate, SuperAdminCreate
from src.services.audit import AuditService
from src.services.base import BaseService

logger = logging.getLogger(__name__)

SCHOOL_CODE_PATTERN = re.compile(r"^[a-z0-9]+$")


# PUBLIC_INTERFACE
def validate_school_code(code: str) -> str:
    """Return the normalised code or raise BadRequestError when it is not lowercase alphanumeric."""
    normalized = (code or "").strip().lower()
    if not SCHOOL_CODE_PATTERN.match(normalized):
        raise BadRequestError("School code must contain only lowercase letters and digits")
    return normalized


class SchoolService(BaseService):
    """
    Platform administration on the central database: schools and super-admin accounts.

    Provisioning reaches into the school's own database through the tenant manager.
    """

    def __init__(self, session: AsyncSession, tenants: Optional[TenantDatabaseManager] = None) -> None:
        super().__init__(session)
        self.schools = SchoolRepository(session)
        self.admins = SuperAdminRepository(session)
        self.tenants = tenants or get_tenant_manager()

    # PUBLIC_INTERFACE
    async def list_schools(self, *, is_active: Optional[bool] = None, limit: int = 100, offset: int = 0) -> List[School]:
        return await self.schools.list_schools(is_active=is_active, limit=limit, offset=offset)

    # PUBLIC_INTERFACE
    async def get_school(self, school_code: str) -> School:
        school = await self.schools.get_by_code(school_code)
        if school is None:
            raise NotFoundError(f"School '{school_code}' not found")
        return school

    # PUBLIC_INTERFACE
    async def create_school(self, payload: SchoolCreate, actor: Optional[Principal] = None) -> School:
        """
        Register a school and optionally create its tables and first administrator.

        When provisioning fails the registration is removed again and the error
        propagates, so the same code can be retried.

        Raises:
            BadRequestError: invalid code, or an admin seed without provisioning.
            ConflictError: the code is already registered.
        """
        code = validate_school_code(payload.school_code)
        if payload.admin is not None and not payload.provision:
            raise BadRequestError("Seeding a school admin requires provision=true")
        if await self.schools.get_by_code(code):
            raise ConflictError(f"School code '{code}' is already registered")

        values = payload.model_dump(exclude={"provision", "admin"})
        values["school_code"] = code
        school = await self.schools.create_school(**values)
        await self.session.commit()
        logger.info("Registered school %s (%s)", school.name, code)

        if payload.provision:
            try:
                await self.provision(code, admin=payload.admin, actor=actor)
            except Exception:
                # unregister so the same code can be retried
                logger.exception("Provisioning %s failed; removing its registration", code)
                await self.schools.delete(school)
                await self.session.commit()
                await self.tenants.invalidate(code)
                raise
        return school

    # PUBLIC_INTERFACE
    async def update_school(self, school_code: str, payload: SchoolUpdate) -> School:
        """Update a school and drop its cached engine so the next request reconnects."""
        school = await self.get_school(school_code)
        values = payload.model_dump(exclude_unset=True)
        school = await self.schools.update_school(school.id, values)
        await self.session.commit()
        await self.tenants.invalidate(school.school_code)
        return school

    # PUBLIC_INTERFACE
    async def provision(
        self,
        school_code: str,
        *,
        admin: Optional[SchoolAdminSeed] = None,
        actor: Optional[Principal] = None,
    ) -> None:
        """Create the tenant tables of a school and seed its first admin when given."""
        school = await self.get_school(school_code)
        if not school.has_database:
            raise BadRequestError(f"School '{school.school_code}' has no database URL configured")
        await self.tenants.create_schema(school.school_code)
        async with self.tenants.get_session(school.school_code) as tenant_session:
            users = UserRepository(tenant_session)
            if admin is not None:
                if await users.get_user_by_username(admin.username):
                    raise ConflictError(f"Username '{admin.username}' is already taken in this school")
                await users.create_user(
                    username=admin.username.strip().lower(),
                    email=admin.email,
                    password_hash=get_password_hash(admin.password),
                    role=ADMIN,
                    first_name=admin.first_name,
                    last_name=admin.last_name,
                    is_active=True,
                )
            await AuditService(tenant_session).log(
                "CREATE",
                "School",
                username=(actor.email or actor.id) if actor else "system",
                entity_id=school.id,
                details=f"Provisioned school {school.school_code}",
            )
        logger.info("Provisioned school %s%s", school.school_code, " with admin" if admin else "")

    # PUBLIC_INTERFACE
    async def list_superadmins(self, limit: int = 100, offset: int = 0) -> List[SuperAdminUser]:
        return await self.admins.list_users(limit=limit, offset=offset)

    # PUBLIC_INTERFACE
    async def create_superadmin(self, payload: SuperAdminCreate) -> SuperAdminUser:
        if await self.admins.get_by_email(payload.email):
            raise ConflictError(f"Super-admin '{payload.email}' already exists")
        user = await self.admins.create_user(
            email=payload.email, name=payload.name, password_hash=get_password_hash(payload.password)
        )
        await self.session.commit()
        return user
