from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import Principal
from src.core.errors import BadRequestError, ConflictError, NotFoundError
from src.core.roles import STUDENT, TEACHER
from src.core.security import get_password_hash
from src.db.models.academics import Student, TeacherAssignment
from src.db.models.users import User
from src.repositories.academics import AcademicsRepository
from src.repositories.users import UserRepository
from src.schemas.users import (
    AssignmentIn,
    PromotionRequest,
    PromotionResult,
    StudentRead,
    UserCreate,
    UserUpdate,
)
from src.services.audit import AuditService, safe_values
from src.services.base import BaseService

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def student_to_read(student: Student) -> StudentRead:
    """Flatten a student profile and its user into the API read model."""
    user = student.user
    return StudentRead(
        id=student.id,
        user_id=student.user_id,
        student_id_number=student.student_id_number,
        first_name=user.first_name,
        last_name=user.last_name,
        username=user.username,
        email=user.email,
        gender=student.gender,
        date_of_birth=student.date_of_birth,
        admission_date=student.admission_date,
        current_class_id=student.current_class_id,
        class_name=student.current_class.name if student.current_class else None,
        current_academic_year_id=student.current_academic_year_id,
        academic_year=student.current_academic_year.name if student.current_academic_year else None,
        stream=student.stream,
        is_active=student.is_active,
    )


class UserService(BaseService):
    """School user administration, student/teacher profiles, assignments and promotion."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = UserRepository(session)
        self.academics = AcademicsRepository(session)
        self.audit = AuditService(session)

    # PUBLIC_INTERFACE
    async def create_user(self, payload: UserCreate, actor: Optional[Principal] = None) -> User:
        """
        Create a user; students get a Student profile and teachers a Teacher profile.

        Raises:
            ConflictError: username already taken.
            BadRequestError: student role without student profile data.
        """
        if await self.repo.get_user_by_username(payload.username):
            raise ConflictError(f"Username '{payload.username}' is already taken")
        if payload.role == STUDENT and payload.student is None:
            raise BadRequestError("Student profile data is required for student users")

        user = await self.repo.create_user(
            username=payload.username,
            email=payload.email,
            password_hash=get_password_hash(payload.password),
            role=payload.role,
            first_name=payload.first_name,
            last_name=payload.last_name,
            profile_picture_url=payload.profile_picture_url,
            is_active=payload.is_active,
        )
        if payload.role == STUDENT:
            profile = payload.student.model_dump()
            if profile.get("current_class_id") and not profile.get("current_academic_year_id"):
                school_class = await self.academics.get_class(profile["current_class_id"])
                if school_class is None:
                    raise NotFoundError("Class not found")
                profile["current_academic_year_id"] = school_class.academic_year_id
            await self.repo.create_student(user_id=user.id, **profile)
        elif payload.role == TEACHER:
            profile = payload.teacher.model_dump() if payload.teacher else {}
            await self.repo.create_teacher(user_id=user.id, **profile)

        await self.audit.log("CREATE", "User", actor=actor, entity_id=user.id, new=user)
        await self.session.commit()
        logger.info("Created %s user %s", user.role, user.username)
        return user

    # PUBLIC_INTERFACE
    async def update_user(self, user_id: UUID, payload: UserUpdate, actor: Optional[Principal] = None) -> User:
        """Update profile fields; is_active=False is the soft delete. A new password is re-hashed."""
        user = await self.repo.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        original = safe_values(user)
        values = payload.model_dump(exclude_unset=True)
        password = values.pop("password", None)
        if password:
            values["password_hash"] = get_password_hash(password)
        user = await self.repo.update_user(user, values)
        if "is_active" in values:
            await self._sync_profile_active(user)
        action = "DELETE" if values.get("is_active") is False else "UPDATE"
        await self.audit.log(action, "User", actor=actor, entity_id=user.id, original=original, new=user)
        await self.session.commit()
        return user

    async def _sync_profile_active(self, user: User) -> None:
        if user.role == STUDENT:
            profile = await self.repo.get_student_by_user_id(user.id)
        elif user.role == TEACHER:
            profile = await self.repo.get_teacher_by_user_id(user.id)
        else:
            return
        if profile is not None:
            profile.is_active = user.is_active
            await self.repo.flush()

    # PUBLIC_INTERFACE
    async def list_students(
        self,
        *,
        class_id: Optional[UUID] = None,
        academic_year_id: Optional[UUID] = None,
        is_active: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[StudentRead]:
        students = await self.repo.list_students(
            class_id=class_id, academic_year_id=academic_year_id, is_active=is_active, limit=limit, offset=offset
        )
        return [student_to_read(s) for s in students]

    # PUBLIC_INTERFACE
    async def replace_assignments(self, teacher_id: UUID, assignments: List[AssignmentIn]) -> List[TeacherAssignment]:
        """Replace a teacher's whole set of class/subject/year assignments."""
        if await self.repo.get_teacher(teacher_id) is None:
            raise NotFoundError("Teacher not found")
        unique = {(a.class_id, a.subject_id, a.academic_year_id): a for a in assignments}
        rows = await self.repo.replace_assignments(
            teacher_id, [a.model_dump() for a in unique.values()]
        )
        await self.session.commit()
        return rows

    # PUBLIC_INTERFACE
    async def promote(self, payload: PromotionRequest) -> PromotionResult:
        """
        Move students into a target class and that class's academic year.

        Raises:
            BadRequestError: empty student list.
            NotFoundError: unknown target class.
        """
        if not payload.student_ids:
            raise BadRequestError("student_ids must contain at least one student")
        target = await self.academics.get_class(payload.target_class_id)
        if target is None:
            raise NotFoundError("Target class not found")
        stmt = (
            update(Student)
            .where(Student.id.in_(payload.student_ids))
            .values(current_class_id=target.id, current_academic_year_id=target.academic_year_id)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.repo.execute(stmt)
        moved = int(result.rowcount or 0)
        await self.session.commit()
        logger.info("Promoted %d students into class %s", moved, target.name)
        return PromotionResult(
            message=f"{moved} students promoted successfully.",
            promoted=moved,
            target_class_id=target.id,
            academic_year_id=target.academic_year_id,
        )
