from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, func, or_, select

from src.db.models.academics import Student, Teacher, TeacherAssignment
from src.db.models.users import User
from .base import BaseRepository


class UserRepository(BaseRepository):
    """Repository for tenant users and their student/teacher profiles."""

    # Users
    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        return await self.get(User, user_id)

    async def get_user_by_login(self, identifier: str) -> Optional[User]:
        """Find a user by username or email (case-insensitive)."""
        value = identifier.strip().lower()
        stmt = select(User).where(or_(User.username == value, func.lower(User.email) == value))
        return await self.scalar_one_or_none(stmt)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        stmt = select(User).where(User.username == username.strip().lower())
        return await self.scalar_one_or_none(stmt)

    async def list_users(
        self,
        *,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[User]:
        stmt = select(User)
        if role:
            stmt = stmt.where(User.role == role)
        if is_active is not None:
            stmt = stmt.where(User.is_active == is_active)
        stmt = stmt.order_by(User.last_name, User.first_name).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def create_user(self, **values: Any) -> User:
        user = User(**values)
        await self.add(user)
        await self.flush()
        await self.refresh(user)
        return user

    async def update_user(self, user: User, values: Dict[str, Any]) -> User:
        for key, value in values.items():
            setattr(user, key, value)
        await self.flush()
        await self.refresh(user)
        return user

    # Students
    async def get_student_by_user_id(self, user_id: UUID) -> Optional[Student]:
        stmt = select(Student).where(Student.user_id == user_id)
        return await self.scalar_one_or_none(stmt)

    async def get_student(self, student_id: UUID) -> Optional[Student]:
        return await self.get(Student, student_id)

    async def list_students(
        self,
        *,
        class_id: Optional[UUID] = None,
        academic_year_id: Optional[UUID] = None,
        is_active: Optional[bool] = None,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> List[Student]:
        stmt = select(Student).join(User, Student.user_id == User.id)
        if class_id:
            stmt = stmt.where(Student.current_class_id == class_id)
        if academic_year_id:
            stmt = stmt.where(Student.current_academic_year_id == academic_year_id)
        if is_active is not None:
            stmt = stmt.where(Student.is_active == is_active)
        stmt = stmt.order_by(User.last_name, User.first_name).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(await self.scalars(stmt))

    async def create_student(self, **values: Any) -> Student:
        student = Student(**values)
        await self.add(student)
        await self.flush()
        return student

    # Teachers
    async def get_teacher_by_user_id(self, user_id: UUID) -> Optional[Teacher]:
        stmt = select(Teacher).where(Teacher.user_id == user_id)
        return await self.scalar_one_or_none(stmt)

    async def get_teacher(self, teacher_id: UUID) -> Optional[Teacher]:
        return await self.get(Teacher, teacher_id)

    async def create_teacher(self, **values: Any) -> Teacher:
        teacher = Teacher(**values)
        await self.add(teacher)
        await self.flush()
        return teacher

    async def is_teacher_assigned(
        self,
        *,
        teacher_user_id: UUID,
        class_id: UUID,
        academic_year_id: UUID,
        subject_id: Optional[UUID] = None,
    ) -> bool:
        """True when the teacher (by user id) teaches the class in that year, and the subject if given."""
        stmt = (
            select(func.count(TeacherAssignment.id))
            .join(Teacher, Teacher.id == TeacherAssignment.teacher_id)
            .where(
                Teacher.user_id == teacher_user_id,
                TeacherAssignment.class_id == class_id,
                TeacherAssignment.academic_year_id == academic_year_id,
            )
        )
        if subject_id is not None:
            stmt = stmt.where(TeacherAssignment.subject_id == subject_id)
        result = await self.execute(stmt)
        return int(result.scalar_one()) > 0

    async def replace_assignments(
        self, teacher_id: UUID, assignments: Sequence[Dict[str, UUID]]
    ) -> List[TeacherAssignment]:
        await self.execute(delete(TeacherAssignment).where(TeacherAssignment.teacher_id == teacher_id))
        rows = [TeacherAssignment(teacher_id=teacher_id, **a) for a in assignments]
        await self.add_all(rows)
        await self.flush()
        return rows

    async def list_assignments(self, teacher_id: UUID) -> List[TeacherAssignment]:
        stmt = select(TeacherAssignment).where(TeacherAssignment.teacher_id == teacher_id)
        return list(await self.scalars(stmt))
