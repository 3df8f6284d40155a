from __future__ import annotations

from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.base import TenantBase, UUIDPkMixin, TimestampMixin


class Dormitory(UUIDPkMixin, TimestampMixin, TenantBase):
    """Boarding house."""
    __tablename__ = "dormitories"
    __table_args__ = (
        UniqueConstraint("name", name="uq_dormitories_name"),
        CheckConstraint("type IN ('Boys', 'Girls', 'Mixed')", name="type_valid"),
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    capacity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    warden_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Room(UUIDPkMixin, TimestampMixin, TenantBase):
    """Room within a dormitory; occupants never exceed capacity."""
    __tablename__ = "rooms"
    __table_args__ = (
        UniqueConstraint("room_number", "dormitory_id", name="uq_rooms_number_dormitory"),
        CheckConstraint("capacity >= 1", name="capacity_positive"),
    )

    room_number: Mapped[str] = mapped_column(Text, nullable=False)
    dormitory_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("dormitories.id", ondelete="CASCADE"), nullable=False
    )
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    dormitory: Mapped[Dormitory] = relationship("Dormitory", lazy="selectin")
    occupancies: Mapped[list["RoomOccupant"]] = relationship(
        "RoomOccupant", cascade="all, delete-orphan", lazy="selectin"
    )

    @property
    def occupant_ids(self) -> list:
        return [o.user_id for o in self.occupancies]


class RoomOccupant(UUIDPkMixin, TenantBase):
    """Allocation of a user to a room; a user holds at most one bed."""
    __tablename__ = "room_occupants"
    __table_args__ = (
        UniqueConstraint("user_id", name="uq_room_occupants_user_id"),
    )

    room_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
