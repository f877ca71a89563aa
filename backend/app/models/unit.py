from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint
from uuid import UUID, uuid4
from datetime import datetime
from typing import Optional
from enum import Enum


class UnitRoleKind(str, Enum):
    """Staff roles a user can hold in a unit."""

    TUTOR = "tutor"
    CONVENOR = "convenor"


class Unit(SQLModel, table=True):
    """A course unit that owns tutorials, projects and group sets."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    code: str = Field(unique=True, index=True, max_length=20)
    name: str = Field(max_length=200)

    created_at: datetime = Field(default_factory=datetime.utcnow)


class UnitRole(SQLModel, table=True):
    """Staff assignment of a user to a unit."""

    __tablename__ = "unit_role"
    __table_args__ = (UniqueConstraint("unit_id", "user_id"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    unit_id: UUID = Field(foreign_key="unit.id", index=True)
    user_id: UUID = Field(foreign_key="user.id", index=True)
    role: UnitRoleKind = Field(default=UnitRoleKind.TUTOR)


class Tutorial(SQLModel, table=True):
    """A scheduled class section within a unit."""

    __table_args__ = (UniqueConstraint("unit_id", "abbreviation"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    unit_id: UUID = Field(foreign_key="unit.id", index=True)
    abbreviation: str = Field(max_length=20)
    tutor_id: Optional[UUID] = Field(default=None, foreign_key="user.id")


class Project(SQLModel, table=True):
    """A student's enrolment in a unit."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    unit_id: UUID = Field(foreign_key="unit.id", index=True)
    user_id: UUID = Field(foreign_key="user.id", index=True)
    tutorial_id: Optional[UUID] = Field(default=None, foreign_key="tutorial.id")

    target_grade: int = Field(default=0, ge=0, le=3)  # P, C, D, HD
    enrolled: bool = Field(default=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
