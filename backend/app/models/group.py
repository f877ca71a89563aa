from sqlmodel import SQLModel, Field
from sqlalchemy import Index, UniqueConstraint, text
from uuid import UUID, uuid4
from datetime import datetime
from typing import Optional


class GroupSet(SQLModel, table=True):
    """Named configuration governing a family of groups within a unit."""

    __tablename__ = "group_set"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    unit_id: UUID = Field(foreign_key="unit.id", index=True)
    name: str = Field(max_length=100, min_length=1)

    # Group set settings
    allow_students_to_create_groups: bool = Field(default=False)
    allow_students_to_manage_groups: bool = Field(default=False)
    keep_groups_in_same_class: bool = Field(default=False)

    # Highest group number ever allocated in this set
    last_group_number: int = Field(default=0)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = Field(default=None)


class Group(SQLModel, table=True):
    """A named collection of students under one group set and one tutorial."""

    __table_args__ = (
        UniqueConstraint("group_set_id", "name"),
        UniqueConstraint("group_set_id", "number"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    group_set_id: UUID = Field(foreign_key="group_set.id", index=True)
    tutorial_id: UUID = Field(foreign_key="tutorial.id", index=True)

    name: str = Field(max_length=100)
    number: int

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = Field(default=None)


class GroupMembership(SQLModel, table=True):
    """Append-only record of a project joining a group.

    Removal flips ``active`` off and stamps ``left_at``; rows are never
    deleted except when the group itself goes.
    """

    __tablename__ = "group_membership"
    __table_args__ = (
        Index(
            "ix_group_membership_one_active",
            "group_id",
            "project_id",
            unique=True,
            sqlite_where=text("active = 1"),
            postgresql_where=text("active"),
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    group_id: UUID = Field(foreign_key="group.id", index=True)
    project_id: UUID = Field(foreign_key="project.id", index=True)

    active: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    left_at: Optional[datetime] = Field(default=None)
