from sqlmodel import SQLModel, Field
from uuid import UUID, uuid4
from datetime import datetime
from typing import Optional


class GroupSubmission(SQLModel, table=True):
    """One piece of work submitted on behalf of a whole group."""

    __tablename__ = "group_submission"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    group_id: UUID = Field(foreign_key="group.id", index=True)
    submitted_by_project_id: Optional[UUID] = Field(
        default=None, foreign_key="project.id"
    )

    created_at: datetime = Field(default_factory=datetime.utcnow)


class Task(SQLModel, table=True):
    """A student's work on one task definition."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    project_id: UUID = Field(foreign_key="project.id", index=True)
    group_submission_id: Optional[UUID] = Field(
        default=None, foreign_key="group_submission.id", index=True
    )

    definition: str = Field(max_length=20)  # Task definition abbreviation

    # Cached maximum similarity over non-dismissed match links
    max_pct_similar: int = Field(default=0)

    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_group_task(self) -> bool:
        return self.group_submission_id is not None
