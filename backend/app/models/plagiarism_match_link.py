from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint
from uuid import UUID, uuid4
from datetime import datetime


class PlagiarismMatchLink(SQLModel, table=True):
    """Directed similarity match from one task to another.

    Links exist in symmetric pairs; the counterpart has task and other_task
    swapped.
    """

    __tablename__ = "plagiarism_match_link"
    __table_args__ = (UniqueConstraint("task_id", "other_task_id"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    task_id: UUID = Field(foreign_key="task.id", index=True)
    other_task_id: UUID = Field(foreign_key="task.id", index=True)

    pct: int = Field(default=0, ge=0, le=100)
    dismissed: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)
