from datetime import datetime
from uuid import UUID
from typing import List, Optional
from pydantic import BaseModel, Field


class GroupCreate(BaseModel):
    """Group creation request."""

    name: Optional[str] = Field(default=None, max_length=100)
    tutorial_id: UUID


class GroupUpdate(BaseModel):
    """Group edit request."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    tutorial_id: Optional[UUID] = None


class GroupResponse(BaseModel):
    """Group response model."""

    id: UUID
    group_set_id: UUID
    tutorial_id: UUID
    name: str
    number: int
    created_at: datetime

    class Config:
        from_attributes = True


class GroupMemberAdd(BaseModel):
    """Add member request."""

    project_id: UUID


class GroupMemberResponse(BaseModel):
    """A member of a group as seen by the requesting user."""

    project_id: UUID
    student_id: str  # username
    student_name: str
    tutorial: Optional[str] = None
    target_grade: Optional[int] = None  # staff only


class ImportRowResult(BaseModel):
    row: int
    message: str


class GroupImportReport(BaseModel):
    """Outcome of a CSV group import, one entry per data row."""

    success: List[ImportRowResult] = []
    errors: List[ImportRowResult] = []
    ignored: List[ImportRowResult] = []
