from datetime import datetime
from uuid import UUID
from typing import Optional
from pydantic import BaseModel, Field


class GroupSetCreate(BaseModel):
    """Group set creation request."""

    name: str = Field(min_length=1, max_length=100)
    allow_students_to_create_groups: bool = False
    allow_students_to_manage_groups: bool = False
    keep_groups_in_same_class: bool = False


class GroupSetUpdate(BaseModel):
    """Group set edit request; only fields that are sent are applied."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    allow_students_to_create_groups: Optional[bool] = None
    allow_students_to_manage_groups: Optional[bool] = None
    keep_groups_in_same_class: Optional[bool] = None


class GroupSetResponse(BaseModel):
    """Group set response model."""

    id: UUID
    unit_id: UUID
    name: str
    allow_students_to_create_groups: bool
    allow_students_to_manage_groups: bool
    keep_groups_in_same_class: bool
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True
