from datetime import datetime
from uuid import UUID
from pydantic import BaseModel


class MatchLinkResponse(BaseModel):
    """Plagiarism match link response model."""

    id: UUID
    task_id: UUID
    other_task_id: UUID
    pct: int
    dismissed: bool
    created_at: datetime

    class Config:
        from_attributes = True
