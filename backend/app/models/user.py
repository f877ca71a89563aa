from sqlmodel import SQLModel, Field
from uuid import UUID, uuid4
from datetime import datetime
from typing import Optional


class User(SQLModel, table=True):
    """User record mirrored from the identity service."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    username: str = Field(unique=True, index=True, max_length=50)
    email: str = Field(index=True, max_length=255)
    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    nickname: Optional[str] = Field(default=None, max_length=100)

    is_active: bool = Field(default=True)
    is_superuser: bool = Field(default=False)  # System administrator

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = Field(default=None)

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}"
