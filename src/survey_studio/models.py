from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional
from uuid import uuid4

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


DRAFT = "draft"
PUBLISHED = "published"


def _new_id() -> str:
    return str(uuid4())


class SurveyRecord(SQLModel, table=True):
    __tablename__ = "surveys"

    id: str = Field(default_factory=_new_id, primary_key=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)

    user_id: str = Field(index=True)
    title: str
    description: Optional[str] = None
    # Section[] in wire form: [{"name": ..., "questions": [{"question": ..., "type": ...}]}]
    sections: List[Any] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    language: str = Field(default="it")

    status: str = Field(default=DRAFT, index=True)  # draft | published
    is_active: bool = Field(default=False)
    share_token: str = Field(index=True, unique=True)
    expires_at: Optional[datetime] = None
    expired_message: Optional[str] = None
    visible_in_community: bool = Field(default=False)
    responses_public: bool = Field(default=False)

    @property
    def is_published(self) -> bool:
        return self.status == PUBLISHED

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.utcnow()) >= self.expires_at
