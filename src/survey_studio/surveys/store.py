from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from ..db import get_session
from ..errors import PersistenceError
from ..models import DRAFT, PUBLISHED, SurveyRecord


def new_share_token() -> str:
    return uuid4().hex


class SurveyStore:
    """Persistence contract for survey records (drafts and published forms)."""

    def __init__(self, bind: Optional[Engine] = None) -> None:
        self.bind = bind

    def get(self, survey_id: str) -> Optional[SurveyRecord]:
        with get_session(self.bind) as session:
            return session.get(SurveyRecord, survey_id)

    def get_by_share_token(self, share_token: str) -> Optional[SurveyRecord]:
        with get_session(self.bind) as session:
            stmt = select(SurveyRecord).where(SurveyRecord.share_token == share_token)
            return session.exec(stmt).first()

    def list_for_user(self, user_id: str) -> List[SurveyRecord]:
        with get_session(self.bind) as session:
            stmt = (
                select(SurveyRecord)
                .where(SurveyRecord.user_id == user_id)
                .order_by(SurveyRecord.updated_at.desc())
            )
            return list(session.exec(stmt).all())

    def list_all(self) -> List[SurveyRecord]:
        with get_session(self.bind) as session:
            stmt = select(SurveyRecord).order_by(SurveyRecord.updated_at.desc())
            return list(session.exec(stmt).all())

    def titles_for_user(self, user_id: str, *, exclude_id: Optional[str] = None) -> List[str]:
        with get_session(self.bind) as session:
            stmt = select(SurveyRecord.id, SurveyRecord.title).where(SurveyRecord.user_id == user_id)
            rows = session.exec(stmt).all()
        return [title for survey_id, title in rows if survey_id != exclude_id]

    def create(
        self,
        *,
        user_id: str,
        title: str,
        sections: List[Any],
        language: str,
        status: str = DRAFT,
        is_active: bool = False,
        share_token: Optional[str] = None,
        description: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        expired_message: Optional[str] = None,
    ) -> SurveyRecord:
        record = SurveyRecord(
            user_id=user_id,
            title=title,
            description=description,
            sections=sections,
            language=language,
            status=status,
            is_active=is_active,
            share_token=share_token or new_share_token(),
            expires_at=expires_at,
            expired_message=expired_message,
        )
        try:
            with get_session(self.bind) as session:
                session.add(record)
                session.commit()
                session.refresh(record)
                return record
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not create survey: {exc}") from exc

    def update(self, survey_id: str, **fields: Any) -> SurveyRecord:
        try:
            with get_session(self.bind) as session:
                record = session.get(SurveyRecord, survey_id)
                if not record:
                    raise PersistenceError(f"survey {survey_id} not found")
                for name, value in fields.items():
                    setattr(record, name, value)
                record.updated_at = datetime.utcnow()
                session.add(record)
                session.commit()
                session.refresh(record)
                return record
        except SQLAlchemyError as exc:
            raise PersistenceError(f"could not update survey {survey_id}: {exc}") from exc

    def publish(self, survey_id: str, **fields: Any) -> SurveyRecord:
        fields.update(status=PUBLISHED, is_active=True)
        return self.update(survey_id, **fields)

    def delete(self, survey_id: str) -> bool:
        with get_session(self.bind) as session:
            record = session.get(SurveyRecord, survey_id)
            if not record:
                return False
            session.delete(record)
            session.commit()
            return True


def summarize(record: SurveyRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "title": record.title,
        "status": record.status,
        "is_active": record.is_active,
        "share_token": record.share_token,
        "language": record.language,
        "sections": len(record.sections or []),
        "updated_at": record.updated_at.isoformat(),
    }
