"""Service layer for test-taking sessions."""
import logging
import uuid
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from models import Test
from quiz_api.models.db import SessionStatus, TakingSession
from scoring import TakingState, TestSession

logger = logging.getLogger(__name__)


def start_session(db: Session, test: Test) -> TakingSession:
    """Create a new in-progress session for a test."""
    if not test.questions:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No questions available",
        )
    record = TakingSession(id=uuid.uuid4().hex, test_id=test.id)
    record.state = TakingState().to_dict()
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info(f"Started session {record.id} for test {test.id}")
    return record


def get_session_record(db: Session, session_id: str) -> TakingSession:
    record = db.get(TakingSession, session_id)
    if record is None or record.status == SessionStatus.ABANDONED.value:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return record


def restore(record: TakingSession, test: Test) -> TestSession:
    """Rebuild the engine from a stored record."""
    return TestSession(test, TakingState.from_dict(record.state))


def save_session(db: Session, record: TakingSession, engine: TestSession) -> None:
    """Write engine state back to the record."""
    record.state = engine.state.to_dict()
    record.score = engine.score
    if engine.completed:
        record.status = SessionStatus.COMPLETED.value
        record.passed = engine.verdict().passed
        if record.finished_at is None:
            record.finished_at = datetime.now(timezone.utc)
    else:
        record.status = SessionStatus.IN_PROGRESS.value
        record.passed = None
        record.finished_at = None
    db.commit()


def abandon_session(db: Session, record: TakingSession) -> None:
    record.status = SessionStatus.ABANDONED.value
    db.commit()
    logger.info(f"Abandoned session {record.id}")


def session_payload(record: TakingSession, engine: TestSession) -> dict:
    payload = engine.snapshot()
    payload["id"] = record.id
    payload["status"] = record.status
    return payload
