"""Test-taking session endpoints."""
from typing import Annotated, Callable

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session as DbSession

from quiz_api.database import get_db
from quiz_api.dependencies import get_store
from quiz_api.models import AnswerRequest, AnswerResponse, ClickRequest
from quiz_api.models.db import TakingSession
from quiz_api.services import session_service
from quiz_api.services.test_service import load_test
from quiz_api.services.test_store import TestStore
from quiz_api.utils import validate_id
from scoring import Feedback, FinishNotAllowed, TestSession, UnsupportedAnswer

router = APIRouter(prefix="/api", tags=["sessions"])


def _open(
    db: DbSession, store: TestStore, session_id: str
) -> tuple[TakingSession, TestSession]:
    record = session_service.get_session_record(db, session_id)
    test = load_test(store, record.test_id)
    return record, session_service.restore(record, test)


def _respond(
    db: DbSession,
    record: TakingSession,
    engine: TestSession,
    action: Callable[[], Feedback | None],
) -> AnswerResponse:
    try:
        feedback = action()
    except UnsupportedAnswer as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except KeyError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found")

    if feedback is None:
        return AnswerResponse(
            status="ignored", session=session_service.session_payload(record, engine)
        )
    session_service.save_session(db, record, engine)
    return AnswerResponse(
        status="answered",
        feedback=feedback.to_dict(),
        session=session_service.session_payload(record, engine),
    )


@router.post("/tests/{test_id}/sessions")
def start_session(
    test_id: str,
    db: Annotated[DbSession, Depends(get_db)],
    store: Annotated[TestStore, Depends(get_store)],
) -> dict[str, object]:
    """Start taking a test."""
    test = load_test(store, validate_id("test_id", test_id))
    record = session_service.start_session(db, test)
    return session_service.session_payload(record, session_service.restore(record, test))


@router.get("/sessions/{session_id}")
def get_session(
    session_id: str,
    db: Annotated[DbSession, Depends(get_db)],
    store: Annotated[TestStore, Depends(get_store)],
) -> dict[str, object]:
    """Get current session state."""
    record, engine = _open(db, store, session_id)
    return session_service.session_payload(record, engine)


@router.post("/sessions/{session_id}/click")
def click(
    session_id: str,
    payload: ClickRequest,
    db: Annotated[DbSession, Depends(get_db)],
    store: Annotated[TestStore, Depends(get_store)],
) -> AnswerResponse:
    """Click on the current click-area question."""
    record, engine = _open(db, store, session_id)
    return _respond(
        db,
        record,
        engine,
        lambda: engine.click(payload.x, payload.y, payload.scale, payload.imageFailed),
    )


@router.post("/sessions/{session_id}/answer")
def answer(
    session_id: str,
    payload: AnswerRequest,
    db: Annotated[DbSession, Depends(get_db)],
    store: Annotated[TestStore, Depends(get_store)],
) -> AnswerResponse:
    """Answer any question by id."""
    record, engine = _open(db, store, session_id)
    return _respond(db, record, engine, lambda: engine.answer(payload.questionId, payload.value))


@router.post("/sessions/{session_id}/next")
def next_question(
    session_id: str,
    db: Annotated[DbSession, Depends(get_db)],
    store: Annotated[TestStore, Depends(get_store)],
) -> dict[str, object]:
    record, engine = _open(db, store, session_id)
    engine.next()
    session_service.save_session(db, record, engine)
    return session_service.session_payload(record, engine)


@router.post("/sessions/{session_id}/previous")
def previous_question(
    session_id: str,
    db: Annotated[DbSession, Depends(get_db)],
    store: Annotated[TestStore, Depends(get_store)],
) -> dict[str, object]:
    record, engine = _open(db, store, session_id)
    engine.previous()
    session_service.save_session(db, record, engine)
    return session_service.session_payload(record, engine)


@router.post("/sessions/{session_id}/finish")
def finish(
    session_id: str,
    db: Annotated[DbSession, Depends(get_db)],
    store: Annotated[TestStore, Depends(get_store)],
) -> dict[str, object]:
    """Finish the test and get the verdict."""
    record, engine = _open(db, store, session_id)
    try:
        engine.finish()
    except FinishNotAllowed as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    session_service.save_session(db, record, engine)
    return session_service.session_payload(record, engine)


@router.post("/sessions/{session_id}/reset")
def reset(
    session_id: str,
    db: Annotated[DbSession, Depends(get_db)],
    store: Annotated[TestStore, Depends(get_store)],
) -> dict[str, object]:
    """Start the same test over."""
    record, engine = _open(db, store, session_id)
    engine.reset()
    session_service.save_session(db, record, engine)
    return session_service.session_payload(record, engine)


@router.delete("/sessions/{session_id}")
def abandon(
    session_id: str,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, bool]:
    """Abandon a session."""
    record = session_service.get_session_record(db, session_id)
    session_service.abandon_session(db, record)
    return {"success": True}
