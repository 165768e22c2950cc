"""Service for cleanup operations."""
import logging
import threading
import time
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete

from quiz_api import config
from quiz_api.database import SessionLocal
from quiz_api.models.db import SessionStatus, TakingSession

logger = logging.getLogger(__name__)


def cleanup_stale_sessions(session_factory=SessionLocal) -> int:
    """Remove abandoned and stale in-progress sessions from database."""
    if config.SESSION_RETENTION_DAYS <= 0:
        return 0

    cutoff = datetime.now(timezone.utc) - timedelta(days=config.SESSION_RETENTION_DAYS)

    db = session_factory()
    try:
        result = db.execute(
            delete(TakingSession).where(
                TakingSession.status.in_(
                    [SessionStatus.ABANDONED.value, SessionStatus.IN_PROGRESS.value]
                ),
                TakingSession.updated_at < cutoff,
            )
        )
        db.commit()
        deleted = result.rowcount
        if deleted > 0:
            logger.info(f"Cleaned up {deleted} stale sessions")
        return deleted
    finally:
        db.close()


def schedule_sessions_cleanup() -> threading.Thread:
    """Schedule periodic cleanup of stale sessions."""

    def _worker() -> None:
        # Initial delay before first cleanup
        time.sleep(60)
        while True:
            try:
                cleanup_stale_sessions()
            except Exception as e:
                logger.error(f"Failed to cleanup sessions: {e}")
            time.sleep(config.SESSION_CLEANUP_INTERVAL_SECONDS)

    thread = threading.Thread(
        target=_worker,
        name="sessions_cleanup",
        daemon=True,
    )
    thread.start()
    return thread
