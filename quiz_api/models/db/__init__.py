"""Database models."""
from quiz_api.models.db.taking_session import SessionStatus, TakingSession

__all__ = [
    "SessionStatus",
    "TakingSession",
]
