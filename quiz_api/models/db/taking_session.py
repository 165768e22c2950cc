"""
Test-taking session records.
Each row holds the progress of one candidate through one test, keyed by the
session id handed to the client.
"""

from __future__ import annotations

import enum
import json
from datetime import datetime, timezone
from typing import Any

import sqlalchemy as sa
from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from quiz_api.database import Base


class SessionStatus(str, enum.Enum):
    """Status of a test-taking session."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class TakingSession(Base):
    """Ephemeral test-taking state; removed by cleanup once stale."""

    __tablename__ = "taking_sessions"

    # Primary key - UUID hex issued on start
    id: Mapped[str] = mapped_column(String(64), primary_key=True, index=True)
    test_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)

    # Timing
    started_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    finished_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    status: Mapped[str] = mapped_column(
        String(20), default=SessionStatus.IN_PROGRESS.value, nullable=False
    )
    score: Mapped[float] = mapped_column(default=0, nullable=False)
    passed: Mapped[bool | None] = mapped_column(nullable=True)

    # Engine state (stored as JSON string)
    state_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def state(self) -> dict[str, Any]:
        """Parse engine state from JSON."""
        if not self.state_json:
            return {}
        try:
            return json.loads(self.state_json)
        except (json.JSONDecodeError, TypeError):
            return {}

    @state.setter
    def state(self, value: dict[str, Any]) -> None:
        """Serialize engine state to JSON."""
        self.state_json = json.dumps(value) if value else None
