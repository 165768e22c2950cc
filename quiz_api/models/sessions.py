"""Test-taking session Pydantic models."""
from typing import Any

from pydantic import BaseModel


class ClickRequest(BaseModel):
    """Image-space click on the current click-area question."""

    x: float
    y: float
    scale: float = 1.0
    imageFailed: bool = False


class AnswerRequest(BaseModel):
    """Answer for a non click-area question."""

    questionId: str
    value: Any = None


class AnswerResponse(BaseModel):
    """Outcome of a click or answer."""

    status: str
    feedback: dict[str, Any] | None = None
    session: dict[str, Any]
