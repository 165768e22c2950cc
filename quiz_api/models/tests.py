"""Test-related Pydantic models."""
from typing import Any

from pydantic import BaseModel, ConfigDict


class TestPayload(BaseModel):
    """Test body as sent by the editor.

    Only the envelope is typed here; question payloads are validated by the
    domain parser so every question type keeps its own fields.
    """

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    name: str | None = None
    description: str | None = None
    questions: list[dict[str, Any]] | None = None
    maxScore: float | None = None
    minScore: float | None = None
    passingMessage: str | None = None
    failingMessage: str | None = None


class TestList(BaseModel):
    """Response for listing tests."""

    tests: list[dict[str, Any]]


class DeleteTestRequest(BaseModel):
    """Legacy delete body."""

    id: str | None = None


class ClickAreaUpdate(BaseModel):
    """Partial click-area update; omitted fields are left untouched."""

    image: str | None = None
    areas: list[dict[str, Any]] | None = None
    originalImage: str | None = None
