"""Pydantic models."""
from quiz_api.models.images import ImageEnvelope, UploadResponse
from quiz_api.models.sessions import AnswerRequest, AnswerResponse, ClickRequest
from quiz_api.models.tests import (
    ClickAreaUpdate,
    DeleteTestRequest,
    TestList,
    TestPayload,
)

__all__ = [
    "AnswerRequest",
    "AnswerResponse",
    "ClickAreaUpdate",
    "ClickRequest",
    "DeleteTestRequest",
    "ImageEnvelope",
    "TestList",
    "TestPayload",
    "UploadResponse",
]
