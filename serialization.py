from __future__ import annotations

import logging
import math
import uuid
from typing import Any, Iterable

from models import (
    Area,
    ClickAreaQuestion,
    DragAndDropQuestion,
    DragItem,
    IdentifyErrorsQuestion,
    MatchPoint,
    MultipleChoiceQuestion,
    OpenQuestion,
    Option,
    PhraseCompleteQuestion,
    PointAPointQuestion,
    Question,
    Scoring,
    SequenceItem,
    SequenceQuestion,
    Test,
    TrueOrFalseQuestion,
    UnsupportedQuestion,
)

log = logging.getLogger(__name__)


DEFAULT_MAX_SCORE = 100
DEFAULT_MIN_SCORE = 60
DEFAULT_PASSING_MESSAGE = "Congratulations!"
DEFAULT_FAILING_MESSAGE = "Try again"
DEFAULT_QUESTION_TITLE = "Untitled Question"


class TestValidationError(ValueError):
    """Raised when a test payload cannot be accepted."""

    __test__ = False


def generate_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _str(value: object, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _opt_str(value: object) -> str | None:
    return value if isinstance(value, str) and value else None


def _number(value: object, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return value


def _records(value: object) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def parse_coords(raw: object) -> tuple[float, float, float, float]:
    if not isinstance(raw, (list, tuple)) or len(raw) != 4:
        raise TestValidationError("Area coords must have exactly 4 numbers")
    coords = []
    for value in raw:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TestValidationError("Area coords must be numbers")
        if not math.isfinite(value):
            raise TestValidationError("Area coords must be finite")
        coords.append(value)
    return coords[0], coords[1], coords[2], coords[3]


def parse_area(raw: dict[str, Any]) -> Area:
    area_id = raw.get("id")
    if not isinstance(area_id, str) or not area_id:
        raise TestValidationError("Area id is required")
    shape = raw.get("shape", "rect")
    if shape != "rect":
        raise TestValidationError(f"Area {area_id}: unsupported shape {shape!r}")
    try:
        coords = parse_coords(raw.get("coords"))
    except TestValidationError as exc:
        raise TestValidationError(f"Area {area_id}: {exc}") from exc
    return Area(id=area_id, coords=coords, is_correct=bool(raw.get("isCorrect")))


def parse_areas(raw: object) -> list[Area]:
    areas = [parse_area(item) for item in _records(raw)]
    seen: set[str] = set()
    for area in areas:
        if area.id in seen:
            raise TestValidationError(f"Duplicate area id {area.id}")
        seen.add(area.id)
    return areas


def parse_scoring(raw: object) -> Scoring:
    if not isinstance(raw, dict):
        return Scoring()
    return Scoring(
        correct=_number(raw.get("correct"), 1),
        incorrect=_number(raw.get("incorrect"), 0),
        retain=_number(raw.get("retain"), 0),
    )


def parse_question(raw: dict[str, Any]) -> Question:
    """Build the question variant matching the payload's type tag."""
    question_id = _str(raw.get("id")) or generate_id("question")
    common = {
        "id": question_id,
        "title": _str(raw.get("title")) or DEFAULT_QUESTION_TITLE,
        "description": _str(raw.get("description")),
        "question": _str(raw.get("question")),
        "scoring": parse_scoring(raw.get("scoring")),
    }
    question_type = raw.get("type") or "clickArea"

    try:
        if question_type == "clickArea":
            return ClickAreaQuestion(
                **common,
                image=_str(raw.get("image")),
                image_id=_opt_str(raw.get("imageId")),
                blob_url=_opt_str(raw.get("blobUrl")),
                image_api_url=_opt_str(raw.get("imageApiUrl")),
                original_image=_opt_str(raw.get("originalImage")),
                areas=parse_areas(raw.get("areas")),
            )
        if question_type == "multipleChoice":
            return MultipleChoiceQuestion(
                **common,
                options=[
                    Option(
                        id=_str(item.get("id")),
                        text=_str(item.get("text")),
                        is_correct=bool(item.get("isCorrect")),
                    )
                    for item in _records(raw.get("options"))
                ],
            )
        if question_type == "trueOrFalse":
            return TrueOrFalseQuestion(
                **common, correct_answer=bool(raw.get("correctAnswer", True))
            )
        if question_type == "pointAPoint":
            return PointAPointQuestion(
                **common,
                points=[
                    MatchPoint(
                        id=_str(item.get("id")),
                        text=_str(item.get("text")),
                        side="right" if item.get("type") == "right" else "left",
                        correct_match=_opt_str(item.get("correctMatch")),
                    )
                    for item in _records(raw.get("points"))
                ],
            )
        if question_type == "sequence":
            return SequenceQuestion(
                **common,
                sequence=[
                    SequenceItem(
                        id=_str(item.get("id")),
                        text=_str(item.get("text")),
                        order=int(_number(item.get("order"), index)),
                    )
                    for index, item in enumerate(_records(raw.get("sequence")))
                ],
            )
        if question_type == "dragAndDrop":
            return DragAndDropQuestion(
                **common,
                items=[
                    DragItem(
                        id=_str(item.get("id")),
                        text=_str(item.get("text")),
                        order=int(_number(item.get("order"), index)),
                        correct_zone=_str(item.get("correctZone")),
                    )
                    for index, item in enumerate(_records(raw.get("items")))
                ],
            )
        if question_type == "openQuestion":
            return OpenQuestion(**common, answer=_str(raw.get("answer")))
        if question_type == "phraseComplete":
            return PhraseCompleteQuestion(**common, answer=_str(raw.get("answer")))
        if question_type == "identifyErrors":
            return IdentifyErrorsQuestion(
                **common, code=_str(raw.get("code")), answer=_str(raw.get("answer"))
            )
    except TestValidationError as exc:
        raise TestValidationError(f"Question {question_id}: {exc}") from exc

    log.warning("Question %s has unsupported type %r", question_id, question_type)
    return UnsupportedQuestion(
        **common, type=str(question_type), raw={**raw, "id": question_id}
    )


def parse_test(raw: object, test_id: str | None = None) -> Test:
    """Validate a wire payload and build a Test, filling in defaults."""
    if not isinstance(raw, dict):
        raise TestValidationError("Test payload must be an object")
    name = raw.get("name")
    questions = raw.get("questions")
    if not isinstance(name, str) or not name.strip() or not isinstance(questions, list):
        raise TestValidationError("Test name and questions are required")

    test = Test(
        id=test_id or _str(raw.get("id")) or generate_id("test"),
        name=name.strip(),
        description=_str(raw.get("description")),
        questions=[parse_question(item) for item in _records(questions)],
        max_score=_number(raw.get("maxScore"), DEFAULT_MAX_SCORE),
        min_score=_number(raw.get("minScore"), DEFAULT_MIN_SCORE),
        passing_message=_str(raw.get("passingMessage")) or DEFAULT_PASSING_MESSAGE,
        failing_message=_str(raw.get("failingMessage")) or DEFAULT_FAILING_MESSAGE,
    )
    seen: set[str] = set()
    for question in test.questions:
        if question.id in seen:
            raise TestValidationError(f"Duplicate question id {question.id}")
        seen.add(question.id)
    if test.min_score > test.max_score:
        log.warning(
            "Test %s has minScore %s above maxScore %s",
            test.id,
            test.min_score,
            test.max_score,
        )
    return test


def serialize_area(area: Area) -> dict[str, Any]:
    return {
        "id": area.id,
        "shape": area.shape,
        "coords": list(area.coords),
        "isCorrect": area.is_correct,
    }


def serialize_areas(areas: Iterable[Area]) -> list[dict[str, Any]]:
    return [serialize_area(area) for area in areas]


def _drop_empty(payload: dict[str, Any], keys: Iterable[str]) -> dict[str, Any]:
    for key in keys:
        if payload.get(key) is None:
            payload.pop(key, None)
    return payload


def serialize_question(question: Question) -> dict[str, Any]:
    if isinstance(question, UnsupportedQuestion):
        return dict(question.raw)

    payload: dict[str, Any] = {
        "id": question.id,
        "type": question.type,
        "title": question.title,
        "description": question.description,
        "question": question.question,
        "scoring": {
            "correct": question.scoring.correct,
            "incorrect": question.scoring.incorrect,
            "retain": question.scoring.retain,
        },
    }
    if isinstance(question, ClickAreaQuestion):
        payload.update(
            image=question.image,
            imageId=question.image_id,
            blobUrl=question.blob_url,
            imageApiUrl=question.image_api_url,
            originalImage=question.original_image,
            areas=serialize_areas(question.areas),
        )
        return _drop_empty(
            payload, ("imageId", "blobUrl", "imageApiUrl", "originalImage")
        )
    if isinstance(question, MultipleChoiceQuestion):
        payload["options"] = [
            {"id": o.id, "text": o.text, "isCorrect": o.is_correct}
            for o in question.options
        ]
    elif isinstance(question, TrueOrFalseQuestion):
        payload["correctAnswer"] = question.correct_answer
    elif isinstance(question, PointAPointQuestion):
        payload["points"] = [
            _drop_empty(
                {
                    "id": p.id,
                    "text": p.text,
                    "type": p.side,
                    "correctMatch": p.correct_match,
                },
                ("correctMatch",),
            )
            for p in question.points
        ]
    elif isinstance(question, SequenceQuestion):
        payload["sequence"] = [
            {"id": s.id, "text": s.text, "order": s.order} for s in question.sequence
        ]
    elif isinstance(question, DragAndDropQuestion):
        payload["items"] = [
            {
                "id": i.id,
                "text": i.text,
                "order": i.order,
                "correctZone": i.correct_zone,
            }
            for i in question.items
        ]
    elif isinstance(question, (OpenQuestion, PhraseCompleteQuestion)):
        payload["answer"] = question.answer
    elif isinstance(question, IdentifyErrorsQuestion):
        payload["code"] = question.code
        payload["answer"] = question.answer
    return payload


def serialize_test(test: Test) -> dict[str, Any]:
    return {
        "id": test.id,
        "name": test.name,
        "description": test.description,
        "questions": [serialize_question(q) for q in test.questions],
        "maxScore": test.max_score,
        "minScore": test.min_score,
        "passingMessage": test.passing_message,
        "failingMessage": test.failing_message,
    }


def serialize_metadata(test: Test) -> dict[str, Any]:
    return {
        "id": test.id,
        "name": test.name,
        "description": test.description,
        "questionCount": len(test.questions),
        "maxScore": test.max_score,
        "minScore": test.min_score,
    }
