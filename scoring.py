"""Test-taking engine: question navigation, answer checking and scoring."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from geometry import hit_test
from models import (
    ClickAreaQuestion,
    DragAndDropQuestion,
    IdentifyErrorsQuestion,
    MultipleChoiceQuestion,
    OpenQuestion,
    PhraseCompleteQuestion,
    PointAPointQuestion,
    Question,
    SequenceQuestion,
    Test,
    TrueOrFalseQuestion,
    UnsupportedQuestion,
)

log = logging.getLogger(__name__)

PUNCTUATION_RE = re.compile(r"[.,/#!$%^&*;:{}=\-_`~()]")
WHITESPACE_RE = re.compile(r"\s+")


class UnsupportedAnswer(ValueError):
    """Answer value that cannot be checked against its question."""


class FinishNotAllowed(RuntimeError):
    pass


@dataclass
class Feedback:
    question_id: str
    correct: bool
    delta: float
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "questionId": self.question_id,
            "correct": self.correct,
            "delta": self.delta,
            "message": self.message,
        }


@dataclass
class Verdict:
    score: float
    max_score: float
    min_score: float
    passed: bool
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "maxScore": self.max_score,
            "minScore": self.min_score,
            "passed": self.passed,
            "message": self.message,
        }


@dataclass
class TakingState:
    """Serializable progress of one candidate through one test."""

    current_index: int = 0
    score: float = 0
    answered: list[str] = field(default_factory=list)
    answers: dict[str, bool] = field(default_factory=dict)
    connections: dict[str, list[dict[str, str]]] = field(default_factory=dict)
    completed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentIndex": self.current_index,
            "score": self.score,
            "answered": list(self.answered),
            "answers": dict(self.answers),
            "connections": {k: list(v) for k, v in self.connections.items()},
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TakingState":
        return cls(
            current_index=int(data.get("currentIndex", 0)),
            score=data.get("score", 0),
            answered=list(data.get("answered", [])),
            answers=dict(data.get("answers", {})),
            connections={k: list(v) for k, v in data.get("connections", {}).items()},
            completed=bool(data.get("completed", False)),
        )


def normalize_text(value: str) -> str:
    return WHITESPACE_RE.sub(" ", value.strip().lower())


def _require_text(value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise UnsupportedAnswer("Please provide an answer before submitting")
    return value


def check_open_answer(reply: str, expected: str) -> bool:
    reply, expected = normalize_text(reply), normalize_text(expected)
    if reply == expected:
        return True
    close = expected in reply or reply in expected
    return close and len(reply) > 10


def check_phrase(reply: str, expected: str) -> bool:
    reply, expected = reply.strip().lower(), expected.strip().lower()
    if reply == expected:
        return True
    return PUNCTUATION_RE.sub("", reply) == PUNCTUATION_RE.sub("", expected)


def check_answer(question: Question, value: Any) -> bool:
    """Compare a submitted value with the question's stored answer."""
    if isinstance(question, ClickAreaQuestion):
        if value is None:
            return False
        area = next((a for a in question.areas if a.id == value), None)
        return bool(area and area.is_correct)

    if isinstance(question, MultipleChoiceQuestion):
        option = next((o for o in question.options if o.id == value), None)
        return bool(option and option.is_correct)

    if isinstance(question, TrueOrFalseQuestion):
        if not isinstance(value, bool):
            raise UnsupportedAnswer("True/false questions take a boolean answer")
        return value == question.correct_answer

    if isinstance(question, PointAPointQuestion):
        if not isinstance(value, dict):
            raise UnsupportedAnswer("Matching answers are {start, end} connections")
        left = next(
            (p for p in question.points if p.id == value.get("start") and p.side == "left"),
            None,
        )
        return bool(left and left.correct_match == value.get("end"))

    if isinstance(question, SequenceQuestion):
        if not isinstance(value, list):
            raise UnsupportedAnswer("Sequence answers are a list of item ids")
        expected = [item.id for item in sorted(question.sequence, key=lambda i: i.order)]
        return list(value) == expected

    if isinstance(question, DragAndDropQuestion):
        if not any(item.correct_zone for item in question.items):
            raise UnsupportedAnswer("No destination zones defined for this question")
        if not isinstance(value, dict):
            raise UnsupportedAnswer("Drag and drop answers map item ids to zones")
        return all(value.get(item.id) == item.correct_zone for item in question.items)

    if isinstance(question, (OpenQuestion, IdentifyErrorsQuestion)):
        return check_open_answer(_require_text(value), question.answer)

    if isinstance(question, PhraseCompleteQuestion):
        return check_phrase(_require_text(value), question.answer)

    if isinstance(question, UnsupportedQuestion):
        raise UnsupportedAnswer(f"Unsupported question type: {question.type}")

    raise UnsupportedAnswer(f"Unknown question object {type(question).__name__}")


class TestSession:
    """One candidate working through a test.

    Each question moves from unanswered to answered exactly once; later
    answers for the same question are ignored. The score never drops below
    zero and is not capped at the test's maximum.
    """

    __test__ = False

    def __init__(self, test: Test, state: TakingState | None = None) -> None:
        self.test = test
        self.state = state or TakingState()

    @property
    def score(self) -> float:
        return self.state.score

    @property
    def current_index(self) -> int:
        return self.state.current_index

    @property
    def current_question(self) -> Question | None:
        if not self.test.questions:
            return None
        index = min(self.state.current_index, len(self.test.questions) - 1)
        return self.test.questions[index]

    @property
    def answered_ids(self) -> set[str]:
        return set(self.state.answered)

    @property
    def completed(self) -> bool:
        return self.state.completed

    def is_answered(self, question_id: str) -> bool:
        return question_id in self.state.answered

    @property
    def progress(self) -> float:
        total = len(self.test.questions)
        return len(self.state.answered) / total * 100 if total else 0.0

    @property
    def can_finish(self) -> bool:
        return all(self.is_answered(q.id) for q in self.test.questions)

    def handle_answer(
        self,
        question_id: str,
        is_correct: bool,
        connection: dict[str, str] | None = None,
    ) -> Feedback | None:
        """Score the first answer to a question; repeats return None."""
        if self.state.completed or self.is_answered(question_id):
            return None
        question = self.test.find_question(question_id)
        if question is None:
            raise KeyError(question_id)

        scoring = question.scoring
        delta = scoring.correct if is_correct else -scoring.incorrect
        self.state.score = max(0, self.state.score + delta)

        if connection is not None:
            kept = [
                c
                for c in self.state.connections.get(question_id, [])
                if c["start"] != connection["start"] and c["end"] != connection["end"]
            ]
            self.state.connections[question_id] = kept + [dict(connection)]

        self.state.answered.append(question_id)
        self.state.answers[question_id] = is_correct
        message = (
            f"Correct! +{scoring.correct} points"
            if is_correct
            else f"Incorrect. -{scoring.incorrect} points"
        )
        log.debug("Question %s answered (%s), score %s", question_id, is_correct, self.state.score)
        return Feedback(question_id, is_correct, delta, message)

    def click(
        self,
        x: float,
        y: float,
        scale: float = 1.0,
        image_failed: bool = False,
    ) -> Feedback | None:
        """Dispatch a click on the current click-area question.

        A click that hits no area, or any click while the image could not be
        shown, counts as an incorrect answer.
        """
        question = self.current_question
        if not isinstance(question, ClickAreaQuestion):
            raise UnsupportedAnswer("The current question is not a click-area question")
        if self.state.completed or self.is_answered(question.id):
            return None
        area = None if image_failed else hit_test(question.areas, x, y, scale)
        return self.handle_answer(question.id, bool(area and area.is_correct))

    def answer(self, question_id: str, value: Any) -> Feedback | None:
        question = self.test.find_question(question_id)
        if question is None:
            raise KeyError(question_id)
        if self.state.completed or self.is_answered(question_id):
            return None
        is_correct = check_answer(question, value)
        connection = None
        if isinstance(question, PointAPointQuestion):
            connection = {"start": str(value.get("start")), "end": str(value.get("end"))}
        return self.handle_answer(question_id, is_correct, connection)

    def next(self) -> int:
        if self.state.current_index < len(self.test.questions) - 1:
            self.state.current_index += 1
        return self.state.current_index

    def previous(self) -> int:
        if self.state.current_index > 0:
            self.state.current_index -= 1
        return self.state.current_index

    def go_to(self, index: int) -> int:
        if not 0 <= index < len(self.test.questions):
            raise IndexError(index)
        self.state.current_index = index
        return index

    def verdict(self) -> Verdict:
        passed = self.state.score >= self.test.min_score
        return Verdict(
            score=self.state.score,
            max_score=self.test.max_score,
            min_score=self.test.min_score,
            passed=passed,
            message=self.test.passing_message if passed else self.test.failing_message,
        )

    def finish(self) -> Verdict:
        if not self.can_finish:
            raise FinishNotAllowed("Please answer all questions before finishing.")
        self.state.completed = True
        return self.verdict()

    def reset(self) -> None:
        self.state = TakingState()

    def snapshot(self) -> dict[str, Any]:
        question = self.current_question
        payload = {
            "testId": self.test.id,
            "currentIndex": self.state.current_index,
            "questionCount": len(self.test.questions),
            "currentQuestionId": question.id if question else None,
            "currentQuestionType": question.type if question else None,
            "score": self.state.score,
            "maxScore": self.test.max_score,
            "answered": list(self.state.answered),
            "progress": self.progress,
            "canFinish": self.can_finish,
            "completed": self.state.completed,
        }
        if self.state.completed:
            payload["verdict"] = self.verdict().to_dict()
        return payload
