from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Tuple, Union


QUESTION_TYPES = (
    "clickArea",
    "multipleChoice",
    "trueOrFalse",
    "pointAPoint",
    "sequence",
    "dragAndDrop",
    "openQuestion",
    "phraseComplete",
    "identifyErrors",
)


@dataclass(frozen=True)
class Area:
    """Rectangular click target in image-space pixels."""

    id: str
    coords: Tuple[float, float, float, float]
    is_correct: bool = False
    shape: str = "rect"


@dataclass
class Scoring:
    correct: float = 1
    incorrect: float = 0
    retain: float = 0


@dataclass
class QuestionBase:
    id: str
    title: str = "Untitled Question"
    description: str = ""
    question: str = ""
    scoring: Scoring = field(default_factory=Scoring)


@dataclass
class ClickAreaQuestion(QuestionBase):
    image: str = ""
    image_id: str | None = None
    blob_url: str | None = None
    image_api_url: str | None = None
    original_image: str | None = None
    areas: List[Area] = field(default_factory=list)
    type: str = "clickArea"


@dataclass
class Option:
    id: str
    text: str
    is_correct: bool = False


@dataclass
class MultipleChoiceQuestion(QuestionBase):
    options: List[Option] = field(default_factory=list)
    type: str = "multipleChoice"


@dataclass
class TrueOrFalseQuestion(QuestionBase):
    correct_answer: bool = True
    type: str = "trueOrFalse"


@dataclass
class MatchPoint:
    id: str
    text: str
    side: str  # "left" | "right"
    correct_match: str | None = None


@dataclass
class PointAPointQuestion(QuestionBase):
    points: List[MatchPoint] = field(default_factory=list)
    type: str = "pointAPoint"


@dataclass
class SequenceItem:
    id: str
    text: str
    order: int


@dataclass
class SequenceQuestion(QuestionBase):
    sequence: List[SequenceItem] = field(default_factory=list)
    type: str = "sequence"


@dataclass
class DragItem:
    id: str
    text: str
    order: int
    correct_zone: str


@dataclass
class DragAndDropQuestion(QuestionBase):
    items: List[DragItem] = field(default_factory=list)
    type: str = "dragAndDrop"


@dataclass
class OpenQuestion(QuestionBase):
    answer: str = ""
    type: str = "openQuestion"


@dataclass
class PhraseCompleteQuestion(QuestionBase):
    answer: str = ""
    type: str = "phraseComplete"


@dataclass
class IdentifyErrorsQuestion(QuestionBase):
    code: str = ""
    answer: str = ""
    type: str = "identifyErrors"


@dataclass
class UnsupportedQuestion(QuestionBase):
    """Question whose type tag is not known; kept verbatim for round trips."""

    type: str = ""
    raw: dict[str, Any] = field(default_factory=dict)


Question = Union[
    ClickAreaQuestion,
    MultipleChoiceQuestion,
    TrueOrFalseQuestion,
    PointAPointQuestion,
    SequenceQuestion,
    DragAndDropQuestion,
    OpenQuestion,
    PhraseCompleteQuestion,
    IdentifyErrorsQuestion,
    UnsupportedQuestion,
]


@dataclass
class Test:
    __test__ = False

    id: str
    name: str
    description: str = ""
    questions: List[Question] = field(default_factory=list)
    max_score: float = 100
    min_score: float = 60
    passing_message: str = "Congratulations!"
    failing_message: str = "Try again"

    def find_question(self, question_id: str) -> Question | None:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None
