import pytest

import serialization
from models import ClickAreaQuestion, MultipleChoiceQuestion, UnsupportedQuestion


def _payload(**overrides):
    payload = {
        "name": "Anatomy",
        "questions": [
            {
                "id": "q1",
                "type": "clickArea",
                "image": "https://cdn.example.com/heart.png",
                "areas": [{"id": "a1", "shape": "rect", "coords": [10, 10, 50, 50], "isCorrect": True}],
                "scoring": {"correct": 2, "incorrect": 1},
            }
        ],
    }
    payload.update(overrides)
    return payload


def test_parse_test_applies_defaults() -> None:
    test = serialization.parse_test(_payload(), "t1")
    assert test.id == "t1"
    assert test.max_score == 100
    assert test.min_score == 60
    assert test.passing_message == "Congratulations!"
    assert test.failing_message == "Try again"

    question = test.questions[0]
    assert isinstance(question, ClickAreaQuestion)
    assert question.title == "Untitled Question"
    assert question.scoring.correct == 2
    assert question.scoring.retain == 0
    assert question.areas[0].coords == (10, 10, 50, 50)


def test_explicit_zero_scores_are_kept() -> None:
    test = serialization.parse_test(_payload(maxScore=0, minScore=0))
    assert test.max_score == 0
    assert test.min_score == 0


def test_min_above_max_is_accepted() -> None:
    test = serialization.parse_test(_payload(maxScore=10, minScore=20))
    assert test.min_score > test.max_score


@pytest.mark.parametrize(
    "payload",
    [
        {"questions": []},
        {"name": "   ", "questions": []},
        {"name": "No questions"},
        ["not", "an", "object"],
    ],
)
def test_name_and_questions_are_required(payload) -> None:
    with pytest.raises(serialization.TestValidationError):
        serialization.parse_test(payload)


@pytest.mark.parametrize(
    "area",
    [
        {"id": "a", "coords": [1, 2, 3]},
        {"id": "a", "coords": [1, 2, 3, "4"]},
        {"id": "a", "coords": [1, 2, 3, True]},
        {"id": "a", "coords": [1, 2, 3, float("nan")]},
        {"id": "a", "shape": "circle", "coords": [1, 2, 3, 4]},
        {"coords": [1, 2, 3, 4]},
    ],
)
def test_invalid_areas_are_rejected(area) -> None:
    payload = _payload()
    payload["questions"][0]["areas"] = [area]
    with pytest.raises(serialization.TestValidationError):
        serialization.parse_test(payload)


def test_duplicate_ids_are_rejected() -> None:
    payload = _payload()
    payload["questions"][0]["areas"].append({"id": "a1", "coords": [0, 0, 9, 9]})
    with pytest.raises(serialization.TestValidationError):
        serialization.parse_test(payload)

    payload = _payload()
    payload["questions"].append(dict(payload["questions"][0]))
    with pytest.raises(serialization.TestValidationError):
        serialization.parse_test(payload)


def test_missing_type_defaults_to_click_area() -> None:
    question = serialization.parse_question({"id": "q", "image": "x"})
    assert isinstance(question, ClickAreaQuestion)


def test_unknown_type_is_preserved() -> None:
    raw = {"type": "imageHotspots", "hotspots": [1, 2]}
    question = serialization.parse_question(raw)
    assert isinstance(question, UnsupportedQuestion)
    serialized = serialization.serialize_question(question)
    assert serialized["hotspots"] == [1, 2]
    assert serialized["id"] == question.id


def test_generated_ids_have_prefix() -> None:
    question = serialization.parse_question({"type": "multipleChoice", "options": [{"id": "o", "text": "A"}]})
    assert isinstance(question, MultipleChoiceQuestion)
    assert question.id.startswith("question_")


def test_serialize_test_uses_wire_names() -> None:
    test = serialization.parse_test(_payload(passingMessage="Yes"), "t1")
    payload = serialization.serialize_test(test)
    assert payload["passingMessage"] == "Yes"
    question = payload["questions"][0]
    assert question["areas"][0] == {"id": "a1", "shape": "rect", "coords": [10, 10, 50, 50], "isCorrect": True}
    assert "blobUrl" not in question
    assert serialization.serialize_metadata(test)["questionCount"] == 1
