import pytest

import scoring
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
    Scoring,
    SequenceItem,
    SequenceQuestion,
    Test,
    TrueOrFalseQuestion,
    UnsupportedQuestion,
)


def _click_test(**kwargs) -> Test:
    question = ClickAreaQuestion(
        id="q1",
        image="https://cdn.example.com/q1.png",
        areas=[Area(id="a1", coords=(10, 10, 50, 50), is_correct=True)],
        scoring=Scoring(correct=2, incorrect=1),
    )
    return Test(id="t1", name="Clicks", questions=[question], **kwargs)


def test_click_inside_correct_area_scores_once() -> None:
    session = scoring.TestSession(_click_test())

    feedback = session.click(30, 30)
    assert feedback.correct
    assert feedback.message == "Correct! +2 points"
    assert session.score == 2
    assert session.is_answered("q1")

    assert session.click(30, 30) is None
    assert session.score == 2
    assert session.answered_ids == {"q1"}


def test_click_outside_areas_never_drops_below_zero() -> None:
    session = scoring.TestSession(_click_test())
    feedback = session.click(500, 500)
    assert not feedback.correct
    assert feedback.message == "Incorrect. -1 points"
    assert session.score == 0


def test_click_with_failed_image_counts_as_incorrect() -> None:
    session = scoring.TestSession(_click_test())
    assert not session.click(30, 30, image_failed=True).correct
    assert session.score == 0


def test_score_floor_over_many_penalties() -> None:
    questions = [
        TrueOrFalseQuestion(id=f"q{i}", correct_answer=True, scoring=Scoring(correct=1, incorrect=5))
        for i in range(3)
    ]
    session = scoring.TestSession(Test(id="t", name="T", questions=questions))
    session.answer("q0", True)
    session.answer("q1", False)
    session.answer("q2", False)
    assert session.score == 0


def test_repeated_answers_are_ignored() -> None:
    question = TrueOrFalseQuestion(id="q", correct_answer=False)
    session = scoring.TestSession(Test(id="t", name="T", questions=[question]))
    assert session.handle_answer("q", True) is not None
    before = (session.score, len(session.answered_ids))
    assert session.handle_answer("q", True) is None
    assert session.handle_answer("q", False) is None
    assert (session.score, len(session.answered_ids)) == before


def test_pass_threshold_is_inclusive() -> None:
    questions = [
        TrueOrFalseQuestion(id="q", correct_answer=True, scoring=Scoring(correct=60)),
    ]
    test = Test(id="t", name="T", questions=questions, min_score=60, passing_message="Well done")
    session = scoring.TestSession(test)
    session.answer("q", True)
    verdict = session.finish()
    assert verdict.score == 60
    assert verdict.passed
    assert verdict.message == "Well done"


def test_score_is_not_capped_at_max() -> None:
    questions = [TrueOrFalseQuestion(id="q", scoring=Scoring(correct=150))]
    session = scoring.TestSession(Test(id="t", name="T", questions=questions, max_score=100))
    session.answer("q", True)
    assert session.score == 150


def test_finish_requires_every_question() -> None:
    questions = [TrueOrFalseQuestion(id="a"), TrueOrFalseQuestion(id="b")]
    session = scoring.TestSession(Test(id="t", name="T", questions=questions, min_score=5))
    session.answer("a", True)
    assert not session.can_finish
    with pytest.raises(scoring.FinishNotAllowed):
        session.finish()

    session.answer("b", True)
    verdict = session.finish()
    assert not verdict.passed
    assert verdict.message == "Try again"
    assert session.completed
    # completed sessions take no more answers
    assert session.handle_answer("a", True) is None


def test_navigation_stays_in_range() -> None:
    questions = [TrueOrFalseQuestion(id="a"), TrueOrFalseQuestion(id="b")]
    session = scoring.TestSession(Test(id="t", name="T", questions=questions))
    assert session.previous() == 0
    assert session.next() == 1
    assert session.next() == 1
    assert session.current_question.id == "b"
    with pytest.raises(IndexError):
        session.go_to(2)


def test_state_round_trip_and_reset() -> None:
    session = scoring.TestSession(_click_test())
    session.click(30, 30)
    restored = scoring.TestSession(session.test, scoring.TakingState.from_dict(session.state.to_dict()))
    assert restored.score == 2
    assert restored.is_answered("q1")

    restored.reset()
    assert restored.score == 0
    assert restored.answered_ids == set()
    assert restored.snapshot()["progress"] == 0


def test_snapshot_includes_verdict_when_completed() -> None:
    session = scoring.TestSession(_click_test(min_score=1))
    session.click(20, 20)
    session.finish()
    snapshot = session.snapshot()
    assert snapshot["completed"]
    assert snapshot["progress"] == 100
    assert snapshot["verdict"]["passed"] is True


def test_multiple_choice() -> None:
    question = MultipleChoiceQuestion(
        id="q", options=[Option("o1", "Paris", True), Option("o2", "Rome")]
    )
    assert scoring.check_answer(question, "o1")
    assert not scoring.check_answer(question, "o2")
    assert not scoring.check_answer(question, "missing")


def test_true_or_false_needs_boolean() -> None:
    question = TrueOrFalseQuestion(id="q", correct_answer=False)
    assert scoring.check_answer(question, False)
    with pytest.raises(scoring.UnsupportedAnswer):
        scoring.check_answer(question, "false")


def test_point_a_point_records_connection() -> None:
    question = PointAPointQuestion(
        id="q",
        points=[
            MatchPoint("l1", "Dog", "left", correct_match="r1"),
            MatchPoint("r1", "Bark", "right"),
        ],
    )
    session = scoring.TestSession(Test(id="t", name="T", questions=[question]))
    feedback = session.answer("q", {"start": "l1", "end": "r1"})
    assert feedback.correct
    assert session.state.connections["q"] == [{"start": "l1", "end": "r1"}]
    assert not scoring.check_answer(question, {"start": "r1", "end": "l1"})


def test_sequence_order() -> None:
    question = SequenceQuestion(
        id="q",
        sequence=[SequenceItem("b", "Second", 1), SequenceItem("a", "First", 0)],
    )
    assert scoring.check_answer(question, ["a", "b"])
    assert not scoring.check_answer(question, ["b", "a"])


def test_drag_and_drop_zones() -> None:
    question = DragAndDropQuestion(
        id="q",
        items=[DragItem("i1", "Cat", 0, "mammals"), DragItem("i2", "Trout", 1, "fish")],
    )
    assert scoring.check_answer(question, {"i1": "mammals", "i2": "fish"})
    assert not scoring.check_answer(question, {"i1": "fish", "i2": "fish"})

    empty = DragAndDropQuestion(id="q", items=[DragItem("i1", "Cat", 0, "")])
    with pytest.raises(scoring.UnsupportedAnswer):
        scoring.check_answer(empty, {"i1": ""})


def test_open_and_identify_errors_answers() -> None:
    question = OpenQuestion(id="q", answer="Photosynthesis")
    assert scoring.check_answer(question, "  photosynthesis ")
    assert scoring.check_answer(question, "it is photosynthesis in plants")
    assert not scoring.check_answer(question, "photo")
    with pytest.raises(scoring.UnsupportedAnswer):
        scoring.check_answer(question, "   ")

    errors = IdentifyErrorsQuestion(id="q", code="x = = 1", answer="double equals")
    assert scoring.check_answer(errors, "Double   Equals")


def test_phrase_complete_ignores_punctuation() -> None:
    question = PhraseCompleteQuestion(id="q", answer="Hello, world!")
    assert scoring.check_answer(question, "hello world")
    assert not scoring.check_answer(question, "hello there")


def test_unsupported_question_cannot_be_answered() -> None:
    question = UnsupportedQuestion(id="q", type="imageHotspots")
    with pytest.raises(scoring.UnsupportedAnswer):
        scoring.check_answer(question, "anything")


def test_click_requires_click_area_question() -> None:
    session = scoring.TestSession(Test(id="t", name="T", questions=[TrueOrFalseQuestion(id="q")]))
    with pytest.raises(scoring.UnsupportedAnswer):
        session.click(1, 1)
