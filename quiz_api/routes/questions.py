"""Question management endpoints."""
import logging
from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException

from image_resolver import ImageResolver, resolve_question_image
from quiz_api.dependencies import get_image_resolver, get_store
from quiz_api.models import ClickAreaUpdate
from quiz_api.services.test_service import (
    find_click_area_question,
    find_question,
    load_test,
    save_test,
)
from quiz_api.services.test_store import TestStore
from quiz_api.utils import validate_id
from serialization import (
    TestValidationError,
    parse_areas,
    parse_question,
    serialize_question,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tests/{test_id}/questions", tags=["questions"])


@router.post("")
def add_question(
    test_id: str,
    store: Annotated[TestStore, Depends(get_store)],
    payload: dict[str, object] = Body(...),
) -> dict[str, object]:
    """Add new question to test."""
    test = load_test(store, validate_id("test_id", test_id))
    try:
        question = parse_question(payload)
    except TestValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if test.find_question(question.id) is not None:
        raise HTTPException(status_code=400, detail=f"Duplicate question id {question.id}")

    test.questions.append(question)
    save_test(store, test)
    return serialize_question(question)


@router.patch("/{question_id}")
def update_question(
    test_id: str,
    question_id: str,
    store: Annotated[TestStore, Depends(get_store)],
    payload: dict[str, object] = Body(...),
) -> dict[str, object]:
    """Update question fields; the question id never changes."""
    test = load_test(store, validate_id("test_id", test_id))
    question, index = find_question(test, question_id)

    merged = {**serialize_question(question), **payload, "id": question.id}
    try:
        test.questions[index] = parse_question(merged)
    except TestValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    save_test(store, test)
    return serialize_question(test.questions[index])


@router.delete("/{question_id}")
def delete_question(
    test_id: str,
    question_id: str,
    store: Annotated[TestStore, Depends(get_store)],
) -> dict[str, object]:
    """Delete question from test."""
    test = load_test(store, validate_id("test_id", test_id))
    _, index = find_question(test, question_id)
    del test.questions[index]
    save_test(store, test)
    return {"success": True, "questionCount": len(test.questions)}


@router.patch("/{question_id}/click-area")
def update_click_area(
    test_id: str,
    question_id: str,
    payload: ClickAreaUpdate,
    store: Annotated[TestStore, Depends(get_store)],
) -> dict[str, object]:
    """Apply an editor change (image, areas, original image) to a click-area question."""
    test = load_test(store, validate_id("test_id", test_id))
    question = find_click_area_question(test, question_id)

    changes = payload.model_dump(exclude_unset=True)
    if "areas" in changes:
        try:
            question.areas = parse_areas(changes["areas"] or [])
        except TestValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
    if "image" in changes:
        question.image = changes["image"] or ""
    if "originalImage" in changes:
        question.original_image = changes["originalImage"]

    save_test(store, test)
    logger.debug(f"Updated click area question {question_id}: {sorted(changes)}")
    return serialize_question(question)


@router.get("/{question_id}/image")
def resolve_image(
    test_id: str,
    question_id: str,
    store: Annotated[TestStore, Depends(get_store)],
    resolver: Annotated[ImageResolver, Depends(get_image_resolver)],
) -> dict[str, object]:
    """Run the image fallback chain for a click-area question."""
    test = load_test(store, validate_id("test_id", test_id))
    question = find_click_area_question(test, question_id)

    def report() -> None:
        logger.warning(f"Image of question {question_id} in test {test_id} could not be loaded")

    return resolve_question_image(resolver, question, on_error=report).to_dict()
