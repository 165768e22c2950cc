"""Service layer for test operations."""
import logging

from fastapi import HTTPException

from image_resolver import REFERENCE_PREFIX
from models import ClickAreaQuestion, Question, Test
from quiz_api.services.image_service import delete_image
from quiz_api.services.test_store import StorageError, TestStore
from serialization import TestValidationError, parse_test

logger = logging.getLogger(__name__)


def build_test(payload: object, test_id: str | None = None) -> Test:
    """Validate a request payload into a Test (400 on failure)."""
    try:
        return parse_test(payload, test_id)
    except TestValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


def load_test(store: TestStore, test_id: str) -> Test:
    """Load test from the store."""
    try:
        test = store.get(test_id)
    except (StorageError, TestValidationError) as e:
        logger.error(f"Failed to load test {test_id}: {e}")
        raise HTTPException(status_code=502, detail="Failed to fetch test")
    if test is None:
        raise HTTPException(status_code=404, detail="Test not found")
    return test


def save_test(store: TestStore, test: Test) -> Test:
    """Persist an existing test."""
    try:
        return store.replace(test)
    except KeyError:
        raise HTTPException(status_code=404, detail="Test not found")
    except StorageError as e:
        logger.error(f"Failed to save test {test.id}: {e}")
        raise HTTPException(status_code=502, detail="Failed to save test")


def find_question(test: Test, question_id: str) -> tuple[Question, int]:
    """Find question in test by ID."""
    for index, question in enumerate(test.questions):
        if question.id == question_id:
            return question, index
    raise HTTPException(status_code=404, detail="Question not found")


def find_click_area_question(test: Test, question_id: str) -> ClickAreaQuestion:
    question, _ = find_question(test, question_id)
    if not isinstance(question, ClickAreaQuestion):
        raise HTTPException(status_code=400, detail="Question is not a click-area question")
    return question


def referenced_image_ids(test: Test) -> set[str]:
    """Ids of locally stored images used by the test's click-area questions."""
    ids = set()
    for question in test.questions:
        if not isinstance(question, ClickAreaQuestion):
            continue
        if question.image_id:
            ids.add(question.image_id)
        if question.image.startswith(REFERENCE_PREFIX):
            ids.add(question.image[len(REFERENCE_PREFIX):])
    return ids


def delete_test(store: TestStore, test_id: str) -> None:
    """Delete a test and, best-effort, the stored images it references."""
    test = load_test(store, test_id)
    try:
        deleted = store.delete(test_id)
    except StorageError as e:
        logger.error(f"Failed to delete test {test_id}: {e}")
        raise HTTPException(status_code=502, detail="Failed to delete test")
    if not deleted:
        raise HTTPException(status_code=404, detail="Test not found")

    for image_id in referenced_image_ids(test):
        if not delete_image(image_id):
            logger.warning(f"Image {image_id} of deleted test {test_id} was not removed")
    logger.info(f"Deleted test {test_id}")
