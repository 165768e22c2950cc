"""Test management endpoints."""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from quiz_api.dependencies import get_store
from quiz_api.models import DeleteTestRequest, TestList, TestPayload
from quiz_api.services.test_service import build_test, delete_test, load_test, save_test
from quiz_api.services.test_store import StorageError, TestStore
from quiz_api.utils import validate_id
from serialization import serialize_metadata, serialize_test

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tests", tags=["tests"])
legacy_router = APIRouter(prefix="/api", tags=["tests"])


@router.get("", response_model=TestList)
def list_tests(
    store: Annotated[TestStore, Depends(get_store)],
    summary: bool = False,
) -> TestList:
    """List all stored tests."""
    try:
        tests = store.list()
    except StorageError as e:
        logger.error(f"Failed to list tests: {e}")
        raise HTTPException(status_code=502, detail="Failed to fetch tests")
    serialize = serialize_metadata if summary else serialize_test
    return TestList(tests=[serialize(test) for test in tests])


@router.post("")
def create_test(
    payload: TestPayload,
    store: Annotated[TestStore, Depends(get_store)],
) -> dict[str, object]:
    """Create a new test."""
    test = build_test(payload.model_dump(exclude_none=True))
    try:
        test = store.create(test)
    except StorageError as e:
        logger.error(f"Failed to create test: {e}")
        raise HTTPException(status_code=502, detail="Failed to save test")
    logger.info(f"Created test {test.id} with {len(test.questions)} questions")
    return serialize_test(test)


@router.get("/{test_id}")
def get_test(
    test_id: str,
    store: Annotated[TestStore, Depends(get_store)],
) -> dict[str, object]:
    """Get test payload."""
    test_id = validate_id("test_id", test_id)
    return serialize_test(load_test(store, test_id))


@router.put("/{test_id}")
def replace_test(
    test_id: str,
    payload: TestPayload,
    store: Annotated[TestStore, Depends(get_store)],
) -> dict[str, object]:
    """Replace a test wholesale."""
    test_id = validate_id("test_id", test_id)
    test = build_test(payload.model_dump(exclude_none=True), test_id)
    return serialize_test(save_test(store, test))


@router.delete("/{test_id}")
def remove_test(
    test_id: str,
    store: Annotated[TestStore, Depends(get_store)],
) -> dict[str, bool]:
    """Delete test and its stored images."""
    delete_test(store, validate_id("test_id", test_id))
    return {"success": True}


@legacy_router.post("/delete-test")
def delete_test_legacy(
    store: Annotated[TestStore, Depends(get_store)],
    payload: DeleteTestRequest | None = None,
) -> dict[str, bool]:
    """Delete test by id given in the body."""
    if payload is None or not payload.id:
        raise HTTPException(status_code=400, detail="Test ID is required")
    delete_test(store, validate_id("test_id", payload.id))
    return {"success": True}
