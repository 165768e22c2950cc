"""Storage backends for tests.

Tests are kept either as JSON files on disk (default) or as records of an
Airtable table when Airtable credentials are configured. Both backends speak
the same small interface so routes never care which one is active.
"""
import logging
import shutil
import uuid
from typing import Any

import requests

from models import Test
from quiz_api import config
from quiz_api.utils import json_dump, json_load, payload_path, test_dir, write_json_file
from serialization import TestValidationError, parse_test, serialize_test

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """The storage backend failed; the request may be retried."""


class TestStore:
    """Interface shared by the storage backends."""

    __test__ = False

    def list(self) -> list[Test]:
        raise NotImplementedError

    def get(self, test_id: str) -> Test | None:
        raise NotImplementedError

    def create(self, test: Test) -> Test:
        raise NotImplementedError

    def replace(self, test: Test) -> Test:
        raise NotImplementedError

    def delete(self, test_id: str) -> bool:
        raise NotImplementedError


class FileTestStore(TestStore):
    """One directory per test holding ``test.json``."""

    def list(self) -> list[Test]:
        tests = []
        for directory in sorted(config.DATA_DIR.iterdir()):
            if not directory.is_dir() or not (directory / "test.json").exists():
                continue
            test = self.get(directory.name)
            if test is not None:
                tests.append(test)
        return tests

    def get(self, test_id: str) -> Test | None:
        path = payload_path(test_id)
        if not path.exists():
            return None
        try:
            return parse_test(json_load(path.read_text(encoding="utf-8")), test_id)
        except (ValueError, OSError) as e:
            logger.error(f"Stored test {test_id} is unreadable: {e}")
            return None

    def create(self, test: Test) -> Test:
        test.id = uuid.uuid4().hex
        self._write(test)
        return test

    def replace(self, test: Test) -> Test:
        if not payload_path(test.id).exists():
            raise KeyError(test.id)
        self._write(test)
        return test

    def delete(self, test_id: str) -> bool:
        directory = test_dir(test_id)
        if not directory.is_dir():
            return False
        shutil.rmtree(directory)
        return True

    def _write(self, test: Test) -> None:
        try:
            write_json_file(payload_path(test.id), serialize_test(test))
        except OSError as e:
            raise StorageError(f"Failed to write test {test.id}: {e}") from e


class AirtableTestStore(TestStore):
    """Tests stored as Airtable records; the record id is the test id."""

    def __init__(
        self,
        api_key: str,
        base_id: str,
        table_name: str,
        session: requests.Session | None = None,
        timeout: float = config.HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self._url = f"{config.AIRTABLE_API_URL}/{base_id}/{table_name}"
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }
        )
        self._timeout = timeout

    @staticmethod
    def _fields(test: Test) -> dict[str, Any]:
        payload = serialize_test(test)
        return {
            "name": payload["name"],
            "description": payload["description"],
            "questions": json_dump(payload["questions"]),
            "max_score": payload["maxScore"],
            "min_score": payload["minScore"],
            "passing_message": payload["passingMessage"],
            "failing_message": payload["failingMessage"],
        }

    @staticmethod
    def _to_test(record: dict[str, Any]) -> Test:
        fields = record.get("fields", {})
        questions = fields.get("questions") or "[]"
        return parse_test(
            {
                "name": fields.get("name"),
                "description": fields.get("description"),
                "questions": json_load(questions) if isinstance(questions, str) else questions,
                "maxScore": fields.get("max_score"),
                "minScore": fields.get("min_score"),
                "passingMessage": fields.get("passing_message"),
                "failingMessage": fields.get("failing_message"),
            },
            record.get("id"),
        )

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            response = self._session.request(method, url, timeout=self._timeout, **kwargs)
            if response.status_code == 404:
                return response
            response.raise_for_status()
            return response
        except requests.RequestException as e:
            raise StorageError(f"Airtable {method} {url} failed: {e}") from e

    def list(self) -> list[Test]:
        tests = []
        params: dict[str, str] = {}
        while True:
            data = self._request("GET", self._url, params=params).json()
            for record in data.get("records", []):
                try:
                    tests.append(self._to_test(record))
                except (TestValidationError, ValueError) as e:
                    logger.error(f"Skipping unreadable Airtable record {record.get('id')}: {e}")
            offset = data.get("offset")
            if not offset:
                return tests
            params = {"offset": offset}

    def get(self, test_id: str) -> Test | None:
        response = self._request("GET", f"{self._url}/{test_id}")
        if response.status_code == 404:
            return None
        return self._to_test(response.json())

    def create(self, test: Test) -> Test:
        response = self._request(
            "POST", self._url, json={"records": [{"fields": self._fields(test)}]}
        )
        records = response.json().get("records", [])
        if not records:
            raise StorageError("Airtable returned no created record")
        test.id = records[0]["id"]
        return test

    def replace(self, test: Test) -> Test:
        response = self._request(
            "PATCH", f"{self._url}/{test.id}", json={"fields": self._fields(test)}
        )
        if response.status_code == 404:
            raise KeyError(test.id)
        return test

    def delete(self, test_id: str) -> bool:
        response = self._request("DELETE", f"{self._url}/{test_id}")
        return response.status_code != 404


def get_test_store() -> TestStore:
    """Dependency returning the configured storage backend."""
    if config.airtable_configured():
        return AirtableTestStore(
            config.AIRTABLE_API_KEY,
            config.AIRTABLE_BASE_ID,
            config.AIRTABLE_TABLE_NAME,
        )
    return FileTestStore()
