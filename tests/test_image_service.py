import io
from pathlib import Path

import pytest
from fastapi import HTTPException, UploadFile
from PIL import Image
from starlette.datastructures import Headers

import image_resolver
from quiz_api import config
from quiz_api.services import image_service


def _upload(content: bytes, content_type: str = "image/png", filename: str = "photo.png") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def _image_bytes(size, mode="RGB", fmt="PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def images_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setattr(config, "IMAGES_DIR", tmp_path)
    return tmp_path


def test_validate_upload_rejects_non_images() -> None:
    with pytest.raises(HTTPException) as excinfo:
        image_service.validate_upload(_upload(b"text", "text/plain", "notes.txt"))
    assert excinfo.value.status_code == 400
    with pytest.raises(HTTPException):
        image_service.validate_upload(_upload(b"x", "image/tiff"))


def test_reencode_shrinks_large_images(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "IMAGE_MAX_DIMENSION", 100)
    encoded, ext = image_service._reencode(_image_bytes((400, 200)))
    assert ext == ".jpg"
    with Image.open(io.BytesIO(encoded)) as img:
        assert img.size == (100, 50)


def test_reencode_keeps_transparency_as_png() -> None:
    encoded, ext = image_service._reencode(_image_bytes((10, 10), mode="RGBA"))
    assert ext == ".png"
    with Image.open(io.BytesIO(encoded)) as img:
        assert img.size == (10, 10)


def test_lookup_prefers_local_file(images_dir: Path) -> None:
    (images_dir / "abc.jpg").write_bytes(b"jpeg")
    envelope = image_service.lookup_image("abc")
    assert envelope["url"] == "/api/images/abc"


def test_lookup_without_credentials_returns_placeholder(images_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "AIRTABLE_API_KEY", None)
    envelope = image_service.lookup_image("missing")
    assert envelope["url"] == image_resolver.PLACEHOLDER_IMAGE
    assert "credentials not configured" in envelope["message"]


class FakeResponse:
    def __init__(self, payload):
        self._payload = payload

    def raise_for_status(self) -> None:
        return None

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, payload):
        self.payload = payload
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append((url, params, headers))
        return FakeResponse(self.payload)


def _with_airtable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "AIRTABLE_API_KEY", "key")
    monkeypatch.setattr(config, "AIRTABLE_BASE_ID", "base")


def test_lookup_reads_airtable_attachment(images_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _with_airtable(monkeypatch)
    session = FakeSession({"records": [{"fields": {"Attachment": [{"url": "https://dl.airtable.com/x.png"}]}}]})

    envelope = image_service.lookup_image("img-1", session=session)

    assert envelope["url"] == "https://dl.airtable.com/x.png"
    url, params, headers = session.calls[0]
    assert url.endswith("/base/Images")
    assert params == {"filterByFormula": '{ID}="img-1"'}
    assert headers["Authorization"] == "Bearer key"


def test_lookup_escapes_quotes_in_formula(images_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _with_airtable(monkeypatch)
    session = FakeSession({"records": []})

    image_service.lookup_image('x",TRUE(),"', session=session)

    _, params, _ = session.calls[0]
    assert params == {"filterByFormula": '{ID}="x\\",TRUE(),\\""'}


def test_lookup_falls_back_when_airtable_has_no_record(images_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _with_airtable(monkeypatch)
    envelope = image_service.lookup_image("img-1", session=FakeSession({"records": []}))
    assert envelope["url"] == image_resolver.PLACEHOLDER_IMAGE
    assert envelope["error"] == "Image not found"


def test_delete_image(images_dir: Path) -> None:
    (images_dir / "abc.png").write_bytes(b"png")
    assert image_service.delete_image("abc")
    assert not image_service.delete_image("abc")
    with pytest.raises(HTTPException):
        image_service.get_image_file("abc")
