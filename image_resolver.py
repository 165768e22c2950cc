"""Resolve a question's image fields to one loadable image source.

A click-area question can carry its image in several shapes: a direct CDN
URL, an API proxy URL, an inline base64 data URI, an ephemeral ``blob:``
handle or an ``image_reference_<id>`` token stored server-side. The resolver
walks the candidates best first, each with a short list of retry strategies,
before settling on an inline placeholder.
"""
from __future__ import annotations

import base64
import binascii
import enum
import io
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, Protocol, TypeVar
from urllib.parse import quote, urljoin

import requests
from PIL import Image, UnidentifiedImageError

from models import ClickAreaQuestion

log = logging.getLogger(__name__)

PLACEHOLDER_IMAGE = (
    "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAGQAAABkCAMAAABHPGVmAAAA21BMVEUAAAD///+/v7+ZmZmqqqqZmZ"
    "mfn5+dnZ2ampqcnJycnJybm5ubm5uampqampqampqampqbm5uampqampqbm5uampqampqampqampqampqampqamp///+YmJiZmZ"
    "mampqbm5ucnJydnZ2enp6fnp6fn5+gn5+gn6CgoKChoKChoaGioaGioqKjoqKjo6Ojo6SkpKSlpaWmpqanp6eoqKiqqqpTU1"
    "MAAAB8A5ZEAAAARnRSTlMAAQIEBQUGBwcLDBMUFRYaGxwdNjxRVVhdYGRnaWptcXV2eHp7fX5/gISGiImKjI2OkJKTlZebnK"
    "Cio6Slqq+2uL6/xdDfsgWO3gAAAWhJREFUeNrt1sdSwzAUBVAlkRJaGi33il2CYNvpvZP//6OEBVmWM+PIGlbhncWTcbzwNN"
    "b1ZwC8mqDZMaENiXBJVGsCE5KUKbE1GZNURlvLjfUTjC17JNvbgYzUW3qpKxJllJYwKyIw0mSsCRlWBkLhDGTJGE3WEF3KEn"
    "GdJYRGlrqKtJEn1A0hWp4w1xBNnlA3kFg5wlzD2o0M4a4j0jJEXEciZQh3A9HkCHMD0fOEuI7IyhGxhojyhLiG6HlCXUdYOc"
    "LdRER5Qt1AJDnC3MQ6ZQhxHWvJEu4GIsoR6jrWljKEu4VlP9eMeS5wt5CWpV2WNKqUlPMdKo7oa4jEd2qoqM1DpwVGWp0jmq"
    "d+7JQYa/oqsnQ4EfWdSsea8O/yCTgc/3FMSLnUwA8xJhQq44HQB1zySOBCZx8Y3H4mJF8XOJTEBELr8IfzXECYf+fQJ0LO16"
    "JvRA5PCK92GMP/FIB3YUC2pHrS/6AAAAAASUVORK5CYII="
)
PLACEHOLDER_SIZE = (100, 100)

REFERENCE_PREFIX = "image_reference_"
AIRTABLE_HOST = "api.airtable.com"
FAILURE_NOTICE = "Could not load the image. Check the URL."

DEFAULT_MAX_RETRIES = 2
DEFAULT_PROBE_TIMEOUT = 3.0
DEFAULT_LOAD_TIMEOUT = 15.0

UUID_RE = re.compile(
    r"/([0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})", re.IGNORECASE
)
IMAGES_PATH_RE = re.compile(r"/images/([^/?]+)", re.IGNORECASE)

T = TypeVar("T")


class ImageLoadError(Exception):
    """An image source could not be fetched or decoded."""


@dataclass(frozen=True)
class LoadedImage:
    src: str
    width: int
    height: int


class ImageLoader(Protocol):
    def load(self, src: str, timeout: float | None = None) -> LoadedImage: ...


def decode_data_uri(src: str) -> tuple[str, bytes]:
    """Split a base64 data URI into (mime type, raw bytes)."""
    header, sep, data = src.partition(",")
    if not sep or not header.startswith("data:") or ";base64" not in header:
        raise ImageLoadError("Not a base64 data URI")
    mime = header[len("data:"):].split(";", 1)[0] or "application/octet-stream"
    try:
        return mime, base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ImageLoadError(f"Invalid base64 payload: {exc}") from exc


def absolute_url(url: str, base: str) -> str:
    if url.startswith("/") and not url.startswith("//"):
        return urljoin(base.rstrip("/") + "/", url)
    return url


def image_size(content: bytes) -> tuple[int, int]:
    try:
        with Image.open(io.BytesIO(content)) as img:
            return img.size
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageLoadError(f"Unreadable image data: {exc}") from exc


class HttpImageLoader:
    """Loads images over HTTP(S) or from inline data URIs and reads their size."""

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_LOAD_TIMEOUT,
    ) -> None:
        self._session = session or requests.Session()
        self._timeout = timeout

    def load(self, src: str, timeout: float | None = None) -> LoadedImage:
        if src.startswith("data:"):
            _, content = decode_data_uri(src)
            width, height = image_size(content)
            return LoadedImage(src, width, height)

        url = src[len("blob:"):] if src.startswith("blob:") else src
        if not url.startswith(("http://", "https://")):
            raise ImageLoadError(f"Unsupported image source: {src[:40]}")
        try:
            response = self._session.get(url, timeout=timeout or self._timeout)
        except requests.RequestException as exc:
            raise ImageLoadError(f"Request for {url} failed: {exc}") from exc
        if response.status_code >= 400:
            raise ImageLoadError(f"Request for {url} returned HTTP {response.status_code}")
        width, height = image_size(response.content)
        return LoadedImage(src, width, height)


class BackendImageLookup:
    """Looks up stored images through ``GET <backend>/images?id=<id>``."""

    def __init__(
        self,
        backend_url: str,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_LOAD_TIMEOUT,
    ) -> None:
        self.backend_url = backend_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout

    def proxy_url(self, image_id: str) -> str:
        return f"{self.backend_url}/images?id={quote(image_id)}&redirect=1"

    def absolute(self, url: str) -> str:
        """Join a server-relative path such as ``/api/images/<id>`` onto the backend origin."""
        return absolute_url(url, self.backend_url)

    def __call__(self, image_id: str) -> str:
        try:
            response = self._session.get(
                f"{self.backend_url}/images",
                params={"id": image_id},
                headers={"Accept": "application/json"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise ImageLoadError(f"Image lookup for {image_id} failed: {exc}") from exc
        if response.status_code >= 400:
            raise ImageLoadError(f"Image lookup for {image_id} returned HTTP {response.status_code}")
        try:
            envelope = response.json()
        except ValueError as exc:
            raise ImageLoadError(f"Image lookup for {image_id} returned invalid JSON: {exc}") from exc
        url = envelope.get("url") if isinstance(envelope, dict) else None
        if not isinstance(url, str) or not url:
            raise ImageLoadError(f"Image lookup for {image_id} returned no url")
        return url


class SourceKind(str, enum.Enum):
    BLOB_URL = "blobUrl"
    API_URL = "apiUrl"
    DATA_URI = "base64"
    BLOB = "blob"
    REFERENCE = "reference"
    URL = "url"
    IMAGE_ID = "imageId"


@dataclass(frozen=True)
class ImageSource:
    kind: SourceKind
    src: str


@dataclass(frozen=True)
class ImageFields:
    image: str = ""
    blob_url: str | None = None
    image_api_url: str | None = None
    image_id: str | None = None

    @classmethod
    def from_question(cls, question: ClickAreaQuestion) -> "ImageFields":
        return cls(
            image=question.image,
            blob_url=question.blob_url,
            image_api_url=question.image_api_url,
            image_id=question.image_id,
        )


def candidate_sources(fields: ImageFields) -> list[ImageSource]:
    """Every usable source for the fields, best first."""
    candidates: list[ImageSource] = []
    if fields.blob_url and fields.blob_url.startswith(("http", "/")):
        candidates.append(ImageSource(SourceKind.BLOB_URL, fields.blob_url))
    if fields.image_api_url and fields.image_api_url.startswith(("http", "/")):
        candidates.append(ImageSource(SourceKind.API_URL, fields.image_api_url))

    image = (fields.image or "").strip()
    if image.startswith("data:image/"):
        candidates.append(ImageSource(SourceKind.DATA_URI, image))
    elif image.startswith("blob:"):
        candidates.append(ImageSource(SourceKind.BLOB, image))
    elif image.startswith(REFERENCE_PREFIX):
        candidates.append(ImageSource(SourceKind.REFERENCE, image))
    elif image.startswith(("http", "/")) or AIRTABLE_HOST in image:
        candidates.append(ImageSource(SourceKind.URL, image))

    if fields.image_id:
        candidates.append(ImageSource(SourceKind.IMAGE_ID, fields.image_id))
    return candidates


def select_source(fields: ImageFields) -> ImageSource | None:
    candidates = candidate_sources(fields)
    return candidates[0] if candidates else None


def first_success(
    attempts: Iterable[Callable[[], T]],
    errors: tuple[type[BaseException], ...] = (ImageLoadError,),
) -> tuple[T | None, list[BaseException]]:
    """Call each attempt in order and return the first result that does not raise."""
    failures: list[BaseException] = []
    for attempt in attempts:
        try:
            return attempt(), failures
        except errors as exc:
            failures.append(exc)
    return None, failures


def with_query_flag(url: str, flag: str) -> str:
    return f"{url}{'&' if '?' in url else '?'}{flag}"


@dataclass
class ResolvedImage:
    src: str
    width: int
    height: int
    kind: SourceKind | None = None
    strategy: str | None = None
    attempts: list[str] = field(default_factory=list)
    failed: bool = False
    notice: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.src

    def to_dict(self) -> dict[str, object]:
        return {
            "src": self.src,
            "width": self.width,
            "height": self.height,
            "kind": self.kind.value if self.kind else None,
            "strategy": self.strategy,
            "attempts": list(self.attempts),
            "failed": self.failed,
            "notice": self.notice,
        }


class ImageResolver:
    def __init__(
        self,
        loader: ImageLoader,
        lookup: BackendImageLookup,
        max_retries: int = DEFAULT_MAX_RETRIES,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
    ) -> None:
        self.loader = loader
        self.lookup = lookup
        self.max_retries = max_retries
        self.probe_timeout = probe_timeout

    def probe_blob(self, url: str) -> LoadedImage | None:
        """Liveness check for an ephemeral blob URL: a timed throwaway load."""
        if not url.startswith("blob:"):
            return None
        try:
            return self.loader.load(url, timeout=self.probe_timeout)
        except ImageLoadError as exc:
            log.info("Blob URL is no longer valid (%s): %s", exc, url[:40])
            return None

    def resolve(
        self,
        fields: ImageFields,
        on_error: Callable[[], None] | None = None,
    ) -> ResolvedImage:
        candidates = [self._absolute(source) for source in candidate_sources(fields)]
        if not candidates:
            if not (fields.image or "").strip():
                return ResolvedImage(src="", width=0, height=0)
            log.warning("Unknown image source format: %s", fields.image[:50])
            return self._give_up(None, [], on_error)

        tried: list[str] = []
        attempts: list[Callable[[], tuple[SourceKind, str, LoadedImage]]] = []
        for position, source in enumerate(candidates):
            attempts.extend(
                self._attempts_for(source, fields, tried, "initial" if position == 0 else source.kind.value)
            )

        result, failures = first_success(attempts)
        if result is None:
            for failure in failures:
                log.warning("Image attempt failed: %s", failure)
            return self._give_up(candidates[0].kind, tried, on_error)

        kind, strategy, loaded = result
        return ResolvedImage(
            src=loaded.src,
            width=loaded.width,
            height=loaded.height,
            kind=kind,
            strategy=strategy,
            attempts=tried,
        )

    def _absolute(self, source: ImageSource) -> ImageSource:
        if source.kind in (SourceKind.BLOB_URL, SourceKind.API_URL, SourceKind.URL):
            return ImageSource(source.kind, self.lookup.absolute(source.src))
        return source

    def _attempts_for(
        self,
        source: ImageSource,
        fields: ImageFields,
        tried: list[str],
        first_strategy: str,
    ) -> list[Callable[[], tuple[SourceKind, str, LoadedImage]]]:
        """The first load of a source followed by at most ``max_retries`` alternatives.

        Every URL is loaded at most once per resolution; a repeat raises
        ``ImageLoadError`` so the chain moves on.
        """
        kind = source.kind

        def loading(name: str, src_factory: Callable[[], str]):
            def attempt() -> tuple[SourceKind, str, LoadedImage]:
                src = self.lookup.absolute(src_factory())
                if src in tried:
                    raise ImageLoadError(f"Already tried {src[:40]}")
                tried.append(src)
                return kind, name, self.loader.load(src)

            return attempt

        def probing() -> tuple[SourceKind, str, LoadedImage]:
            if source.src in tried:
                raise ImageLoadError(f"Already tried {source.src[:40]}")
            tried.append(source.src)
            loaded = self.probe_blob(source.src)
            if loaded is None:
                raise ImageLoadError("Blob URL has expired")
            return kind, first_strategy, loaded

        if kind is SourceKind.BLOB:
            first = probing
        elif kind is SourceKind.REFERENCE:
            image_id = source.src[len(REFERENCE_PREFIX):]
            first = loading("reference", lambda: self.lookup(image_id))
        elif kind is SourceKind.IMAGE_ID:
            first = loading(first_strategy, lambda: self.lookup.proxy_url(source.src))
        else:
            first = loading(first_strategy, lambda: source.src)

        retries = [
            loading(name, (lambda url=url: url))
            for name, url in self._retry_sources(source, fields)
        ][: self.max_retries]
        return [first, *retries]

    def _retry_sources(
        self, source: ImageSource, fields: ImageFields
    ) -> list[tuple[str, str]]:
        """Alternative URLs for a failed source, in the order they are tried."""
        src = source.src
        retries: list[tuple[str, str]] = []

        if source.kind is SourceKind.BLOB:
            if fields.image_id:
                retries.append(("apiProxy", self.lookup.proxy_url(fields.image_id)))
            match = UUID_RE.search(src)
            if match:
                retries.append(("blobUuid", self.lookup.proxy_url(match.group(1))))
            return retries

        if AIRTABLE_HOST in src and not src.startswith("https://"):
            retries.append(
                ("airtableAbsolute", f"https://{AIRTABLE_HOST}/{src.split(AIRTABLE_HOST, 1)[1].lstrip('/')}")
            )
        if src.startswith("http") and "/images" in src and "id=" in src and "redirect=1" not in src:
            retries.append(("redirect", with_query_flag(src, "redirect=1")))
        elif src.startswith("http") and "id=" not in src:
            match = IMAGES_PATH_RE.search(src)
            if match:
                retries.append(("apiProxy", self.lookup.proxy_url(match.group(1))))
        return retries

    def _give_up(
        self,
        kind: SourceKind | None,
        tried: list[str],
        on_error: Callable[[], None] | None,
    ) -> ResolvedImage:
        log.error("Could not load the image after %d attempt(s)", len(tried))
        if on_error is not None:
            on_error()
        width, height = PLACEHOLDER_SIZE
        return ResolvedImage(
            src=PLACEHOLDER_IMAGE,
            width=width,
            height=height,
            kind=kind,
            strategy="placeholder",
            attempts=tried,
            failed=True,
            notice=FAILURE_NOTICE,
        )


def resolve_question_image(
    resolver: ImageResolver,
    question: ClickAreaQuestion,
    on_error: Callable[[], None] | None = None,
) -> ResolvedImage:
    return resolver.resolve(ImageFields.from_question(question), on_error=on_error)
