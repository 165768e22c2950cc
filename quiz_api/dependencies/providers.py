"""Providers for stores and the image resolver."""
from functools import lru_cache

import requests

from image_resolver import BackendImageLookup, HttpImageLoader, ImageResolver
from quiz_api import config
from quiz_api.services.test_store import TestStore, get_test_store


@lru_cache(maxsize=1)
def _http_session() -> requests.Session:
    return requests.Session()


def get_store() -> TestStore:
    """Dependency returning the active test store."""
    return get_test_store()


def get_image_resolver() -> ImageResolver:
    """Dependency returning a resolver that loads images over HTTP."""
    session = _http_session()
    return ImageResolver(
        loader=HttpImageLoader(session=session, timeout=config.HTTP_TIMEOUT_SECONDS),
        lookup=BackendImageLookup(
            config.IMAGE_BACKEND_URL, session=session, timeout=config.HTTP_TIMEOUT_SECONDS
        ),
        max_retries=config.IMAGE_MAX_RETRIES,
        probe_timeout=config.BLOB_PROBE_TIMEOUT_SECONDS,
    )
