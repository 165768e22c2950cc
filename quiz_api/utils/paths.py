"""Path utilities for tests and images."""
from pathlib import Path

from quiz_api import config


def test_dir(test_id: str) -> Path:
    """Get directory for test."""
    return config.DATA_DIR / test_id


def payload_path(test_id: str) -> Path:
    """Get path to test payload JSON."""
    return test_dir(test_id) / "test.json"


def image_path(image_id: str, extension: str) -> Path:
    """Get path for a stored image file."""
    return config.IMAGES_DIR / f"{image_id}{extension}"


def find_image_file(image_id: str) -> Path | None:
    """Locate a stored image by id regardless of extension."""
    for candidate in sorted(config.IMAGES_DIR.glob(f"{image_id}.*")):
        if candidate.is_file():
            return candidate
    return None
