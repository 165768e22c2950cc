"""Application configuration and constants."""
import os
from pathlib import Path


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_float_env(name: str, default: float) -> float:
    """Parse float from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# Directories
DATA_DIR = Path(os.environ.get("TEST_DATA_DIR", Path.cwd() / "data" / "tests"))
DATA_DIR.mkdir(parents=True, exist_ok=True)

IMAGES_DIR = Path(os.environ.get("IMAGES_DIR", Path.cwd() / "data" / "images"))
IMAGES_DIR.mkdir(parents=True, exist_ok=True)

STATIC_DIR = Path(__file__).resolve().parent.parent / "static"

# Database
DB_DIR = Path(os.environ.get("DB_DIR", Path.cwd() / "data"))
DB_DIR.mkdir(parents=True, exist_ok=True)
DATABASE_URL = os.environ.get(
    "DATABASE_URL", f"sqlite:///{DB_DIR / 'clickquiz.db'}"
)

# Image backend used to resolve image references and proxy URLs
IMAGE_BACKEND_URL = os.environ.get(
    "IMAGE_BACKEND_URL", "http://127.0.0.1:8000/api"
).rstrip("/")

# Airtable (optional; file storage is used when unset)
AIRTABLE_API_KEY = os.environ.get("AIRTABLE_API_KEY")
AIRTABLE_BASE_ID = os.environ.get("AIRTABLE_BASE_ID")
AIRTABLE_TABLE_NAME = os.environ.get("AIRTABLE_TABLE_NAME")
AIRTABLE_TABLE_IMAGES = os.environ.get("AIRTABLE_TABLE_IMAGES", "Images")
AIRTABLE_API_URL = "https://api.airtable.com/v0"

# Uploaded images
IMAGE_MAX_SIZE_BYTES = _parse_int_env("IMAGE_MAX_SIZE_BYTES", 5 * 1024 * 1024)
IMAGE_MAX_DIMENSION = _parse_int_env("IMAGE_MAX_DIMENSION", 1200)
IMAGE_QUALITY = _parse_int_env("IMAGE_QUALITY", 70)
IMAGE_ALLOWED_CONTENT_TYPES = {"image/png", "image/jpeg", "image/gif", "image/webp"}

# Image resolution
BLOB_PROBE_TIMEOUT_SECONDS = _parse_float_env("BLOB_PROBE_TIMEOUT_SECONDS", 3.0)
IMAGE_MAX_RETRIES = _parse_int_env("IMAGE_MAX_RETRIES", 2)
HTTP_TIMEOUT_SECONDS = _parse_float_env("HTTP_TIMEOUT_SECONDS", 15.0)

# Test-taking sessions
SESSION_RETENTION_DAYS = _parse_int_env("SESSION_RETENTION_DAYS", 7)
SESSION_CLEANUP_INTERVAL_SECONDS = _parse_int_env(
    "SESSION_CLEANUP_INTERVAL_SECONDS", 24 * 60 * 60
)


def airtable_configured() -> bool:
    return bool(AIRTABLE_API_KEY and AIRTABLE_BASE_ID and AIRTABLE_TABLE_NAME)
