"""Utility modules."""
from quiz_api.utils.json_utils import (
    json_dump,
    json_load,
    read_json_file,
    write_json_file,
)
from quiz_api.utils.paths import find_image_file, image_path, payload_path, test_dir
from quiz_api.utils.validation import validate_id

__all__ = [
    "json_dump",
    "json_load",
    "read_json_file",
    "write_json_file",
    "find_image_file",
    "image_path",
    "payload_path",
    "test_dir",
    "validate_id",
]
