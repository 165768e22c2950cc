"""FastAPI dependencies."""
from quiz_api.dependencies.providers import get_image_resolver, get_store

__all__ = ["get_image_resolver", "get_store"]
