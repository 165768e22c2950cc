"""Image-related Pydantic models."""
from pydantic import BaseModel


class ImageEnvelope(BaseModel):
    """Lookup result for a stored image."""

    id: str
    url: str
    message: str
    error: str | None = None


class UploadResponse(BaseModel):
    """Result of an image upload."""

    id: str
    url: str
    imageApiUrl: str
