"""Image endpoints."""
from fastapi import APIRouter, File, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse, RedirectResponse

from quiz_api.models import ImageEnvelope, UploadResponse
from quiz_api.services import image_service
from quiz_api.utils import validate_id

router = APIRouter(prefix="/api", tags=["images"])


@router.post("/upload", response_model=UploadResponse)
async def upload_image(file: UploadFile = File(...)) -> UploadResponse:
    """Upload and store an image."""
    return UploadResponse(**await image_service.process_upload(file))


@router.get("/images", response_model=None)
def lookup_image(
    id: str | None = Query(default=None),
    redirect: int = Query(default=0),
) -> ImageEnvelope | RedirectResponse:
    """Resolve image id to a URL, or redirect to the image itself."""
    if not id:
        raise HTTPException(status_code=400, detail="Image ID is required")
    envelope = ImageEnvelope(**image_service.lookup_image(validate_id("image_id", id)))

    if redirect and envelope.url.startswith(("http://", "https://", "/")):
        return RedirectResponse(envelope.url, status_code=307)
    return envelope


@router.get("/images/{image_id}")
def get_image(image_id: str) -> FileResponse:
    """Serve stored image bytes."""
    return FileResponse(image_service.get_image_file(validate_id("image_id", image_id)))


@router.delete("/images/{image_id}")
def delete_image(image_id: str) -> dict[str, bool]:
    """Delete a stored image."""
    if not image_service.delete_image(validate_id("image_id", image_id)):
        raise HTTPException(status_code=404, detail="Image not found")
    return {"success": True}
