"""Generic image upload."""

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.common.rate_limit import UPLOAD_RATE, limiter
from libs.common.responses import ApiResponse
from libs.common.storage import StorageService, get_storage_service
from services.clubs_service.schemas import ImageUploadResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/upload", tags=["upload"])

ALLOWED_FOLDERS = {"communities", "profiles", "misc"}


@router.post("/image", response_model=ApiResponse[ImageUploadResponse], status_code=201)
@limiter.limit(UPLOAD_RATE)
async def upload_image(
    request: Request,
    file: UploadFile = File(...),
    folder: str = Form("communities"),
    current_user: AuthUser = Depends(get_current_user),
    storage: StorageService = Depends(get_storage_service),
):
    """Upload a JPEG/PNG/WebP/GIF image of at most 5MB and return its public URL."""
    if folder not in ALLOWED_FOLDERS:
        folder = "misc"
    data = await file.read()
    stored = await storage.upload_image(
        data, file.filename or "image", file.content_type, folder=folder
    )
    logger.info(
        "Image uploaded by user",
        extra={"extra_fields": {"user_id": str(current_user.user_id), "path": stored["path"]}},
    )
    return ApiResponse(data=ImageUploadResponse(**stored))
