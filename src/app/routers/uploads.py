# src/app/routers/uploads.py
"""
Signed uploads for recipe and blog images. The browser PUTs the file
straight to the bucket; the API never sees the bytes.
"""
from __future__ import annotations

import logging
import os
import re
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from src.app.deps import get_storage, require_admin
from src.app.domain.errors import StorageError
from src.app.infra.storage.base import StorageProvider
from src.app.schemas.auth import CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/uploads", tags=["admin"])

ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp"}
MAX_FILE_SIZE_BYTES = 5 * 1024 * 1024
UPLOAD_URL_TTL_SECONDS = 600


class SignedImageRequest(BaseModel):
    filename: str = Field(..., min_length=1, max_length=255)
    content_type: str
    size_bytes: Optional[int] = Field(None, ge=1)
    folder: Literal["recipes", "blog"] = "recipes"


class SignedImageResponse(BaseModel):
    object_key: str
    upload_url: str
    public_url: str
    expires_at: datetime
    max_size_bytes: int = MAX_FILE_SIZE_BYTES


def _sanitize_filename(filename: str) -> str:
    filename = os.path.basename(filename)
    filename = re.sub(r"[^a-zA-Z0-9._-]", "_", filename)
    if len(filename) > 100:
        name, ext = os.path.splitext(filename)
        filename = name[:95] + ext
    return filename


@router.post("/sign-image", response_model=SignedImageResponse)
async def sign_image_upload(
    request: SignedImageRequest,
    user: CurrentUser = Depends(require_admin),
    storage: StorageProvider = Depends(get_storage),
) -> SignedImageResponse:
    if request.content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Content type '{request.content_type}' not allowed. Allowed types: {', '.join(sorted(ALLOWED_CONTENT_TYPES))}",
        )
    if request.size_bytes and request.size_bytes > MAX_FILE_SIZE_BYTES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large. Maximum size: {MAX_FILE_SIZE_BYTES // (1024 * 1024)}MB",
        )

    object_key = storage.generate_object_key(request.folder, _sanitize_filename(request.filename))
    try:
        upload_url, expires_at = storage.generate_signed_put_url(
            object_key=object_key,
            content_type=request.content_type,
            expires_seconds=UPLOAD_URL_TTL_SECONDS,
        )
    except StorageError as e:
        logger.error("uploads.sign_failed user=%s error=%s", user.id, e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to generate upload URL",
        )

    logger.info("uploads.signed user=%s key=%s", user.id, object_key)
    return SignedImageResponse(
        object_key=object_key,
        upload_url=upload_url,
        public_url=storage.public_url(object_key),
        expires_at=expires_at,
    )


@router.delete("/{object_key:path}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_image(
    object_key: str,
    user: CurrentUser = Depends(require_admin),
    storage: StorageProvider = Depends(get_storage),
) -> None:
    if not object_key.startswith(("recipes/", "blog/")):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid object key")
    if not storage.delete_object(object_key):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to delete image",
        )
    logger.info("uploads.deleted user=%s key=%s", user.id, object_key)
