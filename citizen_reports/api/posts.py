from fastapi import APIRouter, UploadFile, File, Form, HTTPException, Depends
from sqlalchemy.orm import Session
from typing import Optional
import logging

from ..infrastructure.database import get_db
from ..infrastructure import models
from ..infrastructure.repositories import PostRepository
from ..infrastructure.storage import ObjectStorageService, StorageError, get_storage_service
from ..domain.models import PostCreatedResponse, PostResponse
from ..domain.services.file_validation import FileValidationError, validate_image_upload
from .deps import get_current_user_id

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/", response_model=PostCreatedResponse)
async def create_post(
    postImage: Optional[UploadFile] = File(None),
    title: str = Form(""),
    post_category: str = Form(""),
    post_description: str = Form(""),
    user_id: int = Depends(get_current_user_id),
    storage: ObjectStorageService = Depends(get_storage_service),
    db: Session = Depends(get_db)
):
    """
    Create a post with an image.

    The bearer token is checked before anything else, so an unauthenticated
    request never reaches the storage upload. The image is stored as
    `<user_id>_<original filename>`. If the database insert fails after a
    successful upload the stored object is left in place.
    """
    if postImage is None or not postImage.filename:
        raise HTTPException(status_code=400, detail="Missing or invalid file")

    content = await postImage.read()
    try:
        validate_image_upload(postImage.filename, postImage.content_type, len(content))
    except FileValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    title = title.strip()
    post_category = post_category.strip()
    post_description = post_description.strip()
    if not title or not post_category or not post_description:
        raise HTTPException(status_code=400, detail="Title, category, and description are required")

    filename = f"{user_id}_{postImage.filename}"
    try:
        image_url = await storage.upload_file(content, filename)
    except StorageError as e:
        logger.error(f"Failed to upload post image {filename}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to upload file to storage: {str(e)}")

    post = models.Post(
        user_id=user_id,
        title=title,
        post_category=post_category,
        image=image_url,
        post_description=post_description,
    )
    try:
        post = PostRepository(db).create_post(post)
    except Exception as e:
        logger.error(f"Database error creating post: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to create post: {str(e)}")

    return PostCreatedResponse(
        message="Post created successfully",
        post=PostResponse.model_validate(post),
    )
