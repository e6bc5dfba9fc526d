from fastapi import APIRouter, HTTPException, Depends, UploadFile, File
from sqlalchemy.orm import Session
from typing import Optional, List
import logging

from ..infrastructure.database import get_db
from ..infrastructure import models
from ..infrastructure.repositories import UserRepository
from ..infrastructure.storage import ObjectStorageService, StorageError, get_storage_service
from ..domain.exceptions import ConflictError, NotFoundError
from ..domain.models import CountResponse, ProfileUpdateRequest, UserResponse
from ..domain.services.file_validation import FileValidationError, validate_image_upload
from .deps import get_current_user

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/", response_model=List[UserResponse])
def list_users(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return UserRepository(db).get_all_users()


@router.get("/count", response_model=CountResponse)
def get_total_user_count(db: Session = Depends(get_db)):
    return CountResponse(count=UserRepository(db).get_total_user_count())


@router.get("/online-count", response_model=CountResponse)
def get_online_user_count(db: Session = Depends(get_db)):
    return CountResponse(count=UserRepository(db).get_online_user_count())


@router.get("/lga/{lga}/count", response_model=CountResponse)
def get_registered_users_count_by_lga(lga: str, db: Session = Depends(get_db)):
    return CountResponse(count=UserRepository(db).get_registered_users_count_by_lga(lga))


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db)):
    try:
        return UserRepository(db).find_user_by_id(user_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="User not found")


@router.put("/me/profile", response_model=UserResponse)
async def update_my_profile(
    update: ProfileUpdateRequest,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Update the authenticated user's name and username.
    """
    repo = UserRepository(db)
    if update.username and update.username != current_user.username:
        try:
            repo.is_username_exist(update.username)
        except ConflictError as e:
            raise HTTPException(status_code=409, detail=str(e))

    try:
        return repo.edit_user_profile(current_user.id, fullname=update.fullname, username=update.username)
    except Exception as e:
        logger.error(f"Error updating profile for user {current_user.id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to update profile: {str(e)}")


@router.post("/me/image", response_model=UserResponse)
async def upload_profile_image(
    profileImage: Optional[UploadFile] = File(None),
    current_user: models.User = Depends(get_current_user),
    storage: ObjectStorageService = Depends(get_storage_service),
    db: Session = Depends(get_db)
):
    """
    Upload a profile image and make it the user's thumbnail.
    """
    if profileImage is None or not profileImage.filename:
        raise HTTPException(status_code=400, detail="Missing or invalid file")

    content = await profileImage.read()
    try:
        validate_image_upload(profileImage.filename, profileImage.content_type, len(content))
    except FileValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    filename = f"{current_user.id}_{profileImage.filename}"
    try:
        current_user.thumbnail_url = await storage.upload_file(content, filename)
    except StorageError as e:
        logger.error(f"Failed to upload profile image {filename}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to upload file to storage: {str(e)}")

    try:
        UserRepository(db).create_user_image(current_user)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to save profile image: {str(e)}")

    db.refresh(current_user)
    return current_user
