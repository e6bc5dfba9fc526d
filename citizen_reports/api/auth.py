"""
Authentication API endpoints for CitizenX.
Handles signup, email/username and MAC-address login, logout and password changes.
"""
from datetime import timedelta
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from citizen_reports.infrastructure.database import get_db
from citizen_reports.infrastructure.models import User
from citizen_reports.infrastructure.repositories import UserRepository
from citizen_reports.domain.exceptions import ConflictError, NotFoundError, NoRowsAffectedError
from citizen_reports.domain.models import (
    SignupRequest,
    LoginRequest,
    MacAddressLoginRequest,
    PasswordUpdateRequest,
    TokenResponse,
    MessageResponse,
    UserResponse,
)
from citizen_reports.domain.services.security import (
    build_user_claims,
    create_access_token,
    hash_password,
    verify_password,
)
from citizen_reports.core.config import settings
from .deps import get_current_user, security


router = APIRouter()
logger = logging.getLogger(__name__)


def _issue_token(user: User) -> TokenResponse:
    expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    token = create_access_token(build_user_claims(user.id, user.email), expires_delta=expires)
    return TokenResponse(access_token=token, expires_in=int(expires.total_seconds()))


@router.post("/signup", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    request: SignupRequest,
    db: Session = Depends(get_db)
):
    """
    Register a new user with email, username and password.
    Email, username and telephone must be unused.
    """
    repo = UserRepository(db)
    try:
        repo.is_email_exist(request.email)
        repo.is_username_exist(request.username)
        if request.telephone:
            repo.is_phone_exist(request.telephone)
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    user = User(
        fullname=request.fullname,
        username=request.username,
        email=request.email,
        telephone=request.telephone,
        hashed_password=hash_password(request.password),
        lga_name=request.lga_name,
        state_name=request.state_name,
    )
    try:
        user = repo.create_user(user)
    except Exception as e:
        logger.error(f"Signup failed for {request.email}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to create user: {str(e)}")

    logger.info(f"User registered: {user.id}")
    return user


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Login with email or username and password.
    Marks the user online.
    """
    repo = UserRepository(db)
    try:
        user = repo.find_user_by_username(request.username)
    except NotFoundError:
        user = None

    if not user or not verify_password(request.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    repo.update_user_online_status(user.id, True)
    return _issue_token(user)


@router.post("/login/mac", response_model=TokenResponse)
async def login_with_mac_address(
    request: MacAddressLoginRequest,
    db: Session = Depends(get_db)
):
    """
    Login a device by MAC address, registering it on first use.
    """
    repo = UserRepository(db)
    try:
        user = repo.create_user_with_mac_address(request.mac_address)
    except Exception as e:
        logger.error(f"MAC address login failed: {e}")
        raise HTTPException(status_code=500, detail=f"Could not create user: {str(e)}")

    repo.update_user_online_status(user.id, True)
    return _issue_token(user)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    current_user: User = Depends(get_current_user),
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
):
    """
    Revoke the current access token and mark the user offline.
    """
    repo = UserRepository(db)
    repo.add_to_blacklist(credentials.credentials)
    try:
        repo.set_user_offline(current_user.id)
    except NoRowsAffectedError:
        logger.warning(f"User {current_user.id} vanished during logout")

    return MessageResponse(message="Successfully logged out")


@router.put("/password", response_model=MessageResponse)
async def update_password(
    request: PasswordUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if not verify_password(request.old_password, current_user.hashed_password):
        raise HTTPException(status_code=400, detail="Incorrect old password")

    UserRepository(db).reset_password(current_user.id, hash_password(request.new_password))
    return MessageResponse(message="Password updated successfully")


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    current_user: User = Depends(get_current_user)
):
    """
    Get current authenticated user's profile.
    """
    return current_user
