"""
Authentication dependencies for FastAPI routes.
Provides dependency injection for protected endpoints.
"""
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from citizen_reports.infrastructure.database import get_db
from citizen_reports.infrastructure.models import User
from citizen_reports.infrastructure.repositories import UserRepository
from citizen_reports.domain.services.security import get_user_id_from_payload, verify_token


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str = "Unauthorized") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> dict:
    """
    Dependency returning the decoded access token claims.
    Raises 401 if the token is missing, invalid, expired or revoked.
    """
    if not credentials or not credentials.credentials:
        raise _unauthorized("Not authenticated")

    token = credentials.credentials

    payload = verify_token(token, token_type="access")
    if payload is None:
        raise _unauthorized("Invalid or expired token")

    if UserRepository(db).is_token_in_blacklist(token):
        raise _unauthorized("Token has been revoked")

    return payload


async def get_current_user_id(payload: dict = Depends(get_token_payload)) -> int:
    """
    Dependency returning the numeric user id carried in the token's `id` claim.
    Raises 400 if the claim is missing or not a whole number.

    Usage:
        @router.post("/posts/")
        async def create_post(user_id: int = Depends(get_current_user_id)):
            ...
    """
    user_id = get_user_id_from_payload(payload)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid userID format")
    return user_id


async def get_current_user(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> User:
    """
    Dependency to get the current authenticated user.
    Raises 401 if the user in the token no longer exists.

    Usage:
        @router.get("/protected")
        async def protected_route(user: User = Depends(get_current_user)):
            return {"user_id": user.id}
    """
    user = db.query(User).filter(User.id == user_id).first()

    if not user:
        raise _unauthorized("User not found")

    return user
