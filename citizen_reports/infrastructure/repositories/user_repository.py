from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from .. import models
from ...domain.exceptions import ConflictError, NotFoundError, NoRowsAffectedError

logger = logging.getLogger(__name__)


class UserRepository:
    """
    Data access for users, profile images and the token blacklist.
    """

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # Create
    # =========================================================================

    def create_user(self, user: models.User) -> models.User:
        if user is None:
            logger.error("create_user error: user is None")
            raise ValueError("user is None")

        try:
            self.db.add(user)
            self.db.commit()
        except Exception as e:
            logger.error(f"create_user error: {e}")
            self.db.rollback()
            raise
        self.db.refresh(user)
        return user

    def create_user_with_mac_address(self, mac_address: str) -> models.User:
        """
        Find the user registered with this MAC address, creating one if absent.
        """
        existing = self.db.query(models.User).filter(
            models.User.mac_address == mac_address
        ).first()
        if existing:
            return existing

        user = models.User(mac_address=mac_address)
        try:
            self.db.add(user)
            self.db.commit()
        except Exception as e:
            logger.error(f"Could not create user for MAC address {mac_address}: {e}")
            self.db.rollback()
            raise
        self.db.refresh(user)
        logger.info(f"Created user {user.id} for MAC address {mac_address}")
        return user

    def create_user_image(self, user: models.User) -> models.UserImage:
        """Record the user's current thumbnail in the profile image history."""
        image = models.UserImage(user_id=user.id, thumbnail_url=user.thumbnail_url)
        try:
            self.db.add(image)
            self.db.commit()
        except Exception as e:
            logger.error(f"Error creating user image in database: {e}")
            self.db.rollback()
            raise
        self.db.refresh(image)
        return image

    # =========================================================================
    # Uniqueness checks
    # =========================================================================

    def is_email_exist(self, email: str) -> None:
        count = self.db.query(models.User).filter(models.User.email == email).count()
        if count > 0:
            raise ConflictError("email already in use")

    def is_username_exist(self, username: str) -> None:
        count = self.db.query(models.User).filter(models.User.username == username).count()
        if count > 0:
            raise ConflictError("username already in use")

    def is_phone_exist(self, phone: str) -> None:
        count = self.db.query(models.User).filter(models.User.telephone == phone).count()
        if count > 0:
            raise ConflictError("phone number already in use")

    # =========================================================================
    # Lookups
    # =========================================================================

    def find_user_by_username(self, username: str) -> models.User:
        """Find a user whose email or username matches the given login name."""
        user = self.db.query(models.User).filter(
            or_(models.User.email == username, models.User.username == username)
        ).first()
        if not user:
            raise NotFoundError("user", username)
        return user

    def find_user_by_email(self, email: str) -> models.User:
        user = self.db.query(models.User).filter(models.User.email == email).first()
        if not user:
            raise NotFoundError("user", email)
        return user

    def find_user_by_id(self, user_id: int) -> models.User:
        user = self.db.query(models.User).filter(models.User.id == user_id).first()
        if not user:
            raise NotFoundError("user", user_id)
        return user

    def find_user_by_mac_address(self, mac_address: str) -> models.User:
        user = self.db.query(models.User).filter(models.User.mac_address == mac_address).first()
        if not user:
            raise NotFoundError("user", mac_address)
        return user

    def get_all_users(self) -> List[models.User]:
        return self.db.query(models.User).order_by(models.User.id).all()

    # =========================================================================
    # Updates
    # =========================================================================

    def update_password(self, hashed_password: str, email: str) -> None:
        self.db.query(models.User).filter(models.User.email == email).update(
            {models.User.hashed_password: hashed_password}
        )
        self.db.commit()

    def reset_password(self, user_id: int, hashed_password: str) -> None:
        self.db.query(models.User).filter(models.User.id == user_id).update(
            {models.User.hashed_password: hashed_password}
        )
        self.db.commit()

    def verify_email(self, email: str, token: str) -> None:
        """Activate the user's email and revoke the verification token."""
        self.db.query(models.User).filter(models.User.email == email).update(
            {models.User.is_email_active: True}
        )
        self.add_to_blacklist(token)

    def edit_user_profile(self, user_id: int, fullname: Optional[str] = None,
                          username: Optional[str] = None) -> models.User:
        user = self.find_user_by_id(user_id)
        if fullname is not None:
            user.fullname = fullname
        if username is not None:
            user.username = username
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(user)
        return user

    def update_user_online_status(self, user_id: int, online: bool) -> None:
        logger.info(f"Attempting to update user status: ID={user_id}, Online={online}")
        rows = self.db.query(models.User).filter(models.User.id == user_id).update(
            {models.User.online: online}
        )
        if rows == 0:
            self.db.rollback()
            logger.warning(f"No rows affected when updating user status for user ID: {user_id}")
            raise NoRowsAffectedError("no rows affected")
        self.db.commit()
        logger.info(f"Successfully updated user status for user ID: {user_id}")

    def set_user_offline(self, user_id: int) -> None:
        self.update_user_online_status(user_id, False)

    # =========================================================================
    # Blacklist
    # =========================================================================

    def add_to_blacklist(self, token: str) -> models.Blacklist:
        entry = models.Blacklist(token=token.strip())
        self.db.add(entry)
        self.db.commit()
        return entry

    def is_token_in_blacklist(self, token: str) -> bool:
        count = self.db.query(models.Blacklist).filter(
            models.Blacklist.token == token.strip()
        ).count()
        return count > 0

    # =========================================================================
    # Counts
    # =========================================================================

    def get_online_user_count(self) -> int:
        return self.db.query(models.User).filter(models.User.online == True).count()

    def get_total_user_count(self) -> int:
        return self.db.query(models.User).count()

    def get_registered_users_count_by_lga(self, lga: str) -> int:
        count = self.db.query(models.User).filter(models.User.lga_name == lga).count()
        logger.info(f"LGA: {lga}, User Count: {count}")
        return count
