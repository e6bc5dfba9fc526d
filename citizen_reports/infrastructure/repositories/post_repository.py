from sqlalchemy.orm import Session
import logging

from .. import models

logger = logging.getLogger(__name__)


class PostRepository:
    def __init__(self, db: Session):
        self.db = db

    def create_post(self, post: models.Post) -> models.Post:
        try:
            self.db.add(post)
            self.db.commit()
        except Exception as e:
            logger.error(f"Error creating post: {e}")
            self.db.rollback()
            raise
        self.db.refresh(post)
        logger.info(f"Post created: {post.id} by user {post.user_id}")
        return post
