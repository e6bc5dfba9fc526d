from sqlalchemy import Column, String, Float, DateTime, Boolean, ForeignKey, Integer, Text, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from .database import Base
import uuid
from datetime import datetime


def _uuid_str() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    fullname = Column(String, nullable=True)
    username = Column(String, unique=True, index=True, nullable=True)
    email = Column(String, unique=True, index=True, nullable=True)
    telephone = Column(String, nullable=True)
    hashed_password = Column(String, nullable=True)  # NULL for MAC-address users
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Presence and device login
    online = Column(Boolean, default=False)
    mac_address = Column(String, unique=True, index=True, nullable=True)

    # Region the user registered from
    lga_name = Column(String, nullable=True, index=True)
    state_name = Column(String, nullable=True)

    is_email_active = Column(Boolean, default=False)
    thumbnail_url = Column(String, nullable=True)

    # Relationships
    images = relationship("UserImage", back_populates="user", cascade="all, delete-orphan")
    posts = relationship("Post", back_populates="user")


class UserImage(Base):
    __tablename__ = "user_images"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    thumbnail_url = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow)
    user = relationship("User", back_populates="images")


class Blacklist(Base):
    """Revoked access tokens. Rows are never updated or removed."""
    __tablename__ = "blacklists"
    id = Column(Integer, primary_key=True)
    token = Column(Text, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Post(Base):
    __tablename__ = "posts"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    title = Column(String)
    post_category = Column(String)
    image = Column(String)
    post_description = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    user = relationship("User", back_populates="posts")


class IncidentReport(Base):
    __tablename__ = "incident_reports"
    id = Column(String(36), primary_key=True, default=_uuid_str)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    state_name = Column(String, index=True)
    lga_name = Column(String, index=True)
    category = Column(String, index=True)
    description = Column(Text)
    thumbnail_urls = Column(String, nullable=True)  # public image URL
    report_status = Column(String, default="pending")  # pending, approved, rejected, resolved
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    address = Column(String, nullable=True)
    incident_report_rating = Column(String, nullable=True)  # good, bad
    timeof_incidence = Column(DateTime, default=datetime.utcnow, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('idx_incident_reports_state_time', 'state_name', 'timeof_incidence'),
    )


class Reward(Base):
    """Point/balance ledger entry. One row per user."""
    __tablename__ = "rewards"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, index=True)
    reward_type = Column(String, nullable=True)
    point = Column(Integer, default=0)
    balance = Column(Integer, default=0)
    incident_report_id = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ReportType(Base):
    __tablename__ = "report_types"
    id = Column(String(36), primary_key=True, default=_uuid_str)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    category = Column(String, index=True)
    state_name = Column(String, index=True)
    lga_name = Column(String, index=True)
    incident_report_rating = Column(String, nullable=True)  # good, bad
    date_of_incidence = Column(DateTime, default=datetime.utcnow)


class LGA(Base):
    __tablename__ = "lgas"
    id = Column(String(36), primary_key=True, default=_uuid_str)
    name = Column(String, index=True)


class State(Base):
    __tablename__ = "states"
    id = Column(String(36), primary_key=True, default=_uuid_str)
    name = Column(String, index=True)


class SubReport(Base):
    __tablename__ = "sub_reports"
    id = Column(String(36), primary_key=True, default=_uuid_str)
    report_type_id = Column(String(36), ForeignKey("report_types.id"), index=True)
    lga_id = Column(String(36), ForeignKey("lgas.id"), index=True)
    state_name = Column(String)
    report_type_category = Column(String)
    sub_report_type = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow)


class BookmarkReport(Base):
    __tablename__ = "bookmark_reports"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    report_id = Column(String(36), ForeignKey("incident_reports.id"), index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('user_id', 'report_id', name='uq_bookmark_user_report'),
    )
