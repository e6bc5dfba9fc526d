from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime

# ============================================================================
# REQUEST DTOs (For API input validation)
# ============================================================================

class SignupRequest(BaseModel):
    """Request DTO for user registration"""
    fullname: Optional[str] = None
    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., pattern=r"^[\w\.\+-]+@[\w\.-]+\.\w+$")
    telephone: Optional[str] = None
    password: str = Field(..., min_length=8, max_length=128)
    lga_name: Optional[str] = None
    state_name: Optional[str] = None


class LoginRequest(BaseModel):
    """Login with email or username"""
    username: str = Field(..., description="Email address or username")
    password: str


class MacAddressLoginRequest(BaseModel):
    mac_address: str = Field(..., min_length=1, max_length=64)


class PasswordUpdateRequest(BaseModel):
    old_password: str
    new_password: str = Field(..., min_length=8, max_length=128)


class ProfileUpdateRequest(BaseModel):
    fullname: Optional[str] = None
    username: Optional[str] = Field(None, min_length=3, max_length=50)


class ReportStatusUpdate(BaseModel):
    report_status: str = Field(..., pattern="^(pending|approved|rejected|resolved)$")


# ============================================================================
# RESPONSE DTOs (For API output)
# ============================================================================

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class MessageResponse(BaseModel):
    message: str


class CountResponse(BaseModel):
    count: int


class UserResponse(BaseModel):
    """User profile response (never includes the password hash)"""
    id: int
    fullname: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    telephone: Optional[str] = None
    online: bool = False
    mac_address: Optional[str] = None
    lga_name: Optional[str] = None
    state_name: Optional[str] = None
    is_email_active: bool = False
    thumbnail_url: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PostResponse(BaseModel):
    id: int
    user_id: int
    title: str
    post_category: str
    image: str
    post_description: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PostCreatedResponse(BaseModel):
    message: str
    post: PostResponse


class IncidentReportResponse(BaseModel):
    id: str
    user_id: Optional[int] = None
    state_name: Optional[str] = None
    lga_name: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    thumbnail_urls: Optional[str] = None
    report_status: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None
    incident_report_rating: Optional[str] = None
    timeof_incidence: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RewardResponse(BaseModel):
    user_id: int
    reward_type: Optional[str] = None
    point: int = 0
    balance: int = 0
    incident_report_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ReportSubmissionResponse(BaseModel):
    message: str
    report: IncidentReportResponse
    reward: RewardResponse


class SubReportResponse(BaseModel):
    id: str
    report_type_id: Optional[str] = None
    lga_id: Optional[str] = None
    state_name: Optional[str] = None
    report_type_category: Optional[str] = None
    sub_report_type: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class StateReportPercentage(BaseModel):
    state_name: Optional[str] = None
    count: int
    percentage: float


class StateReportCount(BaseModel):
    state_name: Optional[str] = None
    report_count: int


class StateCategoryReportCount(BaseModel):
    state_name: Optional[str] = None
    category: Optional[str] = None
    report_count: int


class StateLgaReportCount(BaseModel):
    state_name: Optional[str] = None
    lga_name: Optional[str] = None
    count: int


class ReportTypeCountsResponse(BaseModel):
    report_types: List[str]
    counts: List[int]
    total_users: int
    total_reports: int
    top_states: List[StateReportCount]


class RatingPercentage(BaseModel):
    good_percentage: float
    bad_percentage: float


class Marker(BaseModel):
    lat: Optional[float] = None
    lng: Optional[float] = None
    popup: Optional[str] = None
    count: int = 0


class BookmarkResponse(BaseModel):
    message: str
    user_id: int
    report_id: str
