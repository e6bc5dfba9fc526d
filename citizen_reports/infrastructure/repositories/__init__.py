from .user_repository import UserRepository
from .incident_report_repository import IncidentReportRepository, DEFAULT_PAGE_SIZE
from .post_repository import PostRepository

__all__ = [
    "UserRepository",
    "IncidentReportRepository",
    "PostRepository",
    "DEFAULT_PAGE_SIZE",
]
