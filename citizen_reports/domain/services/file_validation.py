"""
Validation for uploaded image files (post, report and profile images).
"""
from typing import Optional

from citizen_reports.core.config import settings


class FileValidationError(ValueError):
    """Raised when an uploaded file is missing, too large or of a disallowed type."""
    pass


def validate_image_upload(
    filename: Optional[str],
    content_type: Optional[str],
    size: int
) -> None:
    """
    Check an uploaded file against the configured size limit and image types.

    Raises:
        FileValidationError: With a message suitable for a 400 response
    """
    if not filename:
        raise FileValidationError("Missing or invalid file")

    if size == 0:
        raise FileValidationError("Uploaded file is empty")

    if size > settings.MAX_UPLOAD_SIZE_BYTES:
        limit_mb = settings.MAX_UPLOAD_SIZE_BYTES / (1024 * 1024)
        raise FileValidationError(f"File size exceeds the limit of {limit_mb:g}MB")

    if content_type not in settings.ALLOWED_IMAGE_TYPES:
        allowed = ", ".join(settings.ALLOWED_IMAGE_TYPES)
        raise FileValidationError(f"Invalid file type {content_type!r}. Allowed types: {allowed}")
