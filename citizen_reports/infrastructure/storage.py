"""
Object storage service for post, report and profile images.

Uploads go to an S3 bucket with a single SigV4-signed PUT carrying the
public-read ACL, storage class and server-side encryption headers.

Usage:
    from ..infrastructure.storage import get_storage_service, StorageError

    storage = get_storage_service()
    public_url = await storage.upload_file(content, f"{user_id}_{filename}")
"""
import httpx
import io
import logging
from typing import Optional
from urllib.parse import quote

from botocore.auth import S3SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials
from PIL import Image, UnidentifiedImageError

from ..core.config import settings

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
S3_SERVICE_NAME = "s3"


class StorageError(Exception):
    """Raised when storage operation fails."""
    pass


def detect_content_type(content: bytes) -> str:
    """
    Detect the MIME type of an uploaded blob from its bytes.

    Falls back to application/octet-stream for anything Pillow cannot identify.
    """
    if not content:
        return DEFAULT_CONTENT_TYPE
    try:
        with Image.open(io.BytesIO(content)) as img:
            return Image.MIME.get(img.format, DEFAULT_CONTENT_TYPE)
    except (UnidentifiedImageError, OSError):
        return DEFAULT_CONTENT_TYPE


class ObjectStorageService:
    """
    Handles file uploads to the image bucket.

    Objects are written with a virtual-hosted-style URL on AWS, or a
    path-style URL (`<endpoint>/<bucket>/<key>`) when STORAGE_ENDPOINT points
    at another S3-compatible service. The returned URL is built from the
    public bucket host and object key; it is not read back from the response.
    """

    def __init__(self):
        self.bucket = settings.AWS_BUCKET
        self.region = settings.AWS_REGION
        self.public_url = settings.bucket_host
        self.endpoint = settings.STORAGE_ENDPOINT.rstrip("/")
        self.credentials = Credentials(
            settings.AWS_ACCESS_KEY_ID,
            settings.AWS_SECRET_ACCESS_KEY,
            settings.AWS_SESSION_TOKEN or None,
        )

    @property
    def is_configured(self) -> bool:
        """Check if object storage is properly configured."""
        return bool(self.bucket and self.credentials.access_key and self.credentials.secret_key)

    def get_object_url(self, filename: str) -> str:
        """URL the PUT is sent to. Always names the bucket."""
        key = quote(filename, safe="/~")
        if self.endpoint:
            return f"{self.endpoint}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def get_public_url(self, filename: str) -> str:
        return f"{self.public_url}/{filename}"

    def _get_headers(self, content: bytes) -> dict:
        """Get headers for the put-object request."""
        return {
            "Content-Type": detect_content_type(content),
            "Content-Length": str(len(content)),
            "Content-Disposition": "attachment",
            "x-amz-acl": settings.STORAGE_ACL,
            "x-amz-storage-class": settings.STORAGE_CLASS,
            "x-amz-server-side-encryption": settings.STORAGE_SSE,
        }

    def _sign_put(self, url: str, content: bytes) -> dict:
        """
        Sign a put-object request with AWS Signature Version 4.

        Returns the full header set to send, including Authorization,
        X-Amz-Date and X-Amz-Content-SHA256.
        """
        request = AWSRequest(method="PUT", url=url, data=content, headers=self._get_headers(content))
        S3SigV4Auth(self.credentials, S3_SERVICE_NAME, self.region).add_auth(request)
        return dict(request.headers.items())

    async def upload_file(self, content: bytes, filename: str) -> str:
        """
        Upload a blob to the bucket under the given key.

        Args:
            content: Whole file content, already buffered in memory
            filename: Object key, e.g. "42_photo.jpg"

        Returns:
            Public URL of the object

        Raises:
            StorageError: If the upload fails
        """
        public_url = self.get_public_url(filename)

        if not self.is_configured:
            logger.warning(f"Object storage not configured, skipping upload of {filename}")
            return public_url

        upload_url = self.get_object_url(filename)
        headers = self._sign_put(upload_url, content)

        try:
            async with httpx.AsyncClient() as client:
                response = await client.put(upload_url, content=content, headers=headers)
        except httpx.RequestError as e:
            logger.error(f"Storage upload request failed for {filename}: {e}")
            raise StorageError(f"Request failed: {str(e)}")

        if response.status_code not in (200, 201):
            error_detail = response.text[:500] if response.text else "Unknown error"
            logger.error(f"Storage upload failed: {response.status_code} - {error_detail}")
            raise StorageError(f"Upload failed with status {response.status_code}: {error_detail}")

        logger.info(f"Successfully uploaded {filename} to bucket {self.bucket}")
        return public_url


# Singleton instance
_storage_service: Optional[ObjectStorageService] = None


def get_storage_service() -> ObjectStorageService:
    """Get or create storage service singleton instance."""
    global _storage_service
    if _storage_service is None:
        _storage_service = ObjectStorageService()
    return _storage_service
