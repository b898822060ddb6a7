import logging
import uuid
from typing import Optional
import boto3
from botocore.exceptions import ClientError
from app.core.config import settings

logger = logging.getLogger(__name__)


class ImageStoreError(Exception):
    pass


class S3ImageStore:
    """Stores generated artwork and reference uploads in S3."""

    def __init__(self, client=None, bucket_name: Optional[str] = None):
        self.s3_client = client or boto3.client(
            's3',
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
            region_name=settings.AWS_REGION
        )
        self.bucket_name = bucket_name or settings.S3_BUCKET

    def save_image(self, image_bytes: bytes, folder: str = "designs", content_type: str = "image/png") -> str:
        """
        Upload an image and return its public URL.

        Args:
            image_bytes: Encoded image content
            folder: Key prefix, e.g. "designs" or "references"
            content_type: MIME type of the image

        Returns:
            Full public URL of the stored object
        """
        extension = ".png" if content_type == "image/png" else ".jpg"
        s3_key = f"{folder}/{uuid.uuid4()}{extension}"
        try:
            # Public access is handled by the bucket policy, not object ACLs
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=s3_key,
                Body=image_bytes,
                ContentType=content_type
            )
        except ClientError as e:
            logger.error("Error uploading to S3: %s", e)
            raise ImageStoreError(str(e)) from e
        return self.get_public_url(s3_key)

    def get_public_url(self, s3_key: str) -> str:
        return f"{settings.S3_BASE_URL}/{s3_key}"


_image_store: Optional[S3ImageStore] = None

def get_image_store() -> S3ImageStore:
    global _image_store
    if _image_store is None:
        _image_store = S3ImageStore()
    return _image_store
