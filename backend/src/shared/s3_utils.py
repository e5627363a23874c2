"""
S3 utility functions for project attachments.
Uploads are best-effort: a failed upload is logged and skipped.
"""
import os
import uuid
import boto3
import mimetypes
from typing import Optional
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from .config import config
from .logging import logger

ATTACHMENTS_PREFIX = 'attachments/'

_s3_client = None


def get_s3_client():
    """Get or create S3 client with s3v4 signatures."""
    global _s3_client
    if _s3_client is None:
        _s3_client = boto3.client(
            's3',
            region_name=config.AWS_REGION,
            config=BotoConfig(signature_version='s3v4')
        )
    return _s3_client


def object_url(s3_key: str, bucket_name: str = None) -> str:
    """Public URL of an object in the media bucket."""
    bucket = bucket_name or config.MEDIA_BUCKET
    return f"https://{bucket}.s3.amazonaws.com/{s3_key}"


def upload_attachment(
    data: bytes,
    filename: str,
    content_type: str = None,
    bucket_name: str = None
) -> Optional[str]:
    """
    Store an attachment and return its durable URL.

    Args:
        data: File bytes
        filename: Original file name (only the extension is kept)
        content_type: MIME type; guessed from the name when omitted
        bucket_name: Optional bucket name, defaults to config.MEDIA_BUCKET

    Returns:
        Object URL, or None if the upload failed or no bucket is configured
    """
    bucket = bucket_name or config.MEDIA_BUCKET
    if not bucket:
        logger.warning("No MEDIA_BUCKET configured, skipping attachment upload")
        return None
    if not data:
        return None

    extension = os.path.splitext(filename or '')[1].lower()
    s3_key = f"{ATTACHMENTS_PREFIX}{uuid.uuid4()}{extension}"
    content_type = content_type or mimetypes.guess_type(filename or '')[0] or 'application/octet-stream'

    try:
        get_s3_client().put_object(
            Bucket=bucket,
            Key=s3_key,
            Body=data,
            ContentType=content_type
        )
        logger.info(f"Uploaded attachment {s3_key}")
        return object_url(s3_key, bucket)

    except (ClientError, BotoCoreError) as e:
        logger.error(f"Error uploading attachment {filename}: {e}")
        return None
