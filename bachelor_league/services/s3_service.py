"""
S3 storage for contestant photos.

The boto3 client is created lazily from environment configuration read at
call time.
"""

import logging
import os
import time
from typing import Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

_s3_client = None


def _get_config():
    """Read S3 configuration from environment at call time (not import time)."""
    return {
        "access_key_id": os.getenv("AWS_ACCESS_KEY_ID"),
        "secret_access_key": os.getenv("AWS_SECRET_ACCESS_KEY"),
        "bucket": os.getenv("AWS_S3_BUCKET"),
        "region": os.getenv("AWS_S3_REGION", "us-east-1"),
    }


def _get_s3_client():
    """Get or create the boto3 S3 client."""
    global _s3_client
    if _s3_client is None:
        cfg = _get_config()
        if not all([cfg["access_key_id"], cfg["secret_access_key"], cfg["bucket"]]):
            raise RuntimeError(
                "AWS S3 is not configured. "
                "Set AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, and AWS_S3_BUCKET."
            )
        import boto3

        _s3_client = boto3.client(
            "s3",
            aws_access_key_id=cfg["access_key_id"],
            aws_secret_access_key=cfg["secret_access_key"],
            region_name=cfg["region"],
        )
    return _s3_client


def reset_client() -> None:
    """Drop the cached client so the next call re-reads configuration."""
    global _s3_client
    _s3_client = None


def contestant_photo_key(league_id: int, contestant_id: int, timestamp: Optional[int] = None) -> str:
    """Object key for a contestant photo."""
    ts = int(time.time()) if timestamp is None else timestamp
    return f"contestants/{league_id}/{contestant_id}/{ts}.jpg"


def upload_contestant_photo(league_id: int, contestant_id: int, image_bytes: bytes) -> str:
    """
    Upload a processed contestant photo.

    Returns:
        Public URL of the uploaded object
    """
    client = _get_s3_client()
    cfg = _get_config()
    key = contestant_photo_key(league_id, contestant_id)

    client.put_object(
        Bucket=cfg["bucket"],
        Key=key,
        Body=image_bytes,
        ContentType="image/jpeg",
    )

    url = f"https://{cfg['bucket']}.s3.{cfg['region']}.amazonaws.com/{key}"
    logger.info(f"Uploaded photo for contestant {contestant_id}: {key}")
    return url


def delete_photo(url: str) -> bool:
    """
    Delete a previously uploaded photo by URL. Best-effort: failures are logged.

    Returns:
        True if the object was deleted
    """
    try:
        client = _get_s3_client()
        bucket = _get_config()["bucket"]
        key = extract_key_from_url(url, bucket)
        if not key:
            logger.warning(f"Could not extract S3 key from URL: {url}")
            return False
        client.delete_object(Bucket=bucket, Key=key)
        logger.info(f"Deleted photo from S3: {key}")
        return True
    except Exception as e:
        logger.warning(f"Failed to delete photo from S3: {e}")
        return False


def extract_key_from_url(url: str, expected_bucket: Optional[str] = None) -> Optional[str]:
    """
    Object key of an S3 URL such as
    https://bucket.s3.region.amazonaws.com/contestants/1/2/3.jpg

    Returns None when the host does not belong to expected_bucket.
    """
    parsed = urlparse(url or "")
    if expected_bucket and parsed.hostname and not parsed.hostname.startswith(f"{expected_bucket}."):
        logger.warning(f"URL host '{parsed.hostname}' does not match bucket '{expected_bucket}'")
        return None
    key = parsed.path.lstrip("/")
    return key or None
