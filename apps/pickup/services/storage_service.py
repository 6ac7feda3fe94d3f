"""
Object storage for avatar images (S3 through boto3).

The client is created lazily so the API starts without storage credentials;
avatar upload then fails with a ValueError that routes report as 503.
"""

import logging
import os
import time
from typing import Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

_s3_client = None


def _get_config():
    """Read storage configuration at call time."""
    return {
        "access_key_id": os.getenv("AWS_ACCESS_KEY_ID"),
        "secret_access_key": os.getenv("AWS_SECRET_ACCESS_KEY"),
        "bucket": os.getenv("AWS_S3_BUCKET"),
        "region": os.getenv("AWS_S3_REGION", "ap-northeast-2"),
    }


def is_configured() -> bool:
    cfg = _get_config()
    return all([cfg["access_key_id"], cfg["secret_access_key"], cfg["bucket"]])


def _get_s3_client():
    global _s3_client
    if _s3_client is None:
        if not is_configured():
            raise ValueError(
                "Avatar storage is not configured. "
                "Set AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY, and AWS_S3_BUCKET."
            )
        import boto3

        cfg = _get_config()
        _s3_client = boto3.client(
            "s3",
            aws_access_key_id=cfg["access_key_id"],
            aws_secret_access_key=cfg["secret_access_key"],
            region_name=cfg["region"],
        )
    return _s3_client


def public_url(key: str) -> str:
    cfg = _get_config()
    return f"https://{cfg['bucket']}.s3.{cfg['region']}.amazonaws.com/{key}"


def upload_avatar(user_id: str, image_bytes: bytes) -> str:
    """
    Upload a processed avatar to avatars/{user_id}/{timestamp}.jpg.

    Returns:
        Public URL of the uploaded object
    """
    client = _get_s3_client()
    key = f"avatars/{user_id}/{int(time.time())}.jpg"
    client.put_object(
        Bucket=_get_config()["bucket"],
        Key=key,
        Body=image_bytes,
        ContentType="image/jpeg",
    )
    logger.info(f"Uploaded avatar for user {user_id}: {key}")
    return public_url(key)


def delete_avatar(url: str) -> bool:
    """
    Delete an avatar by its public URL. Best-effort: logs and returns False on failure.
    """
    try:
        client = _get_s3_client()
        bucket = _get_config()["bucket"]
        key = extract_key_from_url(url, bucket)
        if not key:
            logger.warning(f"Could not extract storage key from URL: {url}")
            return False
        client.delete_object(Bucket=bucket, Key=key)
        logger.info(f"Deleted avatar: {key}")
        return True
    except Exception as e:
        logger.error(f"Failed to delete avatar {url}: {e}")
        return False


def extract_key_from_url(url: str, expected_bucket: Optional[str] = None) -> Optional[str]:
    """
    Object key of a bucket URL such as
    https://bucket.s3.region.amazonaws.com/avatars/abc/1700000000.jpg

    Returns None when the URL belongs to another host.
    """
    parsed = urlparse(url or "")
    if expected_bucket and parsed.hostname and not parsed.hostname.startswith(f"{expected_bucket}."):
        logger.warning(f"URL host '{parsed.hostname}' does not match bucket '{expected_bucket}'")
        return None
    key = parsed.path.lstrip("/")
    return key or None
