"""
B2 Storage Service for Eventos
Stores generated documents in Backblaze B2 through its S3-compatible API.
"""

import os
import re
import logging
from typing import Optional, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

# Configuration from environment
B2_BUCKET_NAME = os.getenv("B2_BUCKET_NAME", "eventos-documentos")
B2_KEY_ID = os.getenv("B2_KEY_ID", "") or os.getenv("B2_ACCOUNT_ID", "")
B2_APPLICATION_KEY = os.getenv("B2_APPLICATION_KEY", "") or os.getenv("B2_APP_KEY", "")
B2_ENDPOINT_URL = os.getenv("B2_ENDPOINT_URL", "s3.us-east-005.backblazeb2.com")
B2_PUBLIC_BASE_URL = os.getenv("B2_PUBLIC_BASE_URL", "")
PRESUPUESTOS_PREFIX = os.getenv("PRESUPUESTOS_PREFIX", "presupuestos")

MAX_B2_UPLOAD_BYTES = int(os.getenv("MAX_B2_UPLOAD_BYTES", str(20 * 1024 * 1024)))


def _get_direct_public_base() -> str:
    """Public download base: explicit setting, else derived from the S3 endpoint region."""
    base = str(B2_PUBLIC_BASE_URL or "").strip().rstrip("/")
    if base and not (base.startswith("http://") or base.startswith("https://")):
        base = f"https://{base.lstrip('/')}"
    if base.endswith("/file"):
        base = base[:-5]
    if base:
        return base

    # s3.us-east-005.backblazeb2.com -> f005.backblazeb2.com
    ep = str(B2_ENDPOINT_URL or "").strip().lower()
    ep = ep.replace("https://", "").replace("http://", "")
    m = re.search(r"-(\d{3})\.backblazeb2\.com", ep)
    if m:
        return f"https://f{m.group(1)}.backblazeb2.com"
    return "https://f000.backblazeb2.com"


def get_s3_client():
    """
    Get a boto3 S3 client configured for Backblaze B2.
    Returns None if credentials are missing.
    """
    if not B2_KEY_ID or not B2_APPLICATION_KEY:
        logger.warning("B2 credentials not configured")
        return None

    endpoint = str(B2_ENDPOINT_URL or "").strip()
    if endpoint and not (endpoint.startswith("http://") or endpoint.startswith("https://")):
        endpoint = f"https://{endpoint}"
    return boto3.client(
        "s3",
        endpoint_url=endpoint,
        aws_access_key_id=B2_KEY_ID,
        aws_secret_access_key=B2_APPLICATION_KEY,
        config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
    )


def presupuesto_key(reserva_id: int) -> str:
    """Fixed key per reservation; a new export overwrites the previous one."""
    prefix = str(PRESUPUESTOS_PREFIX or "").strip("/")
    key = f"reservas/reserva-{int(reserva_id)}.pdf"
    return f"{prefix}/{key}" if prefix else key


def get_file_url(file_key: str) -> str:
    p = str(file_key or "").lstrip("/")
    if not p or ".." in p:
        return ""
    return f"{_get_direct_public_base()}/file/{B2_BUCKET_NAME}/{p}"


def upload_document(
    file_content: bytes,
    file_key: str,
    content_type: str = "application/pdf",
) -> Tuple[bool, str, Optional[str]]:
    """
    Upload (or overwrite) a document at an exact key.

    Returns:
        Tuple of (success, url or error_message, file_key)
    """
    client = get_s3_client()
    if not client:
        return False, "B2 client not available", None

    if not file_content:
        return False, "Empty file", None
    if MAX_B2_UPLOAD_BYTES and len(file_content) > MAX_B2_UPLOAD_BYTES:
        return False, "File too large", None

    key = str(file_key or "").lstrip("/")
    if not key or ".." in key:
        return False, "Invalid key", None

    try:
        client.put_object(
            Bucket=B2_BUCKET_NAME,
            Key=key,
            Body=file_content,
            ContentType=content_type,
            # Same key is rewritten on every export
            CacheControl="no-cache",
        )
        logger.info(f"Uploaded document to B2: {key}")
        return True, get_file_url(key), key
    except (ClientError, BotoCoreError) as e:
        error_msg = str(e)
        logger.error(f"B2 upload failed: {error_msg}")
        return False, error_msg, None


def delete_file(file_key: str) -> Tuple[bool, str]:
    client = get_s3_client()
    if not client:
        return False, "B2 client not available"

    key = str(file_key or "").lstrip("/")
    if not key or ".." in key:
        return False, "Invalid key"

    try:
        client.delete_object(Bucket=B2_BUCKET_NAME, Key=key)
        logger.info(f"Deleted file from B2: {key}")
        return True, "File deleted successfully"
    except (ClientError, BotoCoreError) as e:
        error_msg = str(e)
        logger.error(f"B2 delete failed: {error_msg}")
        return False, error_msg
