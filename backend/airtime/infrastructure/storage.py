"""Blob storage deletion.

Routes deletes to Google Cloud Storage, Cloudflare R2 or Vercel Blob based on
``STORAGE_BACKEND``. Callers pass the stored file URL exactly as it was saved
on the project.

Environment Variables:
    STORAGE_BACKEND: "gcs", "r2" or "vercel" (default: "vercel")
    GCS_BUCKET: bucket used when the URL does not name one
    R2_BUCKET, R2_ACCOUNT_ID, R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY
    BLOB_API_URL, BLOB_READ_WRITE_TOKEN: Vercel Blob API
"""

from __future__ import annotations

import logging
from typing import Tuple
from urllib.parse import unquote, urlparse

import httpx

from airtime.core.config import settings

logger = logging.getLogger(__name__)

BLOB_API_VERSION = "11"

_R2_CLIENT = None


class BlobDeleteError(RuntimeError):
    """The storage backend did not confirm the delete."""


def _get_backend() -> str:
    backend = (settings.STORAGE_BACKEND or "vercel").strip().lower()
    if backend not in ("gcs", "r2", "vercel"):
        raise BlobDeleteError(f"Invalid STORAGE_BACKEND '{backend}'")
    return backend


def split_bucket_key(url: str, default_bucket: str, scheme: str) -> Tuple[str, str]:
    """Return ``(bucket, key)`` for ``scheme://bucket/key`` or an HTTP object URL.

    HTTP URLs are treated as ``<host>/<key>`` on ``default_bucket``, except
    ``storage.googleapis.com/<bucket>/<key>``.
    """
    parsed = urlparse(url)
    path = unquote(parsed.path or "").lstrip("/")
    if parsed.scheme == scheme:
        return parsed.netloc, path
    if parsed.netloc == "storage.googleapis.com" and "/" in path:
        bucket, _, key = path.partition("/")
        return bucket, key
    return default_bucket, path


def _delete_gcs(url: str) -> None:
    from google.cloud import storage as gcs_storage

    bucket_name, key = split_bucket_key(url, settings.GCS_BUCKET, "gs")
    if not bucket_name or not key:
        raise BlobDeleteError(f"Cannot resolve GCS object for {url}")
    client = gcs_storage.Client()
    try:
        client.bucket(bucket_name).blob(key).delete()
    except Exception as e:
        raise BlobDeleteError(f"Failed to delete gs://{bucket_name}/{key}: {e}") from e
    logger.info("[storage] Deleted gs://%s/%s", bucket_name, key)


def _get_r2_client():
    global _R2_CLIENT
    if _R2_CLIENT is not None:
        return _R2_CLIENT

    import boto3
    from botocore.client import Config

    if not all([settings.R2_ACCOUNT_ID, settings.R2_ACCESS_KEY_ID, settings.R2_SECRET_ACCESS_KEY]):
        raise BlobDeleteError("Missing R2 credentials (R2_ACCOUNT_ID, R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY)")

    _R2_CLIENT = boto3.client(
        "s3",
        endpoint_url=f"https://{settings.R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=settings.R2_ACCESS_KEY_ID,
        aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
        region_name="auto",
    )
    return _R2_CLIENT


def _delete_r2(url: str) -> None:
    from botocore.exceptions import BotoCoreError, ClientError

    bucket_name, key = split_bucket_key(url, settings.R2_BUCKET, "r2")
    if not bucket_name or not key:
        raise BlobDeleteError(f"Cannot resolve R2 object for {url}")
    client = _get_r2_client()
    try:
        client.delete_object(Bucket=bucket_name, Key=key)
    except (ClientError, BotoCoreError) as e:
        raise BlobDeleteError(f"[R2] Failed to delete {key}: {e}") from e
    logger.info("[R2] Deleted %s from bucket %s", key, bucket_name)


def _delete_vercel(url: str) -> None:
    token = settings.BLOB_READ_WRITE_TOKEN.strip()
    if not token:
        raise BlobDeleteError("Missing BLOB_READ_WRITE_TOKEN")
    endpoint = f"{settings.BLOB_API_URL.rstrip('/')}/delete"
    headers = {
        "authorization": f"Bearer {token}",
        "x-api-version": BLOB_API_VERSION,
        "content-type": "application/json",
    }
    try:
        with httpx.Client(timeout=15.0) as client:
            r = client.post(endpoint, json={"urls": [url]}, headers=headers)
    except httpx.HTTPError as e:
        raise BlobDeleteError(f"Blob delete request failed: {e}") from e
    if not 200 <= r.status_code < 300:
        raise BlobDeleteError(f"Blob delete returned status {r.status_code}: {r.text[:200]}")
    logger.info("[storage] Deleted blob %s", url)


def delete_blob_url(url: str) -> None:
    """Delete the object stored at ``url``. Raises ``BlobDeleteError`` on failure."""
    if not url:
        raise BlobDeleteError("No blob URL given")
    backend = _get_backend()
    logger.debug("[storage] Deleting %s via %s", url, backend)
    if backend == "gcs":
        _delete_gcs(url)
    elif backend == "r2":
        _delete_r2(url)
    else:
        _delete_vercel(url)
