import os
import re
import time
import uuid
import glob
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import urlsplit

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import settings
from .errors import AssetDeleteError, AssetUploadError

logger = logging.getLogger(__name__)

KEY_PREFIX = "posts"

# posts/<owner>/<name>, both segments already sanitized by build_storage_key
ASSET_ID_PATTERN = re.compile(rf"^{KEY_PREFIX}/[A-Za-z0-9_-]+/[A-Za-z0-9_]+$")

CACHE_CONTROL = {
    "image": "public, max-age=31536000, immutable",
    "video": "public, max-age=31536000, immutable",
    "raw": "public, max-age=86400",
}

MISSING_OBJECT_CODES = {"NoSuchKey", "404", "NotFound"}


@dataclass(frozen=True)
class UploadedAsset:
    """Handle to a stored file; referenced by a post row once the write commits."""
    asset_id: str
    url: str
    byte_size: int
    kind: str


def resource_kind(mime_type: Optional[str]) -> str:
    """Map a MIME type to the coarse kind used for storage routing: image, video or raw."""
    mime_type = (mime_type or "").lower()
    if mime_type.startswith("image/"):
        return "image"
    elif mime_type.startswith("video/"):
        return "video"
    return "raw"


def sanitize_base_name(original_name: str) -> str:
    base = os.path.splitext(os.path.basename(original_name or ""))[0]
    cleaned = re.sub(r"[^a-zA-Z0-9]+", "_", base).strip("_")
    return cleaned or "file"


def build_storage_key(original_name: str, owner_id: str) -> str:
    """
    Build a collision-resistant key scoped under the owner:
    posts/<owner>/<sanitized name>_<epoch ms>_<random hex>
    """
    owner = re.sub(r"[^A-Za-z0-9_-]+", "_", str(owner_id)) or "anonymous"
    timestamp = int(time.time() * 1000)
    return f"{KEY_PREFIX}/{owner}/{sanitize_base_name(original_name)}_{timestamp}_{uuid.uuid4().hex[:8]}"


def extract_asset_id(url: Optional[str]) -> Optional[str]:
    """
    Recover the asset id from a public file URL.

    Query strings, fragments, host and path prefixes (version segments like
    ``v1712345/``, transformation segments, the API static mount) and the file
    extension are stripped. Returns None when the URL doesn't end in
    ``posts/<owner>/<name>``.
    """
    if not url or not isinstance(url, str):
        return None
    try:
        path = urlsplit(url.strip()).path
    except ValueError:
        return None

    segments = [segment for segment in path.split("/") if segment]
    if len(segments) < 3 or segments[-3] != KEY_PREFIX:
        return None

    owner, name = segments[-2], re.sub(r"\.[^/.]+$", "", segments[-1])
    asset_id = f"{KEY_PREFIX}/{owner}/{name}"
    if not ASSET_ID_PATTERN.match(asset_id):
        return None
    return asset_id


class AssetStore:
    """Interface shared by the object storage backends"""

    def upload(self, content: bytes, original_name: str, mime_type: str, owner_id: str,
               timeout: Optional[float] = None) -> UploadedAsset:
        raise NotImplementedError

    def delete(self, asset_id: str, timeout: Optional[float] = None) -> None:
        raise NotImplementedError


class R2AssetStore(AssetStore):
    """Handles file storage using Cloudflare R2"""

    def __init__(self, client=None, bucket: Optional[str] = None, public_url: Optional[str] = None,
                 timeout: Optional[float] = None):
        self.bucket = bucket or settings.R2_BUCKET_NAME
        self.public_url = (public_url if public_url is not None else settings.R2_PUBLIC_URL).rstrip("/")
        self.timeout = timeout or settings.ASSET_UPLOAD_TIMEOUT_SECONDS
        self._injected_client = client is not None
        self._timeout_clients: Dict[float, object] = {}
        self._lock = threading.Lock()

        logger.info("Initializing R2AssetStore with configuration:")
        logger.info(f"  Bucket: {self.bucket}")
        logger.info(f"  Public URL: {self.public_url}")
        logger.info(f"  Endpoint: {settings.R2_ENDPOINT}")

        self.client = client or self._create_client(self.timeout)

    def _create_client(self, timeout: float):
        logger.debug(f"Creating S3 client for R2 storage (timeout={timeout}s)")
        return boto3.client(
            "s3",
            endpoint_url=settings.R2_ENDPOINT,
            aws_access_key_id=settings.R2_ACCESS_KEY_ID,
            aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
            config=Config(
                connect_timeout=timeout,
                read_timeout=timeout,
                retries={"max_attempts": 1},
            ),
        )

    def _client_for(self, timeout: Optional[float]):
        # Clients are never reconfigured; each distinct timeout gets its own
        if timeout is None or timeout == self.timeout or self._injected_client:
            return self.client
        with self._lock:
            if timeout not in self._timeout_clients:
                self._timeout_clients[timeout] = self._create_client(timeout)
            return self._timeout_clients[timeout]

    def upload(self, content: bytes, original_name: str, mime_type: str, owner_id: str,
               timeout: Optional[float] = None) -> UploadedAsset:
        key = build_storage_key(original_name, owner_id)
        kind = resource_kind(mime_type)
        extension = os.path.splitext(original_name or "")[1].lower()
        logger.info(f"⬆️ [UPLOAD] Uploading '{original_name}' ({len(content)} bytes, {kind}) to R2 bucket '{self.bucket}' with key '{key}'")
        try:
            self._client_for(timeout).put_object(
                Bucket=self.bucket,
                Key=key,
                Body=content,
                ContentType=mime_type or "application/octet-stream",
                ContentDisposition=f'inline; filename="{sanitize_base_name(original_name)}{extension}"',
                CacheControl=CACHE_CONTROL[kind],
                Metadata={"kind": kind, "owner-id": str(owner_id)},
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"[UPLOAD] Failed to upload to R2: {str(e)}")
            raise AssetUploadError(f"Upload failed: {str(e)}") from e

        url = f"{self.public_url}/{key}"
        logger.info(f"✅ [UPLOAD] Successfully uploaded file to R2: {url}")
        return UploadedAsset(asset_id=key, url=url, byte_size=len(content), kind=kind)

    def delete(self, asset_id: str, timeout: Optional[float] = None) -> None:
        """Delete an object by key. Missing objects count as deleted."""
        logger.info(f"Deleting file with key '{asset_id}' from bucket '{self.bucket}'")
        try:
            self._client_for(timeout).delete_object(Bucket=self.bucket, Key=asset_id)
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in MISSING_OBJECT_CODES:
                logger.info(f"File '{asset_id}' was already gone from R2")
                return
            logger.error(f"Failed to delete from R2: {str(e)}")
            raise AssetDeleteError(f"Delete failed: {str(e)}") from e
        except BotoCoreError as e:
            logger.error(f"Failed to delete from R2: {str(e)}")
            raise AssetDeleteError(f"Delete failed: {str(e)}") from e
        logger.info(f"Successfully deleted file '{asset_id}' from R2")


class LocalAssetStore(AssetStore):
    """Stores post files on local disk; used when R2 is not configured"""

    def __init__(self, root: Optional[str] = None, base_url: Optional[str] = None):
        self.root = Path(root or settings.UPLOAD_DIRECTORY)
        self.base_url = f"{base_url if base_url is not None else settings.BASE_URL}{settings.API_V1_STR}/static"
        self.root.mkdir(parents=True, exist_ok=True)

    def upload(self, content: bytes, original_name: str, mime_type: str, owner_id: str,
               timeout: Optional[float] = None) -> UploadedAsset:
        key = build_storage_key(original_name, owner_id)
        extension = os.path.splitext(original_name or "")[1].lower()
        local_path = self.root / f"{key}{extension}"
        try:
            local_path.parent.mkdir(parents=True, exist_ok=True)
            local_path.write_bytes(content)
        except OSError as e:
            logger.error(f"[UPLOAD] Failed to save file locally: {str(e)}")
            raise AssetUploadError(f"Failed to save file locally: {str(e)}") from e

        logger.info(f"💾 [UPLOAD] Saved file locally at {local_path}")
        return UploadedAsset(
            asset_id=key,
            url=f"{self.base_url}/{key}{extension}",
            byte_size=len(content),
            kind=resource_kind(mime_type),
        )

    def delete(self, asset_id: str, timeout: Optional[float] = None) -> None:
        if not ASSET_ID_PATTERN.match(asset_id or ""):
            logger.warning(f"Refusing to delete '{asset_id}': not a post asset id")
            raise AssetDeleteError(f"Not a post asset id: {asset_id}")

        folder, name = os.path.split(asset_id)
        matches = [
            path for path in (self.root / folder).glob(f"{glob.escape(name)}*")
            if path.stem == name or path.name == name
        ]
        if not matches:
            logger.info(f"File '{asset_id}' was already gone from local storage")
            return
        try:
            for path in matches:
                path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to delete local file '{asset_id}': {str(e)}")
            raise AssetDeleteError(f"Delete failed: {str(e)}") from e
        logger.info(f"Successfully deleted local file '{asset_id}'")


def build_asset_store() -> AssetStore:
    """Use R2 when it is fully configured, otherwise fall back to local storage."""
    missing = [
        name for name in ("R2_ENDPOINT", "R2_ACCESS_KEY_ID", "R2_SECRET_ACCESS_KEY", "R2_PUBLIC_URL")
        if not getattr(settings, name)
    ]
    if not missing:
        return R2AssetStore()
    logger.warning(f"R2 storage not properly configured - missing: {', '.join(missing)}. Using local storage.")
    return LocalAssetStore()
