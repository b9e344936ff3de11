"""
Upload storage: image CDN (ImageKit), S3-compatible object store (MinIO), or local disk.

The backend is described by a ``StorageConfig`` built once from settings, in fixed
priority order: ImageKit, then MinIO, then local. ``get_storage()`` memoises the
backend for the life of the process.
"""
import logging
import re
import threading
import uuid
from pathlib import Path
from typing import Literal, Protocol

import boto3
import requests
from botocore.exceptions import ClientError
from pydantic import BaseModel, field_validator

from app.core.config import Settings, settings as app_settings

logger = logging.getLogger(__name__)

IMAGEKIT_UPLOAD_URL = "https://upload.imagekit.io/api/v1/files/upload"
DEFAULT_QUALITY = 80
UPLOAD_TIMEOUT = 30


class StorageConfig(BaseModel):
    provider: Literal["cdn", "objectstore", "local"] = "local"
    # cdn
    imagekit_private_key: str = ""
    imagekit_url_endpoint: str = ""
    imagekit_upload_folder: str = ""
    imagekit_upload_quality: int = DEFAULT_QUALITY
    # objectstore
    minio_endpoint: str = ""
    minio_port: int = 9000
    minio_use_ssl: bool = False
    minio_access_key: str = ""
    minio_secret_key: str = ""
    minio_bucket: str = "uploads"
    # local
    upload_dir: str = "public/uploads"

    @field_validator("imagekit_upload_quality", mode="before")
    @classmethod
    def quality_in_range(cls, v):
        try:
            q = int(str(v).strip())
        except (TypeError, ValueError):
            return DEFAULT_QUALITY
        return q if 1 <= q <= 100 else DEFAULT_QUALITY


def storage_config_from_settings(s: Settings = app_settings) -> StorageConfig:
    common = {
        "imagekit_private_key": s.imagekit_private_key,
        "imagekit_url_endpoint": s.imagekit_url_endpoint,
        "imagekit_upload_folder": s.imagekit_upload_folder,
        "imagekit_upload_quality": s.imagekit_upload_quality,
        "minio_endpoint": s.minio_endpoint,
        "minio_port": s.minio_port,
        "minio_use_ssl": s.minio_use_ssl,
        "minio_access_key": s.minio_access_key,
        "minio_secret_key": s.minio_secret_key,
        "minio_bucket": s.minio_bucket or "uploads",
        "upload_dir": s.upload_dir,
    }
    if s.imagekit_private_key and s.imagekit_url_endpoint:
        provider = "cdn"
    elif s.minio_endpoint and s.minio_access_key and s.minio_secret_key:
        provider = "objectstore"
    else:
        provider = "local"
    return StorageConfig(provider=provider, **common)


class StorageService(Protocol):
    provider: str

    def upload(self, data: bytes, key: str, content_type: str) -> str: ...

    def get_public_url(self, key: str) -> str: ...


class StorageError(Exception):
    pass


class ImageKitStorage:
    provider = "cdn"

    def __init__(self, config: StorageConfig, session: requests.Session | None = None):
        self.private_key = config.imagekit_private_key
        self.url_endpoint = config.imagekit_url_endpoint.rstrip("/")
        self.folder = config.imagekit_upload_folder.strip("/")
        self.quality = config.imagekit_upload_quality
        self.session = session or requests.Session()

    def upload(self, data: bytes, key: str, content_type: str) -> str:
        key = key.lstrip("/")
        dirname, _, filename = key.rpartition("/")
        folder = "/".join(p for p in (self.folder, dirname) if p)
        form = {
            "fileName": filename,
            "folder": f"/{folder}" if folder else "/",
            "useUniqueFileName": "false",
        }
        if content_type.startswith("image/"):
            form["transformation"] = '{"pre": "q-%d"}' % self.quality
        try:
            resp = self.session.post(
                IMAGEKIT_UPLOAD_URL,
                auth=(self.private_key, ""),
                data=form,
                files={"file": (filename, data, content_type)},
                timeout=UPLOAD_TIMEOUT,
            )
        except requests.RequestException as e:
            raise StorageError(f"Image CDN upload failed: {e}") from e
        if resp.status_code >= 400:
            raise StorageError(f"Image CDN upload failed: HTTP {resp.status_code}")
        try:
            payload = resp.json()
        except ValueError as e:
            raise StorageError("Image CDN upload failed: invalid response") from e
        url = payload.get("url") if isinstance(payload, dict) else None
        return url or self.get_public_url(key)

    def get_public_url(self, key: str) -> str:
        parts = [self.url_endpoint]
        if self.folder:
            parts.append(self.folder)
        parts.append(key.lstrip("/"))
        return "/".join(parts)


class ObjectStoreStorage:
    provider = "objectstore"

    def __init__(self, config: StorageConfig, client=None):
        self.bucket = config.minio_bucket
        self.protocol = "https" if config.minio_use_ssl else "http"
        default_port = 443 if config.minio_use_ssl else 80
        port_part = f":{config.minio_port}" if config.minio_port != default_port else ""
        self.base_url = f"{self.protocol}://{config.minio_endpoint}{port_part}"
        self.client = client or boto3.client(
            "s3",
            endpoint_url=self.base_url,
            aws_access_key_id=config.minio_access_key,
            aws_secret_access_key=config.minio_secret_key,
            region_name="us-east-1",
        )
        self._bucket_ready = False
        self._lock = threading.Lock()

    def _ensure_bucket(self) -> None:
        with self._lock:
            if self._bucket_ready:
                return
            try:
                self.client.head_bucket(Bucket=self.bucket)
            except ClientError:
                logger.info("Creating bucket %s", self.bucket)
                self.client.create_bucket(Bucket=self.bucket)
            self._bucket_ready = True

    def upload(self, data: bytes, key: str, content_type: str) -> str:
        try:
            self._ensure_bucket()
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
        except ClientError as e:
            raise StorageError(f"Object store upload failed: {e}") from e
        return self.get_public_url(key)

    def get_public_url(self, key: str) -> str:
        return f"{self.base_url}/{self.bucket}/{key}"


class LocalStorage:
    provider = "local"

    def __init__(self, config: StorageConfig):
        self.root = Path(config.upload_dir).resolve()

    def resolve(self, key: str) -> Path:
        """Absolute path for a key; raises ValueError when it escapes the upload directory."""
        path = (self.root / key).resolve()
        if path != self.root and self.root not in path.parents:
            raise ValueError("Invalid upload path")
        return path

    def upload(self, data: bytes, key: str, content_type: str) -> str:
        path = self.resolve(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return self.get_public_url(key)

    def get_public_url(self, key: str) -> str:
        return "/uploads/" + key.replace("\\", "/").lstrip("/")


def create_storage(config: StorageConfig) -> StorageService:
    if config.provider == "cdn":
        return ImageKitStorage(config)
    if config.provider == "objectstore":
        return ObjectStoreStorage(config)
    return LocalStorage(config)


_storage: StorageService | None = None
_storage_lock = threading.Lock()


def get_storage() -> StorageService:
    global _storage
    with _storage_lock:
        if _storage is None:
            config = storage_config_from_settings()
            _storage = create_storage(config)
            logger.info("Storage backend: %s", config.provider)
        return _storage


def reset_storage() -> None:
    global _storage
    with _storage_lock:
        _storage = None


_SAFE_NAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


def build_upload_key(filename: str | None, folder: str = "products") -> str:
    """'products/<uuid>-<safe-name>'; unsafe characters collapse to '-'."""
    name = Path(filename or "file").name
    safe = _SAFE_NAME_RE.sub("-", name).strip("-.") or "file"
    folder = folder.strip("/")
    return f"{folder}/{uuid.uuid4().hex}-{safe[:100]}" if folder else f"{uuid.uuid4().hex}-{safe[:100]}"
