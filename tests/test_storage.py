"""Storage backends, backend selection and the /uploads file route."""
import inspect
import io
import json

import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient
from sqlmodel import select

from app.admin.routers import uploads as uploads_router
from app.core.config import Settings
from app.models import UploadLog
from app.services import storage as storage_module
from app.services.storage import (
    ImageKitStorage,
    LocalStorage,
    ObjectStoreStorage,
    StorageConfig,
    StorageError,
    build_upload_key,
    create_storage,
    get_storage,
    storage_config_from_settings,
)

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def test_provider_priority():
    both = Settings(
        imagekit_private_key="private_x",
        imagekit_url_endpoint="https://ik.imagekit.io/shop",
        minio_endpoint="minio.local",
        minio_access_key="ak",
        minio_secret_key="sk",
    )
    assert storage_config_from_settings(both).provider == "cdn"
    minio_only = Settings(minio_endpoint="minio.local", minio_access_key="ak", minio_secret_key="sk")
    assert storage_config_from_settings(minio_only).provider == "objectstore"
    partial = Settings(imagekit_private_key="private_x", minio_endpoint="minio.local")
    assert storage_config_from_settings(partial).provider == "local"


def test_quality_setting_is_clamped_to_default():
    assert StorageConfig(imagekit_upload_quality="60").imagekit_upload_quality == 60
    assert StorageConfig(imagekit_upload_quality="0").imagekit_upload_quality == 80
    assert StorageConfig(imagekit_upload_quality="abc").imagekit_upload_quality == 80


def test_get_storage_is_memoised():
    assert get_storage() is get_storage()
    assert isinstance(get_storage(), LocalStorage)


def test_local_upload_and_url(tmp_path):
    s = LocalStorage(StorageConfig(upload_dir=str(tmp_path)))
    url = s.upload(PNG, "products/a/b.png", "image/png")
    assert url == "/uploads/products/a/b.png"
    assert (tmp_path / "products" / "a" / "b.png").read_bytes() == PNG


def test_local_rejects_escaping_keys(tmp_path):
    s = LocalStorage(StorageConfig(upload_dir=str(tmp_path / "uploads")))
    with pytest.raises(ValueError):
        s.upload(PNG, "../outside.png", "image/png")


class FakeS3:
    def __init__(self, bucket_exists=False):
        self.bucket_exists = bucket_exists
        self.created = []
        self.objects = {}

    def head_bucket(self, Bucket):
        if not self.bucket_exists:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadBucket")

    def create_bucket(self, Bucket):
        self.created.append(Bucket)
        self.bucket_exists = True

    def put_object(self, Bucket, Key, Body, ContentType):
        self.objects[(Bucket, Key)] = (Body, ContentType)


def test_objectstore_creates_bucket_once():
    fake = FakeS3()
    config = StorageConfig(provider="objectstore", minio_endpoint="minio.local", minio_port=9000, minio_bucket="shop")
    s = ObjectStoreStorage(config, client=fake)
    url = s.upload(PNG, "products/x.png", "image/png")
    s.upload(PNG, "products/y.png", "image/png")
    assert fake.created == ["shop"]
    assert url == "http://minio.local:9000/shop/products/x.png"
    assert fake.objects[("shop", "products/x.png")] == (PNG, "image/png")


def test_objectstore_url_omits_default_port():
    config = StorageConfig(minio_endpoint="cdn.example.com", minio_port=443, minio_use_ssl=True, minio_bucket="b")
    s = ObjectStoreStorage(config, client=FakeS3(bucket_exists=True))
    assert s.get_public_url("k.png") == "https://cdn.example.com/b/k.png"


class FakeResponse:
    status_code = 200

    def __init__(self, payload):
        self._payload = payload

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self):
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        return FakeResponse({"url": "https://ik.imagekit.io/shop/products/x.png"})


def _imagekit(session):
    config = StorageConfig(
        provider="cdn",
        imagekit_private_key="private_x",
        imagekit_url_endpoint="https://ik.imagekit.io/shop/",
        imagekit_upload_folder="products",
        imagekit_upload_quality=70,
    )
    return ImageKitStorage(config, session=session)


def test_imagekit_applies_quality_to_images_only():
    session = FakeSession()
    s = _imagekit(session)
    assert s.upload(PNG, "x.png", "image/png") == "https://ik.imagekit.io/shop/products/x.png"
    s.upload(b"%PDF", "doc.pdf", "application/pdf")

    (url, img_kwargs), (_, pdf_kwargs) = session.calls
    assert url == storage_module.IMAGEKIT_UPLOAD_URL
    assert img_kwargs["auth"] == ("private_x", "")
    assert json.loads(img_kwargs["data"]["transformation"]) == {"pre": "q-70"}
    assert img_kwargs["data"]["folder"] == "/products"
    assert "transformation" not in pdf_kwargs["data"]


class NotJsonResponse:
    status_code = 200

    def json(self):
        raise ValueError("Expecting value: line 1 column 1 (char 0)")


def test_imagekit_non_json_reply_is_storage_error():
    session = FakeSession()
    session.post = lambda url, **kwargs: NotJsonResponse()
    with pytest.raises(StorageError, match="invalid response"):
        _imagekit(session).upload(PNG, "x.png", "image/png")


def test_imagekit_public_url():
    assert _imagekit(FakeSession()).get_public_url("x.png") == "https://ik.imagekit.io/shop/products/x.png"


def test_create_storage_dispatch(tmp_path):
    assert isinstance(create_storage(StorageConfig(provider="local", upload_dir=str(tmp_path))), LocalStorage)
    assert isinstance(create_storage(StorageConfig(provider="cdn")), ImageKitStorage)


def test_build_upload_key():
    key = build_upload_key("My Photo (1).PNG", "products")
    folder, name = key.split("/")
    assert folder == "products"
    assert name.endswith("-My-Photo-1-.PNG")
    assert build_upload_key("../../etc/passwd", "").endswith("-passwd")
    assert "/" not in build_upload_key("../../etc/passwd", "")


def test_upload_endpoint_and_file_route(client: TestClient, admin_headers, db):
    r = client.post(
        "/admin/uploads",
        files={"file": ("shirt.png", io.BytesIO(PNG), "image/png")},
        headers=admin_headers,
    )
    assert r.status_code == 201, r.text
    url = r.json()["data"]["url"]
    assert url.startswith("/uploads/products/")

    r = client.get(url)
    assert r.status_code == 200
    assert r.content == PNG
    assert r.headers["content-type"] == "image/png"
    assert r.headers["cache-control"] == "public, max-age=31536000, immutable"

    log = db.exec(select(UploadLog)).one()
    assert log.status == "success"
    assert log.provider == "local"
    assert log.file_size_bytes == len(PNG)


class FailingStorage:
    provider = "cdn"

    def upload(self, data, key, content_type):
        raise StorageError("Image CDN upload failed: HTTP 502")


def test_upload_runs_in_threadpool():
    # Storage backends block on network and disk I/O
    assert not inspect.iscoroutinefunction(uploads_router.upload_image)


def test_upload_failure_is_logged(client: TestClient, admin_headers, db, monkeypatch):
    monkeypatch.setattr(uploads_router, "get_storage", lambda: FailingStorage())
    r = client.post(
        "/admin/uploads",
        files={"file": ("shirt.png", io.BytesIO(PNG), "image/png")},
        headers=admin_headers,
    )
    assert r.status_code == 400
    assert r.json()["error"] == "Upload failed. Please try again."
    log = db.exec(select(UploadLog)).one()
    assert log.status == "failed"
    assert log.provider == "cdn"
    assert "HTTP 502" in log.error_message


def test_upload_rejects_non_images(client: TestClient, admin_headers):
    r = client.post(
        "/admin/uploads",
        files={"file": ("notes.txt", io.BytesIO(b"hello"), "text/plain")},
        headers=admin_headers,
    )
    assert r.status_code == 400


def test_file_route_missing_and_traversal(client: TestClient):
    assert client.get("/uploads/products/missing.png").status_code == 404
    r = client.get("/uploads/%2e%2e/%2e%2e/etc/passwd")
    assert r.status_code == 403
