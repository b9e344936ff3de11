"""Pytest fixtures: test client, in-memory SQLite session, admin headers."""
import os
import tempfile

import pytest
from fastapi.testclient import TestClient

# In-memory SQLite and test config; must be set before app is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["ADMIN_SECRET"] = "test-admin-secret"
# Low public budget so the rate limit test can hit it; orders get plenty
os.environ["RATE_LIMIT_PER_MINUTE"] = "30"
os.environ["RATE_LIMIT_ORDERS_PER_MINUTE"] = "1000"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="shop-uploads-")
for _key in ("BDCOURIER_API_KEY", "IMAGEKIT_PRIVATE_KEY", "MINIO_ENDPOINT", "META_PIXEL_ID", "META_CAPI_ACCESS_TOKEN"):
    os.environ[_key] = ""

from sqlmodel import Session, SQLModel

from app.core.database import engine, init_db
from app.core.rate_limit import limiter
from app.main import app
from app.services.settings import settings_cache
from app.services.storage import reset_storage

ADMIN_SECRET = "test-admin-secret"


@pytest.fixture(autouse=True)
def _clean_state():
    """Empty tables, caches and rate-limit counters before every test."""
    init_db()
    with Session(engine) as s:
        for table in reversed(SQLModel.metadata.sorted_tables):
            s.exec(table.delete())
        s.commit()
    settings_cache.invalidate()
    reset_storage()
    limiter.reset()
    yield


@pytest.fixture(scope="function")
def client():
    """TestClient; the lifespan creates the tables."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db():
    with Session(engine) as session:
        yield session


@pytest.fixture
def admin_headers():
    return {"X-Admin-Secret": ADMIN_SECRET}
