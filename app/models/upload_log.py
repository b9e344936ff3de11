"""Admin uploads: storage key, size, backend, outcome, duration."""
from datetime import datetime

from sqlmodel import Field, SQLModel

from app.core.clock import utcnow


class UploadLog(SQLModel, table=True):
    __tablename__ = "upload_logs"
    id: int | None = Field(default=None, primary_key=True)
    key: str | None = None
    filename: str | None = None
    file_size_bytes: int | None = None
    provider: str | None = None  # cdn | objectstore | local
    url: str | None = None
    status: str = "pending"  # pending | success | failed
    error_message: str | None = None
    duration_ms: int | None = None
    created_at: datetime = Field(default_factory=utcnow)
