"""Checkout abuse signals: banned IP attempts, rate limit hits, order cooldown rejections."""
from datetime import datetime

from sqlmodel import Field, SQLModel

from app.core.clock import utcnow


class SecurityLog(SQLModel, table=True):
    __tablename__ = "security_logs"
    id: int | None = Field(default=None, primary_key=True)
    event: str = Field(index=True)  # banned_ip | rate_limit | order_cooldown
    ip: str | None = None
    endpoint: str | None = None
    detail: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
