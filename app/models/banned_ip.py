from datetime import datetime

from sqlmodel import Field, SQLModel

from app.core.clock import utcnow


class BannedIp(SQLModel, table=True):
    """IP addresses that may not place orders. Checked once per checkout attempt."""

    __tablename__ = "banned_ip"
    id: int | None = Field(default=None, primary_key=True)
    ip_address: str = Field(unique=True, index=True, max_length=45)
    reason: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
