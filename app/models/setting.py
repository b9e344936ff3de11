from datetime import datetime

from sqlmodel import Field, SQLModel

from app.core.clock import utcnow


class Setting(SQLModel, table=True):
    """Key/value override of a compiled-in default (see app.services.settings.DEFAULT_SETTINGS)."""

    key: str = Field(primary_key=True, max_length=64)
    value: str = ""
    updated_at: datetime = Field(default_factory=utcnow)
