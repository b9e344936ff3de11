from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class BanIpRequest(BaseModel):
    ip_address: str = Field(max_length=64)
    reason: str | None = Field(default=None, max_length=500)


class BannedIpResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ip_address: str
    reason: str | None = None
    created_at: datetime
