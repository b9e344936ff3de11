from pydantic import BaseModel, Field


class SettingsUpdate(BaseModel):
    """Bulk update: {"values": {"shippingDhaka": "70", ...}}"""

    values: dict[str, str] = Field(default_factory=dict)


class SettingValue(BaseModel):
    value: str
