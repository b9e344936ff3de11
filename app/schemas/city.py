from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ShippingZone = Literal["inside_dhaka", "outside_dhaka"]


class CityCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    # Derived from name when omitted
    value: str | None = Field(default=None, max_length=100)
    shipping_zone: ShippingZone = "outside_dhaka"
    sort_order: int | None = None


class CityUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    value: str | None = Field(default=None, min_length=1, max_length=100)
    shipping_zone: ShippingZone | None = None
    sort_order: int | None = None


class CityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    value: str
    shipping_zone: str
    sort_order: int = 0
