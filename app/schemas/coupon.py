from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class CouponBase(BaseModel):
    code: str = Field(min_length=2, max_length=50)
    type: Literal["PERCENT", "FIXED"]
    value: float = Field(gt=0, description="Percent (1-100) or fixed BDT amount")
    min_order_amount: float | None = Field(default=None, ge=0)
    max_uses: int | None = Field(default=None, ge=1)
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    is_active: bool = True

    @field_validator("code", mode="before")
    @classmethod
    def normalize_code(cls, v: str | None) -> str | None:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("valid_from", "valid_until", mode="before")
    @classmethod
    def blank_date_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("valid_from", "valid_until")
    @classmethod
    def store_naive_utc(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class CouponCreate(CouponBase):
    @model_validator(mode="after")
    def percent_at_most_100(self):
        if self.type == "PERCENT" and self.value > 100:
            raise ValueError("Percentage must be between 1 and 100")
        return self


class CouponUpdate(CouponBase):
    code: str | None = Field(default=None, min_length=2, max_length=50)
    type: Literal["PERCENT", "FIXED"] | None = None
    value: float | None = Field(default=None, gt=0)
    is_active: bool | None = None

    @model_validator(mode="after")
    def percent_at_most_100(self):
        if self.type == "PERCENT" and self.value is not None and self.value > 100:
            raise ValueError("Percentage must be between 1 and 100")
        return self


class CouponResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    type: str
    value: float
    min_order_amount: float | None = None
    max_uses: int | None = None
    used_count: int = 0
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    is_active: bool
    created_at: datetime | None = None


class CouponValidateRequest(BaseModel):
    code: str = ""
    subtotal: float = 0
