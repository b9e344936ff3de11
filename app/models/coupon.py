"""Discount coupon: percent or fixed amount, optional minimum order, usage cap and validity window."""
from datetime import datetime

from sqlmodel import Field, SQLModel

from app.core.clock import utcnow

COUPON_TYPES = ("PERCENT", "FIXED")


class Coupon(SQLModel, table=True):
    """Created by admins, checked at checkout, redeemed when an order is placed."""

    id: int | None = Field(default=None, primary_key=True)
    code: str = Field(unique=True, index=True, max_length=50)  # always upper-case, e.g. SAVE10
    type: str = Field(max_length=16)  # "PERCENT" | "FIXED"
    value: float  # PERCENT: 1-100, FIXED: BDT
    min_order_amount: float | None = None
    max_uses: int | None = None  # None = unlimited
    used_count: int = 0
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
