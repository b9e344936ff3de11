import re
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

PaymentMethod = Literal["COD", "BKASH", "NAGAD", "ROCKET"]

_PHONE_RE = re.compile(r"^[0-9+]+$")
_OPTIONAL_PHONE_RE = re.compile(r"^[0-9+]*$")


class CheckoutForm(BaseModel):
    full_name: str = Field(min_length=2, max_length=100)
    email: EmailStr | None = None
    phone: str = Field(min_length=11, max_length=14)
    address: str = Field(min_length=10, max_length=500)
    city: str = Field(min_length=1, max_length=100)
    alt_phone: str | None = None
    delivery_note: str | None = Field(default=None, max_length=500)
    payment_method: PaymentMethod = "COD"
    sender_number: str | None = None
    transaction_id: str | None = Field(default=None, max_length=64)
    coupon_code: str | None = Field(default=None, max_length=50)

    @field_validator("full_name", "address", "city", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("phone")
    @classmethod
    def phone_digits(cls, v: str) -> str:
        if not _PHONE_RE.match(v):
            raise ValueError("Please enter a valid phone number")
        return v

    @field_validator("alt_phone", "sender_number")
    @classmethod
    def optional_phone_digits(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not _OPTIONAL_PHONE_RE.match(v):
            raise ValueError("Please enter a valid phone number")
        return v or None

    @model_validator(mode="after")
    def wallet_payment_details(self):
        if self.payment_method != "COD":
            if not self.sender_number:
                raise ValueError("Sender number is required for mobile payments")
            if not (self.transaction_id or "").strip():
                raise ValueError("Transaction ID is required for mobile payments")
        return self


class CartItemIn(BaseModel):
    product_id: str = Field(min_length=1)
    title: str = ""
    color: str = ""
    size: str = ""
    quantity: int = Field(ge=1, le=100)
    price: float = Field(ge=0)


class CreateOrderRequest(BaseModel):
    form: CheckoutForm
    items: list[CartItemIn] = Field(default_factory=list)
