"""Placed orders: a snapshot of the customer, totals and line items at checkout time."""
from datetime import datetime

from sqlmodel import Field, Relationship, SQLModel

from app.core.clock import utcnow

ORDER_STATUSES = ("PENDING", "CONFIRMED", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED")
PAYMENT_METHODS = ("COD", "BKASH", "NAGAD", "ROCKET")
# Mobile wallets are paid to the merchant number and verified by hand
MOBILE_PAYMENT_METHODS = ("BKASH", "NAGAD", "ROCKET")
PAYMENT_STATUSES = ("PENDING", "PAID", "FAILED", "REFUNDED")


class Order(SQLModel, table=True):
    __tablename__ = "shop_order"

    id: int | None = Field(default=None, primary_key=True)
    order_number: str = Field(unique=True, index=True)  # MC-<base36 ms>-<4 chars>
    customer_name: str
    customer_email: str | None = None
    customer_phone: str = Field(index=True)
    alt_phone: str | None = None
    shipping_address: str
    city: str
    delivery_note: str | None = None
    subtotal: float
    discount: float = 0.0
    shipping_cost: float
    total: float
    coupon_id: int | None = Field(default=None, foreign_key="coupon.id")
    coupon_code: str | None = None
    payment_method: str = "COD"
    payment_status: str = "PENDING"
    sender_number: str | None = None  # wallet number the customer paid from
    transaction_id: str | None = None
    status: str = Field(default="PENDING", index=True)
    client_ip: str | None = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)

    items: list["OrderItem"] = Relationship(back_populates="order")


class OrderItem(SQLModel, table=True):
    __tablename__ = "order_item"

    id: int | None = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="shop_order.id", index=True)
    product_id: str
    title: str = ""
    color: str = ""
    size: str = ""
    quantity: int
    price: float  # unit price at purchase time

    order: Order | None = Relationship(back_populates="items")
