from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

OrderStatus = Literal["PENDING", "CONFIRMED", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED"]
PaymentStatus = Literal["PENDING", "PAID", "FAILED", "REFUNDED"]


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: str
    title: str
    color: str
    size: str
    quantity: int
    price: float


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    customer_name: str
    customer_email: str | None = None
    customer_phone: str
    alt_phone: str | None = None
    shipping_address: str
    city: str
    delivery_note: str | None = None
    subtotal: float
    discount: float
    shipping_cost: float
    total: float
    coupon_code: str | None = None
    payment_method: str
    payment_status: str
    sender_number: str | None = None
    transaction_id: str | None = None
    status: str
    created_at: datetime
    items: list[OrderItemResponse] = []
