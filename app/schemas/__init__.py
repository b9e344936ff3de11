from .checkout import CartItemIn, CheckoutForm, CreateOrderRequest
from .city import CityCreate, CityResponse, CityUpdate
from .coupon import CouponCreate, CouponResponse, CouponUpdate, CouponValidateRequest
from .courier import CourierCheckRequest
from .ip_ban import BanIpRequest, BannedIpResponse
from .order import OrderItemResponse, OrderResponse, OrderStatusUpdate, PaymentStatusUpdate
from .settings import SettingsUpdate, SettingValue

__all__ = [
    "BanIpRequest",
    "BannedIpResponse",
    "CartItemIn",
    "CheckoutForm",
    "CityCreate",
    "CityResponse",
    "CityUpdate",
    "CouponCreate",
    "CouponResponse",
    "CouponUpdate",
    "CouponValidateRequest",
    "CourierCheckRequest",
    "CreateOrderRequest",
    "OrderItemResponse",
    "OrderResponse",
    "OrderStatusUpdate",
    "PaymentStatusUpdate",
    "SettingsUpdate",
    "SettingValue",
]
