from .banned_ip import BannedIp
from .city import City
from .coupon import Coupon
from .error_log import ErrorLog
from .order import Order, OrderItem
from .security_log import SecurityLog
from .setting import Setting
from .upload_log import UploadLog

__all__ = [
    "BannedIp",
    "City",
    "Coupon",
    "ErrorLog",
    "Order",
    "OrderItem",
    "SecurityLog",
    "Setting",
    "UploadLog",
]
