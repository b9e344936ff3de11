"""
Store settings: key/value rows in the database over compiled-in defaults.

A missing row always means "use the default", never an error. Reads go through
``SettingsCache``; every write invalidates it.
"""
import json
import logging
import threading
import time
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.core.clock import utcnow
from app.core.config import settings as app_settings
from app.models import Setting

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: dict[str, str] = {
    # Store information
    "storeName": "Maneel Club",
    "storeDescription": "Premium clothing brand in Bangladesh",
    "storeEmail": "support@maneelclub.com",
    "storePhone": "+8801997193518",
    # Social links
    "facebookUrl": "https://www.facebook.com/maneelclub",
    "instagramUrl": "",
    "whatsappNumber": "+8801997193518",
    # Shipping rates (BDT)
    "shippingDhaka": "80",
    "shippingOutside": "130",
    # Merchant wallet numbers
    "bkashNumber": "01854938837",
    "nagadNumber": "01854938837",
    "rocketNumber": "01854938837",
    # Announcement bar
    "announcementEnabled": "true",
    "announcementMessage": "Free shipping on orders over BDT 2000!",
    "announcementLink": "/shop",
    "announcementLinkText": "Shop Now",
    # Orders
    "lowStockThreshold": "5",
    "freeShippingMinimum": "2000",
    # Same IP cannot order again within X minutes
    "orderCooldownEnabled": "false",
    "orderCooldownMinutes": "10",
    # Meta Pixel / Conversions API
    "metaPixelEnabled": "false",
    "metaPixelId": "",
    "metaCapiAccessToken": "",
    # Google Tag Manager, e.g. GTM-52G5CZNB
    "gtmContainerId": "",
    # Header navigation: JSON list of {name, href}
    "headerMenu": json.dumps(
        [
            {"name": "Home", "href": "/"},
            {"name": "Shop", "href": "/shop"},
            {"name": "New Arrivals", "href": "/product-category/new-arrivals"},
            {"name": "Winter Collection", "href": "/product-category/winter-collection"},
            {"name": "Hoodie", "href": "/product-category/hoodie"},
        ]
    ),
}

# Server-only keys, never sent to the storefront
PRIVATE_KEYS = frozenset({"metaCapiAccessToken"})

FALLBACK_SHIPPING_DHAKA = 70
FALLBACK_SHIPPING_OUTSIDE = 130


class SettingsCache:
    """Process-wide snapshot of the merged settings with a TTL."""

    def __init__(self, ttl_seconds: float = 60.0, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._values: dict[str, str] | None = None
        self._expires_at = 0.0

    def get(self) -> dict[str, str] | None:
        with self._lock:
            if self._values is None or self._clock() >= self._expires_at:
                return None
            return dict(self._values)

    def set(self, values: dict[str, str]) -> None:
        with self._lock:
            self._values = dict(values)
            self._expires_at = self._clock() + self.ttl_seconds

    def invalidate(self) -> None:
        with self._lock:
            self._values = None
            self._expires_at = 0.0


settings_cache = SettingsCache(ttl_seconds=app_settings.settings_cache_ttl)


def read_settings(db: Session, cache: SettingsCache = settings_cache) -> dict[str, str]:
    """Merged settings; raises SQLAlchemyError when the table cannot be read."""
    cached = cache.get()
    if cached is not None:
        return cached
    try:
        rows = db.exec(select(Setting)).all()
    except SQLAlchemyError:
        db.rollback()
        raise
    merged = dict(DEFAULT_SETTINGS)
    for row in rows:
        merged[row.key] = row.value
    cache.set(merged)
    return dict(merged)


def get_settings(db: Session, cache: SettingsCache = settings_cache) -> dict[str, str]:
    try:
        return read_settings(db, cache)
    except SQLAlchemyError as e:
        logger.warning("Settings read failed, serving defaults: %s", e)
        return dict(DEFAULT_SETTINGS)


def get_setting(db: Session, key: str, cache: SettingsCache = settings_cache) -> str:
    values = get_settings(db, cache)
    value = values.get(key)
    if value is None:
        return DEFAULT_SETTINGS.get(key, "")
    return value


def public_settings(values: dict[str, str]) -> dict[str, str]:
    return {k: v for k, v in values.items() if k not in PRIVATE_KEYS}


def _upsert(db: Session, key: str, value: str) -> None:
    row = db.get(Setting, key)
    if row:
        row.value = value
        row.updated_at = utcnow()
    else:
        row = Setting(key=key, value=value)
    db.add(row)


def update_settings(db: Session, values: dict[str, str], cache: SettingsCache = settings_cache) -> None:
    """Bulk upsert in one transaction."""
    try:
        for key, value in values.items():
            _upsert(db, key, value)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    finally:
        cache.invalidate()
    logger.info("Settings updated: %s", ", ".join(sorted(values)))


def update_setting(db: Session, key: str, value: str, cache: SettingsCache = settings_cache) -> None:
    update_settings(db, {key: value}, cache)


def delete_setting(db: Session, key: str, cache: SettingsCache = settings_cache) -> None:
    """Drop the override so the default applies again. Unknown keys are fine."""
    row = db.get(Setting, key)
    if row:
        db.delete(row)
        db.commit()
    cache.invalidate()


def _int(value: str | None, default: int) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class ShippingRates:
    dhaka: int
    outside: int


def get_shipping_rates(db: Session) -> ShippingRates:
    try:
        values = read_settings(db)
    except SQLAlchemyError as e:
        logger.warning("Shipping rates unavailable, using fallback: %s", e)
        return ShippingRates(FALLBACK_SHIPPING_DHAKA, FALLBACK_SHIPPING_OUTSIDE)
    return ShippingRates(
        dhaka=_int(values.get("shippingDhaka"), FALLBACK_SHIPPING_DHAKA),
        outside=_int(values.get("shippingOutside"), FALLBACK_SHIPPING_OUTSIDE),
    )


def get_merchant_numbers(db: Session) -> dict[str, str]:
    values = get_settings(db)
    return {
        "bkash": values.get("bkashNumber") or DEFAULT_SETTINGS["bkashNumber"],
        "nagad": values.get("nagadNumber") or DEFAULT_SETTINGS["nagadNumber"],
        "rocket": values.get("rocketNumber") or DEFAULT_SETTINGS["rocketNumber"],
    }


def get_announcement(db: Session) -> dict:
    values = get_settings(db)
    return {
        "enabled": values.get("announcementEnabled") == "true",
        "message": values.get("announcementMessage") or "",
        "link": values.get("announcementLink") or "",
        "linkText": values.get("announcementLinkText") or "",
    }


def get_low_stock_threshold(db: Session) -> int:
    return _int(get_setting(db, "lowStockThreshold"), 5)


def get_free_shipping_minimum(db: Session) -> int:
    return _int(get_setting(db, "freeShippingMinimum"), 2000)


def get_order_cooldown(db: Session) -> tuple[bool, int]:
    """(enabled, minutes)"""
    values = get_settings(db)
    enabled = values.get("orderCooldownEnabled") == "true"
    return enabled, max(_int(values.get("orderCooldownMinutes"), 10), 0)


def get_header_menu(db: Session) -> list[dict]:
    raw = get_setting(db, "headerMenu")
    try:
        menu = json.loads(raw)
    except ValueError:
        menu = json.loads(DEFAULT_SETTINGS["headerMenu"])
    return [m for m in menu if isinstance(m, dict) and m.get("name") and m.get("href")]
