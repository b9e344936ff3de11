"""Delivery charge for a destination city. Two zones: inside Dhaka and everywhere else."""
import logging

from sqlmodel import Session, select

from app.models import City
from app.services.cities import normalize_city_value
from app.services.settings import (
    FALLBACK_SHIPPING_DHAKA,
    FALLBACK_SHIPPING_OUTSIDE,
    ShippingRates,
    get_free_shipping_minimum,
    get_shipping_rates,
)

logger = logging.getLogger(__name__)

# Cities billed at the inside-Dhaka rate when no City row says otherwise
DHAKA_AREAS = ("dhaka", "gazipur", "narayanganj")

DEFAULT_RATES = ShippingRates(FALLBACK_SHIPPING_DHAKA, FALLBACK_SHIPPING_OUTSIDE)


def shipping_cost_for_city(city: str | None, rates: ShippingRates = DEFAULT_RATES) -> int:
    if city and city.strip().lower() in DHAKA_AREAS:
        return rates.dhaka
    return rates.outside


def shipping_cost_for_zone(zone: str | None, rates: ShippingRates = DEFAULT_RATES) -> int:
    return rates.dhaka if zone == "inside_dhaka" else rates.outside


def get_dynamic_shipping_cost(db: Session, city: str | None) -> int:
    """Allow-list pricing with the rates from settings (70 / 130 when settings are unreadable)."""
    return shipping_cost_for_city(city, get_shipping_rates(db))


def resolve_shipping_cost(db: Session, city: str | None, subtotal: float = 0) -> int:
    """
    Checkout pricing. A known City row decides the zone, otherwise the allow-list does.
    Subtotals at or above freeShippingMinimum ship free; a minimum of 0 disables that.
    """
    rates = get_shipping_rates(db)
    free_minimum = get_free_shipping_minimum(db)
    if free_minimum > 0 and subtotal >= free_minimum:
        return 0
    if city:
        row = db.exec(select(City).where(City.value == normalize_city_value(city))).first()
        if row:
            return shipping_cost_for_zone(row.shipping_zone, rates)
    return shipping_cost_for_city(city, rates)
