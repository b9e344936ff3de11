"""Sales analytics for the back office. ``date_from``/``date_to`` (YYYY-MM-DD) scope every report."""
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.admin.deps import require_admin
from app.api.deps import ok
from app.core.database import get_db
from app.services import sales
from app.services.sales import DateRange

router = APIRouter(dependencies=[Depends(require_admin)])


def date_range(date_from: str | None = None, date_to: str | None = None) -> DateRange | None:
    """An invalid or half-open range falls back to each report's default window."""
    return sales.parse_date_range(date_from, date_to)


@router.get("/overview")
def analytics_overview(db: Session = Depends(get_db), rng: DateRange | None = Depends(date_range)):
    return ok(sales.get_analytics_overview(db, rng))


@router.get("/revenue")
def analytics_revenue(
    db: Session = Depends(get_db),
    rng: DateRange | None = Depends(date_range),
    period: Literal["daily", "monthly"] = "daily",
):
    return ok(sales.get_revenue_by_period(db, period, rng))


@router.get("/orders")
def analytics_orders(
    db: Session = Depends(get_db),
    rng: DateRange | None = Depends(date_range),
    period: Literal["daily", "monthly"] = "daily",
):
    return ok(sales.get_orders_by_period(db, period, rng))


@router.get("/status")
def analytics_status(db: Session = Depends(get_db), rng: DateRange | None = Depends(date_range)):
    return ok(sales.get_orders_by_status_over_time(db, rng))


@router.get("/top-products")
def analytics_top_products(
    db: Session = Depends(get_db),
    rng: DateRange | None = Depends(date_range),
    limit: int = Query(10, ge=1, le=100),
):
    return ok(sales.get_top_selling_products(db, limit, rng))


@router.get("/cities")
def analytics_cities(
    db: Session = Depends(get_db),
    rng: DateRange | None = Depends(date_range),
    limit: int = Query(10, ge=1, le=100),
):
    return ok(sales.get_sales_by_city(db, limit, rng))


@router.get("/payment-methods")
def analytics_payment_methods(db: Session = Depends(get_db), rng: DateRange | None = Depends(date_range)):
    return ok(sales.get_payment_method_stats(db, rng))


@router.get("/recent")
def analytics_recent(
    db: Session = Depends(get_db),
    rng: DateRange | None = Depends(date_range),
    limit: int = Query(10, ge=1, le=50),
):
    return ok(sales.get_recent_activity(db, limit, rng))
