"""
Back-office sales analytics over placed orders.

Every report accepts an optional ``DateRange`` (whole UTC days). Time series are
bucketed by day for windows up to 31 days and by month beyond that; empty
buckets are reported as zero so charts get a continuous axis. Revenue always
excludes cancelled orders. Bucketing happens in Python so the same code runs on
SQLite and Postgres.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Literal

from sqlalchemy import func
from sqlmodel import Session, select

from app.core.clock import utcnow
from app.core.money import round_money
from app.models import Order, OrderItem
from app.models.order import ORDER_STATUSES

Period = Literal["daily", "monthly"]

MAX_DAILY_DAYS = 31
DEFAULT_DAILY_DAYS = 30
DEFAULT_MONTHS = 12


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime

    @property
    def days(self) -> int:
        return (self.end.date() - self.start.date()).days + 1


def _parse_day(value: str) -> date | None:
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def parse_date_range(date_from: str | None, date_to: str | None) -> DateRange | None:
    """'2026-10-01', '2026-10-07' -> 00:00 on the first day to 23:59:59.999999 on the last.

    None when either bound is missing or unparsable, or when from > to.
    """
    if not date_from or not date_to:
        return None
    first, last = _parse_day(date_from), _parse_day(date_to)
    if first is None or last is None or first > last:
        return None
    return DateRange(datetime.combine(first, time.min), datetime.combine(last, time.max))


def _add_months(d: date, months: int) -> date:
    index = d.year * 12 + d.month - 1 + months
    return date(index // 12, index % 12 + 1, 1)


def _window(period: Period, date_range: DateRange | None, now: datetime) -> tuple[DateRange, bool]:
    """(window, daily?) for a time series."""
    if date_range is not None:
        return date_range, date_range.days <= MAX_DAILY_DAYS
    if period == "monthly":
        start = datetime.combine(_add_months(now.date(), -DEFAULT_MONTHS), time.min)
        return DateRange(start, now), False
    return DateRange(now - timedelta(days=DEFAULT_DAILY_DAYS), now), True


def _bucket_key(dt: datetime | date, daily: bool) -> str:
    return dt.strftime("%Y-%m-%d") if daily else dt.strftime("%Y-%m")


def _buckets(window: DateRange, daily: bool) -> list[tuple[str, str]]:
    """(key, label) per day ('7/10') or per month ('Oct 2026'), first to last."""
    out = []
    if daily:
        day, last = window.start.date(), window.end.date()
        while day <= last:
            out.append((_bucket_key(day, True), f"{day.day}/{day.month}"))
            day += timedelta(days=1)
    else:
        month, last = window.start.date().replace(day=1), window.end.date().replace(day=1)
        while month <= last:
            out.append((_bucket_key(month, False), month.strftime("%b %Y")))
            month = _add_months(month, 1)
    return out


def _in_range(stmt, date_range: DateRange | None):
    if date_range is None:
        return stmt
    return stmt.where(Order.created_at >= date_range.start, Order.created_at <= date_range.end)


def _growth(current: float, previous: float) -> float:
    if previous <= 0:
        return 0.0
    return round_money((current - previous) / previous * 100)


def _count(db: Session, *where) -> int:
    return db.exec(select(func.count(Order.id)).where(*where)).one() or 0


def _revenue(db: Session, *where) -> float:
    stmt = select(func.coalesce(func.sum(Order.total), 0)).where(Order.status != "CANCELLED", *where)
    return round_money(db.exec(stmt).one() or 0)


def _range_where(date_range: DateRange) -> tuple:
    return (Order.created_at >= date_range.start, Order.created_at <= date_range.end)


def get_analytics_overview(db: Session, date_range: DateRange | None = None, now: datetime | None = None) -> dict:
    """
    Headline numbers. Without a range, growth compares this calendar month with the
    last; with one, it compares the range with the equally long period just before it.
    """
    now = now or utcnow()
    this_month = datetime.combine(now.date().replace(day=1), time.min)
    last_month = datetime.combine(_add_months(now.date(), -1), time.min)
    scope = _range_where(date_range) if date_range else ()

    by_status = {s: 0 for s in ORDER_STATUSES}
    stmt = _in_range(select(Order.status, func.count(Order.id)).group_by(Order.status), date_range)
    for status, count in db.exec(stmt).all():
        by_status[status] = count
    total_orders = sum(by_status.values())
    total_revenue = _revenue(db, *scope)

    this_month_orders = _count(db, Order.created_at >= this_month)
    last_month_orders = _count(db, Order.created_at >= last_month, Order.created_at < this_month)
    this_month_revenue = _revenue(db, Order.created_at >= this_month)
    last_month_revenue = _revenue(db, Order.created_at >= last_month, Order.created_at < this_month)

    data = {
        "total_orders": total_orders,
        "total_revenue": total_revenue,
        "this_month_orders": this_month_orders,
        "last_month_orders": last_month_orders,
        "this_month_revenue": this_month_revenue,
        "last_month_revenue": last_month_revenue,
        "average_order_value": round_money(total_revenue / total_orders) if total_orders else 0.0,
        "cancellation_rate": round_money(by_status["CANCELLED"] / total_orders * 100) if total_orders else 0.0,
        "orders_by_status": by_status,
    }
    if date_range is None:
        data["revenue_growth"] = _growth(this_month_revenue, last_month_revenue)
        data["order_growth"] = _growth(this_month_orders, last_month_orders)
        return data

    length = date_range.end - date_range.start + timedelta(microseconds=1)
    previous = DateRange(date_range.start - length, date_range.start - timedelta(microseconds=1))
    previous_orders = _count(db, *_range_where(previous))
    previous_revenue = _revenue(db, *_range_where(previous))
    data.update(
        previous_period_orders=previous_orders,
        previous_period_revenue=previous_revenue,
        revenue_growth=_growth(total_revenue, previous_revenue),
        order_growth=_growth(total_orders, previous_orders),
    )
    return data


def get_revenue_by_period(
    db: Session, period: Period = "daily", date_range: DateRange | None = None, now: datetime | None = None
) -> list[dict]:
    window, daily = _window(period, date_range, now or utcnow())
    rows = db.exec(
        _in_range(select(Order.created_at, Order.total), window).where(Order.status != "CANCELLED")
    ).all()
    totals: dict[str, float] = {}
    for created_at, total in rows:
        key = _bucket_key(created_at, daily)
        totals[key] = totals.get(key, 0) + (total or 0)
    return [{"date": label, "revenue": round_money(totals.get(key, 0))} for key, label in _buckets(window, daily)]


def get_orders_by_period(
    db: Session, period: Period = "daily", date_range: DateRange | None = None, now: datetime | None = None
) -> list[dict]:
    window, daily = _window(period, date_range, now or utcnow())
    counts: dict[str, int] = {}
    for created_at in db.exec(_in_range(select(Order.created_at), window)).all():
        key = _bucket_key(created_at, daily)
        counts[key] = counts.get(key, 0) + 1
    return [{"date": label, "orders": counts.get(key, 0)} for key, label in _buckets(window, daily)]


def get_orders_by_status_over_time(
    db: Session, date_range: DateRange | None = None, now: datetime | None = None
) -> list[dict]:
    """One row per bucket with a count for every order status (stacked chart)."""
    window, daily = _window("daily", date_range, now or utcnow())
    grouped: dict[str, dict[str, int]] = {}
    for created_at, status in db.exec(_in_range(select(Order.created_at, Order.status), window)).all():
        row = grouped.setdefault(_bucket_key(created_at, daily), {s: 0 for s in ORDER_STATUSES})
        if status in row:
            row[status] += 1
    return [
        {"date": label, **grouped.get(key, {s: 0 for s in ORDER_STATUSES})} for key, label in _buckets(window, daily)
    ]


def get_top_selling_products(db: Session, limit: int = 10, date_range: DateRange | None = None) -> list[dict]:
    """Best sellers by units. Revenue is the sum of unit price x quantity per line."""
    quantity = func.sum(OrderItem.quantity)
    stmt = (
        select(
            OrderItem.product_id,
            func.max(OrderItem.title),
            quantity,
            func.sum(OrderItem.price * OrderItem.quantity),
        )
        .join(Order, Order.id == OrderItem.order_id)
        .group_by(OrderItem.product_id)
        .order_by(quantity.desc(), OrderItem.product_id)
        .limit(limit)
    )
    return [
        {
            "product_id": product_id,
            "title": title or "Unknown Product",
            "total_quantity": int(qty or 0),
            "total_revenue": round_money(revenue or 0),
        }
        for product_id, title, qty, revenue in db.exec(_in_range(stmt, date_range)).all()
    ]


def get_sales_by_city(db: Session, limit: int = 10, date_range: DateRange | None = None) -> list[dict]:
    revenue = func.sum(Order.total)
    stmt = (
        select(Order.city, func.count(Order.id), revenue)
        .where(Order.status != "CANCELLED")
        .group_by(Order.city)
        .order_by(revenue.desc(), Order.city)
        .limit(limit)
    )
    return [
        {"city": city, "orders": orders, "revenue": round_money(total or 0)}
        for city, orders, total in db.exec(_in_range(stmt, date_range)).all()
    ]


def get_payment_method_stats(db: Session, date_range: DateRange | None = None) -> list[dict]:
    stmt = (
        select(Order.payment_method, func.count(Order.id), func.sum(Order.total))
        .where(Order.status != "CANCELLED")
        .group_by(Order.payment_method)
        .order_by(Order.payment_method)
    )
    return [
        {"method": method, "orders": orders, "revenue": round_money(total or 0)}
        for method, orders, total in db.exec(_in_range(stmt, date_range)).all()
    ]


def get_recent_activity(db: Session, limit: int = 10, date_range: DateRange | None = None) -> list[dict]:
    stmt = _in_range(select(Order), date_range).order_by(Order.created_at.desc(), Order.id.desc()).limit(limit)
    return [
        {
            "id": o.id,
            "order_number": o.order_number,
            "customer_name": o.customer_name,
            "total": round_money(o.total),
            "status": o.status,
            "payment_method": o.payment_method,
            "payment_status": o.payment_status,
            "created_at": o.created_at.isoformat(),
        }
        for o in db.exec(stmt).all()
    ]
