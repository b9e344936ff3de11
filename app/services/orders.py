"""
Order placement and back-office order management.

``create_order`` is the only writer of orders: it runs the abuse gates (banned IP,
per-IP cooldown), prices the cart, applies the coupon and stores the order, its
items and the coupon redemption in a single transaction.
"""
import logging
import secrets
import string
import time
from datetime import datetime, timedelta

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload
from sqlmodel import Session, col, select

from app.core.clock import utcnow
from app.core.errors import Forbidden, NotFound, TooManyRequests, ValidationFailed
from app.core.money import round_money
from app.models import Order, OrderItem, SecurityLog
from app.models.order import MOBILE_PAYMENT_METHODS, ORDER_STATUSES, PAYMENT_STATUSES
from app.schemas.checkout import CartItemIn, CheckoutForm
from app.services.coupon import USAGE_LIMIT_REACHED, redeem_coupon, validate_coupon
from app.services.ip_ban import is_ip_banned
from app.services.settings import get_order_cooldown
from app.services.shipping import resolve_shipping_cost

logger = logging.getLogger(__name__)

BANNED_MESSAGE = "Orders from your network are blocked. Please contact support."
_B36 = string.digits + string.ascii_uppercase


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_B36[r])
    return "".join(reversed(out))


def generate_order_number() -> str:
    """MC-<milliseconds in base36>-<4 random chars>, e.g. MC-LZ3K9Q1A-7F2X"""
    suffix = "".join(secrets.choice(_B36) for _ in range(4))
    return f"MC-{_base36(int(time.time() * 1000))}-{suffix}"


def _log_security(db: Session, event: str, ip: str | None, endpoint: str, detail: str) -> None:
    try:
        db.add(SecurityLog(event=event, ip=ip, endpoint=endpoint, detail=detail))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Security log write failed: %s", e)


def _cooldown_message(minutes: int) -> str:
    unit = "minute" if minutes == 1 else "minutes"
    return f"You can place another order in {minutes} {unit}. Please wait."


def _recent_order_from_ip(db: Session, ip: str, minutes: int) -> bool:
    since = utcnow() - timedelta(minutes=minutes)
    stmt = select(Order.id).where(Order.client_ip == ip, Order.created_at >= since)
    return db.exec(stmt).first() is not None


def checkout_eligibility(db: Session, ip: str | None) -> dict:
    """Whether this IP may place an order right now; shown on the checkout page."""
    if is_ip_banned(db, ip):
        return {"allowed": False, "reason": BANNED_MESSAGE}
    enabled, minutes = get_order_cooldown(db)
    if ip and enabled and minutes > 0 and _recent_order_from_ip(db, ip, minutes):
        return {"allowed": False, "reason": _cooldown_message(minutes)}
    return {"allowed": True, "reason": None}


def cart_subtotal(items: list[CartItemIn]) -> float:
    return round_money(sum(round_money(i.price) * i.quantity for i in items))


def create_order(
    db: Session,
    form: CheckoutForm,
    items: list[CartItemIn],
    client_ip: str | None = None,
) -> Order:
    if not items:
        raise ValidationFailed("No items in cart")

    if is_ip_banned(db, client_ip):
        _log_security(db, "banned_ip", client_ip, "/api/orders", "Order attempt from banned IP")
        logger.warning("Order blocked, banned IP: %s", client_ip)
        raise Forbidden(BANNED_MESSAGE)

    enabled, minutes = get_order_cooldown(db)
    if client_ip and enabled and minutes > 0 and _recent_order_from_ip(db, client_ip, minutes):
        _log_security(db, "order_cooldown", client_ip, "/api/orders", f"Within {minutes} min cooldown")
        raise TooManyRequests(_cooldown_message(minutes))

    subtotal = cart_subtotal(items)

    discount = 0.0
    coupon_id = None
    coupon_code = None
    if form.coupon_code and form.coupon_code.strip():
        check = validate_coupon(db, form.coupon_code, subtotal)
        if not check.success:
            raise ValidationFailed(check.error)
        discount, coupon_id, coupon_code = check.discount, check.coupon_id, check.code

    shipping_cost = resolve_shipping_cost(db, form.city, subtotal)
    total = round_money(subtotal - discount + shipping_cost)

    is_wallet = form.payment_method in MOBILE_PAYMENT_METHODS
    if is_wallet and not (form.sender_number and (form.transaction_id or "").strip()):
        raise ValidationFailed("Sender number and transaction ID are required for mobile payments")

    order = Order(
        order_number=generate_order_number(),
        customer_name=form.full_name,
        customer_email=str(form.email) if form.email else None,
        customer_phone=form.phone,
        alt_phone=form.alt_phone,
        shipping_address=form.address,
        city=form.city,
        delivery_note=(form.delivery_note or "").strip() or None,
        subtotal=subtotal,
        discount=discount,
        shipping_cost=shipping_cost,
        total=total,
        coupon_id=coupon_id,
        coupon_code=coupon_code,
        payment_method=form.payment_method,
        sender_number=form.sender_number if is_wallet else None,
        transaction_id=form.transaction_id.strip() if is_wallet else None,
        client_ip=client_ip,
    )
    order.items = [
        OrderItem(
            product_id=i.product_id,
            title=i.title,
            color=i.color,
            size=i.size,
            quantity=i.quantity,
            price=round_money(i.price),
        )
        for i in items
    ]
    try:
        db.add(order)
        if coupon_id is not None and not redeem_coupon(db, coupon_id):
            db.rollback()
            raise ValidationFailed(USAGE_LIMIT_REACHED)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    db.refresh(order)
    logger.info(
        "Order placed: %s total=%s items=%s coupon=%s ip=%s",
        order.order_number,
        order.total,
        len(items),
        coupon_code or "-",
        client_ip,
    )
    return order


def get_order_by_number(db: Session, order_number: str) -> Order:
    stmt = select(Order).where(Order.order_number == order_number).options(selectinload(Order.items))
    order = db.exec(stmt).first()
    if not order:
        raise NotFound("Order not found")
    return order


def get_order(db: Session, order_id: int) -> Order:
    order = db.get(Order, order_id)
    if not order:
        raise NotFound("Order not found")
    return order


def list_orders(
    db: Session,
    status: str | None = None,
    search: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Order], int]:
    """Newest first. ``search`` matches order number, customer name or phone."""
    conditions = []
    if status:
        conditions.append(Order.status == status)
    if search and search.strip():
        term = f"%{search.strip()}%"
        conditions.append(
            or_(
                col(Order.order_number).ilike(term),
                col(Order.customer_name).ilike(term),
                col(Order.customer_phone).like(term),
            )
        )
    stmt = select(Order).options(selectinload(Order.items))
    count_stmt = select(func.count(Order.id))
    for cond in conditions:
        stmt = stmt.where(cond)
        count_stmt = count_stmt.where(cond)
    rows = db.exec(stmt.order_by(Order.created_at.desc(), Order.id.desc()).offset(offset).limit(limit)).all()
    total = db.exec(count_stmt).one() or 0
    return list(rows), total


def update_order_status(db: Session, order_id: int, status: str) -> Order:
    if status not in ORDER_STATUSES:
        raise ValidationFailed("Invalid order status")
    order = get_order(db, order_id)
    previous = order.status
    order.status = status
    order.updated_at = utcnow()
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info("Order %s status: %s -> %s", order.order_number, previous, status)
    return order


def update_payment_status(db: Session, order_id: int, payment_status: str) -> Order:
    if payment_status not in PAYMENT_STATUSES:
        raise ValidationFailed("Invalid payment status")
    order = get_order(db, order_id)
    order.payment_status = payment_status
    order.updated_at = utcnow()
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info("Order %s payment: %s", order.order_number, payment_status)
    return order


def delete_order(db: Session, order_id: int) -> None:
    order = get_order(db, order_id)
    for item in list(order.items):
        db.delete(item)
    db.delete(order)
    db.commit()
    logger.info("Order deleted: %s", order.order_number)


def _month_start(dt: datetime) -> datetime:
    return dt.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _revenue(db: Session, start: datetime, end: datetime | None = None) -> float:
    stmt = select(func.coalesce(func.sum(Order.total), 0)).where(
        Order.status != "CANCELLED", Order.created_at >= start
    )
    if end is not None:
        stmt = stmt.where(Order.created_at < end)
    return round_money(db.exec(stmt).one() or 0)


def get_order_stats(db: Session, now: datetime | None = None) -> dict:
    """Counts by status plus this month's and last month's revenue (cancelled orders excluded)."""
    now = now or utcnow()
    this_month = _month_start(now)
    last_month = _month_start(this_month - timedelta(days=1))

    by_status = {s: 0 for s in ORDER_STATUSES}
    for status, count in db.exec(select(Order.status, func.count(Order.id)).group_by(Order.status)).all():
        by_status[status] = count

    orders_this_month = db.exec(select(func.count(Order.id)).where(Order.created_at >= this_month)).one() or 0
    orders_last_month = (
        db.exec(
            select(func.count(Order.id)).where(Order.created_at >= last_month, Order.created_at < this_month)
        ).one()
        or 0
    )
    return {
        "total_orders": sum(by_status.values()),
        "by_status": by_status,
        "orders_this_month": orders_this_month,
        "orders_last_month": orders_last_month,
        "revenue_this_month": _revenue(db, this_month),
        "revenue_last_month": _revenue(db, last_month, this_month),
    }


def get_recent_orders(db: Session, limit: int = 5) -> list[Order]:
    stmt = select(Order).options(selectinload(Order.items)).order_by(Order.created_at.desc(), Order.id.desc())
    return list(db.exec(stmt.limit(limit)).all())
