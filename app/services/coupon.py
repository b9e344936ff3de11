"""Coupon validation, discount calculation, redemption and admin CRUD."""
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.clock import utcnow
from app.core.errors import Conflict, NotFound, ValidationFailed
from app.core.money import format_amount, round_money
from app.models import Coupon
from app.schemas.coupon import CouponCreate, CouponUpdate

logger = logging.getLogger(__name__)

DUPLICATE_CODE = "A coupon with this code already exists"
USAGE_LIMIT_REACHED = "This coupon has reached its usage limit"


@dataclass
class CouponCheck:
    success: bool
    discount: float = 0.0
    coupon_id: int | None = None
    code: str | None = None
    error: str | None = None

    def as_dict(self) -> dict:
        if self.success:
            return {"success": True, "discount": self.discount, "couponId": self.coupon_id, "code": self.code}
        return {"success": False, "error": self.error}


def _fail(message: str) -> CouponCheck:
    return CouponCheck(success=False, error=message)


def calculate_discount(coupon_type: str, value: float, subtotal: float) -> float:
    """PERCENT: subtotal * value / 100 rounded half-up to 2 dp; FIXED: the value. Never above subtotal."""
    if coupon_type == "PERCENT":
        discount = round_money(subtotal * value / 100)
    else:
        discount = value
    return min(discount, subtotal)


def validate_coupon(db: Session, code: str | None, subtotal: float, now: datetime | None = None) -> CouponCheck:
    """
    Checks a coupon for a cart subtotal. Rules run in order and the first failure wins:
    input, lookup (active only), validity window, usage cap, minimum order, discount > 0.
    No side effects; usage is counted by redeem_coupon when the order is written.
    """
    if not code or not code.strip() or subtotal is None or subtotal <= 0:
        return _fail("Invalid code or subtotal")

    stmt = select(Coupon).where(Coupon.code == code.strip().upper(), Coupon.is_active == True)  # noqa: E712
    coupon = db.exec(stmt).first()
    if not coupon:
        return _fail("Coupon not found or inactive")

    now = now or utcnow()
    if coupon.valid_from and now < coupon.valid_from:
        return _fail("This coupon is not yet valid")
    if coupon.valid_until and now > coupon.valid_until:
        return _fail("This coupon has expired")

    if coupon.max_uses is not None and coupon.used_count >= coupon.max_uses:
        return _fail(USAGE_LIMIT_REACHED)

    min_order = coupon.min_order_amount or 0
    if subtotal < min_order:
        return _fail(f"Minimum order amount is {format_amount(min_order)} BDT")

    discount = calculate_discount(coupon.type, coupon.value, subtotal)
    if discount <= 0:
        return _fail("No discount applies")

    return CouponCheck(success=True, discount=discount, coupon_id=coupon.id, code=coupon.code)


def redeem_coupon(db: Session, coupon_id: int) -> bool:
    """
    Compare-and-increment of used_count inside the caller's transaction.
    False when max_uses was reached in the meantime (two shoppers racing for the last use).
    """
    stmt = (
        update(Coupon)
        .where(Coupon.id == coupon_id)
        .where(or_(Coupon.max_uses.is_(None), Coupon.used_count < Coupon.max_uses))
        .values(used_count=Coupon.used_count + 1)
    )
    result = db.exec(stmt)
    return result.rowcount == 1


# ---------- Admin ----------


def list_coupons(db: Session) -> list[Coupon]:
    return list(db.exec(select(Coupon).order_by(Coupon.created_at.desc(), Coupon.id.desc())).all())


def get_coupon(db: Session, coupon_id: int) -> Coupon:
    coupon = db.get(Coupon, coupon_id)
    if not coupon:
        raise NotFound("Coupon not found")
    return coupon


def _code_taken(db: Session, code: str, exclude_id: int | None = None) -> bool:
    stmt = select(Coupon).where(Coupon.code == code)
    if exclude_id is not None:
        stmt = stmt.where(Coupon.id != exclude_id)
    return db.exec(stmt).first() is not None


def _commit_or_conflict(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict(DUPLICATE_CODE)


def create_coupon(db: Session, data: CouponCreate) -> Coupon:
    if _code_taken(db, data.code):
        raise Conflict(DUPLICATE_CODE)
    coupon = Coupon(
        code=data.code,
        type=data.type,
        value=data.value,
        min_order_amount=data.min_order_amount,
        max_uses=data.max_uses,
        valid_from=data.valid_from,
        valid_until=data.valid_until,
        is_active=data.is_active,
    )
    db.add(coupon)
    _commit_or_conflict(db)
    db.refresh(coupon)
    logger.info("Coupon created: id=%s code=%s", coupon.id, coupon.code)
    return coupon


def update_coupon(db: Session, coupon_id: int, data: CouponUpdate) -> Coupon:
    coupon = get_coupon(db, coupon_id)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("code") is not None and _code_taken(db, changes["code"], exclude_id=coupon_id):
        raise Conflict(DUPLICATE_CODE)
    new_type = changes.get("type") or coupon.type
    new_value = changes["value"] if changes.get("value") is not None else coupon.value
    if new_type == "PERCENT" and new_value > 100:
        raise ValidationFailed("Percentage must be between 1 and 100")
    for field in ("code", "type", "value", "is_active"):
        # Explicit null is ignored for required columns
        if changes.get(field) is not None:
            setattr(coupon, field, changes[field])
    for field in ("min_order_amount", "max_uses", "valid_from", "valid_until"):
        if field in changes:
            setattr(coupon, field, changes[field])
    coupon.updated_at = utcnow()
    db.add(coupon)
    _commit_or_conflict(db)
    db.refresh(coupon)
    return coupon


def delete_coupon(db: Session, coupon_id: int) -> None:
    coupon = get_coupon(db, coupon_id)
    db.delete(coupon)
    db.commit()
    logger.info("Coupon deleted: id=%s code=%s", coupon_id, coupon.code)
