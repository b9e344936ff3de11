"""Coupon management: list, create, update, delete."""
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.admin.deps import require_admin
from app.api.deps import ok
from app.core.database import get_db
from app.schemas.coupon import CouponCreate, CouponResponse, CouponUpdate
from app.services import coupon as coupon_service

router = APIRouter(dependencies=[Depends(require_admin)])


def _dump(c) -> dict:
    return CouponResponse.model_validate(c).model_dump(mode="json")


@router.get("")
def coupons_list(db: Session = Depends(get_db)):
    return ok([_dump(c) for c in coupon_service.list_coupons(db)])


@router.get("/{coupon_id}")
def coupon_detail(coupon_id: int, db: Session = Depends(get_db)):
    return ok(_dump(coupon_service.get_coupon(db, coupon_id)))


@router.post("", status_code=201)
def coupon_create(body: CouponCreate, db: Session = Depends(get_db)):
    return ok(_dump(coupon_service.create_coupon(db, body)))


@router.patch("/{coupon_id}")
def coupon_update(coupon_id: int, body: CouponUpdate, db: Session = Depends(get_db)):
    return ok(_dump(coupon_service.update_coupon(db, coupon_id, body)))


@router.delete("/{coupon_id}")
def coupon_delete(coupon_id: int, db: Session = Depends(get_db)):
    coupon_service.delete_coupon(db, coupon_id)
    return ok()
