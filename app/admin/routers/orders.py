"""Orders: search, stats, status changes, deletion."""
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.admin.deps import require_admin
from app.api.deps import ok
from app.core.database import get_db
from app.schemas.order import OrderResponse, OrderStatusUpdate, PaymentStatusUpdate
from app.services import orders as order_service

router = APIRouter(dependencies=[Depends(require_admin)])


def _dump(o) -> dict:
    return OrderResponse.model_validate(o).model_dump(mode="json")


@router.get("")
def orders_list(
    db: Session = Depends(get_db),
    status: str | None = None,
    search: str | None = None,
    limit: int = Query(20, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    rows, total = order_service.list_orders(db, status=status, search=search, limit=limit, offset=offset)
    return ok({"orders": [_dump(o) for o in rows], "total": total, "limit": limit, "offset": offset})


@router.get("/stats")
def orders_stats(db: Session = Depends(get_db)):
    return ok(order_service.get_order_stats(db))


@router.get("/recent")
def orders_recent(db: Session = Depends(get_db), limit: int = Query(5, ge=1, le=50)):
    return ok([_dump(o) for o in order_service.get_recent_orders(db, limit)])


@router.get("/{order_id}")
def order_detail(order_id: int, db: Session = Depends(get_db)):
    return ok(_dump(order_service.get_order(db, order_id)))


@router.patch("/{order_id}/status")
def order_status_update(order_id: int, body: OrderStatusUpdate, db: Session = Depends(get_db)):
    return ok(_dump(order_service.update_order_status(db, order_id, body.status)))


@router.patch("/{order_id}/payment-status")
def order_payment_update(order_id: int, body: PaymentStatusUpdate, db: Session = Depends(get_db)):
    return ok(_dump(order_service.update_payment_status(db, order_id, body.payment_status)))


@router.delete("/{order_id}")
def order_delete(order_id: int, db: Session = Depends(get_db)):
    order_service.delete_order(db, order_id)
    return ok()
