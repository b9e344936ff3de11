"""Dashboard summary: order stats, recent orders, abuse signals from the last 24 hours."""
from datetime import timedelta

from fastapi import APIRouter, Depends
from sqlmodel import Session, func, select

from app.admin.deps import require_admin
from app.api.deps import ok
from app.core.clock import utcnow
from app.core.database import get_db
from app.models import BannedIp, ErrorLog, SecurityLog
from app.schemas.order import OrderResponse
from app.services.orders import get_order_stats, get_recent_orders

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/")
def dashboard(db: Session = Depends(get_db)):
    day_ago = utcnow() - timedelta(hours=24)
    security_24h = {
        event: db.exec(
            select(func.count(SecurityLog.id)).where(SecurityLog.event == event).where(SecurityLog.created_at >= day_ago)
        ).one()
        or 0
        for event in ("banned_ip", "rate_limit", "order_cooldown")
    }
    errors_24h = db.exec(select(func.count(ErrorLog.id)).where(ErrorLog.created_at >= day_ago)).one() or 0
    banned_ips = db.exec(select(func.count(BannedIp.id))).one() or 0
    return ok(
        {
            "orders": get_order_stats(db),
            "recent_orders": [OrderResponse.model_validate(o).model_dump(mode="json") for o in get_recent_orders(db)],
            "security_last_24h": security_24h,
            "errors_last_24h": errors_24h,
            "banned_ips": banned_ips,
        }
    )
