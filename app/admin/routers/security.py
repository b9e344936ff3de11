"""Security log: banned IP attempts, rate limit hits, order cooldown rejections."""
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select

from app.admin.deps import require_admin
from app.api.deps import ok
from app.core.database import get_db
from app.models import SecurityLog

router = APIRouter(dependencies=[Depends(require_admin)])

SECURITY_EVENTS = ("banned_ip", "rate_limit", "order_cooldown")


@router.get("")
def security_list(db: Session = Depends(get_db), limit: int = Query(100, le=500), event: str | None = None):
    stmt = select(SecurityLog).order_by(SecurityLog.id.desc()).limit(limit)
    if event and event in SECURITY_EVENTS:
        stmt = stmt.where(SecurityLog.event == event)
    logs = list(db.exec(stmt).all())
    return ok(
        [
            {
                "id": s.id,
                "event": s.event,
                "ip": s.ip,
                "endpoint": s.endpoint,
                "detail": (s.detail or "")[:150],
                "created_at": s.created_at.isoformat() if s.created_at else None,
            }
            for s in logs
        ]
    )
