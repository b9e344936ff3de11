"""Error log: unhandled exceptions captured by the global handler."""
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select

from app.admin.deps import require_admin
from app.api.deps import ok
from app.core.database import get_db
from app.core.errors import NotFound
from app.models import ErrorLog

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("")
def errors_list(db: Session = Depends(get_db), limit: int = Query(100, le=500)):
    logs = list(db.exec(select(ErrorLog).order_by(ErrorLog.id.desc()).limit(limit)).all())
    return ok(
        [
            {
                "id": e.id,
                "endpoint": e.endpoint,
                "method": e.method,
                "error_message": (e.error_message or "")[:200],
                "created_at": e.created_at.isoformat() if e.created_at else None,
            }
            for e in logs
        ]
    )


@router.get("/{error_id}")
def error_detail(error_id: int, db: Session = Depends(get_db)):
    e = db.get(ErrorLog, error_id)
    if not e:
        raise NotFound("Log not found")
    return ok(
        {
            "id": e.id,
            "endpoint": e.endpoint,
            "method": e.method,
            "error_message": e.error_message,
            "stack_trace": e.stack_trace,
            "created_at": e.created_at.isoformat() if e.created_at else None,
        }
    )
