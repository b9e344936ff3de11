"""Image uploads to the configured storage backend, and the upload log."""
import logging
import time

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlmodel import Session, select

from app.admin.deps import require_admin
from app.api.deps import ok
from app.core.config import settings
from app.core.database import get_db
from app.core.errors import ValidationFailed
from app.models import UploadLog
from app.services.storage import StorageError, build_upload_key, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif", "image/avif")


@router.get("")
def uploads_list(db: Session = Depends(get_db), limit: int = Query(100, le=500)):
    logs = list(db.exec(select(UploadLog).order_by(UploadLog.id.desc()).limit(limit)).all())
    return ok(
        [
            {
                "id": u.id,
                "key": u.key,
                "filename": u.filename,
                "file_size_bytes": u.file_size_bytes or 0,
                "provider": u.provider,
                "url": u.url,
                "status": u.status,
                "error_message": (u.error_message or "")[:100] or None,
                "duration_ms": u.duration_ms,
                "created_at": u.created_at.isoformat() if u.created_at else None,
            }
            for u in logs
        ]
    )


@router.post("", status_code=201)
def upload_image(
    file: UploadFile = File(...),
    folder: str = Form("products"),
    db: Session = Depends(get_db),
):
    content_type = (file.content_type or "").lower()
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationFailed("Only JPEG, PNG, WebP, GIF and AVIF images are allowed")
    data = file.file.read()
    max_bytes = settings.upload_max_mb * 1024 * 1024
    if not data:
        raise ValidationFailed("File is empty")
    if len(data) > max_bytes:
        raise ValidationFailed(f"File too large. Maximum size is {settings.upload_max_mb}MB")

    storage = get_storage()
    key = build_upload_key(file.filename, folder)
    log = UploadLog(key=key, filename=file.filename, file_size_bytes=len(data), provider=storage.provider)
    started = time.perf_counter()
    try:
        url = storage.upload(data, key, content_type)
    except (StorageError, OSError, ValueError) as e:
        log.status = "failed"
        log.error_message = str(e)[:500]
        log.duration_ms = int((time.perf_counter() - started) * 1000)
        db.add(log)
        db.commit()
        logger.warning("Upload failed (%s): %s", storage.provider, e)
        raise ValidationFailed("Upload failed. Please try again.")
    log.status = "success"
    log.url = url
    log.duration_ms = int((time.perf_counter() - started) * 1000)
    db.add(log)
    db.commit()
    logger.info("Uploaded %s (%s bytes) via %s", key, len(data), storage.provider)
    return ok({"url": url, "key": key})
