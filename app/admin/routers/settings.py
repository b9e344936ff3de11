"""Store settings: all keys (including server-only ones), bulk and single updates."""
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.admin.deps import require_admin
from app.api.deps import ok
from app.core.database import get_db
from app.schemas.settings import SettingsUpdate, SettingValue
from app.services import settings as settings_service

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("")
def settings_all(db: Session = Depends(get_db)):
    return ok(settings_service.get_settings(db))


@router.put("")
def settings_bulk_update(body: SettingsUpdate, db: Session = Depends(get_db)):
    settings_service.update_settings(db, body.values)
    return ok(settings_service.get_settings(db))


@router.put("/{key}")
def setting_update(key: str, body: SettingValue, db: Session = Depends(get_db)):
    settings_service.update_setting(db, key, body.value)
    return ok({"key": key, "value": body.value})


@router.delete("/{key}")
def setting_delete(key: str, db: Session = Depends(get_db)):
    settings_service.delete_setting(db, key)
    return ok({"key": key, "value": settings_service.get_setting(db, key)})
