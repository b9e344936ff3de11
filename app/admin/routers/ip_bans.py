"""Banned IPs: checked before every order."""
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.admin.deps import require_admin
from app.api.deps import ok
from app.core.database import get_db
from app.schemas.ip_ban import BanIpRequest, BannedIpResponse
from app.services import ip_ban

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("")
def ip_bans_list(db: Session = Depends(get_db)):
    rows = ip_ban.list_banned_ips(db)
    return ok([BannedIpResponse.model_validate(r).model_dump(mode="json") for r in rows])


@router.post("", status_code=201)
def ip_ban_create(body: BanIpRequest, db: Session = Depends(get_db)):
    row = ip_ban.ban_ip(db, body.ip_address, body.reason)
    return ok(BannedIpResponse.model_validate(row).model_dump(mode="json"))


@router.delete("/{ban_id}")
def ip_ban_delete(ban_id: int, db: Session = Depends(get_db)):
    ip_ban.unban_ip(db, ban_id)
    return ok()
