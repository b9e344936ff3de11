"""Banned IP list consulted before an order is written."""
import logging
import re

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.errors import NotFound, ValidationFailed
from app.models import BannedIp

logger = logging.getLogger(__name__)

# Octet ranges are not checked; 999.999.999.999 passes.
IPV4_RE = re.compile(r"^(?:[0-9]{1,3}\.){3}[0-9]{1,3}$")
_IPV6_CHARS_RE = re.compile(r"^[a-fA-F0-9:.]+$")
MAX_IP_LENGTH = 45

INVALID_IP = "Invalid IP address format."


def normalize_ip(ip: str | None) -> str:
    return (ip or "").strip()


def is_valid_ip(ip: str | None) -> bool:
    ip = normalize_ip(ip)
    if not ip or len(ip) > MAX_IP_LENGTH:
        return False
    if IPV4_RE.match(ip):
        return True
    return ":" in ip and bool(_IPV6_CHARS_RE.match(ip))


def is_ip_banned(db: Session, ip: str | None) -> bool:
    ip = normalize_ip(ip)
    if not ip:
        return False
    return db.exec(select(BannedIp.id).where(BannedIp.ip_address == ip)).first() is not None


def ban_ip(db: Session, ip: str | None, reason: str | None = None) -> BannedIp:
    """Adds the IP, or updates the reason when it is already banned."""
    ip = normalize_ip(ip)
    if not is_valid_ip(ip):
        raise ValidationFailed(INVALID_IP)
    reason = (reason or "").strip() or None
    row = db.exec(select(BannedIp).where(BannedIp.ip_address == ip)).first()
    if row:
        row.reason = reason
    else:
        row = BannedIp(ip_address=ip, reason=reason)
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        # Banned concurrently; keep the other row and apply our reason
        db.rollback()
        row = db.exec(select(BannedIp).where(BannedIp.ip_address == ip)).one()
        row.reason = reason
        db.add(row)
        db.commit()
    db.refresh(row)
    logger.info("IP banned: %s", ip)
    return row


def unban_ip(db: Session, ban_id: int) -> None:
    row = db.get(BannedIp, ban_id)
    if not row:
        raise NotFound("Banned IP not found")
    db.delete(row)
    db.commit()
    logger.info("IP unbanned: %s", row.ip_address)


def list_banned_ips(db: Session) -> list[BannedIp]:
    return list(db.exec(select(BannedIp).order_by(BannedIp.created_at.desc(), BannedIp.id.desc())).all())
