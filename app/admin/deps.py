"""Admin auth: shared secret in the X-Admin-Secret header (or ?admin_secret=)."""
from fastapi import Header, HTTPException, Query

from app.core.config import settings
from app.core.security import secret_matches


def require_admin(
    x_admin_secret: str | None = Header(None, alias="X-Admin-Secret"),
    admin_secret: str | None = Query(None, description="Admin secret"),
) -> None:
    expected = (settings.admin_secret or "").strip()
    if not expected:
        raise HTTPException(status_code=503, detail="Admin API is not configured (ADMIN_SECRET missing).")
    if not secret_matches(x_admin_secret or admin_secret, expected):
        raise HTTPException(status_code=403, detail="Unauthorized.")
