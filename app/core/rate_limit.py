"""Per-IP rate limiting (SlowAPI); proxy aware (X-Forwarded-For / X-Real-IP)."""
from fastapi import Request

from slowapi import Limiter


def get_client_ip(request: Request) -> str | None:
    """
    Client IP for the request: first X-Forwarded-For hop, then X-Real-IP, then the peer.
    Headers can be spoofed; good enough for bans and cooldowns, not for authentication.
    """
    xff = request.headers.get("x-forwarded-for")
    if xff:
        first = xff.split(",")[0].strip()
        if first:
            return first
    real_ip = (request.headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return None


def _limit_key(request: Request) -> str:
    return get_client_ip(request) or "127.0.0.1"


limiter = Limiter(key_func=_limit_key)
