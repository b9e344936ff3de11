from typing import Any

from fastapi import Request

from app.core.rate_limit import get_client_ip


def client_ip(request: Request) -> str | None:
    return get_client_ip(request)


def ok(data: Any = None) -> dict:
    """Success envelope; errors use the handlers in app.main."""
    return {"success": True, "data": data}
