"""
BDCourier fraud check: parcel history for a customer phone across courier companies.

Admin tooling only. Never raises; every outcome is a ``CourierCheckOutcome``.
Transient failures (HTTP 5xx, network errors, timeouts) are retried through
``call_with_retry``; client errors are not.
"""
import json
import logging
import re
import socket
import time
from dataclasses import dataclass
from typing import Any, Callable
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from app.core.config import settings
from app.core.retry import Decision, RetryPolicy, call_with_retry

logger = logging.getLogger(__name__)

TIMEOUT_SECONDS = 10
RETRY_POLICY = RetryPolicy(max_retries=2, base_delay=1.0)

NOT_CONFIGURED = "Courier check not configured"
PHONE_REQUIRED = "Phone number is required"
INVALID_PHONE = "Invalid phone number format"
TIMED_OUT = "Request timed out. Please try again."
UNAVAILABLE = "Courier check service unavailable. Please try again later."
SERVICE_ERROR = "Courier check service error. Please try again later."

_LOCAL_PHONE_RE = re.compile(r"^0\d{10}$")
_NON_DIGIT_RE = re.compile(r"\D")


@dataclass
class CourierCheckOutcome:
    success: bool
    data: dict | None = None
    error: str | None = None

    def as_dict(self) -> dict:
        if self.success:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error}


class CourierHTTPError(Exception):
    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status
        self.message = message


class CourierTimeout(Exception):
    pass


class CourierNetworkError(Exception):
    pass


def normalize_phone(phone: str) -> str:
    """'+880 1730-285500' -> '01730285500'; '1730285500' -> '01730285500'."""
    cleaned = _NON_DIGIT_RE.sub("", phone or "")
    if cleaned.startswith("880") and len(cleaned) >= 13:
        cleaned = "0" + cleaned[3:]
    if not cleaned.startswith("0") and len(cleaned) == 10:
        cleaned = "0" + cleaned
    return cleaned


def classify(exc: Exception) -> Decision:
    if isinstance(exc, CourierHTTPError):
        return Decision.FAIL if 400 <= exc.status < 500 else Decision.RETRY
    if isinstance(exc, (CourierNetworkError, CourierTimeout)):
        return Decision.RETRY
    return Decision.FAIL


def _is_timeout(err: BaseException) -> bool:
    if isinstance(err, (socket.timeout, TimeoutError)):
        return True
    reason = getattr(err, "reason", None)
    return isinstance(reason, (socket.timeout, TimeoutError))


def _error_message(body: bytes, status: int, reason: str) -> str:
    try:
        payload = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        payload = None
    if isinstance(payload, dict):
        msg = payload.get("error") or payload.get("message")
        if isinstance(msg, str) and msg.strip():
            return msg
    return f"API error: {status} {reason}".strip()


def sanitize_error(message: str) -> str:
    """User-safe message; remote wording survives only when it carries no API internals."""
    lowered = message.lower()
    if "not configured" in lowered or "required" in lowered:
        return message
    if "timed out" in lowered or "timeout" in lowered:
        return TIMED_OUT
    if "network" in lowered or "connection" in lowered or "refused" in lowered:
        return UNAVAILABLE
    if "api error" in lowered or "status" in lowered:
        return SERVICE_ERROR
    return message


def _post_check(base_url: str, api_key: str, phone: str, opener: Callable = urlopen) -> dict:
    req = Request(
        f"{base_url.rstrip('/')}/courier-check",
        data=json.dumps({"phone": phone}).encode("utf-8"),
        headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
        method="POST",
    )
    try:
        with opener(req, timeout=TIMEOUT_SECONDS) as r:
            body = r.read()
    except HTTPError as e:
        raise CourierHTTPError(e.code, _error_message(e.read() or b"", e.code, e.reason or "")) from e
    except (URLError, OSError) as e:
        if _is_timeout(e):
            raise CourierTimeout("Request timed out") from e
        raise CourierNetworkError(f"network error: {e}") from e
    try:
        data = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise CourierHTTPError(502, "API error: invalid response") from e
    if not isinstance(data, dict):
        raise CourierHTTPError(502, "API error: invalid response")
    return data


def courier_check_by_phone(
    phone: str | None,
    api_key: str | None = None,
    base_url: str | None = None,
    opener: Callable = urlopen,
    sleep: Callable[[float], None] = time.sleep,
    policy: RetryPolicy = RETRY_POLICY,
) -> CourierCheckOutcome:
    """
    A remote ``{"status": "error"}`` payload is still a success at this level;
    callers branch on ``data["status"]``.
    """
    api_key = (api_key if api_key is not None else settings.bdcourier_api_key or "").strip()
    if not api_key:
        return CourierCheckOutcome(success=False, error=NOT_CONFIGURED)
    trimmed = (phone or "").strip()
    if not trimmed:
        return CourierCheckOutcome(success=False, error=PHONE_REQUIRED)
    normalized = normalize_phone(trimmed)
    if not _LOCAL_PHONE_RE.match(normalized):
        return CourierCheckOutcome(success=False, error=INVALID_PHONE)

    base_url = base_url or settings.bdcourier_base_url
    try:
        data = call_with_retry(
            lambda: _post_check(base_url, api_key, normalized, opener),
            classify,
            policy,
            sleep,
        )
    except CourierHTTPError as e:
        logger.warning("Courier check failed: HTTP %s", e.status)
        return CourierCheckOutcome(success=False, error=sanitize_error(e.message))
    except CourierTimeout:
        logger.warning("Courier check timed out")
        return CourierCheckOutcome(success=False, error=TIMED_OUT)
    except CourierNetworkError as e:
        logger.warning("Courier check unreachable: %s", e)
        return CourierCheckOutcome(success=False, error=UNAVAILABLE)
    return CourierCheckOutcome(success=True, data=data)


def get_courier_items(data: Any) -> list[dict]:
    """Per-courier stats (pathao, steadfast, redx, ...) from a success payload's ``data``."""
    if not isinstance(data, dict):
        return []
    return [
        v
        for k, v in data.items()
        if k != "summary" and isinstance(v, dict) and isinstance(v.get("name"), str)
    ]


def get_summary(data: Any) -> dict | None:
    if not isinstance(data, dict):
        return None
    summary = data.get("summary")
    if not isinstance(summary, dict) or not isinstance(summary.get("success_ratio"), (int, float)):
        return None
    return summary
