"""
Meta Pixel / Google Tag Manager wiring and the Meta Conversions API (server-side events).

PII (email, phone) is normalised and SHA-256 hashed before it leaves the server.
``send_server_event`` never raises; failures are logged and reported in the return value.
"""
import hashlib
import json
import logging
import re
import time
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from app.core.config import settings

logger = logging.getLogger(__name__)

API_VERSION = "v21.0"
GRAPH_URL = f"https://graph.facebook.com/{API_VERSION}"
TIMEOUT_SECONDS = 10

_NON_DIGIT_RE = re.compile(r"\D")


def get_tracking_config(values: dict[str, str]) -> dict:
    """Storefront script config from merged settings. The CAPI token is never included."""
    pixel_id = (values.get("metaPixelId") or "").strip()
    gtm = (values.get("gtmContainerId") or "").strip().upper()
    if gtm and not gtm.startswith("GTM-"):
        gtm = f"GTM-{gtm}"
    return {
        "metaPixel": {
            "enabled": values.get("metaPixelEnabled") == "true" and bool(pixel_id),
            "pixelId": pixel_id,
        },
        "gtm": {"containerId": gtm},
    }


def capi_credentials(values: dict[str, str]) -> tuple[str, str] | None:
    """(pixel_id, access_token): admin settings first, then environment. None when incomplete."""
    pixel_id = (values.get("metaPixelId") or "").strip() or settings.meta_pixel_id
    token = (values.get("metaCapiAccessToken") or "").strip() or settings.meta_capi_access_token
    if pixel_id and token:
        return pixel_id, token
    return None


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize_phone_e164(phone: str, country_code: str = "880") -> str:
    """'01712345678' -> '8801712345678' (digits only, no plus)."""
    digits = _NON_DIGIT_RE.sub("", phone)
    if len(digits) == 11 and digits.startswith("0"):
        return country_code + digits[1:]
    if len(digits) == 10 and digits.startswith("1"):
        return country_code + digits
    if len(digits) >= 10:
        return digits if digits.startswith(country_code) else country_code + digits
    return digits


def build_user_data(
    email: str | None = None,
    phone: str | None = None,
    client_ip_address: str | None = None,
    client_user_agent: str | None = None,
    fbp: str | None = None,
    fbc: str | None = None,
) -> dict:
    user_data: dict = {}
    if email and normalize_email(email):
        user_data["em"] = [_sha256(normalize_email(email))]
    if phone and normalize_phone_e164(phone):
        user_data["ph"] = [_sha256(normalize_phone_e164(phone))]
    if client_ip_address:
        user_data["client_ip_address"] = client_ip_address
    if client_user_agent:
        user_data["client_user_agent"] = client_user_agent
    if fbp:
        user_data["fbp"] = fbp
    if fbc:
        user_data["fbc"] = fbc
    return user_data


def send_server_event(
    event_name: str,
    user_data: dict,
    credentials: tuple[str, str] | None = None,
    custom_data: dict | None = None,
    event_id: str | None = None,
    event_source_url: str | None = None,
    event_time: int | None = None,
    opener=urlopen,
) -> dict:
    """POST one event. Without credentials this is a no-op that reports ok."""
    if not credentials:
        credentials = capi_credentials({})
    if not credentials:
        return {"ok": True}
    pixel_id, token = credentials

    event = {
        "event_name": event_name,
        "event_time": event_time or int(time.time()),
        "action_source": "website",
        "user_data": user_data,
    }
    if event_id:
        event["event_id"] = event_id
    source_url = event_source_url or settings.app_url
    if source_url:
        event["event_source_url"] = source_url
    if custom_data:
        event["custom_data"] = {k: v for k, v in custom_data.items() if v is not None}

    req = Request(
        f"{GRAPH_URL}/{pixel_id}/events?access_token={quote(token, safe='')}",
        data=json.dumps({"data": [event]}).encode("utf-8"),
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    try:
        with opener(req, timeout=TIMEOUT_SECONDS) as r:
            r.read()
    except HTTPError as e:
        message = e.reason or f"HTTP {e.code}"
        try:
            message = json.loads(e.read().decode("utf-8")).get("error", {}).get("message") or message
        except (UnicodeDecodeError, ValueError, AttributeError):
            pass
        logger.warning("Conversions API %s rejected: %s", event_name, message)
        return {"ok": False, "error": message}
    except (URLError, OSError) as e:
        logger.warning("Conversions API %s failed: %s", event_name, e)
        return {"ok": False, "error": str(e)}
    return {"ok": True}


def send_purchase_event(
    order_number: str,
    value: float,
    credentials: tuple[str, str] | None,
    num_items: int | None = None,
    content_ids: list[str] | None = None,
    email: str | None = None,
    phone: str | None = None,
    client_ip_address: str | None = None,
    client_user_agent: str | None = None,
    fbp: str | None = None,
    fbc: str | None = None,
    currency: str = "BDT",
    opener=urlopen,
) -> dict:
    """Purchase event keyed by order number so the browser Pixel event deduplicates against it."""
    user_data = build_user_data(email, phone, client_ip_address, client_user_agent, fbp, fbc)
    return send_server_event(
        "Purchase",
        user_data,
        credentials=credentials,
        event_id=order_number,
        custom_data={
            "order_id": order_number,
            "value": value,
            "currency": currency.upper(),
            "num_items": num_items,
            "content_ids": content_ids,
            "content_type": "product",
        },
        opener=opener,
    )
