"""Pixel/GTM config and Conversions API payloads."""
import hashlib
import json
from urllib.error import URLError

from app.services.analytics import (
    build_user_data,
    get_tracking_config,
    normalize_phone_e164,
    send_purchase_event,
    send_server_event,
)


class RecordingOpener:
    def __init__(self, error=None):
        self.requests = []
        self.error = error

    def __call__(self, req, timeout=None):
        self.requests.append(req)
        if self.error:
            raise self.error
        return self

    def read(self):
        return b'{"events_received": 1}'

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def test_tracking_config_prefixes_gtm():
    cfg = get_tracking_config({"metaPixelEnabled": "true", "metaPixelId": " 123 ", "gtmContainerId": "52g5cznb"})
    assert cfg == {"metaPixel": {"enabled": True, "pixelId": "123"}, "gtm": {"containerId": "GTM-52G5CZNB"}}
    assert get_tracking_config({"gtmContainerId": "GTM-ABC"})["gtm"]["containerId"] == "GTM-ABC"
    assert get_tracking_config({"metaPixelEnabled": "true", "metaPixelId": ""})["metaPixel"]["enabled"] is False


def test_phone_normalisation_for_meta():
    assert normalize_phone_e164("01712345678") == "8801712345678"
    assert normalize_phone_e164("1712345678") == "8801712345678"
    assert normalize_phone_e164("+880 1712-345678") == "8801712345678"
    assert normalize_phone_e164("12345") == "12345"


def test_user_data_is_hashed():
    data = build_user_data(email=" Rahim@Example.com ", phone="01712345678", client_ip_address="1.2.3.4")
    assert data["em"] == [hashlib.sha256(b"rahim@example.com").hexdigest()]
    assert data["ph"] == [hashlib.sha256(b"8801712345678").hexdigest()]
    assert data["client_ip_address"] == "1.2.3.4"
    assert "fbp" not in data


def test_no_credentials_is_a_noop():
    opener = RecordingOpener()
    assert send_server_event("Purchase", {}, credentials=None, opener=opener) == {"ok": True}
    assert opener.requests == []


def test_purchase_event_payload():
    opener = RecordingOpener()
    res = send_purchase_event(
        "MC-ABC-1234", 2380.0, ("PIXEL1", "tok en"), num_items=3, content_ids=["a", "b"], opener=opener
    )
    assert res == {"ok": True}
    req = opener.requests[0]
    assert req.full_url == "https://graph.facebook.com/v21.0/PIXEL1/events?access_token=tok%20en"
    event = json.loads(req.data)["data"][0]
    assert event["event_name"] == "Purchase"
    assert event["event_id"] == "MC-ABC-1234"
    assert event["action_source"] == "website"
    assert event["custom_data"]["currency"] == "BDT"
    assert event["custom_data"]["value"] == 2380.0
    assert event["custom_data"]["num_items"] == 3


def test_network_failure_never_raises():
    res = send_server_event("Purchase", {}, credentials=("P", "T"), opener=RecordingOpener(URLError("down")))
    assert res["ok"] is False
