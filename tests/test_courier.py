"""Courier fraud check: phone normalisation, fail-fast paths, retry classification."""
import io
import json
import socket
from urllib.error import HTTPError, URLError

import pytest
from fastapi.testclient import TestClient

from app.services import courier
from app.services.courier import courier_check_by_phone, get_courier_items, get_summary, normalize_phone

SUCCESS = {
    "status": "success",
    "data": {
        "pathao": {"name": "Pathao", "total_parcel": 10, "success_parcel": 9, "cancelled_parcel": 1, "success_ratio": 90},
        "steadfast": {"name": "Steadfast", "total_parcel": 4, "success_parcel": 2, "cancelled_parcel": 2, "success_ratio": 50},
        "summary": {"total_parcel": 14, "success_parcel": 11, "cancelled_parcel": 3, "success_ratio": 78.57},
    },
}


class FakeResponse:
    def __init__(self, payload):
        self.body = json.dumps(payload).encode()

    def read(self):
        return self.body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeOpener:
    """Plays back a script of responses/exceptions, one per attempt."""

    def __init__(self, *script):
        self.script = list(script)
        self.requests = []

    def __call__(self, req, timeout=None):
        self.requests.append((req, timeout))
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, BaseException):
            raise item
        return FakeResponse(item)


def _http_error(code, payload=None):
    body = io.BytesIO(json.dumps(payload or {}).encode())
    return HTTPError("https://api.bdcourier.com/courier-check", code, "err", {}, body)


def _check(opener, sleeps=None, phone="01730285500"):
    sleeps = sleeps if sleeps is not None else []
    return courier_check_by_phone(phone, api_key="key_123", opener=opener, sleep=sleeps.append)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("8801730285500", "01730285500"),
        ("1730285500", "01730285500"),
        ("+880 1730-285500", "01730285500"),
        ("01730285500", "01730285500"),
    ],
)
def test_normalize_phone(raw, expected):
    assert normalize_phone(raw) == expected


def test_no_api_key_makes_no_call(monkeypatch):
    opener = FakeOpener(SUCCESS)
    monkeypatch.setattr(courier.settings, "bdcourier_api_key", "")
    res = courier_check_by_phone("01730285500", opener=opener)
    assert res.as_dict() == {"success": False, "error": "Courier check not configured"}
    assert opener.requests == []


def test_blank_and_bad_phone_make_no_call():
    opener = FakeOpener(SUCCESS)
    assert _check(opener, phone="  ").error == "Phone number is required"
    assert _check(opener, phone="12345").error == "Invalid phone number format"
    assert opener.requests == []


def test_success_request_shape():
    opener = FakeOpener(SUCCESS)
    res = _check(opener, phone="+8801730285500")
    assert res.success and res.data == SUCCESS
    req, timeout = opener.requests[0]
    assert timeout == 10
    assert req.full_url == "https://api.bdcourier.com/courier-check"
    assert req.get_method() == "POST"
    assert req.get_header("Authorization") == "Bearer key_123"
    assert json.loads(req.data) == {"phone": "01730285500"}


def test_remote_error_payload_is_transport_success():
    res = _check(FakeOpener({"status": "error", "error": "Phone number not found"}))
    assert res.success is True
    assert res.data["status"] == "error"


def test_500_retries_twice_with_backoff():
    opener = FakeOpener(_http_error(500))
    sleeps = []
    res = _check(opener, sleeps)
    assert len(opener.requests) == 3
    assert sleeps == [1.0, 2.0]
    assert res.error == "Courier check service error. Please try again later."


def test_500_then_success():
    opener = FakeOpener(_http_error(503), SUCCESS)
    res = _check(opener)
    assert res.success
    assert len(opener.requests) == 2


def test_400_is_not_retried():
    opener = FakeOpener(_http_error(400, {"error": "Phone number not found"}))
    sleeps = []
    res = _check(opener, sleeps)
    assert len(opener.requests) == 1
    assert sleeps == []
    assert res.error == "Phone number not found"


def test_401_without_message_is_sanitised():
    res = _check(FakeOpener(_http_error(401)))
    assert res.error == "Courier check service error. Please try again later."


def test_network_error_retries_then_unavailable():
    opener = FakeOpener(URLError(ConnectionRefusedError(111, "Connection refused")))
    res = _check(opener)
    assert len(opener.requests) == 3
    assert res.error == "Courier check service unavailable. Please try again later."


def test_timeout_retries_then_gives_up():
    opener = FakeOpener(socket.timeout("timed out"))
    sleeps = []
    res = _check(opener, sleeps)
    assert len(opener.requests) == 3
    assert sleeps == [1.0, 2.0]
    assert res.error == "Request timed out. Please try again."


def test_items_and_summary_helpers():
    items = get_courier_items(SUCCESS["data"])
    assert [i["name"] for i in items] == ["Pathao", "Steadfast"]
    assert get_summary(SUCCESS["data"])["success_ratio"] == 78.57
    assert get_courier_items(None) == []
    assert get_summary({"summary": {"success_ratio": "n/a"}}) is None


def test_admin_endpoint_unconfigured(client: TestClient, admin_headers):
    r = client.post("/admin/courier-check", json={"phone": "01730285500"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json() == {"success": False, "error": "Courier check not configured"}


def test_admin_endpoint_success(client: TestClient, admin_headers, monkeypatch):
    monkeypatch.setattr(courier.settings, "bdcourier_api_key", "key_123")
    monkeypatch.setattr(courier, "_post_check", lambda base_url, api_key, phone, opener: SUCCESS)
    r = client.post("/admin/courier-check", json={"phone": "01730285500"}, headers=admin_headers)
    body = r.json()
    assert body["success"] is True
    assert [c["name"] for c in body["couriers"]] == ["Pathao", "Steadfast"]
    assert body["summary"]["total_parcel"] == 14
