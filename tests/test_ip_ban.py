"""IP validation and the ban list."""
import pytest
from fastapi.testclient import TestClient

from app.core.errors import ValidationFailed
from app.services.ip_ban import ban_ip, is_ip_banned, is_valid_ip, list_banned_ips, normalize_ip


@pytest.mark.parametrize("ip", ["192.168.1.10", " 10.0.0.1 ", "2001:db8::1", "::1", "::ffff:192.0.2.1"])
def test_valid_ips(ip):
    assert is_valid_ip(ip)


@pytest.mark.parametrize("ip", ["", "   ", "1.2.3", "1.2.3.4.5", "abc", "1234.1.1.1", "gggg::1", "a" * 46])
def test_invalid_ips(ip):
    assert not is_valid_ip(ip)


def test_out_of_range_octets_pass_the_ipv4_pattern():
    # Octet values are not range-checked
    assert is_valid_ip("999.999.999.999")


def test_blank_ip_is_never_banned(db):
    assert is_ip_banned(db, None) is False
    assert is_ip_banned(db, "  ") is False


def test_ban_and_lookup_trimmed(db):
    ban_ip(db, " 203.0.113.7 ", "spam orders")
    assert normalize_ip(" 203.0.113.7 ") == "203.0.113.7"
    assert is_ip_banned(db, "203.0.113.7")
    assert is_ip_banned(db, "203.0.113.7 ")
    assert not is_ip_banned(db, "203.0.113.8")


def test_ban_twice_updates_reason(db):
    ban_ip(db, "203.0.113.7", "first")
    ban_ip(db, "203.0.113.7", "second")
    rows = list_banned_ips(db)
    assert len(rows) == 1
    assert rows[0].reason == "second"


def test_ban_invalid_ip_raises(db):
    with pytest.raises(ValidationFailed) as e:
        ban_ip(db, "not-an-ip")
    assert e.value.message == "Invalid IP address format."


def test_admin_ip_bans(client: TestClient, admin_headers):
    r = client.post("/admin/ip-bans", json={"ip_address": "198.51.100.4", "reason": "fraud"}, headers=admin_headers)
    assert r.status_code == 201
    ban_id = r.json()["data"]["id"]

    r = client.post("/admin/ip-bans", json={"ip_address": "nope"}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid IP address format."

    r = client.get("/admin/ip-bans", headers=admin_headers)
    assert [b["ip_address"] for b in r.json()["data"]] == ["198.51.100.4"]

    assert client.delete(f"/admin/ip-bans/{ban_id}", headers=admin_headers).status_code == 200
    assert client.get("/admin/ip-bans", headers=admin_headers).json()["data"] == []
