"""Coupon validation rules, redemption cap and admin CRUD."""
from datetime import timedelta

from fastapi.testclient import TestClient

from app.core.clock import utcnow
from app.models import Coupon
from app.services.coupon import calculate_discount, redeem_coupon, validate_coupon


def _coupon(db, **kw) -> Coupon:
    data = {"code": "SAVE10", "type": "PERCENT", "value": 10, "is_active": True}
    data.update(kw)
    c = Coupon(**data)
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


def test_save10_example(db):
    c = _coupon(db, min_order_amount=1000, max_uses=100, used_count=5)
    res = validate_coupon(db, "SAVE10", 2500)
    assert res.as_dict() == {"success": True, "discount": 250, "couponId": c.id, "code": "SAVE10"}


def test_minimum_order_message(db):
    _coupon(db, code="BIG", min_order_amount=1000)
    res = validate_coupon(db, "BIG", 500)
    assert res.as_dict() == {"success": False, "error": "Minimum order amount is 1,000 BDT"}


def test_code_lookup_is_trimmed_and_case_insensitive(db):
    _coupon(db)
    assert validate_coupon(db, "  save10 ", 100).success


def test_invalid_input(db):
    assert validate_coupon(db, "", 100).error == "Invalid code or subtotal"
    assert validate_coupon(db, "   ", 100).error == "Invalid code or subtotal"
    assert validate_coupon(db, "SAVE10", 0).error == "Invalid code or subtotal"


def test_inactive_or_unknown(db):
    _coupon(db, is_active=False)
    assert validate_coupon(db, "SAVE10", 100).error == "Coupon not found or inactive"
    assert validate_coupon(db, "NOPE", 100).error == "Coupon not found or inactive"


def test_validity_window(db):
    now = utcnow()
    _coupon(db, code="LATER", valid_from=now + timedelta(days=1))
    _coupon(db, code="OLD", valid_until=now - timedelta(days=1))
    _coupon(db, code="NOW", valid_from=now - timedelta(days=1), valid_until=now + timedelta(days=1))
    assert validate_coupon(db, "LATER", 100).error == "This coupon is not yet valid"
    assert validate_coupon(db, "OLD", 100).error == "This coupon has expired"
    assert validate_coupon(db, "NOW", 100).success


def test_usage_cap_wins_over_valid_fields(db):
    _coupon(db, max_uses=3, used_count=3)
    assert validate_coupon(db, "SAVE10", 5000).error == "This coupon has reached its usage limit"


def test_percent_discount_rounds_half_up_and_never_exceeds_subtotal():
    assert calculate_discount("PERCENT", 10, 2500) == 250
    assert calculate_discount("PERCENT", 15, 99.99) == 15.0  # 14.9985 -> 15.00
    assert calculate_discount("PERCENT", 100, 80) == 80
    assert calculate_discount("PERCENT", 12.5, 0.1) == 0.01  # 0.0125 -> 0.01


def test_fixed_discount_is_capped_at_subtotal(db):
    assert calculate_discount("FIXED", 300, 1000) == 300
    assert calculate_discount("FIXED", 300, 200) == 200
    _coupon(db, code="FLAT", type="FIXED", value=300)
    assert validate_coupon(db, "FLAT", 200).discount == 200


def test_redeem_stops_at_max_uses(db):
    c = _coupon(db, max_uses=1)
    assert redeem_coupon(db, c.id) is True
    db.commit()
    assert redeem_coupon(db, c.id) is False
    db.commit()
    db.refresh(c)
    assert c.used_count == 1


def test_redeem_unlimited(db):
    c = _coupon(db, max_uses=None)
    for _ in range(3):
        assert redeem_coupon(db, c.id)
    db.commit()
    db.refresh(c)
    assert c.used_count == 3


def test_validate_endpoint(client: TestClient, db):
    _coupon(db, min_order_amount=1000)
    r = client.post("/api/coupons/validate", json={"code": "save10", "subtotal": 2500})
    assert r.status_code == 200
    assert r.json()["discount"] == 250
    r = client.post("/api/coupons/validate", json={"code": "SAVE10", "subtotal": 500})
    assert r.json() == {"success": False, "error": "Minimum order amount is 1,000 BDT"}


def test_admin_crud(client: TestClient, admin_headers):
    r = client.post(
        "/admin/coupons",
        json={"code": " eid25 ", "type": "PERCENT", "value": 25, "max_uses": 50},
        headers=admin_headers,
    )
    assert r.status_code == 201, r.text
    coupon = r.json()["data"]
    assert coupon["code"] == "EID25"
    assert coupon["used_count"] == 0

    r = client.patch(f"/admin/coupons/{coupon['id']}", json={"is_active": False}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"]["is_active"] is False

    r = client.get("/admin/coupons", headers=admin_headers)
    assert [c["code"] for c in r.json()["data"]] == ["EID25"]

    r = client.delete(f"/admin/coupons/{coupon['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert client.get(f"/admin/coupons/{coupon['id']}", headers=admin_headers).status_code == 404


def test_admin_duplicate_code_is_409(client: TestClient, admin_headers):
    body = {"code": "DUP", "type": "FIXED", "value": 100}
    assert client.post("/admin/coupons", json=body, headers=admin_headers).status_code == 201
    r = client.post("/admin/coupons", json={**body, "code": "dup"}, headers=admin_headers)
    assert r.status_code == 409
    assert r.json()["error"] == "A coupon with this code already exists"


def test_admin_rejects_percent_over_100(client: TestClient, admin_headers):
    r = client.post("/admin/coupons", json={"code": "TOOMUCH", "type": "PERCENT", "value": 120}, headers=admin_headers)
    assert r.status_code == 422
    assert r.json()["error"] == "Percentage must be between 1 and 100"


def test_admin_type_switch_cannot_exceed_100_percent(client: TestClient, db, admin_headers):
    coupon = _coupon(db, code="FLAT500", type="FIXED", value=500)
    r = client.patch(f"/admin/coupons/{coupon.id}", json={"type": "PERCENT"}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"] == "Percentage must be between 1 and 100"
    db.refresh(coupon)
    assert (coupon.type, coupon.value) == ("FIXED", 500)

    r = client.patch(f"/admin/coupons/{coupon.id}", json={"type": "PERCENT", "value": 20}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"]["type"] == "PERCENT"
