"""Courier fraud check by customer phone (BDCourier)."""
from fastapi import APIRouter, Depends

from app.admin.deps import require_admin
from app.schemas.courier import CourierCheckRequest
from app.services.courier import courier_check_by_phone, get_courier_items, get_summary

router = APIRouter(dependencies=[Depends(require_admin)])


@router.post("")
def courier_check(body: CourierCheckRequest):
    """Transport failures come back as {"success": false, "error"} with HTTP 200."""
    outcome = courier_check_by_phone(body.phone)
    result = outcome.as_dict()
    if outcome.success and (outcome.data or {}).get("status") == "success":
        payload = outcome.data.get("data")
        result["couriers"] = get_courier_items(payload)
        result["summary"] = get_summary(payload)
    return result
