"""Storefront API: cities, coupon check, checkout, order lookup, public settings, shipping quote."""
from dataclasses import asdict
from pathlib import Path

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from fastapi.responses import FileResponse
from sqlmodel import Session

from app.api.deps import client_ip, ok
from app.core.config import settings
from app.core.database import get_db
from app.core.errors import Forbidden, NotFound
from app.core.rate_limit import limiter
from app.schemas.checkout import CreateOrderRequest
from app.schemas.city import CityResponse
from app.schemas.coupon import CouponValidateRequest
from app.schemas.order import OrderResponse
from app.services import settings as settings_service
from app.services.analytics import capi_credentials, get_tracking_config, send_purchase_event
from app.services.cities import list_cities
from app.services.coupon import validate_coupon
from app.services.orders import checkout_eligibility, create_order, get_order_by_number
from app.services.shipping import resolve_shipping_cost
from app.services.storage import LocalStorage, storage_config_from_settings

router = APIRouter(prefix="/api", tags=["shop"])
files_router = APIRouter(tags=["files"])

RATE_LIMIT_STR = f"{settings.rate_limit_per_minute}/minute"
ORDER_RATE_LIMIT_STR = f"{settings.rate_limit_orders_per_minute}/minute"

MIME_MAP = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".svg": "image/svg+xml",
}
IMMUTABLE_CACHE = "public, max-age=31536000, immutable"


@router.get("/cities")
@limiter.limit(RATE_LIMIT_STR)
def cities(request: Request, db: Session = Depends(get_db)):
    return ok([CityResponse.model_validate(c).model_dump() for c in list_cities(db)])


@router.post("/coupons/validate")
@limiter.limit(RATE_LIMIT_STR)
def coupon_validate(request: Request, body: CouponValidateRequest, db: Session = Depends(get_db)):
    """Always HTTP 200; a rejected code is {"success": false, "error": "..."}."""
    return validate_coupon(db, body.code, body.subtotal).as_dict()


@router.get("/checkout/eligibility")
@limiter.limit(RATE_LIMIT_STR)
def eligibility(request: Request, db: Session = Depends(get_db), ip: str | None = Depends(client_ip)):
    return ok(checkout_eligibility(db, ip))


@router.post("/orders", status_code=201)
@limiter.limit(ORDER_RATE_LIMIT_STR)
def place_order(
    request: Request,
    body: CreateOrderRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    ip: str | None = Depends(client_ip),
):
    order = create_order(db, body.form, body.items, ip)
    credentials = capi_credentials(settings_service.get_settings(db))
    if credentials:
        background_tasks.add_task(
            send_purchase_event,
            order.order_number,
            order.total,
            credentials,
            num_items=sum(i.quantity for i in body.items),
            content_ids=[i.product_id for i in body.items],
            email=order.customer_email,
            phone=order.customer_phone,
            client_ip_address=ip,
            client_user_agent=request.headers.get("user-agent"),
            fbp=request.cookies.get("_fbp"),
            fbc=request.cookies.get("_fbc"),
        )
    return ok(OrderResponse.model_validate(order).model_dump(mode="json"))


@router.get("/orders/{order_number}")
@limiter.limit(RATE_LIMIT_STR)
def order_lookup(request: Request, order_number: str, db: Session = Depends(get_db)):
    return ok(OrderResponse.model_validate(get_order_by_number(db, order_number)).model_dump(mode="json"))


@router.get("/settings/public")
@limiter.limit(RATE_LIMIT_STR)
def public_settings(request: Request, db: Session = Depends(get_db)):
    values = settings_service.get_settings(db)
    return ok(
        {
            "settings": settings_service.public_settings(values),
            "shipping": asdict(settings_service.get_shipping_rates(db)),
            "merchantNumbers": settings_service.get_merchant_numbers(db),
            "announcement": settings_service.get_announcement(db),
            "headerMenu": settings_service.get_header_menu(db),
            "tracking": get_tracking_config(values),
        }
    )


@router.get("/shipping/quote")
@limiter.limit(RATE_LIMIT_STR)
def shipping_quote(
    request: Request,
    city: str = Query("", max_length=100),
    subtotal: float = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    return ok(
        {
            "city": city,
            "shippingCost": resolve_shipping_cost(db, city, subtotal),
            "freeShippingMinimum": settings_service.get_free_shipping_minimum(db),
        }
    )


@files_router.get("/uploads/{path:path}")
def serve_upload(path: str):
    """Local-disk uploads. Traversal outside the upload directory is 403."""
    storage = LocalStorage(storage_config_from_settings())
    try:
        file_path = storage.resolve(path)
    except ValueError:
        raise Forbidden("Forbidden")
    if not file_path.is_file():
        raise NotFound("File not found")
    media_type = MIME_MAP.get(Path(file_path).suffix.lower(), "application/octet-stream")
    return FileResponse(file_path, media_type=media_type, headers={"Cache-Control": IMMUTABLE_CACHE})
