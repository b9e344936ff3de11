"""Back-office JSON API under /admin; every router requires the admin secret."""
from fastapi import APIRouter

from app.admin.routers import (
    analytics,
    cities,
    coupons,
    courier,
    dashboard,
    errors,
    ip_bans,
    orders,
    security,
    settings,
    uploads,
)

admin_router = APIRouter(prefix="/admin", tags=["admin"])

admin_router.include_router(dashboard.router)
admin_router.include_router(coupons.router, prefix="/coupons", tags=["admin-coupons"])
admin_router.include_router(cities.router, prefix="/cities", tags=["admin-cities"])
admin_router.include_router(ip_bans.router, prefix="/ip-bans", tags=["admin-ip-bans"])
admin_router.include_router(settings.router, prefix="/settings", tags=["admin-settings"])
admin_router.include_router(orders.router, prefix="/orders", tags=["admin-orders"])
admin_router.include_router(courier.router, prefix="/courier-check", tags=["admin-courier"])
admin_router.include_router(uploads.router, prefix="/uploads", tags=["admin-uploads"])
admin_router.include_router(security.router, prefix="/security", tags=["admin-security"])
admin_router.include_router(errors.router, prefix="/errors", tags=["admin-errors"])
admin_router.include_router(analytics.router, prefix="/analytics", tags=["admin-analytics"])
