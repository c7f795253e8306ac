"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from app.api.v1 import admin, backoffice, checkout, properties, webhooks

api_router = APIRouter()

# Public pricing
api_router.include_router(properties.router, prefix="/properties", tags=["Properties"])

# Checkout
api_router.include_router(checkout.router, prefix="/checkout", tags=["Checkout"])

# Webhooks
api_router.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])

# Broker back-office
api_router.include_router(backoffice.router, prefix="/backoffice", tags=["Backoffice"])

# Admin
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
