"""Centralized v1 API router: all module routers are included here."""

from fastapi import APIRouter

from src.modules.customer.router import router as customer_router
from src.modules.tenancy.router import router as tenancy_router
from src.modules.tenancy.webhooks import router as webhook_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(tenancy_router)
v1_router.include_router(customer_router)
v1_router.include_router(webhook_router)
