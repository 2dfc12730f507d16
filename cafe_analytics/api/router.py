"""Top-level API router."""

from fastapi import APIRouter

from cafe_analytics.api.routes.budgets import router as budgets_router
from cafe_analytics.api.routes.exports import router as exports_router
from cafe_analytics.api.routes.health import router as health_router
from cafe_analytics.api.routes.reports import router as reports_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(reports_router)
api_router.include_router(exports_router)
api_router.include_router(budgets_router)
