"""
API router - aggregates all route modules.
"""
from fastapi import APIRouter
from leadgate.api.leads import router as leads_router
from leadgate.api.health import router as health_router

api_router = APIRouter()
api_router.include_router(leads_router)
api_router.include_router(health_router)
