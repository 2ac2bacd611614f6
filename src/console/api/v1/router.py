from fastapi import APIRouter

from src.console.api.v1 import audit, impersonation

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(impersonation.router)
api_router.include_router(audit.router)
