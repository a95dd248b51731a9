from __future__ import annotations

from fastapi import APIRouter

from api.routes import allocations


api_router = APIRouter()
api_router.include_router(allocations.router, prefix="/allocations", tags=["allocations"])
