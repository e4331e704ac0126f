"""API v1 router registration."""

from fastapi import APIRouter

from gym_cash_close.api.routes import cash_closings

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(cash_closings.router)
