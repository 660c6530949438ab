from fastapi import APIRouter

from app.api.v1.health import router as health_router
from app.api.v1.cases import router as cases_router
from app.api.v1.quotes import router as quotes_router
from app.api.v1.payments import router as payments_router


v1_router = APIRouter()

# ------------------------------------------------------------------
# SYSTEM / CORE
# ------------------------------------------------------------------
v1_router.include_router(health_router, tags=["health"])

# ------------------------------------------------------------------
# MARKET OPS
# ------------------------------------------------------------------
v1_router.include_router(cases_router, tags=["cases"])
v1_router.include_router(quotes_router, tags=["quotes"])

# ------------------------------------------------------------------
# SETTLEMENT (checkout, direct completion, provider callback)
# ------------------------------------------------------------------
v1_router.include_router(payments_router, tags=["payments"])
