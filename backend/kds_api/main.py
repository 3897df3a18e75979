"""
KDS API main application.
Entry point for the FastAPI server behind the kitchen and bar displays.
"""

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded

from kds_shared.security.rate_limit import limiter, rate_limit_exceeded_handler
from kds_api.core import lifespan, register_middlewares
from kds_api.routers.admin import router as admin_router
from kds_api.routers.kitchen import router as kitchen_router
from kds_api.routers.orders import router as orders_router
from kds_api.routers.public import router as health_router

__version__ = "0.1.0"

app = FastAPI(
    title="KDS API",
    description="Kitchen and bar display service: station tickets, fan-out and order status",
    version=__version__,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

register_middlewares(app)

app.include_router(health_router)
app.include_router(kitchen_router)
app.include_router(orders_router)
app.include_router(admin_router)
