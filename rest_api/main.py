"""
REST API main application.
Entry point for the FastAPI server: storefront, admin panel API and
realtime order feeds.
"""

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded

from shared.config.settings import settings
from shared.infrastructure.correlation import CorrelationIdMiddleware
from shared.security.rate_limit import limiter, rate_limit_exceeded_handler
from rest_api.core.cors import configure_cors
from rest_api.core.lifespan import lifespan
from rest_api.core.middlewares import register_middlewares
from rest_api.routers.admin import router as admin_router
from rest_api.routers.auth import router as auth_router, setup_router
from rest_api.routers.public import catalog_router, health_router, orders_router
from rest_api.routers.realtime import router as realtime_router


app = FastAPI(
    title="Espetaria API",
    description="Online ordering for a single restaurant: menu, checkout, order tracking and admin panel",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Middlewares (last registered runs first)
register_middlewares(app)
configure_cors(app)
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(health_router)
app.include_router(auth_router)
app.include_router(setup_router)
app.include_router(catalog_router)
app.include_router(orders_router)
app.include_router(admin_router, prefix="/api/admin")
app.include_router(realtime_router)


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rest_api.main:app",
        host="0.0.0.0",
        port=settings.rest_api_port,
        reload=True,
    )
