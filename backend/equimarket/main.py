"""Equimarket API: seller subscriptions, listing quotas and paid visibility."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from equimarket.api.v1 import listings, photos, sellers, subscription, visibility
from equimarket.config import settings
from equimarket.database import engine
from equimarket.errors import MarketplaceError

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("Starting %s %s (%s)", settings.app_name, settings.app_version, settings.environment)
    if settings.razorpay.test_mode:
        logger.warning("Razorpay test mode is on: payment signatures are NOT verified")
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Horse marketplace seller subscriptions, listing quotas and promotions.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    """Render domain errors as ``{"detail": {...}}`` with the error's status code."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})


for module in (sellers, subscription, listings, photos, visibility):
    app.include_router(module.router)


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
