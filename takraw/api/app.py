"""
TakrawIQ API — FastAPI application factory.
REST surface over the live sepak takraw score engine.
"""

import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from takraw.config import settings
from takraw.api.middleware import RequestLoggingMiddleware
from takraw.api.routes_matches import router as matches_router


def configure_logging() -> None:
    logging.basicConfig(level=settings.LOG_LEVEL, format=settings.LOG_FORMAT)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging()

    app = FastAPI(
        title="TakrawIQ API",
        description="Live rally-by-rally scoring for sepak takraw sets.",
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # ── Middleware ──────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    # ── Routes ──────────────────────────────────────────
    prefix = settings.API_PREFIX
    app.include_router(matches_router, prefix=f"{prefix}/matches", tags=["Matches"])

    # ── Health check ────────────────────────────────────
    @app.get("/health", tags=["System"])
    async def health_check():
        return {
            "status": "healthy",
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT.value,
        }

    @app.get("/", tags=["System"])
    async def root():
        return {
            "app": "TakrawIQ",
            "tagline": "Live sepak takraw rally scoring",
            "version": settings.APP_VERSION,
            "docs": "/docs",
        }

    return app


# Module-level app instance for `uvicorn takraw.api.app:app`
app = create_app()


if __name__ == "__main__":
    uvicorn.run("takraw.api.app:app", host=settings.API_HOST, port=settings.API_PORT)
