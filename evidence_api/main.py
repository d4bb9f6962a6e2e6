from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .routers import health_router, verify_router


def create_app() -> FastAPI:
    api_prefix = settings.api_prefix.rstrip("/")
    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        docs_url=f"{api_prefix}/docs",
        openapi_url=f"{api_prefix}/openapi.json",
    )

    if settings.api_cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin) for origin in settings.api_cors_origins],
            allow_credentials=True,
            allow_methods=['*'],
            allow_headers=['*'],
        )

    # Public API boundary: everything lives under /api/evidence/...
    app.include_router(health_router, prefix=api_prefix)
    app.include_router(verify_router, prefix=api_prefix)

    return app


app = create_app()


def run() -> None:
    """Entry point for the evidence-api console script."""
    import uvicorn

    logging.basicConfig(
        level=settings.api_log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    uvicorn.run(
        'evidence_api.main:app',
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.api_log_level,
    )
