"""
FastAPI application entry point for the case-management backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from casework.config import get_settings
from casework.errors import install_error_handlers
from casework.routes import router


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title="Casework Backend (FastAPI)", version="0.1.0")
    install_error_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
