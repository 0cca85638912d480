from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from pricewatch.logging_utils import configure_logging

logger = logging.getLogger(__name__)


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except SQLAlchemyError as exc:
        raise RuntimeError("Database unavailable.") from exc


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Check the DB and create missing tables on boot; close the pipeline service on exit."""
    _check_db()
    logger.info("Database connectivity confirmed")

    from db.session import init_db

    init_db()
    try:
        yield
    finally:
        from pricewatch.services.pricing_check_service import get_pricing_check_service

        if get_pricing_check_service.cache_info().currsize:
            await get_pricing_check_service().aclose()
            get_pricing_check_service.cache_clear()
        logger.info("Pricing check service closed")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    configure_logging()

    application = FastAPI(
        title="Pricewatch API",
        version="0.1.0",
        lifespan=_lifespan,
    )

    from pricewatch.api.routers import pricing_checks_router

    application.include_router(pricing_checks_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
