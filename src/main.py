"""
RepPay - Sales Commission Service

Main FastAPI application with:
- Commission settings management
- On-demand and monthly commission runs against HubSpot
- Run log history
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from src.api import api_router
from src.config import settings
from src.db import get_db_context
from src.scheduler.jobs import scheduler, setup_scheduler
from src.services.settings_store import get_settings_record

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
    - Seeds the commission settings row if it does not exist
    - Starts the monthly run scheduler

    Shutdown:
    - Stops the scheduler
    """
    logger.info("Starting RepPay...")

    async with get_db_context() as db:
        await get_settings_record(db)

    if not settings.hubspot_private_token:
        logger.warning("HUBSPOT_PRIVATE_TOKEN is not set; CRM endpoints will return 503")

    if settings.scheduler_enabled:
        setup_scheduler()
        scheduler.start()

    logger.info("RepPay started successfully!")

    yield

    logger.info("Shutting down RepPay...")
    if scheduler.running:
        scheduler.shutdown(wait=False)


# Create FastAPI application
app = FastAPI(
    title="RepPay",
    description="Sales commission calculation service",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

app.include_router(api_router)  # /api/* endpoints


@app.get("/", include_in_schema=False)
async def root():
    return RedirectResponse(url="/api/health", status_code=302)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=not settings.is_production,
    )
