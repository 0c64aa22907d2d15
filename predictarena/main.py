"""
FastAPI Main Application
Prediction API with the evaluation scheduler
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from predictarena import __version__
from predictarena.api.routes import admin, cron, health, predictions, slots
from predictarena.config import settings
from predictarena.core.logging import setup_logging
from predictarena.infrastructure.db.database import async_session_factory, close_db, init_db
from predictarena.infrastructure.db.repositories.account_repository import AssetRepository
from predictarena.infrastructure.market_data.provider_factory import get_price_oracle
from predictarena.scheduler.scheduler import EvaluationScheduler
from predictarena.services.slot_service import SlotService

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

scheduler: EvaluationScheduler | None = None


async def seed_reference_data() -> None:
    """Slot configuration and default assets; no-op once present"""
    async with async_session_factory() as session:
        assets = await AssetRepository(session).seed_defaults(settings.DEFAULT_ASSETS)
        await session.commit()
        if assets:
            logger.info("Seeded %s default assets", assets)
        await SlotService(session).seed_slot_configs()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Handles startup and shutdown of all services
    """
    global scheduler

    # ===================
    # STARTUP
    # ===================
    logger.info("Starting PredictArena %s (%s)", __version__, settings.APP_ENV)

    await init_db()

    if settings.SEED_ON_STARTUP:
        try:
            await seed_reference_data()
        except Exception:
            logger.exception("Seeding reference data failed")

    if settings.SCHEDULER_ENABLED:
        try:
            scheduler = EvaluationScheduler()
            scheduler.start()
        except Exception:
            logger.exception("Failed to start scheduler")
            scheduler = None
    else:
        logger.info("Scheduler disabled")

    yield

    # ===================
    # SHUTDOWN
    # ===================
    if scheduler:
        scheduler.stop()
        scheduler = None

    await get_price_oracle().close()
    await close_db()
    logger.info("PredictArena shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="PredictArena",
    description="Time-slotted price direction predictions with automatic scoring",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["Health"])
app.include_router(predictions.router, prefix="/predictions", tags=["Predictions"])
app.include_router(slots.router, prefix="/slots", tags=["Slots"])
app.include_router(cron.router, prefix="/cron", tags=["Cron"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "predictarena.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
    )
