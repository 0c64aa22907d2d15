"""
Scheduler
Periodic evaluation sweep and price cache refresh.
Jobs only open a session and call services; no business logic here.
"""

import asyncio
import logging
from typing import Callable, Optional

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from predictarena.config import settings
from predictarena.core.logging import setup_logging
from predictarena.domain.models import SweepSummary
from predictarena.infrastructure.db.repositories.account_repository import AssetRepository
from predictarena.infrastructure.market_data.price_oracle import PriceOracle
from predictarena.infrastructure.market_data.provider_factory import get_price_oracle
from predictarena.services.evaluation_service import EvaluationService

logger = logging.getLogger(__name__)


class EvaluationScheduler:
    """
    Background jobs of the prediction engine
    """

    def __init__(
        self,
        session_factory: Optional[Callable] = None,
        price_oracle: Optional[PriceOracle] = None,
        evaluation_interval_seconds: Optional[int] = None,
        price_refresh_interval_seconds: Optional[int] = None,
    ):
        """Initialize scheduler"""
        if session_factory is None:
            from predictarena.infrastructure.db.database import async_session_factory
            session_factory = async_session_factory

        self.session_factory = session_factory
        self.price_oracle = price_oracle or get_price_oracle()
        self.evaluation_interval_seconds = (
            evaluation_interval_seconds or settings.EVALUATION_INTERVAL_SECONDS
        )
        self.price_refresh_interval_seconds = (
            price_refresh_interval_seconds or settings.PRICE_REFRESH_INTERVAL_SECONDS
        )
        self.scheduler = AsyncIOScheduler(timezone=pytz.timezone(settings.TIMEZONE))

    async def evaluation_job(self) -> Optional[SweepSummary]:
        """Evaluate every matured prediction"""
        try:
            async with self.session_factory() as session:
                service = EvaluationService(session, self.price_oracle)
                return await service.evaluate_expired()
        except Exception:
            logger.exception("Evaluation sweep failed")
            return None

    async def price_refresh_job(self) -> int:
        """Keep the fallback quote of every active asset warm"""
        try:
            async with self.session_factory() as session:
                assets = await AssetRepository(session).list_active()
            refreshed = await self.price_oracle.refresh([asset.symbol for asset in assets])
            logger.debug("Refreshed %s/%s prices", len(refreshed), len(assets))
            return len(refreshed)
        except Exception:
            logger.exception("Price refresh failed")
            return 0

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.evaluation_job,
            IntervalTrigger(seconds=self.evaluation_interval_seconds),
            id="evaluate_predictions",
            name="Evaluate expired predictions",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        self.scheduler.add_job(
            self.price_refresh_job,
            IntervalTrigger(seconds=self.price_refresh_interval_seconds),
            id="refresh_prices",
            name="Refresh cached prices",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        self.scheduler.start()
        logger.info("Scheduler started")
        for job in self.scheduler.get_jobs():
            logger.info("  %s - next run: %s", job.name, job.next_run_time)

    def stop(self):
        """Stop the scheduler"""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")


async def main():
    """Run the jobs without the HTTP API"""
    setup_logging(settings.LOG_LEVEL)
    scheduler = EvaluationScheduler()
    scheduler.start()

    try:
        while True:
            await asyncio.sleep(1)
    except (KeyboardInterrupt, SystemExit, asyncio.CancelledError):
        scheduler.stop()


if __name__ == "__main__":
    asyncio.run(main())
