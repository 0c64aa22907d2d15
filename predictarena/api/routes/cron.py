"""
Cron API Routes
External trigger for the evaluation sweep; safe to call repeatedly
"""

import logging
from datetime import datetime
from typing import Callable, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from predictarena.api.dependencies import get_clock, get_price_oracle, verify_cron_secret
from predictarena.infrastructure.db.database import get_db
from predictarena.infrastructure.market_data.price_oracle import PriceOracle
from predictarena.services.evaluation_service import EvaluationService

logger = logging.getLogger(__name__)

router = APIRouter()


class SweepResponse(BaseModel):
    success: bool
    evaluated: int
    skipped: int
    failed: int
    failed_ids: List[int]


@router.post(
    "/evaluate-predictions",
    response_model=SweepResponse,
    dependencies=[Depends(verify_cron_secret)],
)
async def evaluate_predictions(
    db: AsyncSession = Depends(get_db),
    oracle: PriceOracle = Depends(get_price_oracle),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    summary = await EvaluationService(db, oracle, clock=clock).evaluate_expired()
    logger.info("Cron evaluation | evaluated=%s | failed=%s", summary.evaluated, summary.failed)
    return SweepResponse(
        success=True,
        evaluated=summary.evaluated,
        skipped=summary.skipped,
        failed=summary.failed,
        failed_ids=summary.failed_ids,
    )
