"""
Admin API Routes
Manual evaluation, slot configuration and first-run seeding
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from predictarena.api.dependencies import (
    get_clock,
    get_price_oracle,
    require_admin,
    to_http_error,
)
from predictarena.api.routes.predictions import PredictionResponse, to_response
from predictarena.config import settings
from predictarena.domain.errors import PredictionEngineError
from predictarena.domain.models import PredictionResult, SlotConfig, User
from predictarena.domain.services.duration_catalog import penalty_for_points
from predictarena.infrastructure.db.database import get_db
from predictarena.infrastructure.db.repositories.account_repository import AssetRepository
from predictarena.infrastructure.market_data.price_oracle import PriceOracle
from predictarena.services.evaluation_service import EvaluationService
from predictarena.services.slot_service import SlotService

logger = logging.getLogger(__name__)

router = APIRouter()


# Request/Response models
class ManualEvaluationRequest(BaseModel):
    """Without a result the prediction is settled against the current price"""
    result: Optional[PredictionResult] = None
    points_awarded: Optional[int] = None
    price_end: Optional[Decimal] = Field(default=None, gt=0)


class SlotConfigResponse(BaseModel):
    id: int
    duration: str
    slot_number: int
    start_time: str
    end_time: str
    points_if_correct: int
    penalty_if_wrong: int


class SlotConfigCreate(BaseModel):
    duration: str
    slot_number: int = Field(ge=1)
    start_time: str
    end_time: str
    points_if_correct: int = Field(gt=0)


class SlotConfigUpdate(BaseModel):
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    points_if_correct: Optional[int] = Field(default=None, gt=0)


class InitResponse(BaseModel):
    slot_configs_created: int
    assets_created: int


def _config_response(config: SlotConfig) -> SlotConfigResponse:
    return SlotConfigResponse(
        id=config.id,
        duration=config.duration,
        slot_number=config.slot_number,
        start_time=config.start_time,
        end_time=config.end_time,
        points_if_correct=config.points_if_correct,
        penalty_if_wrong=config.penalty_if_wrong,
    )


@router.post("/predictions/{prediction_id}/evaluate", response_model=PredictionResponse)
async def evaluate_prediction(
    prediction_id: int,
    request: Optional[ManualEvaluationRequest] = None,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    oracle: PriceOracle = Depends(get_price_oracle),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Evaluate a single prediction now
    """
    service = EvaluationService(db, oracle, clock=clock)
    request = request or ManualEvaluationRequest()

    try:
        if request.result is None:
            prediction = await service.evaluate_one(prediction_id)
        else:
            if request.points_awarded is None:
                raise HTTPException(
                    status_code=400,
                    detail="points_awarded is required with a manual result",
                )
            prediction = await service.apply_manual_result(
                prediction_id,
                request.result,
                request.points_awarded,
                price_end=request.price_end,
            )
    except PredictionEngineError as exc:
        raise to_http_error(exc)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    logger.info("Admin %s evaluated prediction %s", admin.id, prediction_id)
    return to_response(prediction)


@router.get("/slots", response_model=List[SlotConfigResponse])
async def list_slot_configs(
    duration: Optional[str] = None,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    try:
        configs = await SlotService(db, clock=clock).list_configs(duration)
    except PredictionEngineError as exc:
        raise to_http_error(exc)
    return [_config_response(c) for c in configs]


@router.post("/slots", response_model=SlotConfigResponse, status_code=201)
async def create_slot_config(
    request: SlotConfigCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    try:
        created = await SlotService(db, clock=clock).create_config(
            SlotConfig(
                id=None,
                duration=request.duration,
                slot_number=request.slot_number,
                start_time=request.start_time,
                end_time=request.end_time,
                points_if_correct=request.points_if_correct,
                penalty_if_wrong=penalty_for_points(request.points_if_correct),
            )
        )
    except PredictionEngineError as exc:
        raise to_http_error(exc)
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return _config_response(created)


@router.put("/slots/{config_id}", response_model=SlotConfigResponse)
async def update_slot_config(
    config_id: int,
    request: SlotConfigUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    updated = await SlotService(db, clock=clock).update_config(
        config_id, **request.model_dump(exclude_none=True)
    )
    if updated is None:
        raise HTTPException(status_code=404, detail="Slot configuration not found")
    return _config_response(updated)


@router.post("/init", response_model=InitResponse)
async def initialize(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Seed slot configuration and default assets; repeat calls change nothing
    """
    assets_created = await AssetRepository(db).seed_defaults(settings.DEFAULT_ASSETS)
    await db.commit()
    slots_created = await SlotService(db, clock=clock).seed_slot_configs()
    logger.info(
        "Admin %s initialized | slot configs=%s | assets=%s",
        admin.id,
        slots_created,
        assets_created,
    )
    return InitResponse(slot_configs_created=slots_created, assets_created=assets_created)
