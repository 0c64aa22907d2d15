"""
Prediction API Routes
Place predictions and read back history, stats and crowd sentiment
"""

from datetime import datetime
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from predictarena.api.dependencies import (
    get_clock,
    get_current_user_id,
    get_price_oracle,
    to_http_error,
)
from predictarena.domain.errors import PredictionEngineError
from predictarena.domain.models import Direction, Prediction, PredictionStatus
from predictarena.infrastructure.db.database import get_db
from predictarena.infrastructure.market_data.price_oracle import PriceOracle
from predictarena.services.prediction_service import PredictionService
from predictarena.utils.time import to_reference_iso

router = APIRouter()


# Request/Response models
class PredictionRequest(BaseModel):
    asset_symbol: str
    direction: Direction
    duration: str


class PredictionResponse(BaseModel):
    id: int
    asset_symbol: Optional[str]
    direction: str
    duration: str
    slot_number: int
    slot_start: str
    slot_end: str
    created_at: str
    expires_at: str
    status: str
    result: str
    price_start: float
    price_end: Optional[float] = None
    points_awarded: Optional[int] = None
    evaluated_at: Optional[str] = None


class StatsResponse(BaseModel):
    total_predictions: int
    correct_predictions: int
    accuracy_percentage: float
    monthly_score: int
    total_score: int
    active_predictions: int


class SentimentSlot(BaseModel):
    slot_number: int
    up_count: int
    down_count: int
    total_count: int
    up_percentage: float


class SentimentResponse(BaseModel):
    asset_symbol: str
    duration: str
    slots: List[SentimentSlot]


def to_response(prediction: Prediction) -> PredictionResponse:
    return PredictionResponse(
        id=prediction.id,
        asset_symbol=prediction.asset_symbol,
        direction=prediction.direction.value,
        duration=prediction.duration,
        slot_number=prediction.slot_number,
        slot_start=to_reference_iso(prediction.slot_start),
        slot_end=to_reference_iso(prediction.slot_end),
        created_at=to_reference_iso(prediction.created_at),
        expires_at=to_reference_iso(prediction.expires_at),
        status=prediction.status.value,
        result=prediction.result.value,
        price_start=float(prediction.price_start),
        price_end=float(prediction.price_end) if prediction.price_end is not None else None,
        points_awarded=prediction.points_awarded,
        evaluated_at=to_reference_iso(prediction.evaluated_at) if prediction.evaluated_at else None,
    )


def _service(db, oracle, clock) -> PredictionService:
    return PredictionService(db, oracle, clock=clock)


@router.post("", response_model=PredictionResponse, status_code=201)
async def create_prediction(
    request: PredictionRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    oracle: PriceOracle = Depends(get_price_oracle),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Predict the direction of an asset over the current slot of a duration
    """
    try:
        prediction = await _service(db, oracle, clock).create(
            user_id=user_id,
            asset_symbol=request.asset_symbol,
            direction=request.direction,
            duration=request.duration,
        )
    except PredictionEngineError as exc:
        raise to_http_error(exc)

    return to_response(prediction)


@router.get("", response_model=List[PredictionResponse])
async def list_predictions(
    status: Optional[PredictionStatus] = None,
    asset_symbol: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    oracle: PriceOracle = Depends(get_price_oracle),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    predictions = await _service(db, oracle, clock).list_for_user(
        user_id, status=status, asset_symbol=asset_symbol, limit=limit, offset=offset
    )
    return [to_response(p) for p in predictions]


@router.get("/stats", response_model=StatsResponse)
async def prediction_stats(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    oracle: PriceOracle = Depends(get_price_oracle),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    service = _service(db, oracle, clock)
    score = await service.user_stats(user_id)
    return StatsResponse(
        total_predictions=score.total_predictions,
        correct_predictions=score.correct_predictions,
        accuracy_percentage=score.accuracy_percentage,
        monthly_score=score.monthly_score,
        total_score=score.total_score,
        active_predictions=await service.active_count(user_id),
    )


@router.get("/sentiment/{asset_symbol}/{duration}", response_model=SentimentResponse)
async def prediction_sentiment(
    asset_symbol: str,
    duration: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    oracle: PriceOracle = Depends(get_price_oracle),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Up/down split of every prediction per slot
    """
    try:
        buckets = await _service(db, oracle, clock).sentiment(asset_symbol, duration)
    except PredictionEngineError as exc:
        raise to_http_error(exc)

    return SentimentResponse(
        asset_symbol=asset_symbol,
        duration=duration,
        slots=[
            SentimentSlot(
                slot_number=b.slot_number,
                up_count=b.up_count,
                down_count=b.down_count,
                total_count=b.total_count,
                up_percentage=round(b.up_count / b.total_count * 100, 2) if b.total_count else 0.0,
            )
            for b in buckets
        ],
    )
