"""
Slot API Routes
Which slots exist right now, what they are worth and whether they accept bets
"""

from datetime import datetime
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from predictarena.api.dependencies import get_clock, to_http_error
from predictarena.domain.errors import PredictionEngineError
from predictarena.domain.models import SlotView
from predictarena.infrastructure.db.database import get_db
from predictarena.services.slot_service import SlotService
from predictarena.utils.time import to_reference_iso

router = APIRouter()


# Response models
class SlotResponse(BaseModel):
    duration: str
    slot_number: int
    start_time: str
    end_time: str
    start: str
    end: str
    points_if_correct: int
    penalty_if_wrong: int
    is_active: bool
    time_remaining_seconds: int
    is_locked: bool
    time_until_start_seconds: int
    time_until_unlock_seconds: int


class SlotValidationResponse(BaseModel):
    is_valid: bool
    reason: Optional[str] = None
    slot: Optional[SlotResponse] = None


def to_slot_response(view: SlotView) -> SlotResponse:
    return SlotResponse(
        duration=view.duration,
        slot_number=view.slot_number,
        start_time=view.start_time,
        end_time=view.end_time,
        start=to_reference_iso(view.start),
        end=to_reference_iso(view.end),
        points_if_correct=view.points_if_correct,
        penalty_if_wrong=view.penalty_if_wrong,
        is_active=view.is_active,
        time_remaining_seconds=int(view.time_remaining.total_seconds()),
        is_locked=view.lock.is_locked,
        time_until_start_seconds=int(view.lock.time_until_start.total_seconds()),
        time_until_unlock_seconds=int(view.lock.time_until_unlock.total_seconds()),
    )


@router.get("/{duration}/active", response_model=SlotResponse)
async def active_slot(
    duration: str,
    db: AsyncSession = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    try:
        view = await SlotService(db, clock=clock).get_active_slot(duration)
    except PredictionEngineError as exc:
        raise to_http_error(exc)
    return to_slot_response(view)


@router.get("/{duration}/next", response_model=SlotResponse)
async def next_slot(
    duration: str,
    db: AsyncSession = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    try:
        view = await SlotService(db, clock=clock).get_next_slot(duration)
    except PredictionEngineError as exc:
        raise to_http_error(exc)
    return to_slot_response(view)


@router.get("/{duration}", response_model=List[SlotResponse])
async def valid_slots(
    duration: str,
    db: AsyncSession = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Current and upcoming slots of the running period
    """
    try:
        views = await SlotService(db, clock=clock).get_valid_slots(duration)
    except PredictionEngineError as exc:
        raise to_http_error(exc)
    return [to_slot_response(v) for v in views]


@router.post("/{duration}/{slot_number}/validate", response_model=SlotValidationResponse)
async def validate_slot(
    duration: str,
    slot_number: int,
    db: AsyncSession = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    try:
        validation = await SlotService(db, clock=clock).validate_slot_selection(
            duration, slot_number
        )
    except PredictionEngineError as exc:
        raise to_http_error(exc)

    return SlotValidationResponse(
        is_valid=validation.is_valid,
        reason=validation.reason,
        slot=to_slot_response(validation.slot) if validation.slot else None,
    )
