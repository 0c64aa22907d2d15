"""
API Dependencies
Identity, clock and price oracle injection for routes
"""

import hmac
from datetime import datetime
from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from predictarena.config import settings
from predictarena.domain.errors import (
    AssetUnavailableError,
    DuplicatePredictionError,
    InvalidSlotError,
    NotActiveError,
    NotMaturedError,
    PredictionEngineError,
    PredictionNotFoundError,
    PriceUnavailableError,
    SlotLockedError,
    UnknownDurationError,
    UnverifiedUserError,
)
from predictarena.domain.models import User
from predictarena.infrastructure.db.database import get_db
from predictarena.infrastructure.db.repositories.account_repository import UserRepository
from predictarena.infrastructure.market_data.price_oracle import PriceOracle
from predictarena.infrastructure.market_data.provider_factory import get_price_oracle as _shared_oracle
from predictarena.utils.time import now_utc

# Most specific first; subclasses must precede their bases
_STATUS_CODES = (
    (UnknownDurationError, 400),
    (UnverifiedUserError, 403),
    (AssetUnavailableError, 400),
    (InvalidSlotError, 400),
    (DuplicatePredictionError, 400),
    (SlotLockedError, 400),
    (PriceUnavailableError, 503),
    (NotActiveError, 409),
    (NotMaturedError, 409),
    (PredictionNotFoundError, 404),
)


def to_http_error(exc: PredictionEngineError) -> HTTPException:
    for error_type, status_code in _STATUS_CODES:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=exc.message)
    return HTTPException(status_code=400, detail=exc.message)


def get_clock() -> Callable[[], datetime]:
    return now_utc


def get_price_oracle() -> PriceOracle:
    return _shared_oracle()


async def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """The authenticated user id set by the auth proxy"""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id.strip()


async def require_admin(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> User:
    user = await UserRepository(db).get(user_id)
    if user is None or not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


async def verify_cron_secret(x_cron_secret: Optional[str] = Header(default=None)) -> None:
    """Only enforced when CRON_SECRET is configured"""
    expected = settings.CRON_SECRET
    if expected and not hmac.compare_digest(x_cron_secret or "", expected):
        raise HTTPException(status_code=401, detail="Invalid cron secret")
