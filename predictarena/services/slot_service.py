"""
SERVICE - SLOT QUERIES & CONFIGURATION

• Slot boundaries always come from the slot clock
• Point values come from the persisted configuration when present
• The penalty is always derived from the points, never stored independently
• Seeding is idempotent
"""

import dataclasses
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from predictarena.domain.errors import InvalidSlotError
from predictarena.domain.models import SlotConfig, SlotValidation, SlotView, SlotWindow
from predictarena.domain.services import slot_clock
from predictarena.domain.services.duration_catalog import (
    all_specs,
    check_slot_number,
    get_spec,
    penalty_for_points,
    points_for_slot,
    slot_labels,
)
from predictarena.domain.services.lock_gate import lock_status_for_window
from predictarena.infrastructure.db.repositories.slot_config_repository import SlotConfigRepository
from predictarena.utils.time import now_utc, to_reference

logger = logging.getLogger(__name__)

_SUB_DAILY = {"1h", "3h", "6h", "24h"}


def default_slot_configs() -> List[SlotConfig]:
    """Catalog-derived configuration rows for every duration and slot"""
    configs: List[SlotConfig] = []
    for spec in all_specs():
        for slot_number, points in enumerate(spec.points, start=1):
            start_label, end_label = slot_labels(spec.key, slot_number)
            configs.append(
                SlotConfig(
                    id=None,
                    duration=spec.key,
                    slot_number=slot_number,
                    start_time=start_label,
                    end_time=end_label,
                    points_if_correct=points,
                    penalty_if_wrong=penalty_for_points(points),
                )
            )
    return configs


def format_slot_time(duration: str, instant: datetime) -> str:
    """Reference-zone label for a slot boundary"""
    local = to_reference(instant)
    if duration in _SUB_DAILY:
        return local.strftime("%H:%M")
    if duration == "48h":
        return local.strftime("%a %H:%M")
    return local.strftime("%Y-%m-%d")


class SlotService:
    def __init__(self, session: AsyncSession, clock: Callable[[], datetime] = now_utc):
        self.session = session
        self.clock = clock
        self.configs = SlotConfigRepository(session)

    # ------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------

    async def seed_slot_configs(self) -> int:
        """
        Seed configuration rows once; a non-empty table is left untouched.

        Returns:
            Number of rows inserted
        """
        try:
            inserted = await self.configs.seed(default_slot_configs())
            await self.session.commit()
        except IntegrityError:
            # Another worker seeded concurrently
            await self.session.rollback()
            logger.info("Slot configurations already seeded by another process")
            return 0

        if inserted:
            logger.info("Seeded %s slot configurations", inserted)
        return inserted

    async def _points(self, duration: str) -> Dict[int, SlotConfig]:
        return {config.slot_number: config for config in await self.configs.list(duration)}

    async def points_for(self, duration: str, slot_number: int) -> int:
        """Points for a correct call; persisted value wins over the catalog"""
        config = await self.configs.get(duration, slot_number)
        if config is not None:
            return config.points_if_correct
        return points_for_slot(duration, slot_number)

    # ------------------------------------------------------------
    # Views
    # ------------------------------------------------------------

    def _view(
        self,
        window: SlotWindow,
        now: datetime,
        configs: Dict[int, SlotConfig],
    ) -> SlotView:
        spec = get_spec(window.duration)
        config = configs.get(window.slot_number)
        if config is not None:
            points = config.points_if_correct
        else:
            points = spec.points[window.slot_number - 1]
        penalty = penalty_for_points(points)

        active = window.contains(now)
        if active:
            remaining = window.end_exclusive - now
        elif now < window.start:
            remaining = window.end_exclusive - window.start
        else:
            remaining = timedelta(0)

        return SlotView(
            duration=window.duration,
            slot_number=window.slot_number,
            start_time=format_slot_time(window.duration, window.start),
            end_time=format_slot_time(window.duration, window.end),
            start=window.start,
            end=window.end,
            points_if_correct=points,
            penalty_if_wrong=penalty,
            is_active=active,
            time_remaining=remaining,
            lock=lock_status_for_window(window, now),
        )

    async def get_active_slot(self, duration: str) -> SlotView:
        now = self.clock()
        window = slot_clock.current_slot(duration, now)
        return self._view(window, now, await self._points(duration))

    async def get_next_slot(self, duration: str) -> SlotView:
        now = self.clock()
        window = slot_clock.next_slot(duration, now)
        return self._view(window, now, await self._points(duration))

    async def get_valid_slots(self, duration: str) -> List[SlotView]:
        """Current and future slots of the current period"""
        now = self.clock()
        current = slot_clock.slot_number_at(now, duration)
        configs = await self._points(duration)
        return [
            self._view(window, now, configs)
            for window in slot_clock.slots_in_period(duration, now)
            if window.slot_number >= current
        ]

    async def validate_slot_selection(self, duration: str, slot_number: int) -> SlotValidation:
        """
        Check whether a slot of the current period accepts predictions.

        Raises:
            UnknownDurationError: duration is not in the catalog
        """
        spec = get_spec(duration)
        try:
            check_slot_number(spec, slot_number)
        except InvalidSlotError as exc:
            return SlotValidation(is_valid=False, reason=exc.message)

        now = self.clock()
        window = slot_clock.slot_boundaries(duration, slot_number, now)
        view = self._view(window, now, await self._points(duration))

        if now >= window.end_exclusive:
            return SlotValidation(is_valid=False, reason="Slot has already ended", slot=view)
        if view.is_locked:
            minutes = int(view.lock.time_until_unlock.total_seconds() // 60)
            return SlotValidation(
                is_valid=False,
                reason=f"Slot is locked, it unlocks in {minutes} minutes",
                slot=view,
            )
        return SlotValidation(is_valid=True, slot=view)

    # ------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------

    async def list_configs(self, duration: Optional[str] = None) -> List[SlotConfig]:
        if duration is not None:
            get_spec(duration)
        return await self.configs.list(duration)

    async def create_config(self, config: SlotConfig) -> SlotConfig:
        """
        Raises:
            UnknownDurationError / InvalidSlotError: outside the catalog
            ValueError: a row for this (duration, slot) already exists
        """
        check_slot_number(get_spec(config.duration), config.slot_number)
        config = dataclasses.replace(
            config, penalty_if_wrong=penalty_for_points(config.points_if_correct)
        )
        try:
            created = await self.configs.create(config)
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ValueError(
                f"Slot configuration already exists for {config.duration} slot {config.slot_number}"
            )
        logger.info("Created slot configuration %s/%s", config.duration, config.slot_number)
        return created

    async def update_config(
        self,
        config_id: int,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        points_if_correct: Optional[int] = None,
    ) -> Optional[SlotConfig]:
        """Labels and points; the penalty follows the points"""
        penalty = penalty_for_points(points_if_correct) if points_if_correct is not None else None
        updated = await self.configs.update(
            config_id,
            start_time=start_time,
            end_time=end_time,
            points_if_correct=points_if_correct,
            penalty_if_wrong=penalty,
        )
        if updated is not None:
            await self.session.commit()
            logger.info(
                "Updated slot configuration %s/%s | points=%s | penalty=%s",
                updated.duration,
                updated.slot_number,
                updated.points_if_correct,
                updated.penalty_if_wrong,
            )
        return updated
