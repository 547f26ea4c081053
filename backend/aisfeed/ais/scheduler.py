"""Regional scheduler for rotating the feed subscription window.

Divides the world into regions and rotates through them on a schedule
so that every area is covered within a cycle. High priority regions
appear several times per cycle. A location lookup can force a switch
to the region containing a searched vessel.
"""

import asyncio
import logging
import math
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Sequence

from aisfeed.ais.events import EventEmitter, Listener, SchedulerEvent
from aisfeed.ais.models import Region
from aisfeed.ais.regions import (
    DEFAULT_REGIONS,
    SchedulerConfigError,
    build_rotation_schedule,
    find_region,
    validate_regions,
)

logger = logging.getLogger(__name__)

DEFAULT_REGION_DURATION_MS = 4 * 60 * 60 * 1000  # 4 hours


@dataclass
class SchedulerConfig:
    """Regional scheduler settings."""

    region_duration_ms: int = DEFAULT_REGION_DURATION_MS
    auto_rotate: bool = True
    regions: Optional[Sequence[Region]] = None  # None uses DEFAULT_REGIONS
    # Restart the full dwell time when focusing on a location
    reset_dwell_on_focus: bool = True


@dataclass(frozen=True)
class SchedulerStatus:
    """Read-only snapshot of the scheduler."""

    is_running: bool
    current_region: Optional[Region]
    next_region: Optional[Region]
    next_rotation_time: Optional[datetime]
    cycle_progress: int  # 0-100
    regions_completed: int
    total_regions: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "is_running": self.is_running,
            "current_region": self.current_region.to_dict() if self.current_region else None,
            "next_region": self.next_region.to_dict() if self.next_region else None,
            "next_rotation_time": (
                self.next_rotation_time.isoformat() if self.next_rotation_time else None
            ),
            "cycle_progress": self.cycle_progress,
            "regions_completed": self.regions_completed,
            "total_regions": self.total_regions,
        }


class RegionalScheduler:
    """Rotates the active region through a priority-weighted schedule.

    Emits:
        region_change(Region): the active region changed
        cycle_complete(): the schedule wrapped back to its first slot
        stopped(): the scheduler was stopped

    At most one rotation timer is armed at any time. Every path that
    arms the timer cancels the previous one first.
    """

    def __init__(
        self,
        config: Optional[SchedulerConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        """Initialize scheduler.

        Args:
            config: Scheduler settings (defaults if omitted)
            rng: Random source used to shuffle the schedule

        Raises:
            SchedulerConfigError: If the duration or region set is invalid
        """
        self.config = config or SchedulerConfig()
        if self.config.region_duration_ms <= 0:
            raise SchedulerConfigError(
                f"region_duration_ms must be positive, got {self.config.region_duration_ms}"
            )

        self._rng = rng or random.Random()
        self._regions = validate_regions(
            self.config.regions if self.config.regions is not None else DEFAULT_REGIONS
        )
        self._schedule = build_rotation_schedule(self._regions, self._rng)
        self._index = 0

        self._timer: Optional[asyncio.TimerHandle] = None
        self._next_rotation_at: Optional[datetime] = None
        self._is_running = False

        self.events = EventEmitter("RegionalScheduler")

    # ==================== Listeners ====================

    def on(self, event: SchedulerEvent, listener: Listener) -> Listener:
        """Register a listener for a scheduler event."""
        return self.events.on(event, listener)

    def off(self, event: SchedulerEvent, listener: Listener) -> bool:
        """Remove a scheduler event listener."""
        return self.events.off(event, listener)

    # ==================== Properties ====================

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def schedule(self) -> tuple[Region, ...]:
        """The expanded, shuffled rotation schedule."""
        return tuple(self._schedule)

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def has_pending_rotation(self) -> bool:
        """Check if a rotation timer is armed."""
        return self._timer is not None

    # ==================== Lifecycle ====================

    def start(self, skip_initial_emit: bool = False) -> None:
        """Start the scheduler.

        Must be called from within the running event loop.

        Args:
            skip_initial_emit: Don't emit region_change for the current
                region (the caller already applied it)
        """
        if self._is_running:
            logger.warning("Scheduler already running")
            return

        if self.config.auto_rotate:
            # Raises RuntimeError outside a running loop, before any state changes
            asyncio.get_running_loop()

        self._is_running = True
        logger.info(
            f"Regional scheduler started: {len(self._schedule)} slots, "
            f"duration={self.config.region_duration_ms}ms, "
            f"auto_rotate={self.config.auto_rotate}, "
            f"skip_initial_emit={skip_initial_emit}"
        )

        if not skip_initial_emit:
            self._emit_current_region()

        if self.config.auto_rotate and self._is_running:
            self._arm_timer()

    def stop(self) -> None:
        """Stop the scheduler. Safe to call when not running."""
        self._cancel_timer()

        if not self._is_running:
            return

        self._is_running = False
        logger.info("Regional scheduler stopped")
        self.events.emit(SchedulerEvent.STOPPED)

    def reconfigure(self, regions: Sequence[Region]) -> None:
        """Replace the region set and rebuild the schedule.

        The index restarts at the first slot. A running scheduler
        announces the new region and restarts its dwell time.

        Raises:
            SchedulerConfigError: If the new region set is invalid
        """
        validated = validate_regions(regions)

        self._cancel_timer()
        self._regions = validated
        self._schedule = build_rotation_schedule(validated, self._rng)
        self._index = 0
        logger.info(
            f"Scheduler reconfigured: {len(validated)} regions, "
            f"{len(self._schedule)} slots"
        )

        if self._is_running:
            self._emit_current_region()
            if self.config.auto_rotate:
                self._arm_timer()

    # ==================== Rotation ====================

    def rotate_now(self) -> Region:
        """Manually rotate to the next region in the schedule."""
        self._rotate()
        return self.get_current_region()

    def focus_on_location(self, latitude: float, longitude: float) -> Optional[Region]:
        """Switch to the region containing a location.

        Used for on-demand vessel search. The first region in list order
        whose bounds contain the point wins.

        Returns:
            The matched region, or None if no region contains the point
        """
        region = self.find_region_for_location(latitude, longitude)
        if region is None:
            logger.debug(f"No region contains ({latitude}, {longitude})")
            return None

        logger.info(
            f"Focusing on region '{region.name}' for location ({latitude}, {longitude})"
        )

        restart_dwell = (
            self._is_running
            and self.config.auto_rotate
            and self.config.reset_dwell_on_focus
        )
        if restart_dwell:
            self._cancel_timer()

        self._index = next(
            i for i, slot in enumerate(self._schedule) if slot.id == region.id
        )
        self._emit_current_region()

        if restart_dwell and self._is_running:
            self._arm_timer()

        return region

    def _rotate(self) -> None:
        self._cancel_timer()

        self._index = (self._index + 1) % len(self._schedule)

        if self._index == 0:
            logger.info("Completed full rotation cycle")
            self.events.emit(SchedulerEvent.CYCLE_COMPLETE)

        self._emit_current_region()

        if self._is_running and self.config.auto_rotate and self._timer is None:
            self._arm_timer()

    def _on_timer(self) -> None:
        self._timer = None
        self._next_rotation_at = None
        if not self._is_running:
            return
        self._rotate()

    def _arm_timer(self) -> None:
        self._cancel_timer()

        loop = asyncio.get_running_loop()
        delay_seconds = self.config.region_duration_ms / 1000
        self._timer = loop.call_later(delay_seconds, self._on_timer)
        self._next_rotation_at = datetime.now(timezone.utc) + timedelta(
            milliseconds=self.config.region_duration_ms
        )

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._next_rotation_at = None

    def _emit_current_region(self) -> None:
        region = self.get_current_region()
        logger.info(
            f"Switching to region '{region.name}' "
            f"({self._index + 1}/{len(self._schedule)}) bounds={region.bounds.to_dict()}"
        )
        self.events.emit(SchedulerEvent.REGION_CHANGE, region)

    # ==================== Queries ====================

    def get_current_region(self) -> Region:
        """Get the active region."""
        return self._schedule[self._index]

    def get_next_region(self) -> Region:
        """Get the region that follows the active one."""
        return self._schedule[(self._index + 1) % len(self._schedule)]

    def get_regions(self) -> tuple[Region, ...]:
        """Get the unique configured regions in their original order."""
        return self._regions

    def find_region_for_location(
        self, latitude: float, longitude: float
    ) -> Optional[Region]:
        """Find the first unique region whose bounds contain the point."""
        return find_region(self._regions, latitude, longitude)

    def get_status(self) -> SchedulerStatus:
        """Get a snapshot of the scheduler state. No side effects."""
        total = len(self._schedule)
        if total == 0:
            return SchedulerStatus(
                is_running=self._is_running,
                current_region=None,
                next_region=None,
                next_rotation_time=None,
                cycle_progress=0,
                regions_completed=0,
                total_regions=0,
            )

        return SchedulerStatus(
            is_running=self._is_running,
            current_region=self.get_current_region(),
            next_region=self.get_next_region(),
            next_rotation_time=(
                self._next_rotation_at if self.config.auto_rotate else None
            ),
            cycle_progress=math.floor(self._index / total * 100 + 0.5),
            regions_completed=self._index,
            total_regions=total,
        )

    def __repr__(self) -> str:
        return (
            f"<RegionalScheduler(regions={len(self._regions)}, "
            f"slots={len(self._schedule)}, running={self._is_running})>"
        )
