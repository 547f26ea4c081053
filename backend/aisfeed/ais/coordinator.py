"""Subscription coordination between the regional scheduler and the stream client.

Provides:
- Initial connection using the scheduler's current region
- Re-subscription on every region change
- Combined lifecycle (start/stop) and status
"""

import logging
from typing import Any, Optional

from aisfeed.ais.client import AISStreamClient
from aisfeed.ais.events import SchedulerEvent
from aisfeed.ais.models import DEFAULT_MESSAGE_TYPES, Region, SubscriptionFilter
from aisfeed.ais.scheduler import RegionalScheduler

logger = logging.getLogger(__name__)


class FeedCoordinator:
    """Applies each scheduled region to the stream client.

    The coordinator only reacts to scheduler events and calls the
    client's update_subscription; neither component sees the other.
    """

    def __init__(
        self,
        client: AISStreamClient,
        scheduler: RegionalScheduler,
        message_types: tuple[str, ...] = DEFAULT_MESSAGE_TYPES,
    ):
        """Initialize coordinator.

        Args:
            client: Stream client to reconfigure
            scheduler: Scheduler whose region changes drive the client
            message_types: Upstream message types to subscribe to
        """
        self.client = client
        self.scheduler = scheduler
        self.message_types = message_types
        self._is_started = False

        self.scheduler.on(SchedulerEvent.REGION_CHANGE, self._on_region_change)
        self.scheduler.on(SchedulerEvent.CYCLE_COMPLETE, self._on_cycle_complete)

    @property
    def is_started(self) -> bool:
        return self._is_started

    def subscription_for(self, region: Region) -> SubscriptionFilter:
        """Build the subscription filter for a region."""
        return SubscriptionFilter.for_region(region, message_types=self.message_types)

    async def start(self) -> None:
        """Connect with the current region, then start rotating."""
        if self._is_started:
            logger.warning("Feed coordinator already started")
            return

        region = self.scheduler.get_current_region()
        logger.info(f"Starting feed with initial region '{region.name}'")

        await self.client.connect(self.subscription_for(region))

        # The initial region is already applied
        self.scheduler.start(skip_initial_emit=True)
        self._is_started = True

    async def stop(self) -> None:
        """Stop rotating and close the connection."""
        logger.info("Stopping feed coordinator")

        self.scheduler.stop()
        await self.client.disconnect()
        await self.scheduler.events.drain()
        self._is_started = False

        logger.info("Feed coordinator stopped")

    async def focus_on_location(
        self, latitude: float, longitude: float
    ) -> Optional[Region]:
        """Switch the feed to the region containing a location.

        Returns:
            The matched region, or None if no region contains the point
        """
        region = self.scheduler.focus_on_location(latitude, longitude)
        if region is not None:
            # Let the re-subscription triggered by region_change finish
            await self.scheduler.events.drain()
        return region

    async def _on_region_change(self, region: Region) -> None:
        logger.info(
            f"Switching AISStream subscription to region '{region.name}' "
            f"bounds={region.bounds.to_dict()}"
        )
        await self.client.update_subscription(self.subscription_for(region))

    def _on_cycle_complete(self) -> None:
        status = self.scheduler.get_status()
        logger.info(
            f"Completed global coverage cycle ({status.total_regions} slots); "
            f"stream stats: {self.client.get_statistics().to_dict()}"
        )

    def get_status(self) -> dict[str, Any]:
        """Get combined scheduler and stream status."""
        return {
            "is_started": self._is_started,
            "scheduler": self.scheduler.get_status().to_dict(),
            "stream": self.client.get_statistics().to_dict(),
        }

    def __repr__(self) -> str:
        return f"<FeedCoordinator(client={self.client!r}, scheduler={self.scheduler!r})>"
