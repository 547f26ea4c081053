"""Feed ingest entry point.

Initializes:
- Logging
- AISStream client and regional scheduler
- Feed coordinator lifecycle (runs until SIGINT/SIGTERM)
"""

import asyncio
import logging
import signal
import sys
from typing import Optional

from aisfeed.ais import (
    AISStreamClient,
    ClientEvent,
    FeedConfigError,
    FeedCoordinator,
    PositionUpdate,
    RegionalScheduler,
    SchedulerConfigError,
    StaticData,
    build_client,
    build_scheduler_config,
)
from aisfeed.config import Settings, get_settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def describe_position(position: PositionUpdate) -> str:
    """One-line summary of a position update."""
    status = (
        position.navigational_status.display_text
        if position.navigational_status is not None
        else "Unknown status"
    )
    return (
        f"Position {position.mmsi_str}: ({position.latitude:.5f}, {position.longitude:.5f}) "
        f"sog={position.speed_over_ground} cog={position.course_over_ground} [{status}]"
    )


def describe_static_data(data: StaticData) -> str:
    """One-line summary of a static data report."""
    vessel_type = data.vessel_type.display_text if data.vessel_type else "Unknown"
    return f"Static data {data.mmsi}: {data.name} ({vessel_type}) -> {data.destination}"


def attach_event_logging(client: AISStreamClient) -> None:
    """Log client events in place of the downstream consumers."""
    client.on(ClientEvent.POSITION, lambda p: logger.debug(describe_position(p)))
    client.on(ClientEvent.STATIC_DATA, lambda s: logger.debug(describe_static_data(s)))
    client.on(ClientEvent.CONNECTED, lambda: logger.info("AISStream connected successfully"))
    client.on(
        ClientEvent.DISCONNECTED,
        lambda info: logger.warning(f"AISStream disconnected: {info.code} {info.reason}"),
    )
    client.on(
        ClientEvent.RECONNECTING,
        lambda info: logger.info(
            f"AISStream reconnecting (attempt {info.attempt}, delay {info.delay}ms)"
        ),
    )
    client.on(ClientEvent.ERROR, lambda error: logger.error(f"AISStream error: {error}"))


async def run(settings: Optional[Settings] = None) -> None:
    """Run the feed until a termination signal arrives."""
    settings = settings or get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info("=" * 60)
    logger.info(f"Environment: {settings.environment}")

    client = build_client(settings)
    scheduler = RegionalScheduler(build_scheduler_config(settings))
    coordinator = FeedCoordinator(client, scheduler)
    attach_event_logging(client)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            logger.debug(f"Signal handler for {sig.name} not supported on this platform")

    await coordinator.start()
    logger.info("Feed ingest startup complete")

    try:
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(
                    stop_event.wait(), timeout=settings.status_log_interval_seconds
                )
            except asyncio.TimeoutError:
                logger.info(f"Feed status: {coordinator.get_status()}")
    finally:
        logger.info("Shutting down feed ingest...")
        await coordinator.stop()
        logger.info("Shutdown complete")


def main() -> int:
    """Console entry point."""
    try:
        asyncio.run(run())
    except (FeedConfigError, SchedulerConfigError) as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
