"""AIS live feed module.

This module provides:
- Source-agnostic models for decoded position and static data
- AISStream websocket client with authentication and backoff reconnection
- Regional scheduler rotating the subscription window across the globe
- Coordinator applying scheduled regions to the client
- Configuration loading for custom region sets
"""

from aisfeed.ais.models import (
    BoundingBox,
    NavigationStatus,
    PositionUpdate,
    Region,
    StaticData,
    SubscriptionFilter,
    VesselDimensions,
    VesselType,
)
from aisfeed.ais.events import (
    ClientEvent,
    DecodeWarning,
    DisconnectInfo,
    EventEmitter,
    ReconnectInfo,
    SchedulerEvent,
)
from aisfeed.ais.decoder import FrameDecodeError
from aisfeed.ais.client import (
    AISStreamClient,
    AISStreamError,
    ConnectionState,
    ConnectionStatistics,
    compute_backoff_delay_ms,
)
from aisfeed.ais.regions import DEFAULT_REGIONS, SchedulerConfigError
from aisfeed.ais.scheduler import (
    RegionalScheduler,
    SchedulerConfig,
    SchedulerStatus,
)
from aisfeed.ais.coordinator import FeedCoordinator
from aisfeed.ais.config import (
    FeedConfigError,
    build_client,
    build_scheduler_config,
    load_regions,
)

__all__ = [
    # Models
    "BoundingBox",
    "NavigationStatus",
    "PositionUpdate",
    "Region",
    "StaticData",
    "SubscriptionFilter",
    "VesselDimensions",
    "VesselType",
    # Events
    "ClientEvent",
    "DecodeWarning",
    "DisconnectInfo",
    "EventEmitter",
    "ReconnectInfo",
    "SchedulerEvent",
    # Client
    "AISStreamClient",
    "AISStreamError",
    "ConnectionState",
    "ConnectionStatistics",
    "FrameDecodeError",
    "compute_backoff_delay_ms",
    # Scheduler
    "DEFAULT_REGIONS",
    "RegionalScheduler",
    "SchedulerConfig",
    "SchedulerConfigError",
    "SchedulerStatus",
    # Coordinator
    "FeedCoordinator",
    # Config
    "FeedConfigError",
    "build_client",
    "build_scheduler_config",
    "load_regions",
]
