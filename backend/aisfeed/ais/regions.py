"""Geographic regions and rotation schedule construction."""

import logging
import random
from typing import Any, Iterable, Optional, Sequence

from aisfeed.ais.models import BoundingBox, Region

logger = logging.getLogger(__name__)

MIN_PRIORITY = 1
MAX_PRIORITY = 3


class SchedulerConfigError(Exception):
    """Exception raised when a region set or scheduler setting is invalid."""

    pass


# Default global regions for comprehensive coverage
DEFAULT_REGIONS: tuple[Region, ...] = (
    Region(
        id="north-atlantic",
        name="North Atlantic",
        bounds=BoundingBox(min_lat=20, max_lat=70, min_lon=-80, max_lon=0),
        priority=3,  # High traffic area
    ),
    Region(
        id="europe-mediterranean",
        name="Europe & Mediterranean",
        bounds=BoundingBox(min_lat=30, max_lat=72, min_lon=-10, max_lon=45),
        priority=3,
    ),
    Region(
        id="asia-pacific",
        name="Asia Pacific",
        bounds=BoundingBox(min_lat=-10, max_lat=50, min_lon=100, max_lon=145),
        priority=3,
    ),
    Region(
        id="middle-east-indian",
        name="Middle East & Indian Ocean",
        bounds=BoundingBox(min_lat=-10, max_lat=35, min_lon=45, max_lon=100),
        priority=2,
    ),
    Region(
        id="south-atlantic",
        name="South Atlantic",
        bounds=BoundingBox(min_lat=-60, max_lat=20, min_lon=-70, max_lon=20),
        priority=1,
    ),
    Region(
        id="pacific-west",
        name="Pacific West",
        bounds=BoundingBox(min_lat=-50, max_lat=60, min_lon=145, max_lon=180),
        priority=2,
    ),
    Region(
        id="pacific-east",
        name="Pacific East",
        bounds=BoundingBox(min_lat=-50, max_lat=60, min_lon=-180, max_lon=-100),
        priority=2,
    ),
    Region(
        id="americas-west",
        name="Americas West Coast",
        bounds=BoundingBox(min_lat=-60, max_lat=70, min_lon=-130, max_lon=-70),
        priority=2,
    ),
    Region(
        id="polar-north",
        name="Arctic",
        bounds=BoundingBox(min_lat=65, max_lat=90, min_lon=-180, max_lon=180),
        priority=1,
    ),
    Region(
        id="polar-south",
        name="Antarctic",
        bounds=BoundingBox(min_lat=-90, max_lat=-60, min_lon=-180, max_lon=180),
        priority=1,
    ),
)


def region_from_dict(data: dict[str, Any], index: int = 0) -> Region:
    """Create a Region from a configuration dictionary.

    Accepts bounds either nested under 'bounds' or as top-level
    min_lat/max_lat/min_lon/max_lon keys.

    Raises:
        SchedulerConfigError: If the entry is incomplete or invalid
    """
    if not isinstance(data, dict):
        raise SchedulerConfigError(f"Region {index}: expected a mapping")

    for field_name in ("id", "name"):
        if not data.get(field_name):
            raise SchedulerConfigError(
                f"Region {index}: missing required field '{field_name}'"
            )

    bounds_data = data.get("bounds", data)
    try:
        bounds = BoundingBox.from_dict(bounds_data)
    except KeyError as e:
        raise SchedulerConfigError(f"Region {index}: missing bound {e}")
    except (TypeError, ValueError) as e:
        raise SchedulerConfigError(f"Region {index}: invalid bounds: {e}")

    priority = data.get("priority", MIN_PRIORITY)
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise SchedulerConfigError(
            f"Region {index}: priority must be an integer, got {priority!r}"
        )

    return Region(
        id=str(data["id"]),
        name=str(data["name"]),
        bounds=bounds,
        priority=priority,
    )


def validate_regions(regions: Iterable[Region]) -> tuple[Region, ...]:
    """Validate a unique region set.

    Returns:
        The regions as a tuple, in their original order

    Raises:
        SchedulerConfigError: If the set is empty or a region is invalid
    """
    validated = tuple(regions)
    if not validated:
        raise SchedulerConfigError("At least one region must be configured")

    seen_ids: set[str] = set()
    for region in validated:
        if not isinstance(region, Region):
            raise SchedulerConfigError(f"Expected Region, got {type(region).__name__}")
        if not isinstance(region.bounds, BoundingBox):
            raise SchedulerConfigError(f"Region '{region.id}': bounds must be a BoundingBox")
        if not (MIN_PRIORITY <= region.priority <= MAX_PRIORITY):
            raise SchedulerConfigError(
                f"Region '{region.id}': priority must be between "
                f"{MIN_PRIORITY} and {MAX_PRIORITY}, got {region.priority}"
            )
        if region.id in seen_ids:
            raise SchedulerConfigError(f"Duplicate region id: '{region.id}'")
        seen_ids.add(region.id)

    return validated


def build_rotation_schedule(
    regions: Sequence[Region],
    rng: Optional[random.Random] = None,
) -> list[Region]:
    """Build a shuffled rotation schedule weighted by priority.

    Each region takes `priority` slots, then the slots are shuffled
    uniformly so high priority regions spread through the cycle.

    Args:
        regions: Validated unique regions
        rng: Random source (module-level random if omitted)

    Returns:
        Schedule with length equal to the sum of priorities
    """
    schedule: list[Region] = []
    for region in regions:
        schedule.extend([region] * region.priority)

    (rng or random).shuffle(schedule)

    logger.debug(
        f"Built rotation schedule: {len(schedule)} slots for {len(regions)} regions"
    )
    return schedule


def find_region(
    regions: Sequence[Region], latitude: float, longitude: float
) -> Optional[Region]:
    """Return the first region (in list order) containing the point."""
    return next((r for r in regions if r.contains(latitude, longitude)), None)
