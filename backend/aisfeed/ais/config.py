"""Feed configuration management.

Loads custom region sets from YAML files and builds the stream client
and scheduler from application settings.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml

from aisfeed.ais.client import AISStreamClient, Connector
from aisfeed.ais.models import Region
from aisfeed.ais.regions import SchedulerConfigError, region_from_dict, validate_regions
from aisfeed.ais.scheduler import SchedulerConfig
from aisfeed.config import Settings

logger = logging.getLogger(__name__)


class FeedConfigError(Exception):
    """Exception raised when feed configuration loading fails."""

    pass


def _substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in string values.

    Supports ${VAR_NAME} syntax.

    Args:
        value: Value to process

    Returns:
        Value with environment variables substituted
    """
    if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
        env_var = value[2:-1]
        return os.getenv(env_var, "")
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(v) for v in value]
    return value


def load_regions(config_file: str) -> tuple[Region, ...]:
    """Load a custom region set from a YAML file.

    The file holds a top-level 'regions' list; each entry has id, name,
    priority and bounds (min_lat, max_lat, min_lon, max_lon).

    Args:
        config_file: Path to the YAML file

    Returns:
        Validated regions in file order

    Raises:
        FeedConfigError: If the file is missing, unreadable or invalid
    """
    config_path = Path(config_file)
    if not config_path.exists():
        raise FeedConfigError(f"Regions file not found: {config_file}")

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse regions file: {e}")
        raise FeedConfigError(f"Invalid YAML in regions file: {e}")

    data = _substitute_env_vars(data)
    if not isinstance(data, dict) or not isinstance(data.get("regions"), list):
        raise FeedConfigError(f"{config_file}: expected a top-level 'regions' list")

    try:
        regions = validate_regions(
            region_from_dict(entry, index)
            for index, entry in enumerate(data["regions"])
        )
    except SchedulerConfigError as e:
        raise FeedConfigError(f"{config_file}: {e}")

    logger.info(f"Loaded {len(regions)} regions from {config_file}")
    return regions


def build_scheduler_config(settings: Settings) -> SchedulerConfig:
    """Create scheduler settings, loading custom regions if configured."""
    regions: Optional[tuple[Region, ...]] = None
    if settings.regions_file:
        regions = load_regions(settings.regions_file)
    else:
        logger.info("No regions file configured, using default regions")

    return SchedulerConfig(
        region_duration_ms=settings.region_duration_ms,
        auto_rotate=settings.auto_rotate,
        regions=regions,
        reset_dwell_on_focus=settings.reset_dwell_on_focus,
    )


def build_client(
    settings: Settings,
    connector: Optional[Connector] = None,
) -> AISStreamClient:
    """Create the stream client from settings.

    Raises:
        FeedConfigError: If no API key is configured
    """
    if not settings.aisstream_api_key:
        raise FeedConfigError(
            "AISSTREAM_API_KEY is not set; the feed cannot authenticate"
        )

    return AISStreamClient(
        api_key=settings.aisstream_api_key,
        url=settings.aisstream_url,
        connector=connector,
        max_reconnect_attempts=settings.reconnect_max_attempts,
        reconnect_base_delay_ms=settings.reconnect_base_delay_ms,
        connect_timeout=settings.connect_timeout_seconds,
    )
