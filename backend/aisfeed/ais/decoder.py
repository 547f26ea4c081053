"""Upstream frame classification and decoding.

Turns raw AISStream frames into PositionUpdate / StaticData models.
Every decode problem is raised as FrameDecodeError; the caller decides
how to report it.
"""

import json
import math
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from aisfeed.ais.models import (
    NavigationStatus,
    PositionUpdate,
    StaticData,
    VesselDimensions,
    VesselType,
)

POSITION_REPORT = "PositionReport"
SHIP_STATIC_DATA = "ShipStaticData"

# AIS sentinels for "not available"
HEADING_NOT_AVAILABLE = 511
LATITUDE_NOT_AVAILABLE = 91
LONGITUDE_NOT_AVAILABLE = 181

# e.g. "2024-03-01 12:30:45.123456789 +0000 UTC"
_TIME_UTC_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[ T](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?"
)


class FrameDecodeError(Exception):
    """Exception raised when an inbound frame cannot be decoded."""

    def __init__(self, message: str, message_type: str = "Unknown"):
        self.message_type = message_type
        super().__init__(message)


class FrameKind(Enum):
    """Classification of an inbound frame by its MessageType discriminant."""

    POSITION_REPORT = "position_report"
    STATIC_DATA = "static_data"
    UNRECOGNIZED = "unrecognized"


def parse_frame(raw: Union[str, bytes]) -> dict[str, Any]:
    """Parse a raw websocket frame into a JSON object.

    Raises:
        FrameDecodeError: If the frame is not a JSON object
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise FrameDecodeError(f"Frame is not valid UTF-8: {e}")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise FrameDecodeError(f"Invalid JSON: {e.msg}")

    if not isinstance(data, dict):
        raise FrameDecodeError(
            f"Expected a JSON object, got {type(data).__name__}"
        )
    return data


def upstream_error(frame: dict[str, Any]) -> Optional[str]:
    """Return the error text if the frame is an upstream error report."""
    if "MessageType" in frame:
        return None
    error = frame.get("error") or frame.get("Error")
    return str(error) if error else None


def classify_frame(frame: dict[str, Any]) -> FrameKind:
    """Classify a frame by its MessageType field."""
    message_type = frame.get("MessageType")
    if message_type == POSITION_REPORT:
        return FrameKind.POSITION_REPORT
    if message_type == SHIP_STATIC_DATA:
        return FrameKind.STATIC_DATA
    return FrameKind.UNRECOGNIZED


def parse_timestamp(value: Any, message_type: str = "Unknown") -> datetime:
    """Parse an AISStream time_utc value, defaulting to now when absent."""
    if value is None or value == "":
        return datetime.now(timezone.utc)
    if not isinstance(value, str):
        raise FrameDecodeError(f"time_utc must be a string, got {value!r}", message_type)

    text = value.strip()
    match = _TIME_UTC_RE.match(text)
    if match:
        year, month, day, hour, minute, second, fraction = match.groups()
        microsecond = int((fraction or "0")[:6].ljust(6, "0"))
        try:
            return datetime(
                int(year), int(month), int(day),
                int(hour), int(minute), int(second),
                microsecond, tzinfo=timezone.utc,
            )
        except ValueError as e:
            raise FrameDecodeError(f"Invalid time_utc '{value}': {e}", message_type)

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise FrameDecodeError(f"Invalid time_utc '{value}'", message_type)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _body(frame: dict[str, Any], message_type: str) -> dict[str, Any]:
    message = frame.get("Message")
    body = message.get(message_type) if isinstance(message, dict) else None
    if not isinstance(body, dict):
        raise FrameDecodeError(f"Missing Message.{message_type} body", message_type)
    return body


def _metadata(frame: dict[str, Any]) -> dict[str, Any]:
    metadata = frame.get("MetaData")
    return metadata if isinstance(metadata, dict) else {}


def _number(value: Any) -> Optional[float]:
    """Finite numeric value, or None (json.loads yields inf/nan for 1e309, NaN)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _require_number(body: dict[str, Any], key: str, message_type: str) -> float:
    value = _number(body.get(key))
    if value is None:
        if key not in body:
            raise FrameDecodeError(f"Missing required field '{key}'", message_type)
        raise FrameDecodeError(
            f"Field '{key}' must be numeric, got {body[key]!r}", message_type
        )
    return value


def _extract_mmsi(
    body: dict[str, Any], metadata: dict[str, Any], message_type: str
) -> int:
    raw = body.get("UserID") or metadata.get("MMSI")
    if raw is None:
        raise FrameDecodeError("Missing MMSI (UserID / MetaData.MMSI)", message_type)
    try:
        mmsi = int(raw)
    except (TypeError, ValueError, OverflowError):
        raise FrameDecodeError(f"Invalid MMSI: {raw!r}", message_type)
    if not (0 < mmsi <= 999999999):
        raise FrameDecodeError(f"Invalid MMSI: {raw!r}", message_type)
    return mmsi


def _clean_text(value: Any) -> Optional[str]:
    """Strip AIS '@' padding and whitespace; empty becomes None."""
    if not isinstance(value, str):
        return None
    cleaned = value.replace("@", " ").strip()
    return cleaned or None


def decode_position(frame: dict[str, Any]) -> PositionUpdate:
    """Decode a PositionReport frame.

    Required: MMSI, Latitude, Longitude, Sog, Cog.

    Raises:
        FrameDecodeError: If a required field is missing or invalid
    """
    message_type = POSITION_REPORT
    body = _body(frame, message_type)
    metadata = _metadata(frame)

    mmsi = _extract_mmsi(body, metadata, message_type)
    latitude = _require_number(body, "Latitude", message_type)
    longitude = _require_number(body, "Longitude", message_type)

    if latitude == LATITUDE_NOT_AVAILABLE or longitude == LONGITUDE_NOT_AVAILABLE:
        raise FrameDecodeError("Position not available", message_type)
    if not (-90 <= latitude <= 90):
        raise FrameDecodeError(f"Invalid latitude: {latitude}", message_type)
    if not (-180 <= longitude <= 180):
        raise FrameDecodeError(f"Invalid longitude: {longitude}", message_type)

    sog = _require_number(body, "Sog", message_type)
    cog = _require_number(body, "Cog", message_type)

    heading = _number(body.get("TrueHeading"))
    true_heading = None
    if heading is not None and int(heading) != HEADING_NOT_AVAILABLE:
        true_heading = int(heading) % 360

    nav_code = _number(body.get("NavigationalStatus"))
    nav_status = NavigationStatus.from_code(int(nav_code)) if nav_code is not None else None

    return PositionUpdate(
        mmsi=mmsi,
        timestamp=parse_timestamp(metadata.get("time_utc"), message_type),
        latitude=latitude,
        longitude=longitude,
        speed_over_ground=max(0.0, sog),
        course_over_ground=cog % 360,
        true_heading=true_heading,
        navigational_status=nav_status,
        rate_of_turn=_number(body.get("RateOfTurn")),
        ship_name=_clean_text(metadata.get("ShipName")),
    )


def _decode_eta(eta: Any) -> Optional[datetime]:
    """Build an ETA in the current year; AIS zero month/day means unavailable."""
    if not isinstance(eta, dict):
        return None
    month = int(_number(eta.get("Month")) or 0)
    day = int(_number(eta.get("Day")) or 0)
    if not month or not day:
        return None
    hour = int(_number(eta.get("Hour")) or 0)
    minute = int(_number(eta.get("Minute")) or 0)
    try:
        return datetime(
            datetime.now(timezone.utc).year,
            month,
            day,
            hour if hour < 24 else 0,
            minute if minute < 60 else 0,
            tzinfo=timezone.utc,
        )
    except ValueError:
        return None


def decode_static_data(frame: dict[str, Any]) -> StaticData:
    """Decode a ShipStaticData frame.

    Only the MMSI is required; everything else is optional.

    Raises:
        FrameDecodeError: If the body or MMSI is missing or invalid
    """
    message_type = SHIP_STATIC_DATA
    body = _body(frame, message_type)
    metadata = _metadata(frame)

    mmsi = _extract_mmsi(body, metadata, message_type)

    dimensions = None
    dimension = body.get("Dimension")
    if isinstance(dimension, dict):
        dimensions = VesselDimensions(
            a=int(_number(dimension.get("A")) or 0),
            b=int(_number(dimension.get("B")) or 0),
            c=int(_number(dimension.get("C")) or 0),
            d=int(_number(dimension.get("D")) or 0),
        )

    type_code = _number(body.get("Type"))
    vessel_type_code = int(type_code) if type_code is not None else None

    imo = _number(body.get("ImoNumber"))
    draught = _number(body.get("MaximumStaticDraught", body.get("Draught")))

    return StaticData(
        mmsi=mmsi,
        name=_clean_text(body.get("Name")) or _clean_text(metadata.get("ShipName")),
        vessel_type=(
            VesselType.from_ais_code(vessel_type_code)
            if vessel_type_code is not None
            else None
        ),
        vessel_type_code=vessel_type_code,
        dimensions=dimensions,
        destination=_clean_text(body.get("Destination")),
        call_sign=_clean_text(body.get("CallSign")),
        imo_number=int(imo) if imo else None,
        eta=_decode_eta(body.get("Eta")),
        draught=draught if draught else None,
    )
