"""Internal AIS data representation models.

Source-agnostic data structures for decoded feed messages, regions
and subscription filters.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Optional

# Message types requested from the upstream feed unless overridden
DEFAULT_MESSAGE_TYPES: tuple[str, ...] = ("PositionReport", "ShipStaticData")


class NavigationStatus(IntEnum):
    """AIS Navigation Status codes (0-15)."""

    UNDERWAY_ENGINE = 0
    AT_ANCHOR = 1
    NOT_UNDER_COMMAND = 2
    RESTRICTED_MANEUVERABILITY = 3
    CONSTRAINED_BY_DRAFT = 4
    MOORED = 5
    AGROUND = 6
    ENGAGED_IN_FISHING = 7
    UNDERWAY_SAILING = 8
    RESERVED_HSC = 9
    RESERVED_WIG = 10
    RESERVED_1 = 11
    RESERVED_2 = 12
    RESERVED_3 = 13
    AIS_SART_ACTIVE = 14
    NOT_DEFINED = 15

    @classmethod
    def from_code(cls, code: Optional[int]) -> Optional["NavigationStatus"]:
        """Create NavigationStatus from AIS code."""
        if code is None:
            return None
        try:
            return cls(code)
        except ValueError:
            return cls.NOT_DEFINED

    @property
    def display_text(self) -> str:
        """Return human-readable status text."""
        status_map = {
            0: "Under way using engine",
            1: "At anchor",
            2: "Not under command",
            3: "Restricted manoeuvrability",
            4: "Constrained by draught",
            5: "Moored",
            6: "Aground",
            7: "Engaged in fishing",
            8: "Under way sailing",
            9: "Reserved for HSC",
            10: "Reserved for WIG",
            14: "AIS-SART active",
            15: "Not defined",
        }
        return status_map.get(self.value, "Reserved")


class VesselType(Enum):
    """Vessel type categories (simplified from AIS ship type codes)."""

    CARGO = "cargo"
    TANKER = "tanker"
    PASSENGER = "passenger"
    FISHING = "fishing"
    MILITARY = "military"
    PLEASURE_CRAFT = "pleasure_craft"
    HIGH_SPEED_CRAFT = "high_speed_craft"
    TUG = "tug"
    PILOT_VESSEL = "pilot_vessel"
    SEARCH_AND_RESCUE = "search_and_rescue"
    DREDGER = "dredger"
    LAW_ENFORCEMENT = "law_enforcement"
    SAILING = "sailing"
    OTHER = "other"
    UNKNOWN = "unknown"

    @classmethod
    def from_ais_code(cls, code: Optional[int]) -> "VesselType":
        """Convert AIS ship type code to VesselType."""
        if code is None or code == 0:
            return cls.UNKNOWN

        if 70 <= code <= 79:
            return cls.CARGO
        elif 80 <= code <= 89:
            return cls.TANKER
        elif 60 <= code <= 69:
            return cls.PASSENGER
        elif code == 30:
            return cls.FISHING
        elif code == 35:
            return cls.MILITARY
        elif code == 36:
            return cls.SAILING
        elif code == 37:
            return cls.PLEASURE_CRAFT
        elif 40 <= code <= 49:
            return cls.HIGH_SPEED_CRAFT
        elif code in (31, 32, 52):
            return cls.TUG
        elif code == 50:
            return cls.PILOT_VESSEL
        elif code == 51:
            return cls.SEARCH_AND_RESCUE
        elif code == 33:
            return cls.DREDGER
        elif code == 55:
            return cls.LAW_ENFORCEMENT
        return cls.OTHER

    @property
    def display_text(self) -> str:
        """Return human-readable vessel type."""
        return self.value.replace("_", " ").title()


@dataclass(frozen=True)
class BoundingBox:
    """Geographic bounding box, inclusive on all four edges."""

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def __post_init__(self) -> None:
        """Validate bounding box coordinates."""
        if not (-90 <= self.min_lat <= 90 and -90 <= self.max_lat <= 90):
            raise ValueError("Latitude must be between -90 and 90")
        if not (-180 <= self.min_lon <= 180 and -180 <= self.max_lon <= 180):
            raise ValueError("Longitude must be between -180 and 180")
        if self.min_lat > self.max_lat:
            raise ValueError("min_lat must be <= max_lat")
        if self.min_lon > self.max_lon:
            raise ValueError("min_lon must be <= max_lon")

    def contains(self, latitude: float, longitude: float) -> bool:
        """Check if a point is within the bounding box."""
        return (
            self.min_lat <= latitude <= self.max_lat
            and self.min_lon <= longitude <= self.max_lon
        )

    def to_corners(self) -> list[list[float]]:
        """Return the box as [[min_lat, min_lon], [max_lat, max_lon]]."""
        return [[self.min_lat, self.min_lon], [self.max_lat, self.max_lon]]

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary."""
        return {
            "min_lat": self.min_lat,
            "max_lat": self.max_lat,
            "min_lon": self.min_lon,
            "max_lon": self.max_lon,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BoundingBox":
        """Create BoundingBox from a min/max dictionary."""
        return cls(
            min_lat=float(data["min_lat"]),
            max_lat=float(data["max_lat"]),
            min_lon=float(data["min_lon"]),
            max_lon=float(data["max_lon"]),
        )


GLOBAL_BBOX = BoundingBox(min_lat=-90, max_lat=90, min_lon=-180, max_lon=180)


@dataclass(frozen=True)
class Region:
    """Named geographic subscription window.

    Priority (1-3) is the number of slots the region takes in one
    rotation cycle.
    """

    id: str
    name: str
    bounds: BoundingBox
    priority: int = 1

    def contains(self, latitude: float, longitude: float) -> bool:
        """Check if a point lies inside the region bounds."""
        return self.bounds.contains(latitude, longitude)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "bounds": self.bounds.to_dict(),
            "priority": self.priority,
        }


@dataclass(frozen=True)
class SubscriptionFilter:
    """Upstream subscription sent with the authentication frame.

    Cannot change on a live connection; a new filter needs a reconnect.
    """

    bounding_boxes: tuple[BoundingBox, ...] = (GLOBAL_BBOX,)
    message_types: tuple[str, ...] = DEFAULT_MESSAGE_TYPES
    mmsi_filters: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.bounding_boxes:
            raise ValueError("Subscription needs at least one bounding box")

    @classmethod
    def for_region(cls, region: Region, **kwargs: Any) -> "SubscriptionFilter":
        """Build a filter covering a single region."""
        return cls(bounding_boxes=(region.bounds,), **kwargs)

    def to_auth_message(self, api_key: str) -> dict[str, Any]:
        """Build the upstream authentication/subscription frame."""
        message: dict[str, Any] = {
            "APIKey": api_key,
            "BoundingBoxes": [bbox.to_corners() for bbox in self.bounding_boxes],
            "FilterMessageTypes": list(self.message_types),
        }
        if self.mmsi_filters:
            message["FiltersShipMMSI"] = list(self.mmsi_filters)
        return message


@dataclass(frozen=True)
class VesselDimensions:
    """Distances in meters from the AIS reference point to bow, stern, port, starboard."""

    a: int = 0
    b: int = 0
    c: int = 0
    d: int = 0

    @property
    def length(self) -> int:
        return self.a + self.b

    @property
    def width(self) -> int:
        return self.c + self.d


@dataclass(frozen=True)
class PositionUpdate:
    """Normalized decode of an upstream position report."""

    mmsi: int
    timestamp: datetime
    latitude: float
    longitude: float
    speed_over_ground: float  # knots
    course_over_ground: float  # degrees 0-360
    true_heading: Optional[int] = None  # degrees 0-359
    navigational_status: Optional[NavigationStatus] = None
    rate_of_turn: Optional[float] = None
    ship_name: Optional[str] = None

    @property
    def mmsi_str(self) -> str:
        """Get MMSI as 9-digit string."""
        return f"{self.mmsi:09d}"

    @property
    def is_moving(self) -> bool:
        """Check if vessel is moving (speed > 0.5 knots)."""
        return self.speed_over_ground > 0.5

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "mmsi": self.mmsi,
            "timestamp": self.timestamp.isoformat(),
            "latitude": self.latitude,
            "longitude": self.longitude,
            "speed_over_ground": self.speed_over_ground,
            "course_over_ground": self.course_over_ground,
            "true_heading": self.true_heading,
            "navigational_status": (
                self.navigational_status.value
                if self.navigational_status is not None
                else None
            ),
            "rate_of_turn": self.rate_of_turn,
            "ship_name": self.ship_name,
        }


@dataclass(frozen=True)
class StaticData:
    """Normalized decode of an upstream ship static data report."""

    mmsi: int
    name: Optional[str] = None
    vessel_type: Optional[VesselType] = None
    vessel_type_code: Optional[int] = None
    dimensions: Optional[VesselDimensions] = None
    destination: Optional[str] = None
    call_sign: Optional[str] = None
    imo_number: Optional[int] = None
    eta: Optional[datetime] = None
    draught: Optional[float] = None  # meters

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "mmsi": self.mmsi,
            "name": self.name,
            "vessel_type": self.vessel_type.value if self.vessel_type else None,
            "vessel_type_code": self.vessel_type_code,
            "length": self.dimensions.length if self.dimensions else None,
            "width": self.dimensions.width if self.dimensions else None,
            "destination": self.destination,
            "call_sign": self.call_sign,
            "imo_number": self.imo_number,
            "eta": self.eta.isoformat() if self.eta else None,
            "draught": self.draught,
        }
