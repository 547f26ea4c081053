"""Tests for the entry point's event logging."""

import logging
from datetime import datetime, timezone

from aisfeed.ais.client import AISStreamClient
from aisfeed.ais.events import ClientEvent
from aisfeed.ais.models import NavigationStatus, PositionUpdate, StaticData, VesselType
from aisfeed.main import attach_event_logging, describe_position, describe_static_data

POSITION = PositionUpdate(
    mmsi=244660000,
    timestamp=datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc),
    latitude=51.95,
    longitude=4.05,
    speed_over_ground=12.3,
    course_over_ground=181.5,
    navigational_status=NavigationStatus.AT_ANCHOR,
)


class TestEventLogging:
    """Test the log lines written for client events."""

    def test_describe_position(self) -> None:
        line = describe_position(POSITION)

        assert line.startswith("Position 244660000: (51.95000, 4.05000)")
        assert "[At anchor]" in line

    def test_describe_position_without_status(self) -> None:
        position = PositionUpdate(
            mmsi=1,
            timestamp=POSITION.timestamp,
            latitude=0.0,
            longitude=0.0,
            speed_over_ground=0.0,
            course_over_ground=0.0,
        )

        assert "[Unknown status]" in describe_position(position)

    def test_describe_static_data(self) -> None:
        data = StaticData(
            mmsi=244660000,
            name="NORDIC STAR",
            vessel_type=VesselType.PLEASURE_CRAFT,
            destination="ROTTERDAM",
        )

        assert describe_static_data(data) == (
            "Static data 244660000: NORDIC STAR (Pleasure Craft) -> ROTTERDAM"
        )

    def test_attached_listeners_log_events(self, connector, caplog) -> None:
        client = AISStreamClient("test-key", connector=connector)
        attach_event_logging(client)

        with caplog.at_level(logging.DEBUG, logger="aisfeed.main"):
            client.events.emit(ClientEvent.POSITION, POSITION)
            client.events.emit(ClientEvent.STATIC_DATA, StaticData(mmsi=244660000))

        assert "[At anchor]" in caplog.text
        assert "Static data 244660000: None (Unknown) -> None" in caplog.text
